"""Hashtag and hyperlink extraction from raw note text.

Extraction is a two-pass pipeline: URLs are found first and masked out of the
text, then hashtags are scanned on what remains. A URL fragment such as
`http://x.com/a#frag` must never yield a `frag` tag, so the order of the
passes matters.
"""
from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

_URL_CHARS = r"[A-Za-z0-9$_.+!*(),;/?:@&~=-]"
_URL_SCHEMES = (
    "ftp|http|https|gopher|mailto|news|nntp|telnet|wais|file|prospero|aim|webcal"
)
URL_PATTERN = re.compile(
    r"(?:^|[ \t\r\n])"
    r"((?:" + _URL_SCHEMES + r"):"
    r"(?:" + _URL_CHARS + r"|%[A-Fa-f0-9]{2}){2,}"
    r"(?:#[a-zA-Z0-9$_.+!*(),;/?:@&~=%-]*)?"
    r"[A-Za-z0-9$_+!*();/?:~-])"
)

# Letters include Latin-1 Supplement and Latin Extended-A
TAG_PATTERN = re.compile(r"#([\u00C0-\u017Fa-zA-Z0-9]+)")

URL_PLACEHOLDER = " --URL_PLACEHOLDER-- "


def unique(items: Iterable[str]) -> list[str]:
    """Drop duplicates keeping the first occurrence order."""
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out


def extract_urls(content: str) -> list[str]:
    """Return URLs in `content`, deduplicated in first-occurrence order.

    Matches never span lines and leave trailing sentence punctuation out.
    """
    urls: list[str] = []
    for line in content.split("\n"):
        urls.extend(m.group(1).strip() for m in URL_PATTERN.finditer(line))
    return unique(urls)


def mask_urls(content: str, urls: Iterable[str] | None = None) -> str:
    """Replace every occurrence of each URL (case-insensitively) with a neutral placeholder."""
    if urls is None:
        urls = extract_urls(content)
    for url in urls:
        content = re.sub(re.escape(url), URL_PLACEHOLDER, content, flags=re.IGNORECASE | re.MULTILINE)
    return content


def extract_tags(content: str) -> list[str]:
    """Return lower-cased hashtag names in order of appearance.

    Duplicates are kept; callers persisting tags run them through `unique`.
    """
    masked = mask_urls(content)
    tags: list[str] = []
    for line in masked.split("\n"):
        tags.extend(m.group(1).lower() for m in TAG_PATTERN.finditer(line))
    return tags
