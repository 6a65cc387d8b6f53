"""Rendering of raw note content into display markup ("facelift").

Passes run in a fixed order and each one works on the output of the
previous one: tags first, then classified external links, then attachments.
"""
from __future__ import annotations

import re
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from app.config import settings

if TYPE_CHECKING:
    from collections.abc import Sequence

    from app.core.models.thing import AttachmentRef, ExternalLink

_FLAGS = re.IGNORECASE | re.MULTILINE


def pretty_url(url: str, max_length: int | None = None) -> str:
    """Strip the scheme from `url` and cap it at `max_length` characters plus '...'."""
    max_length = max_length or settings.pretty_url_length
    scheme = urlsplit(url).scheme
    pretty = url
    if scheme:
        for prefix in (f"{scheme}://", f"{scheme}:"):
            if url.lower().startswith(prefix.lower()):
                pretty = url[len(prefix):]
                break
    if len(pretty) > max_length:
        pretty = pretty[:max_length] + "..."
    return pretty


def attachment_url(user_id: str, identifier: str, files_path: str | None = None) -> str:
    base = (files_path or settings.files_path).rstrip("/")
    return f"{base}/{user_id}/{identifier}"


def _link_tags(data: str, tags: Sequence[str]) -> str:
    for tag in tags:
        markup = f"[#{tag}](#search?#{tag})"
        data = re.sub(
            "#" + re.escape(tag) + r"(#|\s|$)",
            lambda m, markup=markup: markup + m.group(1),
            data,
            flags=_FLAGS,
        ).strip()
    return data


def _link_external(data: str, external_content: Sequence[ExternalLink], pretty_length: int | None) -> str:
    for link in external_content:
        if link.is_image:
            markup = f"![{link.url}]({link.url})"
        else:
            markup = f"[{pretty_url(link.url, pretty_length)}]({link.url})"
        data = re.sub(re.escape(link.url), lambda _m, markup=markup: markup, data, flags=_FLAGS)
    return data


def _link_attachments(
    data: str, user_id: str, attachments: Sequence[AttachmentRef], files_path: str | None
) -> str:
    for attachment in attachments:
        target = attachment_url(user_id, attachment.identifier, files_path)
        markup = f"![{target}]({target})" if attachment.is_image else f"[{target}]({target})"
        data = re.sub(
            r"\[" + re.escape(attachment.file_name) + r"\]",
            lambda _m, markup=markup: markup,
            data,
            flags=_FLAGS,
        )
    return data


def facelift(
    user_id: str,
    content: str,
    tags: Sequence[str],
    external_content: Sequence[ExternalLink],
    attachments: Sequence[AttachmentRef] = (),
    *,
    files_path: str | None = None,
    pretty_length: int | None = None,
) -> str:
    """Return markdown for `content` with tags, links and attachments turned into links.

    Pure: nothing is fetched or persisted. Tag links point at the `#search?#<tag>`
    view, attachment links at `<files_path>/<user_id>/<identifier>`.
    """
    data = _link_tags(content, tags)
    data = _link_external(data, external_content, pretty_length)
    return _link_attachments(data, user_id, attachments, files_path)
