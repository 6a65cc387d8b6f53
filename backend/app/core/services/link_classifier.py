from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import httpx

from app.config import settings
from app.core.errors import ProbeFailure
from app.core.models.thing import ContentType, ExternalLink
from app.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = get_logger(__name__)


class LinkClassifier:
    """Classify external URLs by probing them with concurrent HEAD requests.

    Each probe is bounded by `timeout`; at most `concurrency` probes are in
    flight at once. A failing probe only downgrades its own URL to `unknown`,
    so a batch always yields one result per input URL.
    """

    def __init__(
        self,
        *,
        timeout: float | None = None,
        concurrency: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout if timeout is not None else settings.probe_timeout
        self._concurrency = max(1, concurrency or settings.probe_concurrency)
        self._transport = transport

    async def classify(self, urls: Sequence[str]) -> list[ExternalLink]:
        if not urls:
            return []

        semaphore = asyncio.Semaphore(self._concurrency)
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self._timeout),
            transport=self._transport,
            follow_redirects=True,
        ) as client:

            async def _bounded(url: str) -> ExternalLink:
                async with semaphore:
                    return await self._classify_one(client, url)

            return list(await asyncio.gather(*(_bounded(u) for u in urls)))

    async def _classify_one(self, client: httpx.AsyncClient, url: str) -> ExternalLink:
        try:
            content_type = await self._probe(client, url)
        except ProbeFailure as err:
            logger.warning("Failed to fetch external content %s: %s", url, err.reason)
            return ExternalLink(url=url, type=ContentType.UNKNOWN)

        link_type = ContentType.IMAGE if content_type.startswith("image/") else ContentType.UNKNOWN
        logger.info("External content type %s - %s", link_type.value, url)
        return ExternalLink(url=url, type=link_type)

    async def _probe(self, client: httpx.AsyncClient, url: str) -> str:
        """Return the lower-cased content type announced for `url`.

        The whole request, headers included, must finish within the configured timeout;
        httpx timeouts alone only bound each individual read.
        """
        try:
            async with asyncio.timeout(self._timeout):
                resp = await client.head(url)
        except TimeoutError as err:
            raise ProbeFailure(url, f"no response within {self._timeout}s") from err
        except (httpx.HTTPError, httpx.InvalidURL) as err:
            raise ProbeFailure(url, f"{type(err).__name__}: {err}") from err
        if not resp.is_success:
            raise ProbeFailure(url, f"status {resp.status_code}")
        return resp.headers.get("content-type", "").strip().lower()
