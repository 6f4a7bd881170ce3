"""
Scan orchestration.

Drives one keyword scan end to end: asks the CDX index for snapshots,
then fetches each replayed page in turn, runs the extractor over it and
yields progress, match and completion events as they happen.
"""
import asyncio
import random
from typing import AsyncIterator, Awaitable, Callable, List, Optional

import httpx

from app.features.scan.schemas.scan import (
    CompleteEvent,
    ErrorEvent,
    MatchEvent,
    ProgressEvent,
    ScanEvent,
    ScanMatch,
    ScanRequest,
    Snapshot,
)
from app.features.scan.services.discovery.snapshot_index import SnapshotIndexClient
from app.features.scan.services.extraction.extractor_service import ExtractorService
from app.platform.config import settings
from app.platform.logger import get_logger

logger = get_logger(__name__)

DisconnectCheck = Callable[[], Awaitable[bool]]


def build_archive_url(base_url: str, timestamp: str, original: str) -> str:
    """Replay URL for one capture: ``<base>/web/<timestamp>/<original>``."""
    return f"{base_url.rstrip('/')}/web/{timestamp}/{original}"


async def _never_disconnected() -> bool:
    return False


class ScanService:
    """
    Sequential scan pipeline for a single caller.

    Nothing here is shared between scans; every call to ``run`` opens its
    own HTTP client and keeps its own counters.
    """

    def __init__(
        self,
        archive_base_url: str = settings.ARCHIVE_BASE_URL,
        cdx_url: str = settings.ARCHIVE_CDX_URL,
        request_timeout: float = settings.REQUEST_TIMEOUT,
        delay_min: float = settings.POLITENESS_DELAY_MIN,
        delay_max: float = settings.POLITENESS_DELAY_MAX,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        self.archive_base_url = archive_base_url
        self.cdx_url = cdx_url
        self.request_timeout = request_timeout
        self.delay_min = delay_min
        self.delay_max = delay_max
        self.transport = transport
        self.sleep = sleep
        self.rng = rng or random.Random()

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers=settings.archive_headers(),
            timeout=self.request_timeout,
            follow_redirects=True,
            transport=self.transport,
        )

    def politeness_delay(self) -> float:
        """Seconds to wait before the next replay fetch, in [min, max)."""
        return self.delay_min + self.rng.random() * (self.delay_max - self.delay_min)

    async def fetch_page(self, client: httpx.AsyncClient, archive_url: str) -> Optional[str]:
        """
        Fetch one replayed page.

        Returns None for transport errors, timeouts, unusable URLs and
        non-success statuses; those snapshots are simply skipped.
        """
        try:
            response = await client.get(archive_url, timeout=self.request_timeout)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug(f"Skipping {archive_url}: {e!r}")
            return None

        if not response.is_success:
            logger.debug(f"Skipping {archive_url}: HTTP {response.status_code}")
            return None
        return response.text

    async def run(
        self,
        scan_request: ScanRequest,
        is_disconnected: Optional[DisconnectCheck] = None,
    ) -> AsyncIterator[ScanEvent]:
        """
        Yield the events of one scan, in order.

        ``is_disconnected`` is consulted once at the top of every snapshot
        iteration; when it reports True the generator stops without a
        completion event. An in-flight fetch is never interrupted.
        """
        check_disconnected = is_disconnected or _never_disconnected

        try:
            yield ProgressEvent(message=f"Contacting archive for: {scan_request.domain}...")

            async with self._build_client() as client:
                index = SnapshotIndexClient(client, cdx_url=self.cdx_url, timeout=self.request_timeout)
                snapshots = await index.fetch_snapshots(
                    scan_request.domain, scan_request.year, scan_request.limit
                )

                if not snapshots:
                    yield CompleteEvent(message="No snapshots found for this criteria.")
                    return

                total = len(snapshots)
                yield ProgressEvent(
                    message=f"Analyzing {total} snapshots for '{scan_request.keyword}'...",
                    current_snapshot=0,
                    total_snapshots=total,
                )

                found_any = False
                for i, snapshot in enumerate(snapshots):
                    if await check_disconnected():
                        logger.info(
                            f"[SSE] Client disconnected, aborting scan of {scan_request.domain} "
                            f"at snapshot {i + 1}/{total}"
                        )
                        return

                    yield ProgressEvent(
                        message=f"Scanning snapshot: {snapshot.timestamp}...",
                        current_snapshot=i + 1,
                        total_snapshots=total,
                    )

                    for match in await self._scan_snapshot(client, snapshot, scan_request.keyword):
                        found_any = True
                        yield MatchEvent(match=match)

            if found_any:
                yield CompleteEvent(message="Scan complete.")
            else:
                yield CompleteEvent(message="Scan finished. No matches found.")

        except Exception as e:
            logger.error(f"[Scan Error] {scan_request.domain}: {e}", exc_info=True)
            yield ErrorEvent(error=str(e) or "An unknown error occurred")

    async def _scan_snapshot(
        self, client: httpx.AsyncClient, snapshot: Snapshot, keyword: str
    ) -> List[ScanMatch]:
        """
        Delay, fetch and extract one snapshot.

        Any failure here only costs this snapshot: it is logged and the
        scan moves on to the next one.
        """
        archive_url = build_archive_url(self.archive_base_url, snapshot.timestamp, snapshot.original)

        try:
            # Be polite to the Wayback Machine
            await self.sleep(self.politeness_delay())

            html = await self.fetch_page(client, archive_url)
            if html is None:
                return []

            return ExtractorService.extract(html, keyword, snapshot.timestamp, archive_url)
        except Exception as e:
            logger.warning(f"Skipping snapshot {snapshot.timestamp}: {e!r}", exc_info=True)
            return []
