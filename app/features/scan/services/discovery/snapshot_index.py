from typing import Dict, List, Optional

import httpx

from app.features.scan.schemas.scan import Snapshot
from app.platform.config import settings
from app.platform.logger import get_logger

logger = get_logger(__name__)


class SnapshotIndexClient:
    """
    Lists archived captures of a domain from the Wayback CDX index.

    The index answers with a JSON table whose first row is a header, e.g.
    ``[["timestamp", "original"], ["20050101000000", "http://example.com/"]]``.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        cdx_url: str = settings.ARCHIVE_CDX_URL,
        timeout: float = settings.REQUEST_TIMEOUT,
    ):
        self.client = client
        self.cdx_url = cdx_url
        self.timeout = timeout

    @staticmethod
    def build_params(domain: str, year: Optional[str] = None, limit: int = 100) -> Dict[str, str]:
        params = {
            "url": domain,
            "output": "json",
            "fl": "timestamp,original",
            "filter": "statuscode:200",
            "limit": str(limit),
        }
        if year:
            params["from"] = f"{year}0101"
            params["to"] = f"{year}1231"
        return params

    @staticmethod
    def parse_rows(data) -> List[Snapshot]:
        """Skip the header row and map the remaining rows positionally."""
        if not isinstance(data, list) or len(data) <= 1:
            return []

        snapshots = []
        for row in data[1:]:
            if not isinstance(row, list) or len(row) < 2:
                continue
            timestamp, original = row[0], row[1]
            if not timestamp or not original:
                continue
            snapshots.append(Snapshot(timestamp=str(timestamp), original=str(original)))
        return snapshots

    async def fetch_snapshots(
        self, domain: str, year: Optional[str] = None, limit: int = 100
    ) -> List[Snapshot]:
        """
        Query the index for HTTP-200 captures of ``domain``.

        Never raises: an unreachable index, a non-success status or an
        unreadable body all come back as an empty list.
        """
        params = self.build_params(domain, year, limit)

        try:
            response = await self.client.get(self.cdx_url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"[Wayback] CDX API error for {domain}: {e}")
            return []
        except ValueError as e:
            logger.error(f"[Wayback] CDX API returned invalid JSON for {domain}: {e}")
            return []

        snapshots = self.parse_rows(data)
        logger.info(f"[Wayback] CDX returned {len(snapshots)} snapshots for {domain} (year={year}, limit={limit})")
        return snapshots
