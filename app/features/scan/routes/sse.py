"""
SSE (Server-Sent Events) endpoint for archive keyword scans.

The scan runs inside the response: every progress update and every match
is pushed to the client as soon as it is produced, and the stream closes
after the final ``complete`` or ``error`` event.
"""
from typing import AsyncGenerator, Optional

from fastapi import APIRouter, Depends, Request, status
from pydantic import ValidationError
from sse_starlette.sse import EventSourceResponse

from app.features.scan.schemas.scan import ScanRequest
from app.features.scan.services.scan.scan import ScanService
from app.platform.logger import get_logger
from app.platform.response import api_response

logger = get_logger(__name__)

router = APIRouter(tags=["scan"])


def get_scan_service() -> ScanService:
    return ScanService()


async def scan_event_stream(
    scan_service: ScanService,
    scan_request: ScanRequest,
    request: Request,
) -> AsyncGenerator[dict, None]:
    async for event in scan_service.run(scan_request, is_disconnected=request.is_disconnected):
        yield {"data": event.to_sse_data()}
    logger.info(f"SSE: Closed scan stream for {scan_request.domain}")


@router.get(
    "/scan",
    summary="Scan archived snapshots for a keyword (SSE)",
    description="""
    Looks up archived captures of `domain` (optionally restricted to one
    `year`), fetches up to `limit` of them one at a time and searches the
    visible text, script bodies and HTML comments of each for `keyword`.

    Every event is a single `data:` line holding a JSON object:

    ```json
    {"type": "progress", "message": "Scanning snapshot: 20050101000000...", "currentSnapshot": 1, "totalSnapshots": 12}
    {"type": "match", "match": {"timestamp": "20050101000000", "archiveUrl": "https://web.archive.org/web/20050101000000/http://example.com/", "matchType": "TEXT", "snippet": "...the secret password is..."}}
    {"type": "complete", "message": "Scan complete."}
    {"type": "error", "error": "..."}
    ```

    Invalid parameters are rejected with HTTP 400 before the stream opens.
    """,
)
async def stream_scan(
    request: Request,
    domain: Optional[str] = None,
    year: Optional[str] = None,
    keyword: Optional[str] = None,
    limit: Optional[str] = None,
    scan_service: ScanService = Depends(get_scan_service),
):
    raw = {"domain": domain, "year": year, "keyword": keyword, "limit": limit}
    try:
        scan_request = ScanRequest.model_validate(
            {key: value for key, value in raw.items() if value not in (None, "")}
        )
    except ValidationError as e:
        logger.info(f"Rejected scan request {raw}: {e.error_count()} validation error(s)")
        return api_response(
            message="Invalid parameters",
            status_code=status.HTTP_400_BAD_REQUEST,
            data={"errors": e.errors(include_url=False, include_context=False)},
        )

    logger.info(
        f"SSE: Client connected, scanning {scan_request.domain} "
        f"(year={scan_request.year}, limit={scan_request.limit}) for '{scan_request.keyword}'"
    )

    return EventSourceResponse(
        scan_event_stream(scan_service, scan_request, request),
        media_type="text/event-stream",
        sep="\n",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )
