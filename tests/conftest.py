"""
Test configuration and fixtures for the Wayback Keyword Scanner API.

The archive is never contacted: scan tests route every outbound request
through ``httpx.MockTransport`` and replace the politeness delay with a
recording no-op.
"""

import json
from typing import Callable, Dict, Generator, List, Optional, Tuple, Type, Union

import httpx
import pytest
from fastapi.testclient import TestClient
from sse_starlette.sse import AppStatus

ARCHIVE_BASE = "https://web.archive.org"
CDX_URL = f"{ARCHIVE_BASE}/cdx/search/cdx"
CDX_HEADER = ["timestamp", "original"]

# Snapshot replay responses, keyed by CDX timestamp: (status_code, body),
# or an httpx.RequestError subclass to raise instead
PageMap = Dict[str, Union[Tuple[int, str], Type[httpx.RequestError]]]


@pytest.fixture(scope="session")
def test_app():
    """Create FastAPI test application."""
    from app.main import app

    return app


@pytest.fixture(scope="function")
def client(test_app) -> Generator[TestClient, None, None]:
    with TestClient(test_app) as test_client:
        yield test_client


@pytest.fixture(autouse=True)
def reset_sse_app_status(monkeypatch):
    """sse-starlette keeps a module-level exit event bound to the first event loop."""
    monkeypatch.setattr(AppStatus, "should_exit_event", None, raising=False)


class FakeSleep:
    """Stands in for asyncio.sleep and remembers every requested delay."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


class FakeArchive:
    """
    Minimal stand-in for the CDX index and the replay endpoint.

    ``cdx`` is the JSON table returned by the index (header row included),
    or an int to answer the index with that status code instead.
    """

    def __init__(self, cdx, pages: Optional[PageMap] = None):
        self.cdx = cdx
        self.pages = pages or {}
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path.startswith("/cdx/"):
            if isinstance(self.cdx, int):
                return httpx.Response(self.cdx, text="unavailable")
            return httpx.Response(200, text=json.dumps(self.cdx))

        if path.startswith("/web/"):
            timestamp = path.split("/")[2]
            if timestamp not in self.pages:
                raise httpx.ConnectError("connection refused", request=request)
            page = self.pages[timestamp]
            if isinstance(page, type) and issubclass(page, httpx.RequestError):
                raise page(f"{page.__name__} for {timestamp}", request=request)
            status_code, body = page
            return httpx.Response(status_code, text=body, headers={"Content-Type": "text/html"})

        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def replay_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.startswith("/web/")]


@pytest.fixture
def make_archive() -> Callable[..., FakeArchive]:
    def _make(rows, pages: Optional[PageMap] = None) -> FakeArchive:
        cdx = rows if isinstance(rows, int) else [CDX_HEADER, *rows]
        return FakeArchive(cdx, pages)

    return _make
