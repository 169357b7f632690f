"""
Pytest configuration and shared fixtures.

Contains common test fixtures and setup for all test modules.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, Dict, Generator, List, Optional, Sequence, Tuple, Union

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer
from fastapi import FastAPI
from fastapi.testclient import TestClient

from logimporter.api.imports import get_pusher
from logimporter.config import LokiSettings, SampleImportSettings, Settings
from logimporter.core.exceptions import ForwarderError
from logimporter.main import create_app
from logimporter.models.log_batch import LogBatch


class FakePusher:
    """
    Stand-in for LokiPusher that records pushes instead of sending them.

    Service names listed in `failures` raise the mapped error.
    """

    def __init__(self) -> None:
        self.calls: List[Tuple[str, List[str]]] = []
        self.failures: Dict[str, ForwarderError] = {}

    async def push(self, service_name: str, lines: Sequence[str]) -> int:
        if service_name in self.failures:
            raise self.failures[service_name]
        kept = [line for line in lines if line.strip()]
        self.calls.append((service_name, list(lines)))
        return len(kept)

    async def push_batch(self, batch: LogBatch) -> int:
        return await self.push(batch.service_name, batch.lines)


@dataclass
class FakeLoki:
    """In-process Loki push API double."""
    server: TestServer
    pushes: List[Dict[str, Any]] = field(default_factory=list)
    content_types: List[str] = field(default_factory=list)
    status: int = 204
    body: Union[str, bytes] = ""
    delay_seconds: float = 0.0
    ready_status: int = 200
    ready_body: Union[str, bytes] = "ready"
    # job label -> (status, body) overriding the defaults above
    rejections: Dict[str, Tuple[int, Union[str, bytes]]] = field(default_factory=dict)

    @property
    def base_url(self) -> str:
        return f"http://{self.server.host}:{self.server.port}"


@pytest.fixture
def test_settings() -> Settings:
    """Settings pointing at a non-routable Loki with the sample import off."""
    return Settings(
        log_level="DEBUG",
        loki=LokiSettings(base_url="http://loki.invalid:3100", timeout_seconds=2),
        sample_import=SampleImportSettings(enabled=False),
    )


@pytest.fixture
def fake_pusher() -> FakePusher:
    return FakePusher()


@pytest.fixture
def app(test_settings: Settings, fake_pusher: FakePusher) -> FastAPI:
    """App with the Loki pusher replaced by a recorder."""
    application = create_app(test_settings)
    application.dependency_overrides[get_pusher] = lambda: fake_pusher
    return application


@pytest.fixture
def test_client(app: FastAPI) -> Generator[TestClient, None, None]:
    """FastAPI test client with test configuration."""
    with TestClient(app) as client:
        yield client


def _response(status: int, body: Union[str, bytes]) -> web.Response:
    if isinstance(body, bytes):
        return web.Response(status=status, body=body, content_type="text/plain")
    return web.Response(status=status, text=body)


@pytest_asyncio.fixture
async def fake_loki() -> AsyncGenerator[FakeLoki, None]:
    """Start a fake Loki answering /loki/api/v1/push and /ready."""
    state: Optional[FakeLoki] = None

    async def push(request: web.Request) -> web.Response:
        assert state is not None
        state.content_types.append(request.headers.get("Content-Type", ""))
        payload = await request.json()
        state.pushes.append(payload)
        if state.delay_seconds:
            await asyncio.sleep(state.delay_seconds)
        job = payload["streams"][0]["stream"].get("job", "")
        status, body = state.rejections.get(job, (state.status, state.body))
        if status == 204:
            return web.Response(status=204)
        return _response(status, body)

    async def ready(request: web.Request) -> web.Response:
        assert state is not None
        return _response(state.ready_status, state.ready_body)

    loki_app = web.Application()
    loki_app.router.add_post("/loki/api/v1/push", push)
    loki_app.router.add_get("/ready", ready)

    server = TestServer(loki_app)
    await server.start_server()
    state = FakeLoki(server=server)
    try:
        yield state
    finally:
        await server.close()


@pytest.fixture
def sample_log_text() -> str:
    """Pasted text with a service_name header, blank lines and padding."""
    return (
        "service_name:   checkout-api  \n"
        "2024-06-24 09:00:00 INFO order created\n"
        "\n"
        "   2024-06-24 09:00:01 WARN payment slow   \n"
        "\t\n"
        "2024-06-24 09:00:02 ERROR payment failed\n"
    )
