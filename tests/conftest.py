"""
Central test configuration and fixtures for the weather chat client.
"""

import asyncio
from typing import Callable, Dict, List, Sequence, Union

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from weather_chat.config.settings import Settings
from weather_chat.streaming.session import StreamSession


# ============================================================================
# SETTINGS FIXTURES
# ============================================================================

@pytest.fixture
def settings(tmp_path):
    """Settings that ignore the repository's config files."""
    return Settings(
        config_file_path=str(tmp_path / "missing.yaml"),
        system_prompt_path=str(tmp_path / "missing.md"),
    )


# ============================================================================
# FAKE STREAM CLIENTS - For fast, isolated session tests
# ============================================================================

HOLD = object()

ScriptItem = Union[str, BaseException, object]


class ScriptedClient:
    """Stream client that plays back a script per question.

    Strings are yielded as fragments, exceptions are raised, and ``HOLD``
    blocks until the stream is cancelled.
    """

    def __init__(self, scripts: Dict[str, Sequence[ScriptItem]]):
        self.scripts = scripts
        self.holding = asyncio.Event()
        self.requests: List[str] = []
        self.closed: List[str] = []

    async def stream(self, user_input: str):
        self.requests.append(user_input)
        try:
            for item in self.scripts[user_input]:
                if item is HOLD:
                    self.holding.set()
                    await asyncio.Event().wait()
                elif isinstance(item, BaseException):
                    raise item
                else:
                    await asyncio.sleep(0)
                    yield item
        finally:
            self.closed.append(user_input)


async def always_online() -> bool:
    return True


async def always_offline() -> bool:
    return False


@pytest.fixture
def scripted_session(settings) -> Callable[..., StreamSession]:
    def _make(scripts, connectivity_check=always_online):
        return StreamSession(ScriptedClient(scripts), connectivity_check=connectivity_check, settings=settings)
    return _make


# ============================================================================
# AGENT SERVER FIXTURES - A local aiohttp app standing in for the agent
# ============================================================================

def chunked_stream_handler(chunks: Sequence[bytes], received: List[dict] = None):
    """Handler that writes each chunk separately, then ends the response."""

    async def handler(request: web.Request) -> web.StreamResponse:
        if received is not None:
            received.append({"headers": request.headers.copy(), "json": await request.json()})
        response = web.StreamResponse(status=200, headers={"Content-Type": "text/event-stream"})
        await response.prepare(request)
        for chunk in chunks:
            await response.write(chunk)
        await response.write_eof()
        return response

    return handler


@pytest.fixture
async def agent_server():
    """Start a local agent endpoint for a handler; returns its URL."""
    servers: List[TestServer] = []

    async def _start(handler) -> str:
        app = web.Application()
        app.router.add_post("/api/agents/weatherAgent/stream", handler)
        server = TestServer(app)
        await server.start_server()
        servers.append(server)
        return str(server.make_url("/api/agents/weatherAgent/stream"))

    yield _start

    for server in servers:
        await server.close()


# ============================================================================
# TEST DATA
# ============================================================================

MUMBAI_DELHI_REPLY = (
    "Mumbai — Now:\n"
    "- Temperature: 28C\n"
    "- Humidity: 60%\n"
    "Delhi — Tomorrow:\n"
    "- Temperature: 32C"
)


# ============================================================================
# PYTEST MARKERS
# ============================================================================

def pytest_configure(config):
    """Configure custom pytest markers"""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests (fast, isolated)"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests that talk to a local HTTP server"
    )
