"""Test configuration: a fake Moodle endpoint behind httpx.MockTransport."""

import os
import tempfile

# Keep log files out of the home directory (Config reads this at import time)
os.environ.setdefault("MOODLE_MCP_LOG_DIR", tempfile.mkdtemp(prefix="moodle-mcp-tests-"))

from typing import Any, Dict, List, Optional

import httpx
import pytest

from moodle_mcp.client import MoodleClient
from moodle_mcp.router import Router
from moodle_mcp.tools import ALL_TOOLS, make_tool_handler

MOODLE_URL = "https://moodle.test/webservice/rest/server.php"
MOODLE_TOKEN = "test-token-123"


def pytest_configure(config):
    config.addinivalue_line("markers", "asyncio: mark test as async")


class FakeMoodle:
    """
    Stands in for the Moodle REST endpoint.

    Register a payload (or a callable taking the query params) per wsfunction;
    every request is recorded for later assertions.
    """

    def __init__(self):
        self._routes: Dict[str, Any] = {}
        self.requests: List[httpx.Request] = []

    def on(self, function: str, payload: Any = None, *, status: int = 200, handler=None):
        self._routes[function] = (status, payload, handler)

    def fail(self, function: str, status: int = 500, message: Optional[str] = None):
        body = {"message": message} if message else {}
        self._routes[function] = (status, body, None)

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        function = request.url.params.get("wsfunction")
        if function not in self._routes:
            return httpx.Response(404, json={"message": f"No fake registered for {function}"})

        status, payload, handler = self._routes[function]
        if handler is not None:
            payload = handler(request.url.params)
            if hasattr(payload, "__await__"):
                payload = await payload
        return httpx.Response(status, json=payload)

    def calls(self, function: str) -> List[httpx.QueryParams]:
        return [
            r.url.params for r in self.requests
            if r.url.params.get("wsfunction") == function
        ]


@pytest.fixture
def moodle():
    return FakeMoodle()


@pytest.fixture
def client(moodle):
    return MoodleClient(MOODLE_URL, MOODLE_TOKEN, transport=httpx.MockTransport(moodle))


@pytest.fixture
def make_router(client):
    """Router with every Moodle tool registered, for a given default course."""

    def _make(default_course_id: Optional[str] = None) -> Router:
        router = Router()
        router.register_tools_module(ALL_TOOLS, make_tool_handler(client, default_course_id))
        return router

    return _make


@pytest.fixture
def call_tool(make_router):
    """Invoke a tool through the router, exactly as tools/call would."""

    async def _call(name: str, args: Optional[Dict[str, Any]] = None, default_course_id: Optional[str] = None):
        router = make_router(default_course_id)
        msg = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "tools/call",
            "params": {"name": name, "arguments": args or {}},
        }
        return await router.route("request", msg)

    return _call
