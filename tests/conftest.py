"""
Pytest configuration and fixtures for Joplin MCP server testing.

Provides sample Joplin payloads, a scripted stand-in for the REST client
used by the tool handler tests, and helpers for building httpx mock
transports that imitate a Joplin Web Clipper service.
"""

import os
from typing import Any, Callable, Dict, Optional
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from joplin_mcp_server.config import JoplinMCPConfig
from joplin_mcp_server.exceptions import JoplinAPIError, api_error_for_status

# Test data constants
TEST_TOKEN = "test_token_123456789"
TEST_HOST = "127.0.0.1"
TEST_PORT = 41184

NOTE_ID = "12345678901234567890123456789012"
OTHER_NOTE_ID = "22345678901234567890123456789012"
NOTEBOOK_ID = "abcdef12345678901234567890123456"
OTHER_NOTEBOOK_ID = "bbcdef12345678901234567890123456"

# Sample test data
SAMPLE_NOTE_DATA = {
    "id": NOTE_ID,
    "title": "Test Note",
    "body": "This is a **test** note with some markdown content.\n\n- Item 1\n- Item 2",
    "parent_id": NOTEBOOK_ID,
    "created_time": 1609459200000,  # 2021-01-01 00:00:00 UTC
    "updated_time": 1609545600000,  # 2021-01-02 00:00:00 UTC
    "is_todo": 0,
    "todo_due": 0,
    "todo_completed": 0,
    "markup_language": 1,
    "source_application": "net.cozic.joplin-desktop",
}

SAMPLE_NOTEBOOK_DATA = {
    "id": NOTEBOOK_ID,
    "title": "Test Notebook",
    "parent_id": "",
    "created_time": 1609459200000,
    "updated_time": 1609545600000,
    "icon": "",
}

JOPLIN_ENV_VARS = (
    "JOPLIN_HOST",
    "JOPLIN_PORT",
    "JOPLIN_TOKEN",
    "JOPLIN_TIMEOUT",
    "JOPLIN_MCP_TRANSPORT",
    "JOPLIN_MCP_HTTP_PORT",
    "JOPLIN_MCP_LOG_DIR",
    "LOG_LEVEL",
)


def http_error(status_code: int, detail: str = "") -> JoplinAPIError:
    """The exception the REST client raises for an HTTP error status."""
    message = f"Request failed with status code {status_code}"
    if detail:
        message = f"{message}: {detail}"
    return api_error_for_status(status_code, message, detail=detail)


def _lookup(responses: Dict[str, Any], path: str) -> Any:
    if path not in responses:
        raise http_error(404)
    value = responses[path]
    if isinstance(value, Exception):
        raise value
    return value


def scripted(responses: Dict[str, Any]) -> Callable:
    """Build an async side effect for get/post/put answering by request path.

    Dict values are validated into the requested ``model``; exception values
    are raised; a missing path raises a 404.
    """

    async def respond(path: str, *args: Any, model=None, **kwargs: Any) -> Any:
        value = _lookup(responses, path)
        if model is not None and isinstance(value, dict):
            return model.model_validate(value)
        return value

    return respond


def scripted_lists(responses: Dict[str, Any]) -> Callable:
    """Build an async side effect for get_all_items answering by request path."""

    async def respond(path: str, model, query=None) -> Any:
        return [model.model_validate(item) for item in _lookup(responses, path)]

    return respond


def page(items, has_more: bool = False) -> Dict[str, Any]:
    return {"items": items, "has_more": has_more}


def joplin_transport(
    handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
    ping_ports: tuple = (TEST_PORT,),
) -> httpx.MockTransport:
    """A mock transport where ``/ping`` answers with the Joplin signature on ``ping_ports``.

    Other requests go to ``handler`` (404 when no handler is given).
    """

    def route(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/ping":
            if request.url.port in ping_ports:
                return httpx.Response(200, text="JoplinClipperServer")
            raise httpx.ConnectError("Connection refused", request=request)
        if handler is not None:
            return handler(request)
        return httpx.Response(404, json={"error": "Not Found"})

    return httpx.MockTransport(route)


@pytest.fixture
def clean_env():
    """Run a test without any Joplin variables from the real environment."""
    env = {key: value for key, value in os.environ.items() if key not in JOPLIN_ENV_VARS}
    with patch.dict(os.environ, env, clear=True):
        yield


@pytest.fixture
def test_config():
    """A valid configuration with a tight discovery window."""
    return JoplinMCPConfig(
        host=TEST_HOST,
        port=TEST_PORT,
        token=TEST_TOKEN,
        discovery_start_port=TEST_PORT,
        discovery_attempts=3,
        discovery_timeout_ms=100,
    )


@pytest.fixture
def mock_api_client():
    """A stand-in for JoplinAPIClient with every request method mocked."""
    client = MagicMock()
    client.get = AsyncMock()
    client.post = AsyncMock()
    client.put = AsyncMock()
    client.delete = AsyncMock(return_value=None)
    client.get_all_items = AsyncMock(return_value=[])
    client.service_available = AsyncMock(return_value=True)
    return client
