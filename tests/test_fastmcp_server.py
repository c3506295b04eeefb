"""
Tests for the FastMCP tool registry.

Tools are exercised through FastMCP's in-memory client against a mocked
connection manager, so these tests cover naming, schemas, argument
decoding and error reporting, not Joplin behaviour.
"""

import json
from unittest.mock import MagicMock

import pytest
from fastmcp import Client

from joplin_mcp_server.exceptions import JoplinConnectionError
from joplin_mcp_server.fastmcp_server import (
    create_server,
    log_startup_status,
    validate_boolean_param,
)
from joplin_mcp_server.manager import JoplinServerManager

EXPECTED_TOOLS = {
    "list_notebooks",
    "search_notes",
    "read_notebook",
    "read_note",
    "read_multinote",
    "create_note",
    "create_folder",
    "edit_note",
    "edit_folder",
    "delete_note",
    "delete_folder",
    "connect",
}


@pytest.fixture
def manager():
    """A connection manager double whose async methods are AsyncMocks."""
    return MagicMock(spec=JoplinServerManager)


@pytest.fixture
def mcp(test_config, manager):
    return create_server(test_config, manager=manager)


class TestValidateBooleanParam:
    """Test boolean decoding for flags that may arrive as strings."""

    @pytest.mark.parametrize("value", [True, "true", "TRUE", "1", "yes", " on "])
    def test_true_values(self, value):
        assert validate_boolean_param(value, "confirm") is True

    @pytest.mark.parametrize("value", [False, "false", "0", "no", "off"])
    def test_false_values(self, value):
        assert validate_boolean_param(value, "confirm") is False

    def test_none_passes_through(self):
        assert validate_boolean_param(None, "confirm") is None

    def test_invalid_value(self):
        with pytest.raises(ValueError, match="confirm must be a boolean value"):
            validate_boolean_param("maybe", "confirm")


class TestToolRegistration:
    """Test the exposed tool surface."""

    @pytest.mark.asyncio
    async def test_all_tools_are_registered(self, mcp):
        async with Client(mcp) as client:
            tools = await client.list_tools()

        assert {tool.name for tool in tools} == EXPECTED_TOOLS

    @pytest.mark.asyncio
    async def test_required_parameters_are_declared(self, mcp):
        async with Client(mcp) as client:
            tools = {tool.name: tool for tool in await client.list_tools()}

        assert tools["read_note"].inputSchema["required"] == ["note_id"]
        assert set(tools["delete_folder"].inputSchema["required"]) == {"folder_id"}
        assert not tools["create_note"].inputSchema.get("required")
        assert tools["read_multinote"].inputSchema["properties"]["note_ids"]["type"] == "array"


class TestToolDispatch:
    """Test routing calls to the connection manager."""

    @pytest.mark.asyncio
    async def test_result_is_a_single_text_block(self, mcp, manager):
        manager.read_note.return_value = "# Note: \"Hello\""

        async with Client(mcp) as client:
            result = await client.call_tool_mcp("read_note", {"note_id": "12345678901234567890"})

        assert result.isError is False
        assert len(result.content) == 1
        assert result.content[0].text == "# Note: \"Hello\""
        manager.read_note.assert_awaited_once_with("12345678901234567890")

    @pytest.mark.asyncio
    async def test_string_flags_are_decoded(self, mcp, manager):
        manager.delete_folder.return_value = "deleted"

        async with Client(mcp) as client:
            await client.call_tool_mcp(
                "delete_folder", {"folder_id": "abcdef1234567890", "confirm": "true", "force": "no"}
            )

        manager.delete_folder.assert_awaited_once_with(
            folder_id="abcdef1234567890", confirm=True, force=False
        )

    @pytest.mark.asyncio
    async def test_edit_note_passes_only_given_values(self, mcp, manager):
        manager.edit_note.return_value = "updated"

        async with Client(mcp) as client:
            await client.call_tool_mcp("edit_note", {"note_id": "abcdef1234567890", "title": "X"})

        kwargs = manager.edit_note.await_args.kwargs
        assert kwargs["note_id"] == "abcdef1234567890"
        assert kwargs["title"] == "X"
        assert kwargs["body"] is None
        assert kwargs["todo_completed"] is None

    @pytest.mark.asyncio
    async def test_connect_defaults_to_status_check(self, mcp, manager):
        manager.connect.return_value = "✅ Connected to Joplin"

        async with Client(mcp) as client:
            result = await client.call_tool_mcp("connect", {})

        assert result.content[0].text == "✅ Connected to Joplin"
        manager.connect.assert_awaited_once_with(
            host=None, port=None, discover=False, start_port=None, max_attempts=None
        )

    @pytest.mark.asyncio
    async def test_handler_errors_become_error_results(self, mcp, manager):
        manager.list_notebooks.side_effect = JoplinConnectionError(
            "Joplin is not available. Current settings: 127.0.0.1:41184"
        )

        async with Client(mcp) as client:
            result = await client.call_tool_mcp("list_notebooks", {})

        assert result.isError is True
        assert "Joplin is not available" in result.content[0].text

    @pytest.mark.asyncio
    async def test_server_survives_a_failing_call(self, mcp, manager):
        manager.search_notes.side_effect = RuntimeError("boom")
        manager.list_notebooks.return_value = "Joplin Notebooks:"

        async with Client(mcp) as client:
            failed = await client.call_tool_mcp("search_notes", {"query": "x"})
            ok = await client.call_tool_mcp("list_notebooks", {})

        assert failed.isError is True
        assert ok.isError is False

    @pytest.mark.asyncio
    async def test_unknown_tool(self, mcp):
        async with Client(mcp) as client:
            with pytest.raises(Exception, match="(?i)unknown tool"):
                await client.call_tool("no_such_tool", {})

    @pytest.mark.asyncio
    async def test_schema_violation_is_rejected_before_the_handler(self, mcp, manager):
        async with Client(mcp) as client:
            with pytest.raises(Exception):
                await client.call_tool("read_multinote", {"note_ids": {"not": "a list"}})

        manager.read_multinote.assert_not_called()


class TestConnectionResource:
    """Test the joplin://connection resource."""

    @pytest.mark.asyncio
    async def test_resource_reports_connection_info(self, mcp, manager):
        manager.connection_info.return_value = {"host": "127.0.0.1", "port": 41184, "connected": True}

        async with Client(mcp) as client:
            contents = await client.read_resource("joplin://connection")

        assert json.loads(contents[0].text) == {"host": "127.0.0.1", "port": 41184, "connected": True}


class TestStartupStatus:
    """Test the startup probe used in HTTP mode."""

    @pytest.mark.asyncio
    async def test_unreachable_joplin_logs_remediation(self, manager, caplog):
        manager.connection_info.return_value = {"host": "127.0.0.1", "port": 41184, "connected": False}
        manager.check_service.return_value = False

        with caplog.at_level("WARNING"):
            assert await log_startup_status(manager) is False

        assert "Web Clipper is enabled" in caplog.text

    @pytest.mark.asyncio
    async def test_reachable_joplin(self, manager):
        manager.connection_info.return_value = {"host": "127.0.0.1", "port": 41184, "connected": False}
        manager.check_service.return_value = True

        assert await log_startup_status(manager) is True
