"""FastMCP-based Joplin MCP Server Implementation.

📚 READING:
- list_notebooks() - Show the whole notebook hierarchy
- search_notes(query) - Full-text search across notes
- read_notebook(notebook_id) - List the notes in a notebook
- read_note(note_id) - Show one note with its content
- read_multinote(note_ids) - Show several notes in one call

✏️ WRITING:
- create_note(title, body, body_html, parent_id, is_todo, image_data_url)
- create_folder(title, parent_id)
- edit_note(note_id, ...) / edit_folder(folder_id, ...)
- delete_note(note_id, confirm) / delete_folder(folder_id, confirm, force)

🔌 CONNECTION:
- connect(host, port, discover, start_port, max_attempts) - Check, change or discover the Joplin address
"""

import asyncio
import logging
from functools import wraps
from typing import Annotated, Any, Callable, List, Optional, TypeVar, Union

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from joplin_mcp_server.config import JoplinMCPConfig
from joplin_mcp_server.manager import JoplinServerManager
from joplin_mcp_server.middleware import TrafficLoggingMiddleware

logger = logging.getLogger(__name__)

T = TypeVar("T")

SERVER_NAME = "Joplin MCP Server"

# === UTILITY FUNCTIONS ===


def validate_boolean_param(value: Union[bool, str, None], param_name: str) -> Optional[bool]:
    """Validate and convert boolean parameter that might come as string."""
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        value_lower = value.lower().strip()
        if value_lower in ("true", "1", "yes", "on"):
            return True
        if value_lower in ("false", "0", "no", "off"):
            return False
    raise ValueError(
        f"{param_name} must be a boolean value or string representation (true/false, 1/0, yes/no, on/off)"
    )


def with_tool_error_handling(operation_name: str):
    """Decorator turning any escaping exception into an error-flagged tool result."""

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            try:
                return await func(*args, **kwargs)
            except ToolError:
                raise
            except Exception as e:
                logger.error(f"{operation_name} failed: {e}")
                raise ToolError(str(e) or f"{operation_name} failed") from e

        return wrapper

    return decorator


def register_tools(mcp: FastMCP, manager: JoplinServerManager) -> None:
    """Register every Joplin tool and resource on ``mcp``, bound to ``manager``."""

    def create_tool(operation_name: str):
        def decorator(func: Callable[..., T]) -> Callable[..., T]:
            return mcp.tool()(with_tool_error_handling(operation_name)(func))

        return decorator

    # === READING ===

    @create_tool("List notebooks")
    async def list_notebooks() -> str:
        """Retrieve the complete notebook hierarchy from Joplin.

        Returns every notebook with its notebook_id, indented under its parent.
        """
        return await manager.list_notebooks()

    @create_tool("Search notes")
    async def search_notes(
        query: Annotated[str, "Search query for notes. Uses Joplin's search syntax, e.g. 'meeting notes' or 'tag:work'."],
    ) -> str:
        """Search for notes in Joplin and return matching notes with their notebooks.

        Each result includes the note_id, the containing notebook and a short snippet.
        """
        return await manager.search_notes(query)

    @create_tool("Read notebook")
    async def read_notebook(
        notebook_id: Annotated[str, "ID of the notebook to read (from list_notebooks), not its title."],
    ) -> str:
        """Read the contents of a specific notebook, most recently updated notes first."""
        return await manager.read_notebook(notebook_id)

    @create_tool("Read note")
    async def read_note(
        note_id: Annotated[str, "ID of the note to read (from search_notes or read_notebook)."],
    ) -> str:
        """Read the full content of a specific note."""
        return await manager.read_note(note_id)

    @create_tool("Read multiple notes")
    async def read_multinote(
        note_ids: Annotated[List[str], "Array of note IDs to read."],
    ) -> str:
        """Read the full content of multiple notes at once.

        Missing or failing notes do not stop the others; a summary lists every outcome.
        """
        return await manager.read_multinote(note_ids)

    # === WRITING ===

    @create_tool("Create note")
    async def create_note(
        title: Annotated[Optional[str], "Note title."] = None,
        body: Annotated[Optional[str], "Note content in Markdown."] = None,
        body_html: Annotated[Optional[str], "Note content in HTML; Joplin converts it to Markdown."] = None,
        parent_id: Annotated[Optional[str], "ID of parent notebook. Omit to use Joplin's default notebook."] = None,
        is_todo: Annotated[Union[bool, str, None], "Whether this is a todo note."] = None,
        image_data_url: Annotated[Optional[str], "Base64 encoded image data URL to attach to the note."] = None,
    ) -> str:
        """Create a new note in Joplin.

        At least one of title, body or body_html is required.
        """
        return await manager.create_note(
            title=title,
            body=body,
            body_html=body_html,
            parent_id=parent_id,
            is_todo=validate_boolean_param(is_todo, "is_todo"),
            image_data_url=image_data_url,
        )

    @create_tool("Create folder")
    async def create_folder(
        title: Annotated[str, "Notebook title."],
        parent_id: Annotated[Optional[str], "ID of parent notebook. Omit to create a top-level notebook."] = None,
    ) -> str:
        """Create a new folder/notebook in Joplin."""
        return await manager.create_folder(title=title, parent_id=parent_id)

    @create_tool("Edit note")
    async def edit_note(
        note_id: Annotated[str, "ID of the note to edit."],
        title: Annotated[Optional[str], "New note title."] = None,
        body: Annotated[Optional[str], "New note content in Markdown."] = None,
        body_html: Annotated[Optional[str], "New note content in HTML."] = None,
        parent_id: Annotated[Optional[str], "New parent notebook ID (moves the note)."] = None,
        is_todo: Annotated[Union[bool, str, None], "Whether this is a todo note."] = None,
        todo_completed: Annotated[Union[bool, str, None], "Whether the todo is completed."] = None,
        todo_due: Annotated[Optional[int], "Todo due date as a Unix timestamp in milliseconds."] = None,
    ) -> str:
        """Edit/update an existing note in Joplin.

        Only the fields provided are changed; everything else is left as is.
        """
        return await manager.edit_note(
            note_id=note_id,
            title=title,
            body=body,
            body_html=body_html,
            parent_id=parent_id,
            is_todo=validate_boolean_param(is_todo, "is_todo"),
            todo_completed=validate_boolean_param(todo_completed, "todo_completed"),
            todo_due=todo_due,
        )

    @create_tool("Edit folder")
    async def edit_folder(
        folder_id: Annotated[str, "ID of the folder to edit."],
        title: Annotated[Optional[str], "New folder title."] = None,
        parent_id: Annotated[Optional[str], "New parent folder ID (moves the folder)."] = None,
    ) -> str:
        """Edit/update an existing folder/notebook in Joplin."""
        return await manager.edit_folder(folder_id=folder_id, title=title, parent_id=parent_id)

    @create_tool("Delete note")
    async def delete_note(
        note_id: Annotated[str, "ID of the note to delete."],
        confirm: Annotated[Union[bool, str, None], "Confirmation flag; must be true to actually delete."] = None,
    ) -> str:
        """Delete a note from Joplin (requires confirmation).

        Without confirm=true this only returns a warning. Deletion cannot be undone.
        """
        return await manager.delete_note(
            note_id=note_id, confirm=validate_boolean_param(confirm, "confirm")
        )

    @create_tool("Delete folder")
    async def delete_folder(
        folder_id: Annotated[str, "ID of the folder to delete."],
        confirm: Annotated[Union[bool, str, None], "Confirmation flag; must be true to actually delete."] = None,
        force: Annotated[Union[bool, str, None], "Force delete even if folder has contents."] = None,
    ) -> str:
        """Delete a folder/notebook from Joplin (requires confirmation).

        Non-empty notebooks are only deleted with force=true, together with everything inside.
        """
        return await manager.delete_folder(
            folder_id=folder_id,
            confirm=validate_boolean_param(confirm, "confirm"),
            force=validate_boolean_param(force, "force"),
        )

    # === CONNECTION ===

    @create_tool("Connect")
    async def connect(
        host: Annotated[Optional[str], "Joplin host, e.g. 127.0.0.1 or the Windows IP from WSL."] = None,
        port: Annotated[Optional[int], "Joplin Web Clipper port."] = None,
        discover: Annotated[Union[bool, str, None], "Scan a port range for a running Joplin."] = None,
        start_port: Annotated[Optional[int], "First port to scan when discovering. Default 41184."] = None,
        max_attempts: Annotated[Optional[int], "Number of ports to scan when discovering. Default 10."] = None,
    ) -> str:
        """Check the Joplin connection, connect to a given host/port, or discover Joplin.

        With no arguments this reports the current connection status.
        """
        return await manager.connect(
            host=host,
            port=port,
            discover=bool(validate_boolean_param(discover, "discover")),
            start_port=start_port,
            max_attempts=max_attempts,
        )

    @mcp.resource("joplin://connection")
    async def connection_status() -> dict:
        """Current Joplin address and last known connection state."""
        return manager.connection_info()


def create_server(config: JoplinMCPConfig, manager: Optional[JoplinServerManager] = None) -> FastMCP:
    """Build a FastMCP server exposing the Joplin tools.

    Args:
        config: Server configuration
        manager: Connection manager to bind the tools to; built from ``config`` if omitted
    """
    manager = manager or JoplinServerManager(config)
    mcp = FastMCP(SERVER_NAME)
    mcp.add_middleware(TrafficLoggingMiddleware())
    register_tools(mcp, manager)
    return mcp


async def log_startup_status(manager: JoplinServerManager) -> bool:
    """Probe Joplin once and log a remediation checklist if it does not answer."""
    info = manager.connection_info()
    if await manager.check_service():
        logger.info(f"✅ Joplin is reachable at {info['host']}:{info['port']}")
        return True
    logger.warning(
        f"⚠️ Joplin is not reachable at {info['host']}:{info['port']}. "
        "The server will start anyway and retry on every tool call.\n"
        "Please ensure:\n"
        "1. Joplin is running\n"
        "2. Web Clipper is enabled (Tools > Options > Web Clipper)\n"
        "3. The host and port are correct (WSL users may need the Windows IP)\n"
        "4. The API token is valid"
    )
    return False


def main(config: JoplinMCPConfig) -> None:
    """Main entry point for the FastMCP Joplin server."""
    logger.info("🚀 Starting FastMCP Joplin server...")
    manager = JoplinServerManager(config)
    mcp = create_server(config, manager)

    if config.transport == "http":
        asyncio.run(log_startup_status(manager))
        logger.info(
            f"Starting FastMCP server with HTTP transport on "
            f"{config.http_host}:{config.http_port}{config.http_path}"
        )
        mcp.run(
            transport="http",
            host=config.http_host,
            port=config.http_port,
            path=config.http_path,
            log_level=config.log_level,
        )
    else:
        logger.info("Starting FastMCP server with STDIO transport")
        mcp.run(transport="stdio")
