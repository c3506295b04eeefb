"""Tool handlers, one class per MCP tool."""

from joplin_mcp_server.tools.base import BaseTool
from joplin_mcp_server.tools.browse import (
    ListNotebooks,
    ReadMultiNote,
    ReadNote,
    ReadNotebook,
    SearchNotes,
)
from joplin_mcp_server.tools.folders import CreateFolder, DeleteFolder, EditFolder
from joplin_mcp_server.tools.notes import CreateNote, DeleteNote, EditNote

__all__ = [
    "BaseTool",
    "CreateFolder",
    "CreateNote",
    "DeleteFolder",
    "DeleteNote",
    "EditFolder",
    "EditNote",
    "ListNotebooks",
    "ReadMultiNote",
    "ReadNote",
    "ReadNotebook",
    "SearchNotes",
]
