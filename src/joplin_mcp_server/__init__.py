"""
Joplin MCP Server - Model Context Protocol server for the Joplin Web Clipper API.

Exposes Joplin notebooks and notes as MCP tools: list, search and read them,
create, edit and delete them. The server finds a running Joplin by itself
(port discovery) and reconnects when Joplin restarts on another port.

Example usage:
    >>> from joplin_mcp_server import JoplinMCPConfig, create_server
    >>> config = JoplinMCPConfig.load(token="your_joplin_token")
    >>> create_server(config).run(transport="stdio")
"""

import logging

__version__ = "0.2.0"
__description__ = "Model Context Protocol server for the Joplin Web Clipper API"

__all__ = [
    "JoplinAPIClient",
    "JoplinMCPConfig",
    "JoplinServerManager",
    "create_server",
    "JoplinMCPError",
    "JoplinValidationError",
    "JoplinConnectionError",
    "JoplinAPIError",
    "JoplinNotFoundError",
    "JoplinPermissionError",
    "JoplinConflictError",
    "UnexpectedResponseError",
    "__version__",
]

from joplin_mcp_server.client import JoplinAPIClient
from joplin_mcp_server.config import JoplinMCPConfig
from joplin_mcp_server.exceptions import (
    JoplinAPIError,
    JoplinConflictError,
    JoplinConnectionError,
    JoplinMCPError,
    JoplinNotFoundError,
    JoplinPermissionError,
    JoplinValidationError,
    UnexpectedResponseError,
)
from joplin_mcp_server.fastmcp_server import create_server
from joplin_mcp_server.manager import JoplinServerManager

logging.getLogger(__name__).addHandler(logging.NullHandler())
