"""Connection management: lazy connect, re-probe, discovery and reconnect."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from joplin_mcp_server.client import JoplinAPIClient
from joplin_mcp_server.config import JoplinMCPConfig
from joplin_mcp_server.exceptions import JoplinConnectionError
from joplin_mcp_server.tools import (
    BaseTool,
    CreateFolder,
    CreateNote,
    DeleteFolder,
    DeleteNote,
    EditFolder,
    EditNote,
    ListNotebooks,
    ReadMultiNote,
    ReadNote,
    ReadNotebook,
    SearchNotes,
)

logger = logging.getLogger(__name__)

TOOL_CLASSES = {
    "list_notebooks": ListNotebooks,
    "search_notes": SearchNotes,
    "read_notebook": ReadNotebook,
    "read_note": ReadNote,
    "read_multinote": ReadMultiNote,
    "create_note": CreateNote,
    "create_folder": CreateFolder,
    "edit_note": EditNote,
    "edit_folder": EditFolder,
    "delete_note": DeleteNote,
    "delete_folder": DeleteFolder,
}


class JoplinServerManager:
    """Owns the REST client and makes sure tool calls reach a live Joplin.

    The connected flag is only a cache: every tool call re-probes the
    service, falling back to port discovery when the probe fails.
    """

    def __init__(
        self,
        config: JoplinMCPConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the manager.

        Args:
            config: Server configuration (token, host, port, discovery window)
            transport: Optional httpx transport shared by every client, used by tests
        """
        self.config = config
        self.connected = False
        self._transport = transport
        self._build_client()

    def _build_client(self) -> None:
        self.api_client = JoplinAPIClient(
            token=self.config.token,
            host=self.config.host,
            port=self.config.port,
            timeout=self.config.timeout,
            max_pages=self.config.max_pages,
            transport=self._transport,
        )
        self.tools: Dict[str, BaseTool] = {
            name: tool_class(self.api_client) for name, tool_class in TOOL_CLASSES.items()
        }

    async def check_service(self) -> bool:
        return await self.api_client.service_available()

    def connection_info(self) -> Dict[str, Any]:
        return {"host": self.config.host, "port": self.config.port, "connected": self.connected}

    async def _discover(self, host: str, start_port: int, max_attempts: int) -> Optional[int]:
        return await JoplinAPIClient.discover_port(
            host,
            start_port,
            max_attempts,
            self.config.discovery_timeout_ms,
            transport=self._transport,
        )

    async def ensure_connected(self) -> None:
        """Guarantee the configured Joplin answers, discovering it if needed.

        Raises:
            JoplinConnectionError: if neither the configured address nor a
                discovered port answers
        """
        if self.connected:
            if await self.check_service():
                return
            logger.warning(f"Lost connection to Joplin at {self.config.host}:{self.config.port}")
            self.connected = False

        if await self.check_service():
            self.connected = True
            logger.info(f"✅ Connected to Joplin at {self.config.host}:{self.config.port}")
            return

        logger.info("🔍 Joplin not available at configured address, attempting auto-discovery...")
        port = await self._discover(
            self.config.host, self.config.discovery_start_port, self.config.discovery_attempts
        )
        if port is not None:
            self.reconnect(self.config.host, port)
            if await self.check_service():
                self.connected = True
                logger.info(f"✅ Auto-discovered Joplin on port {port}")
                return

        raise JoplinConnectionError(
            "Joplin is not available. Please ensure Joplin is running with Web Clipper enabled, "
            "and that the API token is correct, or use the 'connect' tool to specify host/port. "
            f"Current settings: {self.config.host}:{self.config.port}",
            host=self.config.host,
            port=self.config.port,
        )

    def reconnect(self, host: str, port: int) -> None:
        """Point the client and every tool at a new address.

        Availability is not checked here; the next probe does that.
        """
        logger.info(f"Reconnecting to Joplin at {host}:{port}")
        self.config = self.config.copy(host=host, port=port)
        self.connected = False
        self._build_client()

    async def connect(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        discover: bool = False,
        start_port: Optional[int] = None,
        max_attempts: Optional[int] = None,
    ) -> str:
        """Report status, reconnect to a given address, or scan for Joplin."""
        start_port = start_port or self.config.discovery_start_port
        max_attempts = max_attempts or self.config.discovery_attempts

        if discover:
            target_host = host or self.config.host
            found = await self._discover(target_host, start_port, max_attempts)
            if found is None:
                return (
                    "❌ Could not find Joplin\n\n"
                    f"Scanned ports {start_port}-{start_port + max_attempts - 1} on {target_host}.\n\n"
                    "Please ensure:\n"
                    "1. Joplin is running\n"
                    "2. Web Clipper is enabled (Tools > Options > Web Clipper)\n"
                    "3. The host is correct (WSL users may need the Windows IP)"
                )
            self.reconnect(target_host, found)
            if await self.check_service():
                self.connected = True
                return self._connected_text()
            return (
                f"⚠️ Found Joplin on port {found} but connection failed.\n\n"
                "Please verify your API token is correct."
            )

        if host or port:
            self.reconnect(host or self.config.host, port or self.config.port)
            if await self.check_service():
                self.connected = True
                return self._connected_text()
            return (
                "❌ Connection failed\n\n"
                f"Could not connect to Joplin at {self.config.host}:{self.config.port}.\n\n"
                "Please ensure:\n"
                "1. Joplin is running\n"
                "2. Web Clipper is enabled\n"
                "3. The host and port are correct\n"
                "4. The API token is valid"
            )

        if await self.check_service():
            self.connected = True
            return self._connected_text()
        self.connected = False
        return (
            "❌ Not connected\n\n"
            "Current settings:\n"
            f"Host: {self.config.host}\n"
            f"Port: {self.config.port}\n"
            "Status: Disconnected\n\n"
            "Try:\n"
            "- connect with discover=true to scan for Joplin\n"
            "- connect with host/port to specify connection settings"
        )

    def _connected_text(self) -> str:
        return (
            "✅ Connected to Joplin\n\n"
            f"Host: {self.config.host}\n"
            f"Port: {self.config.port}\n"
            "Status: Connected"
        )

    async def _call(self, tool_name: str, *args: Any, **kwargs: Any) -> str:
        await self.ensure_connected()
        return await self.tools[tool_name].call(*args, **kwargs)

    # === TOOL OPERATIONS ===

    async def list_notebooks(self) -> str:
        return await self._call("list_notebooks")

    async def search_notes(self, query: str) -> str:
        return await self._call("search_notes", query)

    async def read_notebook(self, notebook_id: str) -> str:
        return await self._call("read_notebook", notebook_id)

    async def read_note(self, note_id: str) -> str:
        return await self._call("read_note", note_id)

    async def read_multinote(self, note_ids: List[str]) -> str:
        return await self._call("read_multinote", note_ids)

    async def create_note(self, **params: Any) -> str:
        return await self._call("create_note", **params)

    async def create_folder(self, **params: Any) -> str:
        return await self._call("create_folder", **params)

    async def edit_note(self, **params: Any) -> str:
        return await self._call("edit_note", **params)

    async def edit_folder(self, **params: Any) -> str:
        return await self._call("edit_folder", **params)

    async def delete_note(self, **params: Any) -> str:
        return await self._call("delete_note", **params)

    async def delete_folder(self, **params: Any) -> str:
        return await self._call("delete_folder", **params)
