"""Async REST client for the Joplin Web Clipper service."""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from joplin_mcp_server.config import (
    DEFAULT_DISCOVERY_ATTEMPTS,
    DEFAULT_DISCOVERY_TIMEOUT_MS,
    DEFAULT_HOST,
    DEFAULT_PORT,
)
from joplin_mcp_server.exceptions import (
    JoplinAPIError,
    UnexpectedResponseError,
    api_error_for_status,
)
from joplin_mcp_server.models import PaginatedList

logger = logging.getLogger(__name__)

# Literal body returned by GET /ping on a Joplin clipper server
JOPLIN_SIGNATURE = "JoplinClipperServer"

ModelT = TypeVar("ModelT", bound=BaseModel)


class JoplinAPIClient:
    """Thin authenticated wrapper around the Joplin REST API.

    Every request carries the API token as a ``token`` query parameter;
    caller-supplied query parameters win on conflict.
    """

    def __init__(
        self,
        token: str,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        timeout: Optional[float] = 60,
        max_pages: Optional[int] = 1000,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            token: Joplin Web Clipper API token
            host: Joplin host
            port: Joplin port
            timeout: Request timeout in seconds for ordinary calls
            max_pages: Safety cap for :meth:`get_all_items` (None disables it)
            transport: Optional httpx transport, used by tests
        """
        self.host = host
        self.port = port
        self.base_url = f"http://{host}:{port}"
        self._token = token
        self._timeout = timeout
        self._max_pages = max_pages
        self._transport = transport

    def __repr__(self) -> str:
        return f"JoplinAPIClient(base_url={self.base_url}, token=***)"

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url, timeout=self._timeout, transport=self._transport
        )

    def _query(self, query: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        params: Dict[str, Any] = {"token": self._token}
        params.update(query or {})
        return params

    async def service_available(self) -> bool:
        """Check whether a Joplin clipper server answers on the configured address.

        Never raises; any failure is reported as False.
        """
        try:
            async with self._http_client() as client:
                response = await client.get("/ping")
            return response.status_code == 200 and response.text == JOPLIN_SIGNATURE
        except Exception as e:
            logger.debug(f"Error checking Joplin service availability at {self.base_url}: {e}")
            return False

    async def _request(
        self,
        method: str,
        path: str,
        query: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        try:
            async with self._http_client() as client:
                response = await client.request(
                    method, path, params=self._query(query), json=body
                )
        except httpx.HTTPError as e:
            logger.error(f"Error in {method} request for path {path}: {e}")
            raise JoplinAPIError(
                f"Request to Joplin failed: {str(e) or type(e).__name__}", path=path
            ) from e

        if response.is_error:
            detail = _error_detail(response)
            logger.error(
                f"Error in {method} request for path {path}: HTTP {response.status_code} {detail}"
            )
            message = f"Request failed with status code {response.status_code}"
            if detail:
                message = f"{message}: {detail}"
            raise api_error_for_status(response.status_code, message, path=path, detail=detail)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    @staticmethod
    def _parse(data: Any, model: Type[ModelT], path: str) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise UnexpectedResponseError(
                f"Unexpected response format from Joplin API for path: {path}", path=path
            ) from e

    async def get(
        self,
        path: str,
        query: Optional[Dict[str, Any]] = None,
        model: Optional[Type[ModelT]] = None,
    ) -> Any:
        """GET ``path``; validate the body as ``model`` when given."""
        data = await self._request("GET", path, query=query)
        return self._parse(data, model, path) if model else data

    async def post(
        self,
        path: str,
        body: Dict[str, Any],
        query: Optional[Dict[str, Any]] = None,
        model: Optional[Type[ModelT]] = None,
    ) -> Any:
        """POST ``body`` to ``path``; validate the response as ``model`` when given."""
        data = await self._request("POST", path, query=query, body=body)
        return self._parse(data, model, path) if model else data

    async def put(
        self,
        path: str,
        body: Dict[str, Any],
        query: Optional[Dict[str, Any]] = None,
        model: Optional[Type[ModelT]] = None,
    ) -> Any:
        """PUT ``body`` to ``path``; validate the response as ``model`` when given."""
        data = await self._request("PUT", path, query=query, body=body)
        return self._parse(data, model, path) if model else data

    async def delete(self, path: str, query: Optional[Dict[str, Any]] = None) -> Any:
        """DELETE ``path``."""
        return await self._request("DELETE", path, query=query)

    async def get_all_items(
        self,
        path: str,
        model: Type[ModelT],
        query: Optional[Dict[str, Any]] = None,
    ) -> List[ModelT]:
        """Fetch every page of a paginated endpoint.

        Pages are requested with an incrementing ``page`` parameter until a
        response declares ``has_more: false``.

        Raises:
            UnexpectedResponseError: if a page is not ``{"items": [...]}`` or
                the page cap is exceeded
        """
        page_model = PaginatedList[model]
        items: List[ModelT] = []
        page = 1

        while True:
            if self._max_pages is not None and page > self._max_pages:
                raise UnexpectedResponseError(
                    f"Joplin API kept reporting more results after {self._max_pages} pages for path: {path}",
                    path=path,
                )
            data = await self.get(path, query={**(query or {}), "page": page})
            result = self._parse(data, page_model, path)
            items.extend(result.items)
            page += 1
            if not result.has_more:
                break

        return items

    @staticmethod
    async def discover_port(
        host: str = DEFAULT_HOST,
        start_port: int = DEFAULT_PORT,
        max_attempts: int = DEFAULT_DISCOVERY_ATTEMPTS,
        timeout_ms: int = DEFAULT_DISCOVERY_TIMEOUT_MS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> Optional[int]:
        """Find a running Joplin instance by probing a port range concurrently.

        All ``max_attempts`` ports starting at ``start_port`` are probed at
        once. The first probe to succeed wins, whatever its port number.

        Returns:
            The discovered port, or None if no probe succeeded
        """
        end_port = start_port + max_attempts - 1
        logger.info(f"🔍 Scanning for Joplin on {host} ports {start_port}-{end_port}...")
        timeout = timeout_ms / 1000

        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:

            async def probe(port: int) -> Optional[int]:
                try:
                    response = await asyncio.wait_for(
                        client.get(f"http://{host}:{port}/ping"), timeout
                    )
                except Exception:
                    return None
                if response.status_code == 200 and response.text == JOPLIN_SIGNATURE:
                    return port
                return None

            tasks = [
                asyncio.ensure_future(probe(port))
                for port in range(start_port, end_port + 1)
            ]
            try:
                for next_done in asyncio.as_completed(tasks):
                    port = await next_done
                    if port is not None:
                        logger.info(f"✅ Found Joplin on port {port}")
                        return port
            finally:
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)

        logger.info(f"No Joplin instance found on {host} ports {start_port}-{end_port}")
        return None


def _error_detail(response: httpx.Response) -> str:
    """Extract Joplin's error message from a failed response."""
    try:
        data = response.json()
    except ValueError:
        return response.text.strip()
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return ""
