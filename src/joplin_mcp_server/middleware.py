"""MCP traffic logging as a FastMCP middleware."""

import datetime
import json
import logging
from typing import Any

from fastmcp.server.middleware import Middleware, MiddlewareContext

TRAFFIC_LOGGER_NAME = "joplin_mcp_server.traffic"

traffic_logger = logging.getLogger(TRAFFIC_LOGGER_NAME)


def _payload(message: Any) -> Any:
    if hasattr(message, "model_dump"):
        return message.model_dump(mode="json", exclude_none=True)
    return message


class TrafficLoggingMiddleware(Middleware):
    """Log every inbound MCP message and its outcome as one JSON line each.

    Commands are numbered in arrival order so a response or error can be
    matched to the command that caused it.
    """

    def __init__(self, logger: logging.Logger = traffic_logger):
        self.logger = logger
        self.command_count = 0

    def _write(self, direction: str, number: int, method: str, message: Any) -> None:
        entry = {
            "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            "direction": direction,
            "command_number": number,
            "method": method,
            "message": _payload(message),
        }
        self.logger.info(json.dumps(entry, default=str))

    async def on_message(self, context: MiddlewareContext, call_next) -> Any:
        self.command_count += 1
        number = self.command_count
        method = context.method or "unknown"

        self._write("COMMAND", number, method, context.message)
        try:
            result = await call_next(context)
        except Exception as e:
            self._write("ERROR", number, method, {"error": str(e), "type": type(e).__name__})
            raise
        self._write("RESPONSE", number, method, result)
        return result
