"""Exception hierarchy for the Joplin MCP server."""

from typing import Optional


class JoplinMCPError(Exception):
    """Base exception for Joplin MCP operations."""

    pass


class JoplinValidationError(JoplinMCPError):
    """Raised when tool arguments are malformed or missing.

    The message is a usage hint meant to be shown to the caller as-is.
    """

    pass


class JoplinConnectionError(JoplinMCPError):
    """Raised when the Joplin service cannot be reached after discovery."""

    def __init__(self, message: str, host: Optional[str] = None, port: Optional[int] = None):
        super().__init__(message)
        self.host = host
        self.port = port


class UnexpectedResponseError(JoplinMCPError):
    """Raised when a Joplin response does not have the expected shape."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class JoplinAPIError(JoplinMCPError):
    """Raised when a request to the Joplin REST API fails.

    ``status_code`` is None when the request never got an HTTP response
    (connection refused, timeout, ...).
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        path: Optional[str] = None,
        detail: str = "",
    ):
        super().__init__(message)
        self.status_code = status_code
        self.path = path
        self.detail = detail


class JoplinNotFoundError(JoplinAPIError):
    """Raised when requested Joplin resource is not found (404)."""

    pass


class JoplinPermissionError(JoplinAPIError):
    """Raised when Joplin refuses access to a resource (403)."""

    pass


class JoplinConflictError(JoplinAPIError):
    """Raised on a naming or state conflict (409)."""

    pass


_STATUS_ERRORS = {
    403: JoplinPermissionError,
    404: JoplinNotFoundError,
    409: JoplinConflictError,
}


def api_error_for_status(
    status_code: int, message: str, path: Optional[str] = None, detail: str = ""
) -> JoplinAPIError:
    """Build the most specific JoplinAPIError for an HTTP status code."""
    error_class = _STATUS_ERRORS.get(status_code, JoplinAPIError)
    return error_class(message, status_code=status_code, path=path, detail=detail)
