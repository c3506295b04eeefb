"""Shared plumbing for Joplin tool handlers."""

import datetime
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Optional

from joplin_mcp_server.client import JoplinAPIClient
from joplin_mcp_server.exceptions import JoplinValidationError
from joplin_mcp_server.models import Notebook

logger = logging.getLogger(__name__)

EXAMPLE_ID = "58a0a29f68bc4141b49c99f5d367638a"
SNIPPET_LENGTH = 100

_HEX_DIGIT = re.compile(r"[a-f0-9]", re.IGNORECASE)
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def looks_like_id(value: Optional[str]) -> bool:
    """Heuristic shape check for Joplin IDs: at least 10 chars and one hex digit."""
    return bool(value) and len(value) >= 10 and bool(_HEX_DIGIT.search(value))


def format_timestamp(timestamp: Optional[int], format_str: str = "%Y-%m-%d %H:%M:%S") -> str:
    """Format a Joplin epoch-ms timestamp in local time."""
    if not timestamp:
        return "Unknown"
    try:
        return datetime.datetime.fromtimestamp(timestamp / 1000).strftime(format_str)
    except (OverflowError, OSError, ValueError):
        return "Unknown"


def body_snippet(body: str, length: int = SNIPPET_LENGTH) -> str:
    """First ``length`` characters of a body on one line, with an ellipsis if cut."""
    snippet = _LINE_BREAK.sub(" ", body[:length])
    return snippet + ("..." if len(body) > length else "")


class BaseTool(ABC):
    """A tool handler: validated arguments in, formatted text report out.

    Subclasses implement :meth:`run`. Raising :class:`JoplinValidationError`
    from ``run`` returns its message to the caller without touching Joplin.
    """

    def __init__(self, api_client: JoplinAPIClient):
        self.api_client = api_client

    async def call(self, *args: Any, **kwargs: Any) -> str:
        try:
            return await self.run(*args, **kwargs)
        except JoplinValidationError as e:
            return str(e)

    @abstractmethod
    async def run(self, *args: Any, **kwargs: Any) -> str:
        ...

    def format_error(self, error: Exception, context: str) -> str:
        logger.error(f"{context} error: {error}")
        return f"Error {context.lower()}: {str(error) or 'Unknown error'}"

    def validate_id(self, value: Optional[str], kind: str = "note", noun: Optional[str] = None) -> None:
        """Reject a missing or obviously malformed note/notebook ID.

        Args:
            value: The ID to check
            kind: "note" or "notebook"
            noun: How the ID is named in messages ("folder" for folder tools)
        """
        noun = noun or kind
        read_tool = "read_note" if kind == "note" else "read_notebook"
        if not value:
            raise JoplinValidationError(
                f'Please provide a {noun} ID. Example: {read_tool} {noun}_id="your-{noun}-id"'
            )

        if not looks_like_id(value):
            if kind == "note":
                hint = "Use search_notes to find notes and their IDs."
            else:
                hint = "Use list_notebooks to see all available notebooks and their IDs."
            raise JoplinValidationError(
                f'Error: "{value}" does not appear to be a valid {noun} ID. \n\n'
                f'{noun.capitalize()} IDs are long alphanumeric strings like "{EXAMPLE_ID}".\n\n'
                f"{hint}"
            )

    def validate_parent_id(self, parent_id: Optional[str], label: str = "notebook", hint: str = "") -> None:
        """Reject a malformed parent notebook ID; an empty value is allowed."""
        if parent_id and not looks_like_id(parent_id):
            raise JoplinValidationError(
                f'Error: "{parent_id}" does not appear to be a valid {label} ID.\n\n'
                f'Notebook IDs are long alphanumeric strings like "{EXAMPLE_ID}".\n\n'
                f"Use list_notebooks to see available notebooks and their IDs{hint}."
            )

    async def notebook_title(self, notebook_id: str) -> Optional[str]:
        """Best-effort lookup of a notebook title for display.

        Returns None when the lookup fails; the caller shows the raw ID.
        """
        try:
            notebook = await self.api_client.get(
                f"/folders/{notebook_id}", query={"fields": "id,title"}, model=Notebook
            )
        except Exception as e:
            logger.warning(f"Error fetching notebook info for {notebook_id}: {e}")
            return None
        return notebook.title or None
