"""Read-only tools: list notebooks, search, read notebooks and notes."""

import json
import logging
from collections import defaultdict
from typing import Dict, List, Optional

from joplin_mcp_server.exceptions import (
    JoplinNotFoundError,
    JoplinValidationError,
    UnexpectedResponseError,
)
from joplin_mcp_server.models import Note, Notebook, SearchResult
from joplin_mcp_server.tools.base import (
    EXAMPLE_ID,
    BaseTool,
    body_snippet,
    format_timestamp,
    looks_like_id,
)

logger = logging.getLogger(__name__)

NOTE_FIELDS = "id,title,body,parent_id,created_time,updated_time,is_todo,todo_completed,todo_due"


def notebook_sort_key(notebook: Notebook) -> tuple:
    """Case-insensitive title order with bracketed titles ("[0] Inbox") first."""
    return (not notebook.title.startswith("["), notebook.title.casefold(), notebook.title)


def read_multinote_hint(note_ids: List[str]) -> List[str]:
    return [
        f"TIP: To read all {len(note_ids)} notes at once, use:\n",
        f"read_multinote note_ids={json.dumps(note_ids)}\n",
    ]


class ListNotebooks(BaseTool):
    """Render the whole notebook forest as an indented outline."""

    async def run(self) -> str:
        try:
            notebooks = await self.api_client.get_all_items(
                "/folders", Notebook, query={"fields": "id,title,parent_id"}
            )
        except Exception as e:
            return self.format_error(e, "listing notebooks")

        children: Dict[str, List[Notebook]] = defaultdict(list)
        for notebook in notebooks:
            children[notebook.parent_id or ""].append(notebook)

        result_parts = [
            "Joplin Notebooks:\n",
            "NOTE: To read a notebook, use the notebook_id with the read_notebook command\n",
            'Example: read_notebook notebook_id="your-notebook-id"\n\n',
        ]
        result_parts.extend(self._outline(children, children.get("", []), indent=0))
        return "".join(result_parts)

    def _outline(
        self, children: Dict[str, List[Notebook]], notebooks: List[Notebook], indent: int
    ) -> List[str]:
        lines = []
        for notebook in sorted(notebooks, key=notebook_sort_key):
            lines.append(
                f'{" " * indent}Notebook: "{notebook.title}" (notebook_id: "{notebook.id}")\n'
            )
            if notebook.id in children:
                lines.extend(self._outline(children, children[notebook.id], indent + 2))
        return lines


class SearchNotes(BaseTool):
    """Full-text search with notebook names and body snippets."""

    async def run(self, query: str) -> str:
        if not query or not query.strip():
            raise JoplinValidationError(
                'Please provide a search query. Example: search_notes query="meeting notes"'
            )

        try:
            results = await self.api_client.get(
                "/search",
                query={"query": query, "fields": "id,title,body,parent_id,updated_time"},
                model=SearchResult,
            )
        except UnexpectedResponseError:
            return "Error: Unexpected response format from Joplin API"
        except Exception as e:
            return self.format_error(e, "searching notes")

        notes = results.items
        if not notes:
            return f'No notes found matching query: "{query}"'

        folder_titles = await self._folder_titles()

        result_parts = [
            f'Found {len(notes)} notes matching query: "{query}"\n',
            "NOTE: To read a notebook, use the notebook ID (not the note title)\n",
        ]
        if len(notes) > 1:
            result_parts.extend(read_multinote_hint([note.id for note in notes]))

        for note in notes:
            notebook_id = note.parent_id or "unknown"
            notebook_title = folder_titles.get(note.parent_id or "", "Unknown notebook")
            result_parts.append(f'- Note: "{note.title}" (note_id: "{note.id}")')
            result_parts.append(f'  Notebook: "{notebook_title}" (notebook_id: "{notebook_id}")')
            result_parts.append(f"  Updated: {format_timestamp(note.updated_time)}")
            if note.body:
                result_parts.append(f"  Snippet: {body_snippet(note.body)}")
            result_parts.append(f'  To read this note: read_note note_id="{note.id}"')
            result_parts.append(f'  To read this notebook: read_notebook notebook_id="{notebook_id}"')
            result_parts.append("")

        return "\n".join(result_parts)

    async def _folder_titles(self) -> Dict[str, str]:
        try:
            folders = await self.api_client.get_all_items(
                "/folders", Notebook, query={"fields": "id,title"}
            )
        except Exception as e:
            logger.warning(f"Could not list notebooks for search results: {e}")
            return {}
        return {folder.id: folder.title for folder in folders}


class ReadNotebook(BaseTool):
    """List the notes of one notebook, newest first."""

    async def run(self, notebook_id: str) -> str:
        self.validate_id(notebook_id, "notebook")

        try:
            notebook = await self.api_client.get(
                f"/folders/{notebook_id}",
                query={"fields": "id,title,parent_id"},
                model=Notebook,
            )
            notes = await self.api_client.get_all_items(
                f"/folders/{notebook_id}/notes",
                Note,
                query={"fields": "id,title,updated_time,is_todo,todo_completed"},
            )
        except JoplinNotFoundError:
            return (
                f'Notebook with ID "{notebook_id}" not found.\n\n'
                "This might happen if:\n"
                "1. The ID is incorrect\n"
                "2. You're using a note title instead of a notebook ID\n"
                "3. The notebook has been deleted\n\n"
                "Use list_notebooks to see all available notebooks with their IDs."
            )
        except UnexpectedResponseError as e:
            return f"Error: Unexpected response format from Joplin API when fetching {e.path}"
        except Exception as e:
            return self.format_error(e, "reading notebook") + (
                "\n\nMake sure you're using a valid notebook ID, not a note title.\n"
                "Use list_notebooks to see all available notebooks with their IDs."
            )

        if not notes:
            return (
                f'Notebook "{notebook.title}" (notebook_id: "{notebook.id}") is empty.\n\n'
                "Try another notebook ID or use list_notebooks to see all available notebooks."
            )

        notes = sorted(notes, key=lambda note: note.updated_time or 0, reverse=True)

        result_parts = [
            f'# Notebook: "{notebook.title}" (notebook_id: "{notebook.id}")',
            f"Contains {len(notes)} notes:\n",
            f'NOTE: This is showing the contents of notebook "{notebook.title}", not a specific note.\n',
        ]
        if len(notes) > 1:
            result_parts.extend(read_multinote_hint([note.id for note in notes]))

        for note in notes:
            checkbox = ""
            if note.is_todo:
                checkbox = "✅ " if note.todo_completed else "☐ "
            result_parts.append(f'- {checkbox}Note: "{note.title}" (note_id: "{note.id}")')
            result_parts.append(f"  Updated: {format_timestamp(note.updated_time)}")
            result_parts.append(f'  To read this note: read_note note_id="{note.id}"')
            result_parts.append("")

        return "\n".join(result_parts)


class _NoteReader(BaseTool):
    """Common rendering of a full note for read_note and read_multinote."""

    async def fetch_note(self, note_id: str) -> Note:
        return await self.api_client.get(
            f"/notes/{note_id}", query={"fields": NOTE_FIELDS}, model=Note
        )

    async def notebook_info(self, note: Note) -> str:
        if not note.parent_id:
            return "Unknown notebook"
        title = await self.notebook_title(note.parent_id)
        if title is None:
            return f'notebook_id: "{note.parent_id}"'
        return f'"{title}" (notebook_id: "{note.parent_id}")'

    def note_lines(self, note: Note) -> List[str]:
        lines = []
        if note.is_todo:
            lines.append(f"Status: {'Completed' if note.todo_completed else 'Not completed'}")
            if note.todo_due:
                lines.append(f"Due: {format_timestamp(note.todo_due)}")
        lines.append(f"Created: {format_timestamp(note.created_time)}")
        lines.append(f"Updated: {format_timestamp(note.updated_time)}")
        lines.append("\n---\n")
        lines.append(note.body if note.body else "(This note has no content)")
        lines.append("\n---\n")
        return lines


class ReadNote(_NoteReader):
    """Show one note with metadata and its full body."""

    async def run(self, note_id: str) -> str:
        self.validate_id(note_id, "note")

        try:
            note = await self.fetch_note(note_id)
        except JoplinNotFoundError:
            return (
                f'Note with ID "{note_id}" not found.\n\n'
                "This might happen if:\n"
                "1. The ID is incorrect\n"
                "2. You're using a notebook ID instead of a note ID\n"
                "3. The note has been deleted\n\n"
                "Use search_notes to find notes and their IDs."
            )
        except UnexpectedResponseError:
            return "Error: Unexpected response format from Joplin API when fetching note"
        except Exception as e:
            return self.format_error(e, "reading note") + (
                "\n\nMake sure you're using a valid note ID.\n"
                "Use search_notes to find notes and their IDs."
            )

        result_parts = [
            f'# Note: "{note.title}"',
            f"Note ID: {note.id}",
            f"Notebook: {await self.notebook_info(note)}",
        ]
        result_parts.extend(self.note_lines(note))
        result_parts.append("Related commands:")
        if note.parent_id:
            result_parts.append(
                f'- To view the notebook containing this note: read_notebook notebook_id="{note.parent_id}"'
            )
        result_parts.append('- To search for more notes: search_notes query="your search term"')
        return "\n".join(result_parts)


class ReadMultiNote(_NoteReader):
    """Read several notes in one call, reporting every ID's outcome."""

    async def run(self, note_ids: Optional[List[str]]) -> str:
        if not note_ids:
            raise JoplinValidationError(
                'Please provide an array of note IDs. Example: read_multinote note_ids=["id1", "id2", "id3"]'
            )

        invalid_ids = [note_id for note_id in note_ids if not looks_like_id(note_id)]
        if invalid_ids:
            raise JoplinValidationError(
                f"Error: Some IDs do not appear to be valid note IDs: {', '.join(map(str, invalid_ids))}\n\n"
                f'Note IDs are long alphanumeric strings like "{EXAMPLE_ID}".\n\n'
                "Use search_notes to find notes and their IDs."
            )

        total = len(note_ids)
        found: List[str] = []
        not_found: List[str] = []
        errors: List[str] = []
        result_parts = [f"# Reading {total} notes\n"]

        for index, note_id in enumerate(note_ids, 1):
            result_parts.append(f"## Note {index} of {total} (ID: {note_id})\n")
            try:
                note = await self.fetch_note(note_id)
            except JoplinNotFoundError:
                not_found.append(note_id)
                result_parts.append(f'Note with ID "{note_id}" not found.\n')
                continue
            except UnexpectedResponseError:
                errors.append(note_id)
                result_parts.append(
                    f"Error: Unexpected response format from Joplin API when fetching note {note_id}\n"
                )
                continue
            except Exception as e:
                logger.error(f"Error reading note {note_id}: {e}")
                errors.append(note_id)
                result_parts.append(f"Error reading note: {str(e) or 'Unknown error'}\n")
                continue

            found.append(note_id)
            result_parts.append(f'### Note: "{note.title}"')
            result_parts.append(f"Notebook: {await self.notebook_info(note)}")
            result_parts.extend(self.note_lines(note))

        result_parts.extend(
            [
                "# Summary",
                f"Total notes requested: {total}",
                f"Successfully retrieved: {len(found)}",
                f"Notes not found: {len(not_found)}",
            ]
        )
        if not_found:
            result_parts.append(f"IDs not found: {', '.join(not_found)}")
        result_parts.append(f"Errors encountered: {len(errors)}")
        if errors:
            result_parts.append(f"IDs with errors: {', '.join(errors)}")

        return "\n".join(result_parts)
