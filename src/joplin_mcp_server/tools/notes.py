"""Note mutation tools: create, edit and delete notes."""

import logging
from typing import Any, Dict, List, Optional

from joplin_mcp_server.exceptions import (
    JoplinAPIError,
    JoplinNotFoundError,
    JoplinPermissionError,
    JoplinValidationError,
    UnexpectedResponseError,
)
from joplin_mcp_server.models import Note, NoteCreateRequest, NoteUpdateRequest
from joplin_mcp_server.tools.base import BaseTool, body_snippet, format_timestamp

logger = logging.getLogger(__name__)

EDITABLE_NOTE_FIELDS = (
    "title",
    "body",
    "body_html",
    "parent_id",
    "is_todo",
    "todo_completed",
    "todo_due",
)


def note_not_found(note_id: str) -> str:
    return f'Note with ID "{note_id}" not found.\n\nUse search_notes to find notes and their IDs.'


def notebook_not_found(notebook_id: str) -> str:
    return (
        f'Error: Notebook with ID "{notebook_id}" not found.\n\n'
        "Use list_notebooks to see available notebooks and their IDs."
    )


def invalid_request(action: str, error: JoplinAPIError) -> str:
    return (
        f"Error {action}: Invalid request data.\n\n"
        f"Please check your input parameters. {error.detail}"
    ).rstrip()


class CreateNote(BaseTool):
    """Create a note or todo, optionally inside a notebook."""

    async def run(
        self,
        title: Optional[str] = None,
        body: Optional[str] = None,
        body_html: Optional[str] = None,
        parent_id: Optional[str] = None,
        is_todo: Optional[bool] = None,
        image_data_url: Optional[str] = None,
    ) -> str:
        if not (title or body or body_html):
            raise JoplinValidationError(
                "Please provide at least a title, body, or body_html for the note. "
                'Example: create_note {"title": "My Note", "body": "Note content"}'
            )
        self.validate_parent_id(parent_id)

        request = NoteCreateRequest(
            title=title or None,
            body=body or None,
            body_html=body_html or None,
            parent_id=parent_id or None,
            is_todo=is_todo,
            image_data_url=image_data_url or None,
        )

        try:
            note = await self.api_client.post(
                "/notes", request.model_dump(exclude_none=True), model=Note
            )
        except JoplinNotFoundError as e:
            if parent_id:
                return notebook_not_found(parent_id)
            return self.format_error(e, "creating note")
        except UnexpectedResponseError:
            return "Error: Unexpected response format from Joplin API when creating note"
        except JoplinAPIError as e:
            if e.status_code == 400:
                return invalid_request("creating note", e)
            return self.format_error(e, "creating note")

        location = "Root level"
        if note.parent_id:
            notebook_title = await self.notebook_title(note.parent_id)
            if notebook_title:
                location = f'"{notebook_title}" (notebook_id: "{note.parent_id}")'
            else:
                location = f"Notebook ID: {note.parent_id}"

        result_parts = [
            "✅ Successfully created note!",
            "",
            "📝 Note Details:",
            f'   Title: "{note.title or "Untitled"}"',
            f"   Note ID: {note.id}",
            f"   Location: {location}",
        ]
        if note.is_todo:
            result_parts.append("   Type: Todo item")
        result_parts.append(f"   Created: {format_timestamp(note.created_time)}")
        result_parts.extend(["", "🔗 Next steps:", f'   - Read the note: read_note note_id="{note.id}"'])
        if note.parent_id:
            result_parts.append(f'   - View notebook: read_notebook notebook_id="{note.parent_id}"')
        result_parts.append(f'   - Search for it: search_notes query="{note.title}"')
        return "\n".join(result_parts)


class EditNote(BaseTool):
    """Partially update a note and report a before/after diff."""

    async def run(self, note_id: Optional[str] = None, **changes: Any) -> str:
        if not note_id:
            raise JoplinValidationError(
                'Please provide note edit options. Example: edit_note {"note_id": "abc123", "title": "Updated Title"}'
            )
        self.validate_id(note_id, "note")

        unknown = set(changes) - set(EDITABLE_NOTE_FIELDS)
        if unknown:
            raise JoplinValidationError(
                f"Unknown field(s): {', '.join(sorted(unknown))}. "
                f"Available fields: {', '.join(EDITABLE_NOTE_FIELDS)}"
            )

        provided = {key: value for key, value in changes.items() if value is not None}
        if not any(value != "" for value in provided.values()):
            raise JoplinValidationError(
                "Please provide at least one field to update. "
                f"Available fields: {', '.join(EDITABLE_NOTE_FIELDS)}"
            )
        parent_id = provided.get("parent_id")
        self.validate_parent_id(parent_id)

        try:
            before = await self.api_client.get(
                f"/notes/{note_id}",
                query={"fields": "id,title,body,parent_id,is_todo,todo_completed,todo_due,updated_time"},
                model=Note,
            )
        except JoplinNotFoundError:
            return note_not_found(note_id)
        except UnexpectedResponseError:
            return "Error: Unexpected response format from Joplin API when fetching note"
        except JoplinAPIError as e:
            return self.format_error(e, "updating note")

        update = NoteUpdateRequest(**provided).model_dump(exclude_unset=True)
        try:
            response = await self.api_client.put(f"/notes/{note_id}", update, model=Note)
        except JoplinNotFoundError:
            if parent_id:
                return notebook_not_found(parent_id)
            return note_not_found(note_id)
        except UnexpectedResponseError:
            return "Error: Unexpected response format from Joplin API when updating note"
        except JoplinAPIError as e:
            if e.status_code == 400:
                return invalid_request("updating note", e)
            return self.format_error(e, "updating note")

        # Joplin may echo only the changed fields; overlay them on the prior state
        after = before.model_copy(update={**update, **response.model_dump(exclude_unset=True)})

        result_parts = [
            "✅ Successfully updated note!",
            "",
            f'📝 Note: "{after.title or "Untitled"}"',
            f"   Note ID: {after.id}",
            f"   Last Updated: {format_timestamp(after.updated_time)}",
            "",
            "🔄 Changes made:",
        ]
        changes_made = await self._describe_changes(before, after, provided)
        result_parts.extend(changes_made or ["   (no visible changes)"])

        result_parts.extend(["", "🔗 Next steps:", f'   - Read the note: read_note note_id="{after.id}"'])
        if after.parent_id:
            result_parts.append(f'   - View notebook: read_notebook notebook_id="{after.parent_id}"')
        return "\n".join(result_parts)

    async def _location(self, notebook_id: Optional[str]) -> str:
        if not notebook_id:
            return "Root level"
        title = await self.notebook_title(notebook_id)
        return f'"{title}"' if title else f"Notebook ID: {notebook_id}"

    async def _describe_changes(self, before: Note, after: Note, provided: Dict[str, Any]) -> List[str]:
        lines = []
        if "title" in provided and before.title != after.title:
            lines.append(f'   Title: "{before.title}" → "{after.title}"')
        if "parent_id" in provided and (before.parent_id or "") != (after.parent_id or ""):
            old_location = await self._location(before.parent_id)
            new_location = await self._location(after.parent_id)
            lines.append(f"   Location: {old_location} → {new_location}")
        if "is_todo" in provided and bool(before.is_todo) != bool(after.is_todo):
            old_type = "Todo" if before.is_todo else "Regular note"
            new_type = "Todo" if after.is_todo else "Regular note"
            lines.append(f"   Type: {old_type} → {new_type}")
        if "todo_completed" in provided and bool(before.todo_completed) != bool(after.todo_completed):
            old_status = "Completed" if before.todo_completed else "Not completed"
            new_status = "Completed" if after.todo_completed else "Not completed"
            lines.append(f"   Todo Status: {old_status} → {new_status}")
        if "todo_due" in provided:
            old_due = format_timestamp(before.todo_due) if before.todo_due else "No due date"
            new_due = format_timestamp(after.todo_due) if after.todo_due else "No due date"
            if old_due != new_due:
                lines.append(f"   Due Date: {old_due} → {new_due}")
        if "body" in provided and before.body != after.body:
            lines.append("   Content: Updated")
        if "body_html" in provided:
            lines.append("   HTML Content: Updated")
        return lines


class DeleteNote(BaseTool):
    """Delete a note once the caller has confirmed."""

    async def run(self, note_id: Optional[str] = None, confirm: Optional[bool] = False) -> str:
        if not note_id:
            raise JoplinValidationError(
                'Please provide note deletion options. Example: delete_note {"note_id": "abc123", "confirm": true}'
            )
        self.validate_id(note_id, "note")

        if confirm is not True:
            return (
                "⚠️  This will permanently delete the note!\n\n"
                "To confirm deletion, use:\n"
                f'delete_note {{"note_id": "{note_id}", "confirm": true}}\n\n'
                "⚠️  This action cannot be undone!"
            )

        try:
            note = await self.api_client.get(
                f"/notes/{note_id}",
                query={"fields": "id,title,body,parent_id,is_todo,todo_completed,created_time,updated_time"},
                model=Note,
            )
        except JoplinNotFoundError:
            return note_not_found(note_id)
        except UnexpectedResponseError:
            return "Error: Unexpected response format from Joplin API when fetching note"
        except JoplinAPIError as e:
            return self.format_error(e, "deleting note")

        location = "Root level"
        if note.parent_id:
            notebook_title = await self.notebook_title(note.parent_id)
            if notebook_title:
                location = f'"{notebook_title}" (notebook_id: "{note.parent_id}")'
            else:
                location = f"Notebook ID: {note.parent_id}"

        try:
            await self.api_client.delete(f"/notes/{note_id}")
        except JoplinNotFoundError:
            return note_not_found(note_id)
        except JoplinPermissionError:
            return (
                f'Permission denied: Cannot delete note with ID "{note_id}".\n\n'
                "This might be a protected system note."
            )
        except JoplinAPIError as e:
            return self.format_error(e, "deleting note")

        if note.is_todo:
            note_type = f"Todo ({'Completed' if note.todo_completed else 'Not completed'})"
        else:
            note_type = "Regular note"

        result_parts = [
            "🗑️  Successfully deleted note!",
            "",
            "📝 Deleted Note Details:",
            f'   Title: "{note.title or "Untitled"}"',
            f"   Note ID: {note.id}",
            f"   Location: {location}",
            f"   Type: {note_type}",
            f"   Created: {format_timestamp(note.created_time)}",
            f"   Last Updated: {format_timestamp(note.updated_time)}",
        ]
        if note.body:
            result_parts.append(f"   Content Preview: {body_snippet(note.body)}")
        result_parts.extend(["", "⚠️  This note has been permanently deleted and cannot be recovered."])
        if note.parent_id:
            result_parts.extend(
                [
                    "",
                    "🔗 Related actions:",
                    f'   - View containing notebook: read_notebook notebook_id="{note.parent_id}"',
                    f'   - Search for similar notes: search_notes query="{note.title}"',
                ]
            )
        return "\n".join(result_parts)
