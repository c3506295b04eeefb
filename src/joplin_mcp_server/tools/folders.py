"""Notebook (folder) mutation tools: create, edit and delete notebooks."""

import asyncio
import logging
from typing import List, Optional

from joplin_mcp_server.exceptions import (
    JoplinAPIError,
    JoplinConflictError,
    JoplinNotFoundError,
    JoplinPermissionError,
    JoplinValidationError,
    UnexpectedResponseError,
)
from joplin_mcp_server.models import Note, Notebook, NotebookWriteRequest
from joplin_mcp_server.tools.base import BaseTool, format_timestamp

logger = logging.getLogger(__name__)

# How many notes/subfolders a refused delete lists before summarising
PREVIEW_LIMIT = 5

TOP_LEVEL_HINT = ", or omit parent_id to create a top-level notebook"


def folder_not_found(folder_id: str) -> str:
    return (
        f'Folder with ID "{folder_id}" not found.\n\n'
        "Use list_notebooks to see available folders and their IDs."
    )


class CreateFolder(BaseTool):
    """Create a notebook, at the top level or inside another notebook."""

    async def run(self, title: Optional[str] = None, parent_id: Optional[str] = None) -> str:
        if not title or not title.strip():
            raise JoplinValidationError(
                'Please provide a title for the folder/notebook. Example: create_folder {"title": "My Notebook"}'
            )
        self.validate_parent_id(parent_id, "parent notebook", TOP_LEVEL_HINT)

        request = NotebookWriteRequest(title=title.strip(), parent_id=parent_id or None)
        try:
            folder = await self.api_client.post(
                "/folders", request.model_dump(exclude_none=True), model=Notebook
            )
        except UnexpectedResponseError:
            return "Error: Unexpected response format from Joplin API when creating folder"
        except JoplinAPIError as e:
            if e.status_code == 400:
                return (
                    "Error creating notebook: Invalid request data.\n\n"
                    f"Please check your input parameters. {e.detail}"
                ).rstrip()
            if e.status_code == 404 and parent_id:
                return (
                    f'Error: Parent notebook with ID "{parent_id}" not found.\n\n'
                    f"Use list_notebooks to see available notebooks and their IDs{TOP_LEVEL_HINT}."
                )
            if e.status_code == 409:
                return (
                    f'Error: A notebook with the title "{title}" might already exist in this location.\n\n'
                    "Try a different title or check existing notebooks with list_notebooks."
                )
            return self.format_error(e, "creating notebook")

        location = "Top level"
        if folder.parent_id:
            parent_title = await self.notebook_title(folder.parent_id)
            if parent_title:
                location = f'Inside "{parent_title}" (notebook_id: "{folder.parent_id}")'
            else:
                location = f"Parent notebook ID: {folder.parent_id}"

        return "\n".join(
            [
                "✅ Successfully created notebook!",
                "",
                "📁 Notebook Details:",
                f'   Title: "{folder.title}"',
                f"   Notebook ID: {folder.id}",
                f"   Location: {location}",
                f"   Created: {format_timestamp(folder.created_time)}",
                "",
                "🔗 Next steps:",
                f'   - View notebook: read_notebook notebook_id="{folder.id}"',
                f'   - Create a note in it: create_note {{"title": "My Note", "parent_id": "{folder.id}"}}',
                "   - View all notebooks: list_notebooks",
            ]
        )


class EditFolder(BaseTool):
    """Rename and/or move a notebook."""

    async def run(
        self,
        folder_id: Optional[str] = None,
        title: Optional[str] = None,
        parent_id: Optional[str] = None,
    ) -> str:
        if not folder_id:
            raise JoplinValidationError(
                'Please provide folder edit options. Example: edit_folder {"folder_id": "abc123", "title": "New Name"}'
            )
        self.validate_id(folder_id, "notebook", noun="folder")

        if title is None and not parent_id:
            raise JoplinValidationError(
                "Please provide at least one field to update. Available fields: title, parent_id"
            )
        if title is not None and not title.strip():
            raise JoplinValidationError("Title must be a non-empty string.")
        if parent_id:
            self.validate_parent_id(parent_id, "parent notebook")
            if parent_id == folder_id:
                raise JoplinValidationError("Error: A folder cannot be its own parent.")

        try:
            before = await self.api_client.get(
                f"/folders/{folder_id}", query={"fields": "id,title,parent_id"}, model=Notebook
            )
        except JoplinNotFoundError:
            return folder_not_found(folder_id)
        except UnexpectedResponseError:
            return "Error: Unexpected response format from Joplin API when fetching folder"
        except JoplinAPIError as e:
            return self.format_error(e, "updating folder")

        update = {}
        if title is not None:
            update["title"] = title.strip()
        if parent_id is not None:
            update["parent_id"] = parent_id
        update = NotebookWriteRequest(**update).model_dump(exclude_unset=True)

        try:
            response = await self.api_client.put(f"/folders/{folder_id}", update, model=Notebook)
        except JoplinNotFoundError:
            if parent_id:
                return (
                    f'Error: Parent folder with ID "{parent_id}" not found.\n\n'
                    "Use list_notebooks to see available folders and their IDs."
                )
            return folder_not_found(folder_id)
        except UnexpectedResponseError:
            return "Error: Unexpected response format from Joplin API when updating folder"
        except JoplinConflictError:
            return (
                f'Error: A folder with the title "{title}" might already exist in this location.\n\n'
                "Try a different title or check existing folders with list_notebooks."
            )
        except JoplinAPIError as e:
            if e.status_code == 400:
                return (
                    "Error updating folder: Invalid request data.\n\n"
                    f"Please check your input parameters. {e.detail}"
                ).rstrip()
            return self.format_error(e, "updating folder")

        after = before.model_copy(update={**update, **response.model_dump(exclude_unset=True)})

        result_parts = [
            "✅ Successfully updated notebook!",
            "",
            f'📁 Notebook: "{after.title}"',
            f"   Folder ID: {after.id}",
            "",
            "🔄 Changes made:",
        ]
        if "title" in update and before.title != after.title:
            result_parts.append(f'   Title: "{before.title}" → "{after.title}"')
        if "parent_id" in update and (before.parent_id or "") != (after.parent_id or ""):
            old_location = await self._location(before.parent_id)
            new_location = await self._location(after.parent_id)
            result_parts.append(f"   Location: {old_location} → {new_location}")
        if after.updated_time:
            result_parts.append(f"   Last Updated: {format_timestamp(after.updated_time)}")

        result_parts.extend(
            [
                "",
                "🔗 Next steps:",
                f'   - View notebook: read_notebook notebook_id="{after.id}"',
                "   - View all notebooks: list_notebooks",
            ]
        )
        if after.parent_id:
            result_parts.append(f'   - View parent notebook: read_notebook notebook_id="{after.parent_id}"')
        return "\n".join(result_parts)

    async def _location(self, parent_id: Optional[str]) -> str:
        if not parent_id:
            return "Top level"
        parent_title = await self.notebook_title(parent_id)
        return f'Inside "{parent_title}"' if parent_title else f"Parent ID: {parent_id}"


class DeleteFolder(BaseTool):
    """Delete a notebook once confirmed; non-empty notebooks also need ``force``."""

    async def run(
        self,
        folder_id: Optional[str] = None,
        confirm: Optional[bool] = False,
        force: Optional[bool] = False,
    ) -> str:
        if not folder_id:
            raise JoplinValidationError(
                'Please provide folder deletion options. Example: delete_folder {"folder_id": "abc123", "confirm": true}'
            )
        self.validate_id(folder_id, "notebook", noun="folder")

        if confirm is not True:
            return (
                "⚠️  This will permanently delete the notebook/folder!\n\n"
                "To confirm deletion, use:\n"
                f'delete_folder {{"folder_id": "{folder_id}", "confirm": true}}\n\n'
                "⚠️  This action cannot be undone!"
            )

        try:
            folder = await self.api_client.get(
                f"/folders/{folder_id}", query={"fields": "id,title,parent_id"}, model=Notebook
            )
        except JoplinNotFoundError:
            return folder_not_found(folder_id)
        except UnexpectedResponseError:
            return "Error: Unexpected response format from Joplin API when fetching folder"
        except JoplinAPIError as e:
            return self.format_error(e, "deleting folder")

        try:
            notes, subfolders = await asyncio.gather(
                self._notes_in(folder_id), self._subfolders_of(folder_id)
            )
        except (JoplinAPIError, UnexpectedResponseError) as e:
            if force is not True:
                logger.error(f"Could not list the contents of notebook {folder_id}: {e}")
                return (
                    f"Error deleting folder: could not verify the notebook is empty: {e}\n\n"
                    "Nothing was deleted. Try again, or use force to delete the notebook with everything inside."
                )
            logger.warning(f"Could not list the contents of notebook {folder_id}, deleting anyway (force): {e}")
            notes, subfolders = [], []
        total = len(notes) + len(subfolders)

        if total and force is not True:
            return self._refusal(folder, notes, subfolders)

        location = "Top level"
        if folder.parent_id:
            parent_title = await self.notebook_title(folder.parent_id)
            if parent_title:
                location = f'Inside "{parent_title}" (notebook_id: "{folder.parent_id}")'
            else:
                location = f"Parent ID: {folder.parent_id}"

        try:
            await self.api_client.delete(f"/folders/{folder_id}")
        except JoplinNotFoundError:
            return folder_not_found(folder_id)
        except JoplinPermissionError:
            return (
                f'Permission denied: Cannot delete folder with ID "{folder_id}".\n\n'
                "This might be a protected system folder."
            )
        except JoplinConflictError:
            return (
                "Cannot delete folder: It may contain items that prevent deletion.\n\n"
                "Try moving or deleting the contents first, or use force option."
            )
        except JoplinAPIError as e:
            return self.format_error(e, "deleting folder")

        logger.info(f"Deleted notebook {folder_id} ({total} items inside)")

        result_parts = [
            "🗑️  Successfully deleted notebook!",
            "",
            "📁 Deleted Notebook Details:",
            f'   Title: "{folder.title}"',
            f"   Folder ID: {folder.id}",
            f"   Location: {location}",
        ]
        if total:
            result_parts.extend(
                [
                    f"   Deleted Content: {len(notes)} notes and {len(subfolders)} subfolders",
                    "",
                    f"⚠️  All {total} items inside have been permanently deleted!",
                ]
            )
        result_parts.extend(["", "⚠️  This notebook has been permanently deleted and cannot be recovered."])
        if folder.parent_id:
            result_parts.extend(
                [
                    "",
                    "🔗 Related actions:",
                    f'   - View parent notebook: read_notebook notebook_id="{folder.parent_id}"',
                    "   - View all notebooks: list_notebooks",
                ]
            )
        return "\n".join(result_parts)

    async def _notes_in(self, folder_id: str) -> List[Note]:
        return await self.api_client.get_all_items(
            f"/folders/{folder_id}/notes", Note, query={"fields": "id,title"}
        )

    async def _subfolders_of(self, folder_id: str) -> List[Notebook]:
        folders = await self.api_client.get_all_items(
            "/folders", Notebook, query={"fields": "id,title,parent_id"}
        )
        return [folder for folder in folders if folder.parent_id == folder_id]

    def _refusal(self, folder: Notebook, notes: List[Note], subfolders: List[Notebook]) -> str:
        total = len(notes) + len(subfolders)
        result_parts = [
            "⚠️  Cannot delete non-empty notebook!",
            "",
            f'📁 Notebook: "{folder.title}"',
            f"   Contains: {len(notes)} notes and {len(subfolders)} subfolders",
        ]
        if notes:
            result_parts.extend(["", f"📝 Contains {len(notes)} notes:"])
            result_parts.extend(f"   - {note.title or 'Untitled'}" for note in notes[:PREVIEW_LIMIT])
            if len(notes) > PREVIEW_LIMIT:
                result_parts.append(f"   ... and {len(notes) - PREVIEW_LIMIT} more notes")
        if subfolders:
            result_parts.extend(["", f"📁 Contains {len(subfolders)} subfolders:"])
            result_parts.extend(f"   - {sub.title}" for sub in subfolders[:PREVIEW_LIMIT])
            if len(subfolders) > PREVIEW_LIMIT:
                result_parts.append(f"   ... and {len(subfolders) - PREVIEW_LIMIT} more folders")
        result_parts.extend(
            [
                "",
                "💡 Options:",
                "   1. Move or delete the contents first, then delete the folder",
                "   2. Force delete (⚠️  DESTROYS ALL CONTENT):",
                f'      delete_folder {{"folder_id": "{folder.id}", "confirm": true, "force": true}}',
                "",
                f"⚠️  Force delete will permanently delete ALL {total} items inside!",
            ]
        )
        return "\n".join(result_parts)
