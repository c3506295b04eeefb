"""Tests for the note mutation tools."""

import pytest

from conftest import (
    NOTE_ID,
    NOTEBOOK_ID,
    SAMPLE_NOTE_DATA,
    SAMPLE_NOTEBOOK_DATA,
    http_error,
    scripted,
)
from joplin_mcp_server.tools import CreateNote, DeleteNote, EditNote


def created_note(**fields):
    return {"id": NOTE_ID, "title": "New Note", "created_time": 1609459200000, **fields}


class TestCreateNote:
    """Test create_note."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kwargs", [{}, {"title": "", "body": "", "body_html": ""}, {"parent_id": NOTEBOOK_ID}])
    async def test_rejects_empty_input_without_network(self, mock_api_client, kwargs):
        result = await CreateNote(mock_api_client).call(**kwargs)

        assert "Please provide at least a title, body, or body_html" in result
        mock_api_client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_rejects_malformed_parent_id(self, mock_api_client):
        result = await CreateNote(mock_api_client).call(title="Note", parent_id="inbox")

        assert '"inbox" does not appear to be a valid notebook ID' in result
        mock_api_client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_creates_note_at_root(self, mock_api_client):
        mock_api_client.post.side_effect = scripted({"/notes": created_note()})

        result = await CreateNote(mock_api_client).call(title="New Note", body="Hello")

        mock_api_client.post.assert_awaited_once()
        path, body = mock_api_client.post.await_args.args
        assert path == "/notes"
        assert body == {"title": "New Note", "body": "Hello"}
        assert "✅ Successfully created note!" in result
        assert f"Note ID: {NOTE_ID}" in result
        assert "Location: Root level" in result

    @pytest.mark.asyncio
    async def test_creates_todo_with_image_in_notebook(self, mock_api_client):
        mock_api_client.post.side_effect = scripted({
            "/notes": created_note(parent_id=NOTEBOOK_ID, is_todo=1),
        })
        mock_api_client.get.side_effect = scripted({f"/folders/{NOTEBOOK_ID}": SAMPLE_NOTEBOOK_DATA})

        result = await CreateNote(mock_api_client).call(
            title="New Note",
            parent_id=NOTEBOOK_ID,
            is_todo=True,
            image_data_url="data:image/png;base64,AAAA",
        )

        body = mock_api_client.post.await_args.args[1]
        assert body["is_todo"] is True
        assert body["image_data_url"] == "data:image/png;base64,AAAA"
        assert body["parent_id"] == NOTEBOOK_ID
        assert f'Location: "Test Notebook" (notebook_id: "{NOTEBOOK_ID}")' in result
        assert "Type: Todo item" in result
        assert f'read_notebook notebook_id="{NOTEBOOK_ID}"' in result

    @pytest.mark.asyncio
    async def test_notebook_title_lookup_failure_shows_raw_id(self, mock_api_client):
        mock_api_client.post.side_effect = scripted({"/notes": created_note(parent_id=NOTEBOOK_ID)})
        mock_api_client.get.side_effect = http_error(500)

        result = await CreateNote(mock_api_client).call(title="New Note", parent_id=NOTEBOOK_ID)

        assert f"Location: Notebook ID: {NOTEBOOK_ID}" in result

    @pytest.mark.asyncio
    async def test_missing_parent_notebook(self, mock_api_client):
        mock_api_client.post.side_effect = http_error(404)

        result = await CreateNote(mock_api_client).call(title="New Note", parent_id=NOTEBOOK_ID)

        assert f'Error: Notebook with ID "{NOTEBOOK_ID}" not found.' in result

    @pytest.mark.asyncio
    async def test_invalid_request_data(self, mock_api_client):
        mock_api_client.post.side_effect = http_error(400, "Invalid field")

        result = await CreateNote(mock_api_client).call(title="New Note")

        assert result.startswith("Error creating note: Invalid request data.")
        assert result.endswith("Invalid field")


class TestEditNote:
    """Test edit_note."""

    @pytest.mark.asyncio
    async def test_requires_a_field_to_update(self, mock_api_client):
        result = await EditNote(mock_api_client).call(note_id=NOTE_ID)

        assert "Please provide at least one field to update" in result
        mock_api_client.get.assert_not_called()
        mock_api_client.put.assert_not_called()

    @pytest.mark.asyncio
    async def test_all_empty_fields_are_rejected(self, mock_api_client):
        result = await EditNote(mock_api_client).call(note_id=NOTE_ID, title="", body=None)

        assert "Please provide at least one field to update" in result
        mock_api_client.put.assert_not_called()

    @pytest.mark.asyncio
    async def test_requires_note_id(self, mock_api_client):
        result = await EditNote(mock_api_client).call(title="X")

        assert "Please provide note edit options" in result

    @pytest.mark.asyncio
    async def test_rejects_malformed_note_id(self, mock_api_client):
        result = await EditNote(mock_api_client).call(note_id="abc", title="X")

        assert "does not appear to be a valid note ID" in result
        mock_api_client.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_title_only_edit_reports_only_title(self, mock_api_client):
        mock_api_client.get.side_effect = scripted({
            f"/notes/{NOTE_ID}": SAMPLE_NOTE_DATA,
            f"/folders/{NOTEBOOK_ID}": SAMPLE_NOTEBOOK_DATA,
        })
        # Joplin echoes only what changed
        mock_api_client.put.side_effect = scripted({
            f"/notes/{NOTE_ID}": {"id": NOTE_ID, "title": "X", "updated_time": 1609632000000},
        })

        result = await EditNote(mock_api_client).call(note_id=NOTE_ID, title="X")

        path, body = mock_api_client.put.await_args.args
        assert path == f"/notes/{NOTE_ID}"
        assert body == {"title": "X"}

        changes = result.split("🔄 Changes made:")[1].split("🔗 Next steps:")[0]
        assert changes.strip().splitlines() == ['Title: "Test Note" → "X"']
        assert "✅ Successfully updated note!" in result
        assert f'read_notebook notebook_id="{NOTEBOOK_ID}"' in result

    @pytest.mark.asyncio
    async def test_completing_a_todo(self, mock_api_client):
        todo = {**SAMPLE_NOTE_DATA, "is_todo": 1, "todo_completed": 0}
        mock_api_client.get.side_effect = scripted({f"/notes/{NOTE_ID}": todo})
        mock_api_client.put.side_effect = scripted({
            f"/notes/{NOTE_ID}": {"id": NOTE_ID, "todo_completed": 1609632000000},
        })

        result = await EditNote(mock_api_client).call(note_id=NOTE_ID, todo_completed=True)

        assert mock_api_client.put.await_args.args[1] == {"todo_completed": True}
        assert "Todo Status: Not completed → Completed" in result

    @pytest.mark.asyncio
    async def test_moving_a_note(self, mock_api_client):
        mock_api_client.get.side_effect = scripted({
            f"/notes/{NOTE_ID}": {**SAMPLE_NOTE_DATA, "parent_id": ""},
            "/folders/ffffffffffffffffffffffffffffffff": {"id": "ffffffffffffffffffffffffffffffff", "title": "Archive"},
        })
        mock_api_client.put.side_effect = scripted({
            f"/notes/{NOTE_ID}": {"id": NOTE_ID, "parent_id": "ffffffffffffffffffffffffffffffff"},
        })

        result = await EditNote(mock_api_client).call(
            note_id=NOTE_ID, parent_id="ffffffffffffffffffffffffffffffff"
        )

        assert 'Location: Root level → "Archive"' in result

    @pytest.mark.asyncio
    async def test_missing_note(self, mock_api_client):
        mock_api_client.get.side_effect = scripted({})

        result = await EditNote(mock_api_client).call(note_id=NOTE_ID, body="new body")

        assert f'Note with ID "{NOTE_ID}" not found.' in result
        mock_api_client.put.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_field_is_rejected(self, mock_api_client):
        result = await EditNote(mock_api_client).call(note_id=NOTE_ID, tags="work")

        assert "Unknown field(s): tags" in result


class TestDeleteNote:
    """Test delete_note."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("confirm", [None, False])
    async def test_without_confirmation_only_warns(self, mock_api_client, confirm):
        result = await DeleteNote(mock_api_client).call(note_id=NOTE_ID, confirm=confirm)

        assert "⚠️  This will permanently delete the note!" in result
        assert f'delete_note {{"note_id": "{NOTE_ID}", "confirm": true}}' in result
        mock_api_client.get.assert_not_called()
        mock_api_client.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_confirmed_delete(self, mock_api_client):
        mock_api_client.get.side_effect = scripted({
            f"/notes/{NOTE_ID}": SAMPLE_NOTE_DATA,
            f"/folders/{NOTEBOOK_ID}": SAMPLE_NOTEBOOK_DATA,
        })

        result = await DeleteNote(mock_api_client).call(note_id=NOTE_ID, confirm=True)

        mock_api_client.delete.assert_awaited_once_with(f"/notes/{NOTE_ID}")
        assert "🗑️  Successfully deleted note!" in result
        assert 'Title: "Test Note"' in result
        assert "Type: Regular note" in result
        assert "Content Preview: This is a **test** note" in result

    @pytest.mark.asyncio
    async def test_missing_note_is_not_deleted(self, mock_api_client):
        mock_api_client.get.side_effect = scripted({})

        result = await DeleteNote(mock_api_client).call(note_id=NOTE_ID, confirm=True)

        assert f'Note with ID "{NOTE_ID}" not found.' in result
        mock_api_client.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_permission_denied(self, mock_api_client):
        mock_api_client.get.side_effect = scripted({f"/notes/{NOTE_ID}": {**SAMPLE_NOTE_DATA, "parent_id": ""}})
        mock_api_client.delete.side_effect = http_error(403)

        result = await DeleteNote(mock_api_client).call(note_id=NOTE_ID, confirm=True)

        assert result.startswith(f'Permission denied: Cannot delete note with ID "{NOTE_ID}".')
