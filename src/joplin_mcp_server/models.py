"""Typed views of the Joplin REST API payloads.

Joplin only returns the fields asked for in the ``fields`` query parameter,
so everything except ``id`` is optional here.
"""

from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class JoplinModel(BaseModel):
    """Base model; unknown fields returned by Joplin are ignored."""

    model_config = ConfigDict(extra="ignore")


class Notebook(JoplinModel):
    """A Joplin folder (notebook)."""

    id: str
    title: str = ""
    parent_id: Optional[str] = None
    created_time: Optional[int] = None
    updated_time: Optional[int] = None


class Note(JoplinModel):
    """A Joplin note or todo."""

    id: str
    title: str = ""
    body: Optional[str] = None
    body_html: Optional[str] = None
    parent_id: Optional[str] = None
    created_time: Optional[int] = None
    updated_time: Optional[int] = None
    is_todo: bool = False
    # Joplin stores completion as a timestamp; 0 means "not completed"
    todo_completed: Optional[int] = None
    todo_due: Optional[int] = None


class PaginatedList(JoplinModel, Generic[T]):
    """A page of results: ``{"items": [...], "has_more": bool}``."""

    items: List[T]
    has_more: bool = False


class SearchResult(PaginatedList[Note]):
    """Response of ``GET /search``."""

    pass


class NoteCreateRequest(JoplinModel):
    """Body of ``POST /notes``. Unset fields are not sent."""

    title: Optional[str] = None
    body: Optional[str] = None
    body_html: Optional[str] = None
    parent_id: Optional[str] = None
    is_todo: Optional[bool] = None
    image_data_url: Optional[str] = None


class NoteUpdateRequest(JoplinModel):
    """Body of ``PUT /notes/:id``. Only explicitly provided fields are sent."""

    title: Optional[str] = None
    body: Optional[str] = None
    body_html: Optional[str] = None
    parent_id: Optional[str] = None
    is_todo: Optional[bool] = None
    todo_completed: Optional[bool] = None
    todo_due: Optional[int] = None


class NotebookWriteRequest(JoplinModel):
    """Body of ``POST /folders`` and ``PUT /folders/:id``."""

    title: Optional[str] = None
    parent_id: Optional[str] = None
