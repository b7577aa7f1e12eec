"""Note and link domain models."""

from datetime import datetime, timezone
from typing import Annotated
from uuid import uuid4

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, BeforeValidator, Field, PlainSerializer

from notemesh.domain.base import CamelModel

DEFAULT_TITLE = "Untitled Thought"
MIN_WEIGHT = 0.2


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid4().hex


class Note(CamelModel):
    """A single note owned by one user.

    Attributes:
        id: Unique identifier
        user_id: Owner of the note
        title: Note title, matched case-insensitively by the auto-linker
        raw_text: Plain text body used for embedding, linking and clustering
        x: Horizontal position on the canvas
        y: Vertical position on the canvas
        color: Display colour
        folder_id: Folder the note is filed under, if any
        weight: Connectivity/recency score, never below 0.2
        ephemeral: Whether the note is archived automatically once stale
        archived: Archived notes are excluded from all organization operations
        created_at: Creation time (UTC)
        updated_at: Last modification time (UTC)
    """

    id: str = Field(default_factory=new_id)
    user_id: str
    title: str = DEFAULT_TITLE
    raw_text: str | None = None
    x: float = 0.0
    y: float = 0.0
    color: str = "#FFFFFF"
    folder_id: str | None = None
    weight: float = Field(default=1.0, ge=MIN_WEIGHT)
    ephemeral: bool = True
    archived: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class NoteChanges(CamelModel):
    """Partial update of a note. Only fields that were explicitly set are applied."""

    title: str | None = None
    raw_text: str | None = None
    x: float | None = None
    y: float | None = None
    color: str | None = None
    folder_id: str | None = None
    ephemeral: bool | None = None
    archived: bool | None = None


class Link(CamelModel):
    """Directed edge between two notes of the same user.

    At most one link exists per ordered (source_id, target_id) pair.
    """

    id: str = Field(default_factory=new_id)
    source_id: str
    target_id: str
    strength: float = Field(default=1.0, ge=1.0)
    reason: str = ""


class NoteRef(CamelModel):
    id: str
    title: str


class ConnectedLink(Link):
    """Link together with the id and title of the notes at either end."""

    source: NoteRef | None = None
    target: NoteRef | None = None


class Annotation(CamelModel):
    """Comment attached to a highlighted passage of a note."""

    id: str = Field(default_factory=new_id)
    note_id: str
    text: str
    comment: str


def nd_array_before_validator(x: list[float]) -> NDArray[np.float32]:
    return np.array(x, dtype=np.float32)


def nd_array_serializer(x: NDArray[np.float32]) -> list[float]:
    return x.tolist()  # type: ignore


NumPyArray = Annotated[
    np.ndarray,
    BeforeValidator(nd_array_before_validator),
    PlainSerializer(nd_array_serializer, return_type=list),
]


class EmbeddedNote(BaseModel):
    """Vector stored for a note in the similarity index."""

    note_id: str
    user_id: str
    vector: NumPyArray
    active: bool = True

    model_config = {"arbitrary_types_allowed": True}
