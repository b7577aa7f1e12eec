"""Request bodies for the HTTP API."""

from notemesh.domain.base import CamelModel
from notemesh.domain.canvas import CanvasEdge, CanvasNode, CanvasOperation
from notemesh.domain.graph import GraphEdge
from notemesh.services.notes import NoteOperation


class CreateNoteRequest(CamelModel):
    title: str | None = None
    raw_text: str | None = None
    x: float | None = None
    y: float | None = None
    color: str | None = None
    folder_id: str | None = None
    ephemeral: bool = True
    archived: bool = False


class UpdateNoteRequest(CamelModel):
    """Partial note update.

    ``plain_text`` replaces the note's raw text; ``messy_mode`` turns on the
    auto-linker for this edit.
    """

    title: str | None = None
    plain_text: str | None = None
    x: float | None = None
    y: float | None = None
    color: str | None = None
    folder_id: str | None = None
    ephemeral: bool | None = None
    archived: bool | None = None
    messy_mode: bool = False


class CreateLinkRequest(CamelModel):
    source_id: str
    target_id: str
    reason: str | None = None


class LinkerRequest(CamelModel):
    text: str
    note_id: str | None = None


class ClusterRequest(CamelModel):
    preview: bool = False


class GraphNodeInput(CamelModel):
    id: str
    x: float | None = None
    y: float | None = None
    vx: float = 0.0
    vy: float = 0.0
    radius: float = 8.0


class SaveGraphRequest(CamelModel):
    nodes: list[GraphNodeInput]
    edges: list[GraphEdge]


class BatchNotesRequest(CamelModel):
    operations: list[NoteOperation]


class BatchDeleteRequest(CamelModel):
    note_ids: list[str] | None = None


class CreateFolderRequest(CamelModel):
    name: str | None = None
    parent_id: str | None = None


class RenameFolderRequest(CamelModel):
    name: str


class CreateAnnotationRequest(CamelModel):
    text: str
    comment: str


class UpdateAnnotationRequest(CamelModel):
    comment: str


class SaveCanvasRequest(CamelModel):
    nodes: list[CanvasNode]
    edges: list[CanvasEdge]


class CanvasBatchRequest(CamelModel):
    operations: list[CanvasOperation]
