"""Canvas boards for single notes and for folders."""

from datetime import datetime
from typing import Callable

from notemesh.domain.base import CamelModel
from notemesh.domain.canvas import Canvas, CanvasEdge, CanvasNode, CanvasOperation
from notemesh.domain.folder import Folder
from notemesh.domain.note import Note, utcnow
from notemesh.exceptions import CanvasNotFoundError, FolderNotFoundError, NoteNotFoundError
from notemesh.stores.base import NoteStore


class CanvasSummary(CamelModel):
    canvas_id: str
    folder_id: str | None
    folder_name: str | None
    note_id: str | None
    note_name: str | None
    last_updated: datetime


class CanvasService:
    """Reads and edits canvases. Every call checks that the note or folder belongs to the user."""

    def __init__(self, *, store: NoteStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def get_note_canvas(self, user_id: str, note_id: str) -> tuple[Note, Canvas]:
        """The note's canvas, created empty on first access."""
        note = self._get_owned_note(user_id, note_id)
        canvas = self.store.get_note_canvas(note_id)
        if canvas is None:
            canvas = Canvas(user_id=user_id, note_id=note_id, updated_at=self.clock())
            self.store.save_canvas(canvas)
        return note, canvas

    def save_note_canvas(
        self, user_id: str, note_id: str, nodes: list[CanvasNode], edges: list[CanvasEdge]
    ) -> Canvas:
        self._get_owned_note(user_id, note_id)
        canvas = self.store.get_note_canvas(note_id) or Canvas(user_id=user_id, note_id=note_id)
        canvas.replace(nodes, edges)
        return self._save(canvas)

    def clear_note_canvas(self, user_id: str, note_id: str) -> None:
        self._get_owned_note(user_id, note_id)
        canvas = self.store.get_note_canvas(note_id)
        if canvas is None:
            raise CanvasNotFoundError(f"No canvas for note {note_id}")
        canvas.clear()
        self._save(canvas)

    def get_folder_canvas(self, user_id: str, folder_id: str) -> tuple[Folder, Canvas]:
        """The folder's canvas, created empty on first access."""
        folder = self._get_owned_folder(user_id, folder_id)
        canvas = self.store.get_folder_canvas(folder_id)
        if canvas is None:
            canvas = Canvas(user_id=user_id, folder_id=folder_id, updated_at=self.clock())
            self.store.save_canvas(canvas)
        return folder, canvas

    def save_folder_canvas(
        self, user_id: str, folder_id: str, nodes: list[CanvasNode], edges: list[CanvasEdge]
    ) -> Canvas:
        self._get_owned_folder(user_id, folder_id)
        canvas = self.store.get_folder_canvas(folder_id) or Canvas(
            user_id=user_id, folder_id=folder_id
        )
        canvas.replace(nodes, edges)
        return self._save(canvas)

    def update_folder_node(
        self, user_id: str, folder_id: str, node_id: str, changes: dict
    ) -> CanvasNode | None:
        """Merge changes into one node. Returns None when the canvas has no such node.

        Raises:
            CanvasNotFoundError: If the folder has no canvas
            pydantic.ValidationError: If the changes do not fit a canvas node
        """
        canvas = self._existing_folder_canvas(user_id, folder_id)
        node = canvas.update_node(node_id, changes)
        if node is not None:
            self._save(canvas)
        return node

    def delete_folder_node(self, user_id: str, folder_id: str, node_id: str) -> None:
        canvas = self._existing_folder_canvas(user_id, folder_id)
        canvas.remove_node(node_id)
        self._save(canvas)

    def clear_folder_canvas(self, user_id: str, folder_id: str) -> None:
        canvas = self._existing_folder_canvas(user_id, folder_id)
        canvas.clear()
        self._save(canvas)

    def apply_folder_batch(
        self, user_id: str, folder_id: str, operations: list[CanvasOperation]
    ) -> Canvas:
        """Apply operations in order and save once at the end."""
        canvas = self._existing_folder_canvas(user_id, folder_id)
        for operation in operations:
            canvas.apply(operation)
        return self._save(canvas)

    def list_canvases(self, user_id: str) -> list[CanvasSummary]:
        summaries = []
        for canvas in self.store.list_canvases(user_id):
            folder = self.store.get_folder(canvas.folder_id) if canvas.folder_id else None
            note = self.store.get_note(canvas.note_id) if canvas.note_id else None
            summaries.append(
                CanvasSummary(
                    canvas_id=canvas.id,
                    folder_id=canvas.folder_id,
                    folder_name=folder.name if folder else None,
                    note_id=canvas.note_id,
                    note_name=note.title if note else None,
                    last_updated=canvas.updated_at,
                )
            )
        return summaries

    def _existing_folder_canvas(self, user_id: str, folder_id: str) -> Canvas:
        folder = self.store.get_folder(folder_id)
        canvas = self.store.get_folder_canvas(folder_id)
        if folder is None or folder.user_id != user_id or canvas is None:
            raise CanvasNotFoundError(f"No canvas for folder {folder_id}")
        return canvas

    def _save(self, canvas: Canvas) -> Canvas:
        canvas.updated_at = self.clock()
        self.store.save_canvas(canvas)
        return canvas

    def _get_owned_note(self, user_id: str, note_id: str) -> Note:
        note = self.store.get_note(note_id)
        if note is None or note.user_id != user_id:
            raise NoteNotFoundError(note_id)
        return note

    def _get_owned_folder(self, user_id: str, folder_id: str) -> Folder:
        folder = self.store.get_folder(folder_id)
        if folder is None or folder.user_id != user_id:
            raise FolderNotFoundError(folder_id)
        return folder
