import json
from pathlib import Path

from notemesh.domain.canvas import Canvas
from notemesh.domain.folder import Folder
from notemesh.domain.graph import GraphLayout
from notemesh.domain.note import Annotation, Link, Note
from notemesh.exceptions import (
    AnnotationNotFoundError,
    FolderNotFoundError,
    InvalidReferenceError,
    LinkNotFoundError,
)
from notemesh.stores.base import NoteStore


class LocalNoteStore(NoteStore):
    """Local note store that keeps notes, links, folders and layouts in a JSON file."""

    def __init__(self, filepath: str | Path | None = None, autosave: bool = False) -> None:
        """Initialize LocalNoteStore.

        Args:
            filepath: Path to store file. If provided and exists, will auto-load.
                     If provided and doesn't exist, will save to this path when save() is called.
                     If not provided, creates empty store in memory only.
            autosave: Write the file after every mutation (requires filepath)
        """
        self._filepath = str(filepath) if filepath else None
        self._autosave = autosave and self._filepath is not None
        self._notes: dict[str, Note] = {}
        self._links: dict[str, Link] = {}
        self._layouts: dict[str, GraphLayout] = {}
        self._folders: dict[str, Folder] = {}
        self._annotations: dict[str, Annotation] = {}
        self._canvases: dict[str, Canvas] = {}

        if self._filepath and Path(self._filepath).exists():
            with open(self._filepath, "r") as f:
                data = json.load(f)
            self._notes = {note_id: Note(**note) for note_id, note in data["notes"].items()}
            self._links = {link_id: Link(**link) for link_id, link in data["links"].items()}
            self._layouts = {
                user_id: GraphLayout(**layout)
                for user_id, layout in data.get("graphs", {}).items()
            }
            self._folders = {
                folder_id: Folder(**folder)
                for folder_id, folder in data.get("folders", {}).items()
            }
            self._annotations = {
                annotation_id: Annotation(**annotation)
                for annotation_id, annotation in data.get("annotations", {}).items()
            }
            self._canvases = {
                canvas_id: Canvas(**canvas)
                for canvas_id, canvas in data.get("canvases", {}).items()
            }

    @classmethod
    def from_data(
        cls,
        notes: dict[str, Note] | None = None,
        links: dict[str, Link] | None = None,
        folders: dict[str, Folder] | None = None,
    ) -> "LocalNoteStore":
        """Create LocalNoteStore from provided data (useful for testing)."""
        instance = cls(filepath=None)
        instance._notes = notes or {}
        instance._links = links or {}
        instance._folders = folders or {}
        return instance

    def add_note(self, note: Note) -> None:
        self._check_folder(note.folder_id)
        self._notes[note.id] = note.model_copy()
        self._persist()

    def get_note(self, note_id: str) -> Note | None:
        note = self._notes.get(note_id)
        return note.model_copy() if note else None

    def update_note(self, note: Note) -> None:
        self._check_folder(note.folder_id)
        self._notes[note.id] = note.model_copy()
        self._persist()

    def delete_note(self, note_id: str) -> None:
        self._notes.pop(note_id, None)
        self._links = {
            link_id: link
            for link_id, link in self._links.items()
            if note_id not in (link.source_id, link.target_id)
        }
        self._annotations = {
            annotation_id: annotation
            for annotation_id, annotation in self._annotations.items()
            if annotation.note_id != note_id
        }
        self._canvases = {
            canvas_id: canvas
            for canvas_id, canvas in self._canvases.items()
            if canvas.note_id != note_id
        }
        self._persist()

    def list_notes(self, user_id: str, include_archived: bool = False) -> list[Note]:
        notes = [
            note.model_copy()
            for note in self._notes.values()
            if note.user_id == user_id and (include_archived or not note.archived)
        ]
        return sorted(notes, key=lambda note: note.id)

    def get_link(self, link_id: str) -> Link | None:
        link = self._links.get(link_id)
        return link.model_copy() if link else None

    def find_link(self, source_id: str, target_id: str) -> Link | None:
        for link in self._links.values():
            if link.source_id == source_id and link.target_id == target_id:
                return link.model_copy()
        return None

    def add_link(self, link: Link) -> None:
        for endpoint in (link.source_id, link.target_id):
            if endpoint not in self._notes:
                raise InvalidReferenceError(f"Link endpoint {endpoint} does not exist")
        if self.find_link(link.source_id, link.target_id):
            raise ValueError(f"Link {link.source_id} -> {link.target_id} already exists")
        self._links[link.id] = link.model_copy()
        self._persist()

    def increment_link_strength(self, link_id: str, delta: float) -> Link:
        link = self._links.get(link_id)
        if link is None:
            raise LinkNotFoundError(link_id)
        link.strength += delta
        self._persist()
        return link.model_copy()

    def delete_link(self, link_id: str) -> None:
        if link_id not in self._links:
            raise LinkNotFoundError(link_id)
        del self._links[link_id]
        self._persist()

    def links_for_note(self, note_id: str) -> tuple[list[Link], list[Link]]:
        incoming = [link.model_copy() for link in self._links.values() if link.target_id == note_id]
        outgoing = [link.model_copy() for link in self._links.values() if link.source_id == note_id]
        return incoming, outgoing

    def links_for_user(self, user_id: str) -> list[Link]:
        return [
            link.model_copy()
            for link in self._links.values()
            if link.source_id in self._notes and self._notes[link.source_id].user_id == user_id
        ]

    def get_graph_layout(self, user_id: str) -> GraphLayout | None:
        layout = self._layouts.get(user_id)
        return layout.model_copy(deep=True) if layout else None

    def save_graph_layout(self, layout: GraphLayout) -> None:
        self._layouts[layout.user_id] = layout.model_copy(deep=True)
        self._persist()

    def add_folder(self, folder: Folder) -> None:
        self._check_folder(folder.parent_id)
        self._folders[folder.id] = folder.model_copy()
        self._persist()

    def get_folder(self, folder_id: str) -> Folder | None:
        folder = self._folders.get(folder_id)
        return folder.model_copy() if folder else None

    def update_folder(self, folder: Folder) -> None:
        if folder.id not in self._folders:
            raise FolderNotFoundError(folder.id)
        self._check_folder(folder.parent_id)
        self._folders[folder.id] = folder.model_copy()
        self._persist()

    def delete_folder(self, folder_id: str) -> None:
        if self._folders.pop(folder_id, None) is None:
            raise FolderNotFoundError(folder_id)
        for note in self._notes.values():
            if note.folder_id == folder_id:
                note.folder_id = None
        for folder in self._folders.values():
            if folder.parent_id == folder_id:
                folder.parent_id = None
        self._canvases = {
            canvas_id: canvas
            for canvas_id, canvas in self._canvases.items()
            if canvas.folder_id != folder_id
        }
        self._persist()

    def list_folders(self, user_id: str) -> list[Folder]:
        folders = [
            folder.model_copy() for folder in self._folders.values() if folder.user_id == user_id
        ]
        return sorted(folders, key=lambda folder: folder.name)

    def add_annotation(self, annotation: Annotation) -> None:
        if annotation.note_id not in self._notes:
            raise InvalidReferenceError(f"Annotated note {annotation.note_id} does not exist")
        self._annotations[annotation.id] = annotation.model_copy()
        self._persist()

    def get_annotation(self, annotation_id: str) -> Annotation | None:
        annotation = self._annotations.get(annotation_id)
        return annotation.model_copy() if annotation else None

    def update_annotation(self, annotation: Annotation) -> None:
        if annotation.id not in self._annotations:
            raise AnnotationNotFoundError(annotation.id)
        self._annotations[annotation.id] = annotation.model_copy()
        self._persist()

    def delete_annotation(self, annotation_id: str) -> None:
        if self._annotations.pop(annotation_id, None) is None:
            raise AnnotationNotFoundError(annotation_id)
        self._persist()

    def annotations_for_note(self, note_id: str) -> list[Annotation]:
        return [
            annotation.model_copy()
            for annotation in self._annotations.values()
            if annotation.note_id == note_id
        ]

    def get_note_canvas(self, note_id: str) -> Canvas | None:
        for canvas in self._canvases.values():
            if canvas.note_id == note_id:
                return canvas.model_copy(deep=True)
        return None

    def get_folder_canvas(self, folder_id: str) -> Canvas | None:
        for canvas in self._canvases.values():
            if canvas.folder_id == folder_id:
                return canvas.model_copy(deep=True)
        return None

    def save_canvas(self, canvas: Canvas) -> None:
        if canvas.note_id is not None and canvas.note_id not in self._notes:
            raise InvalidReferenceError(f"Canvas note {canvas.note_id} does not exist")
        if canvas.folder_id is not None and canvas.folder_id not in self._folders:
            raise InvalidReferenceError(f"Canvas folder {canvas.folder_id} does not exist")
        existing = (
            self.get_note_canvas(canvas.note_id)
            if canvas.note_id is not None
            else self.get_folder_canvas(canvas.folder_id)
        )
        if existing and existing.id != canvas.id:
            del self._canvases[existing.id]
        self._canvases[canvas.id] = canvas.model_copy(deep=True)
        self._persist()

    def list_canvases(self, user_id: str) -> list[Canvas]:
        canvases = [
            canvas.model_copy(deep=True)
            for canvas in self._canvases.values()
            if canvas.user_id == user_id
        ]
        return sorted(canvases, key=lambda canvas: canvas.updated_at, reverse=True)

    def save(self, filepath: str | None = None) -> None:
        """Save the store to a JSON file.

        Args:
            filepath: Path to save to. If not provided, uses the filepath from initialization.
        """
        save_path = filepath or self._filepath
        if not save_path:
            raise ValueError(
                "No filepath provided and no default filepath set during initialization"
            )

        data = {
            "notes": {note_id: note.model_dump(mode="json") for note_id, note in self._notes.items()},
            "links": {link_id: link.model_dump() for link_id, link in self._links.items()},
            "graphs": {
                user_id: layout.model_dump() for user_id, layout in self._layouts.items()
            },
            "folders": {
                folder_id: folder.model_dump() for folder_id, folder in self._folders.items()
            },
            "annotations": {
                annotation_id: annotation.model_dump()
                for annotation_id, annotation in self._annotations.items()
            },
            "canvases": {
                canvas_id: canvas.model_dump(mode="json")
                for canvas_id, canvas in self._canvases.items()
            },
        }
        with open(str(save_path), "w") as f:
            json.dump(data, f)

    def _check_folder(self, folder_id: str | None) -> None:
        if folder_id is not None and folder_id not in self._folders:
            raise InvalidReferenceError(f"Folder {folder_id} does not exist")

    def _persist(self) -> None:
        if self._autosave:
            self.save()
