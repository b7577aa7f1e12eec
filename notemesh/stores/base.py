from typing import Protocol

from notemesh.domain.canvas import Canvas
from notemesh.domain.folder import Folder
from notemesh.domain.graph import GraphLayout
from notemesh.domain.note import Annotation, Link, Note


class NoteStore(Protocol):
    """Persistent store for notes, links, folders, annotations and layouts."""

    def add_note(self, note: Note) -> None:
        """Add a new note.

        Raises:
            InvalidReferenceError: If the note's folder does not exist
        """
        ...

    def get_note(self, note_id: str) -> Note | None:
        """Get a note by its ID."""
        ...

    def update_note(self, note: Note) -> None:
        """Replace a stored note with the given version."""
        ...

    def delete_note(self, note_id: str) -> None:
        """Delete a note with its links, annotations and canvas."""
        ...

    def list_notes(self, user_id: str, include_archived: bool = False) -> list[Note]:
        """Get a user's notes, ordered by note id."""
        ...

    def get_link(self, link_id: str) -> Link | None:
        """Get a link by its ID."""
        ...

    def find_link(self, source_id: str, target_id: str) -> Link | None:
        """Get the link for an ordered (source, target) pair."""
        ...

    def add_link(self, link: Link) -> None:
        """Add a link.

        Raises:
            InvalidReferenceError: If either endpoint does not exist
            ValueError: If a link for the same ordered pair already exists
        """
        ...

    def increment_link_strength(self, link_id: str, delta: float) -> Link:
        """Atomically add ``delta`` to a link's strength and return the updated link."""
        ...

    def delete_link(self, link_id: str) -> None:
        """Delete a link by its ID."""
        ...

    def links_for_note(self, note_id: str) -> tuple[list[Link], list[Link]]:
        """Get (incoming, outgoing) links of a note."""
        ...

    def links_for_user(self, user_id: str) -> list[Link]:
        """Get all links whose source note belongs to the user."""
        ...

    def get_graph_layout(self, user_id: str) -> GraphLayout | None:
        """Get the saved graph layout for a user."""
        ...

    def save_graph_layout(self, layout: GraphLayout) -> None:
        """Replace the saved graph layout for a user."""
        ...

    def add_folder(self, folder: Folder) -> None:
        """Add a folder.

        Raises:
            InvalidReferenceError: If the parent folder does not exist
        """
        ...

    def get_folder(self, folder_id: str) -> Folder | None:
        ...

    def update_folder(self, folder: Folder) -> None:
        ...

    def delete_folder(self, folder_id: str) -> None:
        """Delete a folder and its canvas. Its notes and subfolders move to the top level."""
        ...

    def list_folders(self, user_id: str) -> list[Folder]:
        ...

    def add_annotation(self, annotation: Annotation) -> None:
        """Add an annotation.

        Raises:
            InvalidReferenceError: If the annotated note does not exist
        """
        ...

    def get_annotation(self, annotation_id: str) -> Annotation | None:
        ...

    def update_annotation(self, annotation: Annotation) -> None:
        ...

    def delete_annotation(self, annotation_id: str) -> None:
        ...

    def annotations_for_note(self, note_id: str) -> list[Annotation]:
        ...

    def get_note_canvas(self, note_id: str) -> Canvas | None:
        ...

    def get_folder_canvas(self, folder_id: str) -> Canvas | None:
        ...

    def save_canvas(self, canvas: Canvas) -> None:
        """Insert or replace the canvas of its note or folder.

        Raises:
            InvalidReferenceError: If the owning note or folder does not exist
        """
        ...

    def list_canvases(self, user_id: str) -> list[Canvas]:
        ...

    def save(self, filepath: str | None = None) -> None:
        """Save the store to disk."""
        ...
