"""Errors raised by the organization engine and its stores."""


class NotemeshError(Exception):
    """Base class for all notemesh errors."""


class NoteNotFoundError(NotemeshError):
    def __init__(self, note_id: str):
        super().__init__(f"Note {note_id} not found")
        self.note_id = note_id


class LinkNotFoundError(NotemeshError):
    def __init__(self, link_id: str):
        super().__init__(f"Link {link_id} not found")
        self.link_id = link_id


class FolderNotFoundError(NotemeshError):
    def __init__(self, folder_id: str):
        super().__init__(f"Folder {folder_id} not found")
        self.folder_id = folder_id


class AnnotationNotFoundError(NotemeshError):
    def __init__(self, annotation_id: str):
        super().__init__(f"Annotation {annotation_id} not found")
        self.annotation_id = annotation_id


class OwnershipError(NotemeshError):
    """A bulk request named notes that belong to another user."""


class InvalidReferenceError(NotemeshError):
    """A write referenced a note or folder that does not exist (or belongs to another user)."""


class EmbeddingDimensionError(NotemeshError, ValueError):
    """A vector's dimension differs from the other vectors stored for the same user."""


class InvalidEmbeddingError(NotemeshError):
    """Stored embeddings contain non-finite values and cannot be clustered."""


class ClusteringError(NotemeshError):
    """K-means failed on both the seeded and the fallback attempt."""


class GraphNotFoundError(NotemeshError):
    """No graph layout has been saved for the user yet."""


class CanvasNotFoundError(NotemeshError):
    """No canvas has been created for the note or folder yet."""
