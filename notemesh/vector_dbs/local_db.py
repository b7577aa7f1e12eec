import json
from pathlib import Path

import numpy as np

from notemesh.domain.note import EmbeddedNote
from notemesh.exceptions import EmbeddingDimensionError
from notemesh.vector_dbs.base import SimilarityIndex


class LocalSimilarityIndex(SimilarityIndex):
    """Local similarity index that keeps note vectors in a JSON file.

    Distances are Euclidean. For unit-normalized vectors this orders results
    the same way as cosine similarity.
    """

    def __init__(self, filepath: str | Path | None = None, autosave: bool = False) -> None:
        """Initialize LocalSimilarityIndex.

        Args:
            filepath: Path to index file. If provided and exists, will auto-load.
                     If provided and doesn't exist, will save to this path when save() is called.
                     If not provided, creates empty index in memory only.
            autosave: Write the file after every mutation (requires filepath)
        """
        self._filepath = str(filepath) if filepath else None
        self._autosave = autosave and self._filepath is not None
        self._entries: dict[str, EmbeddedNote] = {}

        if self._filepath and Path(self._filepath).exists():
            with open(self._filepath, "r") as f:
                data = json.load(f)
            self._entries = {
                note_id: EmbeddedNote(**entry) for note_id, entry in data["vectors"].items()
            }

    @classmethod
    def from_data(cls, entries: dict[str, EmbeddedNote] | None = None) -> "LocalSimilarityIndex":
        """Create LocalSimilarityIndex from provided entries (useful for testing)."""
        instance = cls(filepath=None)
        instance._entries = entries or {}
        return instance

    def upsert(self, user_id: str, note_id: str, vector: np.ndarray) -> None:
        """Replace the stored vector for a note.

        Raises:
            EmbeddingDimensionError: If the vector's dimension differs from the
                dimension of the user's other stored vectors
        """
        vector = np.asarray(vector, dtype=np.float32)
        if vector.ndim != 1:
            raise EmbeddingDimensionError(f"Expected a 1-D vector, got shape {vector.shape}")

        expected = self._user_dimension(user_id, ignore_note_id=note_id)
        if expected is not None and vector.shape[0] != expected:
            raise EmbeddingDimensionError(
                f"Vector for note {note_id} has dimension {vector.shape[0]}, "
                f"expected {expected} for user {user_id}"
            )

        existing = self._entries.get(note_id)
        active = existing.active if existing else True
        self._entries[note_id] = EmbeddedNote(
            note_id=note_id, user_id=user_id, vector=vector, active=active
        )
        self._persist()

    def query(
        self, user_id: str, vector: np.ndarray, exclude_note_id: str | None, k: int
    ) -> list[tuple[str, float]]:
        """Get the k active notes closest to a vector as (note_id, distance) pairs."""
        if k <= 0:
            return []

        candidates = [
            entry
            for entry in self._entries.values()
            if entry.user_id == user_id and entry.active and entry.note_id != exclude_note_id
        ]
        if not candidates:
            return []

        query_vector = np.asarray(vector, dtype=np.float32)
        matrix = np.stack([entry.vector for entry in candidates])
        if matrix.shape[1] != query_vector.shape[0]:
            raise EmbeddingDimensionError(
                f"Query vector has dimension {query_vector.shape[0]}, "
                f"index holds dimension {matrix.shape[1]} for user {user_id}"
            )
        distances = np.linalg.norm(matrix - query_vector, axis=1)

        ranked = sorted(
            zip(distances.tolist(), (entry.note_id for entry in candidates)),
            key=lambda pair: (pair[0], pair[1]),
        )
        return [(note_id, distance) for distance, note_id in ranked[:k]]

    def set_active(self, user_id: str, note_id: str, active: bool) -> None:
        entry = self._entries.get(note_id)
        if entry and entry.user_id == user_id:
            entry.active = active
            self._persist()

    def remove(self, note_id: str) -> None:
        self._entries.pop(note_id, None)
        self._persist()

    def has_vector(self, note_id: str) -> bool:
        return note_id in self._entries

    def snapshot(self, user_id: str) -> dict[str, np.ndarray]:
        return {
            note_id: entry.vector
            for note_id, entry in self._entries.items()
            if entry.user_id == user_id and entry.active
        }

    def save(self, filepath: str | None = None) -> None:
        """Save the index to a JSON file.

        Args:
            filepath: Path to save to. If not provided, uses the filepath from initialization.
        """
        save_path = filepath or self._filepath
        if not save_path:
            raise ValueError(
                "No filepath provided and no default filepath set during initialization"
            )

        data = {
            "vectors": {note_id: entry.model_dump() for note_id, entry in self._entries.items()}
        }
        with open(str(save_path), "w") as f:
            json.dump(data, f)

    def clear(self) -> None:
        self._entries.clear()
        self._persist()

    def _persist(self) -> None:
        if self._autosave:
            self.save()

    def _user_dimension(self, user_id: str, ignore_note_id: str) -> int | None:
        for entry in self._entries.values():
            if entry.user_id == user_id and entry.note_id != ignore_note_id:
                return int(entry.vector.shape[0])
        return None
