from typing import Protocol

import numpy as np


class SimilarityIndex(Protocol):
    def upsert(self, user_id: str, note_id: str, vector: np.ndarray) -> None:
        """Replace the stored vector for a note."""
        ...

    def query(
        self, user_id: str, vector: np.ndarray, exclude_note_id: str | None, k: int
    ) -> list[tuple[str, float]]:
        """Get the k active notes closest to a vector as (note_id, distance) pairs.

        Results are ordered by ascending distance, ties broken by note id. The
        excluded note and inactive (archived) notes are never returned.
        """
        ...

    def set_active(self, user_id: str, note_id: str, active: bool) -> None:
        """Mark a note's vector as searchable or not (mirrors the archived flag)."""
        ...

    def remove(self, note_id: str) -> None:
        """Delete the vector for a note, if any."""
        ...

    def has_vector(self, note_id: str) -> bool:
        """Whether a vector is stored for the note."""
        ...

    def snapshot(self, user_id: str) -> dict[str, np.ndarray]:
        """Get all active vectors for a user, keyed by note id."""
        ...

    def save(self, filepath: str | None = None) -> None:
        """Save the index to disk."""
        ...

    def clear(self) -> None:
        """Clear all vectors."""
        ...
