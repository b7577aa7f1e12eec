from typing import Protocol

import numpy as np


class Embedder(Protocol):
    def embed(self, text: str) -> np.ndarray: ...


def normalize(vector: np.ndarray) -> np.ndarray:
    """Scale a vector to unit length. Zero vectors are returned unchanged."""
    norm = np.linalg.norm(vector)
    if norm == 0:
        return vector
    return vector / norm
