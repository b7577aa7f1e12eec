"""Semantic clustering of notes and circular spatial layout of the clusters.

Clusters are found with k-means over note embeddings. Their on-canvas centres,
however, come from the notes' current (x, y) positions, so committing a layout
and clustering again can move notes even when the assignment is unchanged.
"""

import logging
import math
from datetime import datetime

import numpy as np
from sklearn.cluster import KMeans

from notemesh.domain.cluster import Cluster, ClusteringResult, ClusterNote, ClusterStats
from notemesh.domain.note import Note, utcnow
from notemesh.exceptions import ClusteringError, InvalidEmbeddingError
from notemesh.stores.base import NoteStore
from notemesh.vector_dbs.base import SimilarityIndex

logger = logging.getLogger(__name__)

CLUSTER_COLORS = ["#FEE2E2", "#DBEAFE", "#E0E7FF", "#FCE7F3", "#FEF3C7"]
MIN_NOTES = 3
MIN_TEXT_LENGTH = 20
MIN_CLUSTERS = 2
MAX_CLUSTERS = 5
MAX_ITERATIONS = 100
TOLERANCE = 1e-4
PREVIEW_LENGTH = 100
MIN_RADIUS = 100.0
MAX_RADIUS = 250.0
RADIUS_PER_NOTE = 40.0

INSUFFICIENT_DATA_MESSAGE = (
    "Not enough notes to cluster. You need at least 3 notes with text content "
    "(more than 20 characters each)."
)


def cluster_count(n_notes: int) -> int:
    """Number of clusters for ``n_notes`` qualifying notes: half of them, clamped to [2, 5]."""
    return min(MAX_CLUSTERS, max(MIN_CLUSTERS, n_notes // 2))


def circle_layout(
    center_x: float, center_y: float, member_count: int
) -> list[tuple[float, float]]:
    """Evenly spaced points on a circle whose radius grows with the member count."""
    if member_count == 0:
        return []
    radius = min(MAX_RADIUS, max(MIN_RADIUS, member_count * RADIUS_PER_NOTE))
    step = 2 * math.pi / member_count
    return [
        (center_x + radius * math.cos(i * step), center_y + radius * math.sin(i * step))
        for i in range(member_count)
    ]


def _is_eligible(note: Note, vectors: dict[str, np.ndarray]) -> bool:
    return (
        not note.archived
        and note.id in vectors
        and note.raw_text is not None
        and len(note.raw_text) > MIN_TEXT_LENGTH
    )


class ClusterEngine:
    """Groups a user's notes into k-means clusters and optionally lays them out on the canvas."""

    def __init__(self, *, store: NoteStore, index: SimilarityIndex, random_seed: int = 42):
        self.store = store
        self.index = index
        self.random_seed = random_seed

    def cluster(self, user_id: str, preview: bool, now: datetime | None = None) -> ClusteringResult:
        """Cluster every eligible note of a user.

        Args:
            user_id: Owner of the notes
            preview: When True, stored positions are left untouched
            now: Timestamp recorded on moved notes

        Returns:
            The clusters, largest first, or an empty result with a message when
            fewer than 3 notes qualify

        Raises:
            InvalidEmbeddingError: If any eligible vector holds NaN or infinite values
            ClusteringError: If k-means fails twice or returns a malformed assignment
        """
        vectors = self.index.snapshot(user_id)
        notes = [note for note in self.store.list_notes(user_id) if _is_eligible(note, vectors)]

        if len(notes) < MIN_NOTES:
            logger.info(f"Skipping clustering for user {user_id}: {len(notes)} qualifying notes")
            return ClusteringResult(message=INSUFFICIENT_DATA_MESSAGE, clusters=[], preview=preview)

        embeddings = np.stack([np.asarray(vectors[note.id], dtype=np.float64) for note in notes])
        if not np.all(np.isfinite(embeddings)):
            logger.error(f"Non-finite embedding values for user {user_id}")
            raise InvalidEmbeddingError("Invalid embedding data. Please regenerate embeddings.")

        k = cluster_count(len(notes))
        logger.info(
            f"Clustering {len(notes)} notes into {k} clusters "
            f"(embedding dimension {embeddings.shape[1]})"
        )
        labels = self._fit_labels(embeddings, k)

        clusters = self._build_clusters(notes, labels)
        if not preview:
            clusters = self._commit_layout(clusters, now or utcnow())

        sizes = [len(cluster.notes) for cluster in clusters]
        stats = ClusterStats(
            total_notes=len(notes),
            num_clusters=len(clusters),
            average_cluster_size=math.floor(len(notes) / len(clusters) + 0.5),
            smallest_cluster=min(sizes),
            largest_cluster=max(sizes),
        )
        logger.info(
            "Created clusters: "
            + ", ".join(f"{cluster.name}: {len(cluster.notes)} notes" for cluster in clusters)
        )
        return ClusteringResult(clusters=clusters, preview=preview, stats=stats)

    def _fit_labels(self, embeddings: np.ndarray, k: int) -> np.ndarray:
        try:
            labels = KMeans(
                n_clusters=k,
                init="k-means++",
                n_init=1,
                max_iter=MAX_ITERATIONS,
                tol=TOLERANCE,
                random_state=self.random_seed,
            ).fit_predict(embeddings)
        except Exception as e:
            logger.warning(f"K-means failed, retrying with default initialization: {e}")
            try:
                labels = KMeans(n_clusters=k, init="random", n_init=1).fit_predict(embeddings)
            except Exception as fallback_error:
                logger.error(f"K-means fallback also failed: {fallback_error}")
                raise ClusteringError(
                    "Clustering algorithm failed. Try with more notes or different content."
                ) from fallback_error

        if labels is None or len(labels) != len(embeddings):
            raise ClusteringError("Clustering produced invalid results. Please try again.")
        return labels

    def _build_clusters(self, notes: list[Note], labels: np.ndarray) -> list[Cluster]:
        members: dict[int, list[ClusterNote]] = {}
        for note, label in zip(notes, labels.tolist()):
            members.setdefault(int(label), []).append(
                ClusterNote(
                    id=note.id,
                    title=note.title,
                    x=note.x,
                    y=note.y,
                    preview=(note.raw_text or "")[:PREVIEW_LENGTH],
                )
            )

        ordered = sorted(members.items(), key=lambda item: (-len(item[1]), item[0]))
        clusters = []
        for rank, (_, cluster_notes) in enumerate(ordered):
            clusters.append(
                Cluster(
                    id=f"cluster-{rank}",
                    name=f"Group {rank + 1}",
                    notes=cluster_notes,
                    center_x=sum(n.x for n in cluster_notes) / len(cluster_notes),
                    center_y=sum(n.y for n in cluster_notes) / len(cluster_notes),
                    color=CLUSTER_COLORS[rank % len(CLUSTER_COLORS)],
                    size_rank=rank,
                )
            )
        return clusters

    def _commit_layout(self, clusters: list[Cluster], now: datetime) -> list[Cluster]:
        """Move each cluster's notes onto a circle around its centre, one note at a time.

        An interruption leaves earlier notes moved and later ones untouched.
        """
        logger.info("Applying cluster positions...")
        committed = []
        for cluster in clusters:
            positions = circle_layout(cluster.center_x, cluster.center_y, len(cluster.notes))
            moved = []
            for cluster_note, (x, y) in zip(cluster.notes, positions):
                note = self.store.get_note(cluster_note.id)
                if note is None:
                    logger.warning(f"Note {cluster_note.id} disappeared during layout commit")
                    continue
                self.store.update_note(
                    note.model_copy(update={"x": x, "y": y, "ephemeral": False, "updated_at": now})
                )
                logger.debug(f"Moved note {note.id} to ({x:.1f}, {y:.1f})")
                moved.append(cluster_note.model_copy(update={"x": x, "y": y}))
            committed.append(cluster.model_copy(update={"notes": moved}))
        return committed
