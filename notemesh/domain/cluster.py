"""Clustering result models.

Clusters are computed per request and never persisted. They serialize with
camelCase keys to match the clustering response contract.
"""

from notemesh.domain.base import CamelModel


class ClusterNote(CamelModel):
    id: str
    title: str
    x: float
    y: float
    preview: str


class Cluster(CamelModel):
    id: str
    name: str
    notes: list[ClusterNote]
    center_x: float
    center_y: float
    color: str
    size_rank: int


class ClusterStats(CamelModel):
    total_notes: int
    num_clusters: int
    average_cluster_size: int
    smallest_cluster: int
    largest_cluster: int


class ClusteringResult(CamelModel):
    """Outcome of a clustering run.

    ``message`` is only set when there were too few qualifying notes, in which
    case ``clusters`` is empty and ``stats`` is None.
    """

    clusters: list[Cluster] = []
    preview: bool = False
    stats: ClusterStats | None = None
    message: str | None = None

    @property
    def insufficient_data(self) -> bool:
        return self.message is not None
