"""Semantic organization engine: linking, weighting, clustering and archiving notes."""

from notemesh.organization.auto_linker import AutoLinker, reinforce_link
from notemesh.organization.clustering import ClusterEngine, cluster_count
from notemesh.organization.lifecycle import LifecycleGate
from notemesh.organization.rediscovery import rediscover
from notemesh.organization.weight import compute_weight, days_since

__all__ = [
    "AutoLinker",
    "ClusterEngine",
    "LifecycleGate",
    "cluster_count",
    "compute_weight",
    "days_since",
    "reinforce_link",
    "rediscover",
]
