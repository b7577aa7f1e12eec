"""Graph layout domain models.

Canvas metadata is stored as an id-indexed map of typed node entries instead
of a free-form JSON blob, so per-node updates and deletes cannot clobber
unrelated keys.
"""

from pydantic import ConfigDict

from notemesh.domain.base import CamelModel


class NodeLayout(CamelModel):
    """Visual state of a single note in the graph view."""

    model_config = ConfigDict(extra="forbid")

    x: float | None = None
    y: float | None = None
    vx: float = 0.0
    vy: float = 0.0
    radius: float = 8.0
    last_visited: float | None = None


class GraphEdge(CamelModel):
    source: str
    target: str


class GraphLayout(CamelModel):
    """Per-user graph view state: node layouts keyed by note id, plus edges."""

    user_id: str
    nodes: dict[str, NodeLayout] = {}
    edges: list[GraphEdge] = []

    def update_node(self, node_id: str, changes: dict) -> NodeLayout:
        """Merge layout fields into a node, creating the entry if needed.

        Raises:
            pydantic.ValidationError: If ``changes`` holds unknown keys or bad values
        """
        partial = NodeLayout.model_validate(changes)
        current = self.nodes.get(node_id, NodeLayout())
        updated = current.model_copy(update=partial.model_dump(include=partial.model_fields_set))
        self.nodes[node_id] = updated
        return updated

    def remove_node(self, node_id: str) -> None:
        """Drop a node entry and every edge touching it."""
        self.nodes.pop(node_id, None)
        self.edges = [
            edge for edge in self.edges if edge.source != node_id and edge.target != node_id
        ]
