"""Free-form canvas boards attached to a single note or a single folder.

Nodes and edges follow the JSON Canvas layout (``fromNode``/``toNode`` edges)
but are kept as id-indexed maps of typed entries, so per-node updates and
deletes touch exactly one entry.
"""

from datetime import datetime
from typing import Literal, TypeVar

from pydantic import ConfigDict, Field

from notemesh.domain.base import CamelModel
from notemesh.domain.note import new_id, utcnow


class CanvasNode(CamelModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    type: str = "text"
    x: float = 0.0
    y: float = 0.0
    width: float = 250.0
    height: float = 60.0
    text: str | None = None
    file: str | None = None
    url: str | None = None
    label: str | None = None
    color: str | None = None


class CanvasEdge(CamelModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    from_node: str
    to_node: str
    from_side: str | None = None
    to_side: str | None = None
    label: str | None = None
    color: str | None = None


class CanvasOperation(CamelModel):
    """One step of a batch canvas edit.

    - ``add``: append ``node`` and/or ``edge``
    - ``update``: merge ``data`` into the node ``node_id`` and/or the edge ``edge_id``
    - ``delete``: drop the node ``node_id`` (with its edges) and/or the edge ``edge_id``
    """

    type: Literal["add", "update", "delete"]
    node: CanvasNode | None = None
    edge: CanvasEdge | None = None
    node_id: str | None = None
    edge_id: str | None = None
    data: dict | None = None


Entry = TypeVar("Entry", CanvasNode, CanvasEdge)


def merge_entry(entry: Entry, changes: dict) -> Entry:
    """Overlay ``changes`` (camelCase or snake_case keys) on an entry, keeping its id.

    Raises:
        pydantic.ValidationError: If ``changes`` holds unknown keys or bad values
    """
    model = type(entry)
    names = {field.alias or name: name for name, field in model.model_fields.items()}
    update = {names.get(key, key): value for key, value in changes.items()}
    merged = model.model_validate({**entry.model_dump(), **update})
    return merged.model_copy(update={"id": entry.id})


class Canvas(CamelModel):
    """Canvas board owned by exactly one of a note or a folder."""

    id: str = Field(default_factory=new_id)
    user_id: str
    note_id: str | None = None
    folder_id: str | None = None
    nodes: dict[str, CanvasNode] = {}
    edges: dict[str, CanvasEdge] = {}
    updated_at: datetime = Field(default_factory=utcnow)

    def replace(self, nodes: list[CanvasNode], edges: list[CanvasEdge]) -> None:
        self.nodes = {node.id: node for node in nodes}
        self.edges = {edge.id: edge for edge in edges}

    def clear(self) -> None:
        self.nodes = {}
        self.edges = {}

    def update_node(self, node_id: str, changes: dict) -> CanvasNode | None:
        """Merge changes into a node. Unknown node ids are left alone and give None."""
        node = self.nodes.get(node_id)
        if node is None:
            return None
        self.nodes[node_id] = merge_entry(node, changes)
        return self.nodes[node_id]

    def remove_node(self, node_id: str) -> None:
        """Drop a node and every edge that starts or ends at it."""
        self.nodes.pop(node_id, None)
        self.edges = {
            edge_id: edge
            for edge_id, edge in self.edges.items()
            if node_id not in (edge.from_node, edge.to_node)
        }

    def apply(self, operation: CanvasOperation) -> None:
        if operation.type == "add":
            if operation.node:
                self.nodes[operation.node.id] = operation.node
            if operation.edge:
                self.edges[operation.edge.id] = operation.edge
        elif operation.type == "update":
            if operation.node_id and operation.data:
                self.update_node(operation.node_id, operation.data)
            if operation.edge_id and operation.data and operation.edge_id in self.edges:
                self.edges[operation.edge_id] = merge_entry(
                    self.edges[operation.edge_id], operation.data
                )
        elif operation.type == "delete":
            if operation.node_id:
                self.remove_node(operation.node_id)
            if operation.edge_id:
                self.edges.pop(operation.edge_id, None)
