"""Graph view layout: per-note visual metadata on top of the user's active notes."""

import math

from notemesh.domain.base import CamelModel
from notemesh.domain.graph import GraphEdge, GraphLayout, NodeLayout
from notemesh.exceptions import GraphNotFoundError
from notemesh.services.notes import NoteService
from notemesh.stores.base import NoteStore


class GraphNode(CamelModel):
    id: str
    label: str
    x: float
    y: float
    vx: float
    vy: float
    radius: float
    last_visited: float


class GraphView(CamelModel):
    nodes: list[GraphNode]
    edges: list[GraphEdge]


class GraphLayoutService:
    def __init__(self, *, store: NoteStore, note_service: NoteService):
        self.store = store
        self.note_service = note_service

    def get_graph(self, user_id: str) -> GraphView:
        """Build graph nodes for every active note, filling gaps with a spiral default layout."""
        layout = self.store.get_graph_layout(user_id) or GraphLayout(user_id=user_id)
        nodes = []
        for index, note in enumerate(self.store.list_notes(user_id)):
            meta = layout.nodes.get(note.id, NodeLayout())
            nodes.append(
                GraphNode(
                    id=note.id,
                    label=note.title,
                    x=meta.x if meta.x is not None else math.cos(index * 0.5) * 200,
                    y=meta.y if meta.y is not None else math.sin(index * 0.5) * 200,
                    vx=meta.vx,
                    vy=meta.vy,
                    radius=meta.radius,
                    last_visited=note.updated_at.timestamp() * 1000,
                )
            )
        return GraphView(nodes=nodes, edges=layout.edges)

    def save_graph(
        self, user_id: str, nodes: dict[str, NodeLayout], edges: list[GraphEdge]
    ) -> GraphLayout:
        layout = GraphLayout(user_id=user_id, nodes=nodes, edges=edges)
        self.store.save_graph_layout(layout)
        return layout

    def update_node(self, user_id: str, node_id: str, changes: dict) -> NodeLayout:
        layout = self.store.get_graph_layout(user_id)
        if layout is None:
            raise GraphNotFoundError(f"Graph not found for user {user_id}")
        node = layout.update_node(node_id, changes)
        self.store.save_graph_layout(layout)
        return node

    def delete_node(self, user_id: str, node_id: str) -> None:
        """Delete the note behind a node; the note service prunes the layout."""
        self.note_service.delete_note(user_id, node_id)
