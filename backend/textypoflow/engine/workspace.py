"""Live workspace: the editor-owned graph that mirrors engine events.

Outside a run the editor edits this graph freely. During a run the engine
works on its own copy and reports each mutation as an event; ``apply_event``
merges it here with the same rule the engine uses, so the two agree on
every node field the engine touched. Edits made here mid-run are never seen
by the run.
"""
import time
from typing import Any

from ..nodes.display import infer_content_type
from ..nodes.input import input_changes
from ..nodes.registry import NodeRegistry
from .graph import Edge, EdgeStatus, Graph, Node, NodeType
from .history import HistorySnapshot

EDGE_TYPES = ("bezier", "smoothstep")
DEFAULT_EDGE_TYPE = "bezier"

DEFAULT_EDGE_STYLE = {"stroke": "#a1a1aa", "strokeWidth": 2}
DEFAULT_MARKER_END = {"type": "arrowclosed", "color": "#a1a1aa"}


def new_node(
    node_type: NodeType | str,
    node_id: str | None = None,
    position: dict[str, float] | None = None,
    data: dict[str, Any] | None = None,
) -> Node:
    """Create a node of ``node_type`` with its default payload overlaid by ``data``."""
    node_cls = NodeRegistry.get(node_type)
    node_type = node_cls.NODE_TYPE
    raw_data = {**node_cls.default_data(), **(data or {})}
    return Node(
        id=node_id or f"{node_type.value}-{time.time_ns() // 1000}",
        type=node_type,
        data=node_cls.payload_type().from_dict(raw_data),
        position=dict(position or {"x": 0, "y": 0}),
    )


def new_edge(source: str, target: str, edge_type: str = DEFAULT_EDGE_TYPE, edge_id: str | None = None) -> Edge:
    return Edge(
        id=edge_id or f"e-{source}-{target}",
        source=source,
        target=target,
        extra={
            "type": "disconnectable",
            "style": dict(DEFAULT_EDGE_STYLE),
            "markerEnd": dict(DEFAULT_MARKER_END),
            "data": {"pathType": edge_type},
        },
    )


def initial_graph() -> Graph:
    return Graph(
        nodes=[
            new_node(NodeType.INPUT, "input-1", {"x": 100, "y": 200}, {"value": "..."}),
            new_node(NodeType.DISPLAY, "display-1", {"x": 600, "y": 200}),
        ],
        edges=[],
    )


class Workspace:
    """Holds the live graph and the edge rendering style."""

    def __init__(self, graph: Graph | None = None, edge_type: str = DEFAULT_EDGE_TYPE):
        self.graph = graph if graph is not None else initial_graph()
        self.edge_type = edge_type

    # -- engine events -----------------------------------------------------

    def apply_event(self, event: dict[str, Any]) -> None:
        """Mirror one engine event. Events for ids no longer present are ignored."""
        kind = event.get("type")
        if kind == "node_update":
            node = self.graph.get_node(event["node_id"])
            if node is not None:
                self._merge(node, event["changes"])
        elif kind == "edge_update":
            edge = self.graph.get_edge(event["edge_id"])
            if edge is not None:
                edge.status = EdgeStatus(event["status"])
                edge.animated = event["animated"]
                if event["status"] != "idle":
                    edge.extra["style"] = {**edge.extra.get("style", {}), "stroke": "#3b82f6", "strokeWidth": 2}
                else:
                    edge.extra["style"] = {**edge.extra.get("style", {}), **DEFAULT_EDGE_STYLE}

    def _merge(self, node: Node, changes: dict[str, Any]) -> None:
        node.update(changes)
        if node.type == NodeType.DISPLAY and "content" in changes:
            node.update({"contentType": infer_content_type(changes["content"] or "")})

    def _infer_display_types(self) -> None:
        # Snapshots and loaded files carry whatever contentType was saved
        for node in self.graph.nodes_of_type(NodeType.DISPLAY):
            node.update({"contentType": infer_content_type(node.data.content or "")})

    # -- editor operations -------------------------------------------------

    def replace(self, graph: Graph, edge_type: str | None = None) -> None:
        self.graph = graph.copy()
        self._infer_display_types()
        if edge_type is not None:
            self.set_edge_type(edge_type)

    def restore(self, snapshot: HistorySnapshot) -> None:
        """Load a history snapshot as the live graph. Does not start a run."""
        self.graph = snapshot.to_graph()
        self._infer_display_types()

    def clear(self) -> None:
        self.graph = initial_graph()

    def get_node(self, node_id: str) -> Node:
        node = self.graph.get_node(node_id)
        if node is None:
            raise KeyError(f"Node not found: {node_id}")
        return node

    def add_node(self, node: Node) -> Node:
        if self.graph.get_node(node.id) is not None:
            raise ValueError(f"Duplicate node id: {node.id}")
        self.graph.nodes.append(node)
        return node

    def update_node(self, node_id: str, changes: dict[str, Any]) -> Node:
        node = self.get_node(node_id)
        if node.type == NodeType.INPUT:
            changes = input_changes(node.data.to_dict(), changes)
        self._merge(node, changes)
        return node

    def remove_node(self, node_id: str) -> None:
        self.get_node(node_id)
        self.graph.nodes = [n for n in self.graph.nodes if n.id != node_id]
        self.graph.edges = [
            e for e in self.graph.edges if e.source != node_id and e.target != node_id
        ]

    def connect(self, source: str, target: str) -> Edge:
        """Add an edge; connecting the same pair twice returns the existing edge."""
        self.get_node(source)
        self.get_node(target)
        for edge in self.graph.edges:
            if edge.source == source and edge.target == target:
                return edge
        edge = new_edge(source, target, self.edge_type)
        self.graph.edges.append(edge)
        return edge

    def add_downstream(self, source: str, node_type: NodeType | str, data: dict[str, Any] | None = None) -> tuple[Node, Edge]:
        """Create a node to the right of ``source`` and connect it."""
        origin = self.get_node(source)
        position = {
            "x": origin.position.get("x", 0) + 400,
            "y": origin.position.get("y", 0),
        }
        node = self.add_node(new_node(node_type, position=position, data=data))
        return node, self.connect(source, node.id)

    def remove_edge(self, edge_id: str) -> None:
        if self.graph.get_edge(edge_id) is None:
            raise KeyError(f"Edge not found: {edge_id}")
        self.graph.edges = [e for e in self.graph.edges if e.id != edge_id]

    def set_edge_type(self, edge_type: str) -> None:
        if edge_type not in EDGE_TYPES:
            raise ValueError(f"Unknown edge type: {edge_type}")
        self.edge_type = edge_type
        for edge in self.graph.edges:
            edge.extra["data"] = {**(edge.extra.get("data") or {}), "pathType": edge_type}

    def toggle_edge_type(self) -> str:
        self.set_edge_type("smoothstep" if self.edge_type == "bezier" else "bezier")
        return self.edge_type
