"""Graph data structures for the execution engine.

Node payloads are a tagged union: one dataclass per node type, each holding
only the fields that type uses. Attribute names are snake_case; the wire
format (what the editor sends and what workflow files contain) is camelCase,
and keys we do not model are carried in ``extra`` so they survive a round trip.
"""
import copy
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any


class NodeType(str, Enum):
    INPUT = "input"
    PROCESSOR = "processor"
    IMAGE_GEN = "imageGen"
    DISPLAY = "display"


class NodeStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


class EdgeStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    DONE = "done"


ASPECT_RATIOS = ("1:1", "9:16", "16:9", "3:4", "4:3", "3:2", "2:3", "5:4", "4:5", "21:9")
DEFAULT_ASPECT_RATIO = "1:1"


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


@dataclass
class NodeData:
    """Fields shared by every node payload."""
    label: str = ""
    status: NodeStatus = NodeStatus.IDLE
    error_message: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def field_names(cls) -> dict[str, str]:
        """Map wire (camelCase) keys to attribute names."""
        return {_camel(f.name): f.name for f in fields(cls) if f.name != "extra"}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NodeData":
        names = cls.field_names()
        known: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in data.items():
            if key in names:
                known[names[key]] = value
            else:
                extra[key] = copy.deepcopy(value)
        if "status" in known:
            known["status"] = NodeStatus(known["status"] or NodeStatus.IDLE)
        return cls(extra=extra, **known)

    def to_dict(self) -> dict[str, Any]:
        out = copy.deepcopy(self.extra)
        for key, name in self.field_names().items():
            value = getattr(self, name)
            if value is None:
                continue
            out[key] = value.value if isinstance(value, Enum) else value
        return out


@dataclass
class InputData(NodeData):
    input_type: str = "text"
    value: str = ""
    text_value: str | None = None
    url_value: str | None = None
    file_content: str | None = None
    file_name: str | None = None


@dataclass
class ProcessorData(NodeData):
    system_instruction: str = ""
    input_data: str | None = None
    output_data: str | None = None


@dataclass
class ImageGenData(NodeData):
    prompt: str = ""
    aspect_ratio: str = DEFAULT_ASPECT_RATIO
    input_data: str | None = None
    generated_image: str | None = None


@dataclass
class DisplayData(NodeData):
    content: str = ""
    content_type: str = "text"
    input_data: str | None = None


PAYLOAD_TYPES: dict[NodeType, type[NodeData]] = {
    NodeType.INPUT: InputData,
    NodeType.PROCESSOR: ProcessorData,
    NodeType.IMAGE_GEN: ImageGenData,
    NodeType.DISPLAY: DisplayData,
}


def merge_node_data(data: NodeData, changes: dict[str, Any]) -> NodeData:
    """Shallow-merge wire-keyed ``changes`` into a payload, returning a new payload.

    Unknown keys land in ``extra``; fields not named in ``changes`` are kept.
    This is the single merge rule used both by the engine's working graph and
    by every observer that mirrors engine events.
    """
    names = data.field_names()
    updates: dict[str, Any] = {}
    extra = dict(data.extra)
    for key, value in changes.items():
        if key in names:
            if names[key] == "status":
                value = NodeStatus(value)
            updates[names[key]] = value
        else:
            extra[key] = value
    return replace(data, extra=extra, **updates)


@dataclass
class Node:
    id: str
    type: NodeType
    data: NodeData
    position: dict[str, float] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def status(self) -> NodeStatus:
        return self.data.status

    def update(self, changes: dict[str, Any]) -> None:
        self.data = merge_node_data(self.data, changes)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Node":
        node_type = NodeType(raw["type"])
        payload_cls = PAYLOAD_TYPES[node_type]
        extra = {
            k: copy.deepcopy(v) for k, v in raw.items()
            if k not in ("id", "type", "data", "position")
        }
        return cls(
            id=str(raw["id"]),
            type=node_type,
            data=payload_cls.from_dict(raw.get("data") or {}),
            position=dict(raw.get("position") or {}),
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        out = copy.deepcopy(self.extra)
        out.update({
            "id": self.id,
            "type": self.type.value,
            "position": dict(self.position),
            "data": self.data.to_dict(),
        })
        return out


@dataclass
class Edge:
    id: str
    source: str
    target: str
    status: EdgeStatus = EdgeStatus.IDLE
    animated: bool = False
    extra: dict[str, Any] = field(default_factory=dict)  # style, markerEnd, data, ...

    def set_status(self, status: EdgeStatus) -> None:
        self.status = status
        self.animated = status == EdgeStatus.RUNNING

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Edge":
        extra = {
            k: copy.deepcopy(v) for k, v in raw.items()
            if k not in ("id", "source", "target", "status", "animated")
        }
        return cls(
            id=str(raw["id"]),
            source=str(raw["source"]),
            target=str(raw["target"]),
            status=EdgeStatus(raw.get("status") or EdgeStatus.IDLE),
            animated=bool(raw.get("animated", False)),
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        out = copy.deepcopy(self.extra)
        out.update({
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "status": self.status.value,
            "animated": self.animated,
        })
        return out


@dataclass
class Graph:
    """Ordered nodes and edges. Order matters: it drives traversal order."""
    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)

    def get_node(self, node_id: str) -> Node | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_edge(self, edge_id: str) -> Edge | None:
        for edge in self.edges:
            if edge.id == edge_id:
                return edge
        return None

    def get_outgoing_edges(self, node_id: str) -> list[Edge]:
        return [e for e in self.edges if e.source == node_id]

    def nodes_of_type(self, node_type: NodeType) -> list[Node]:
        return [n for n in self.nodes if n.type == node_type]

    def copy(self) -> "Graph":
        return copy.deepcopy(self)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Graph":
        return cls(
            nodes=[Node.from_dict(n) for n in raw.get("nodes", [])],
            edges=[Edge.from_dict(e) for e in raw.get("edges", [])],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }
