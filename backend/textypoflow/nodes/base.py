"""Base node abstraction and payload field definitions."""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..engine.graph import Node, NodeType, PAYLOAD_TYPES
from ..providers.base import GenerationProvider


class DataType(str, Enum):
    STRING = "STRING"
    TEXT = "TEXT"      # multi-line text
    IMAGE = "IMAGE"    # base64 raster
    CHOICE = "CHOICE"


@dataclass
class FieldSpec:
    """One editable payload field, shown in the editor's properties panel."""
    dtype: DataType
    default: Any = None
    choices: list[Any] | None = None
    editable: bool = True  # False = written by the engine only


@dataclass
class NodeDefinition:
    """Serializable node definition sent to the frontend."""
    node_type: str
    display_name: str
    description: str
    fields: dict[str, FieldSpec]
    defaults: dict[str, Any] = field(default_factory=dict)


@dataclass
class NodeResult:
    """Outcome of a successful node execution.

    ``changes`` are wire-keyed payload fields merged into the node together
    with the success status. ``output`` is the payload forwarded along each
    outgoing edge; ``None`` means nothing propagates.
    """
    changes: dict[str, Any] = field(default_factory=dict)
    output: str | None = None


class BaseNode(ABC):
    """Abstract base class for all node handlers."""

    NODE_TYPE: NodeType
    DISPLAY_NAME: str = ""
    DESCRIPTION: str = ""

    @classmethod
    @abstractmethod
    def FIELDS(cls) -> dict[str, FieldSpec]:
        ...

    @abstractmethod
    async def execute(
        self, node: Node, input: str, provider: GenerationProvider,
    ) -> NodeResult:
        """Run the node on ``input``. Raise to mark the node as failed."""
        ...

    @classmethod
    def default_data(cls) -> dict[str, Any]:
        data = {"label": cls.DISPLAY_NAME, "status": "idle"}
        for key, spec in cls.FIELDS().items():
            if spec.default is not None:
                data[key] = spec.default
        return data

    @classmethod
    def get_definition(cls) -> NodeDefinition:
        return NodeDefinition(
            node_type=cls.NODE_TYPE.value,
            display_name=cls.DISPLAY_NAME or cls.__name__,
            description=cls.DESCRIPTION or cls.__doc__ or "",
            fields=cls.FIELDS(),
            defaults=cls.default_data(),
        )

    @classmethod
    def payload_type(cls):
        return PAYLOAD_TYPES[cls.NODE_TYPE]
