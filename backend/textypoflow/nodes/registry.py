"""Node handler registry, filled by importing the handler modules."""
import importlib
import pkgutil

from ..engine.graph import NodeType
from .base import BaseNode, NodeDefinition


class NodeRegistry:
    """Maps each NodeType to the handler class that executes it."""

    _handlers: dict[NodeType, type[BaseNode]] = {}

    @classmethod
    def register(cls, node_cls: type[BaseNode]) -> type[BaseNode]:
        """Class decorator: make ``node_cls`` the handler for its NODE_TYPE.

            @NodeRegistry.register
            class ProcessorNode(BaseNode):
                NODE_TYPE = NodeType.PROCESSOR
        """
        existing = cls._handlers.get(node_cls.NODE_TYPE)
        if existing is not None and existing is not node_cls:
            raise ValueError(
                f"{node_cls.NODE_TYPE.value} already handled by {existing.__name__}"
            )
        cls._handlers[node_cls.NODE_TYPE] = node_cls
        return node_cls

    @classmethod
    def get(cls, node_type: NodeType | str) -> type[BaseNode]:
        try:
            return cls._handlers[NodeType(node_type)]
        except (KeyError, ValueError):
            raise KeyError(f"Unknown node type: {node_type}") from None

    @classmethod
    def create(cls, node_type: NodeType | str) -> BaseNode:
        return cls.get(node_type)()

    @classmethod
    def all_definitions(cls) -> dict[str, NodeDefinition]:
        # NodeType order, so the palette is stable
        return {
            node_type.value: cls._handlers[node_type].get_definition()
            for node_type in NodeType
            if node_type in cls._handlers
        }

    @classmethod
    def discover(cls, package_name: str) -> None:
        """Import every handler module of ``package_name`` so each registers itself."""
        package = importlib.import_module(package_name)
        for module in pkgutil.iter_modules(package.__path__):
            if module.name.startswith("_") or module.name in ("base", "registry"):
                continue
            importlib.import_module(f"{package_name}.{module.name}")
