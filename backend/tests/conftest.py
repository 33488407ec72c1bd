"""Shared test fixtures for TextypoFlow backend tests."""
import asyncio
import sys
from pathlib import Path

import pytest

# Ensure the textypoflow package is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from textypoflow.engine.graph import Graph, NodeType
from textypoflow.engine.workspace import new_edge, new_node
from textypoflow.providers.base import GenerationProvider, ProviderError


@pytest.fixture(scope="session", autouse=True)
def register_nodes():
    """Discover and register all node types once per test session."""
    from textypoflow.nodes.registry import NodeRegistry
    NodeRegistry.discover("textypoflow.nodes")


class ScriptedProvider(GenerationProvider):
    """Deterministic provider: text = "<instruction>(<prompt>)".

    Instructions listed in ``fail_on`` raise ProviderError. When ``gate`` is
    set, every call waits for it, which lets a test hold a run mid-flight.
    """

    def __init__(self, fail_on=(), fail_images=False, image="aW1hZ2U=", gate: asyncio.Event | None = None):
        self.fail_on = set(fail_on)
        self.fail_images = fail_images
        self.image = image
        self.gate = gate
        self.calls: list[tuple[str, str, str]] = []

    async def generate_text(self, prompt: str, system_instruction: str) -> str:
        self.calls.append(("text", prompt, system_instruction))
        if self.gate is not None:
            await self.gate.wait()
        if system_instruction in self.fail_on:
            raise ProviderError(f"generation failed for {system_instruction}")
        return f"{system_instruction}({prompt})"

    async def generate_image(self, prompt: str, aspect_ratio: str) -> str:
        self.calls.append(("image", prompt, aspect_ratio))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_images:
            raise ProviderError("No image data returned from the model.")
        return self.image


@pytest.fixture
def provider():
    return ScriptedProvider()


def build_graph(nodes, edges) -> Graph:
    """nodes: [(id, type, data)], edges: [(source, target)] in traversal order."""
    return Graph(
        nodes=[new_node(node_type, node_id, data=data) for node_id, node_type, data in nodes],
        edges=[new_edge(source, target) for source, target in edges],
    )


@pytest.fixture
def chain_graph():
    """Input("hello") -> Processor("upper") -> Display."""
    return build_graph(
        [
            ("in", NodeType.INPUT, {"value": "hello"}),
            ("proc", NodeType.PROCESSOR, {"systemInstruction": "upper"}),
            ("out", NodeType.DISPLAY, {}),
        ],
        [("in", "proc"), ("proc", "out")],
    )


@pytest.fixture
def diamond_graph():
    """Input -> A, Input -> B, A -> C, B -> C (C is a Display)."""
    return build_graph(
        [
            ("in", NodeType.INPUT, {"value": "x"}),
            ("a", NodeType.PROCESSOR, {"systemInstruction": "A"}),
            ("b", NodeType.PROCESSOR, {"systemInstruction": "B"}),
            ("c", NodeType.DISPLAY, {}),
        ],
        [("in", "a"), ("in", "b"), ("a", "c"), ("b", "c")],
    )
