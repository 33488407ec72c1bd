"""Input node: the source of a run. Combines text, URL and file content."""
from typing import Any

from ..engine.graph import Node, NodeType
from ..providers.base import GenerationProvider
from .base import BaseNode, DataType, FieldSpec, NodeResult
from .registry import NodeRegistry

PART_SEPARATOR = "\n\n---\n\n"

RAW_FIELDS = ("textValue", "urlValue", "fileContent", "fileName")


def combine_input_value(
    text: str | None = None,
    url: str | None = None,
    file_content: str | None = None,
    file_name: str | None = None,
) -> str:
    """Join the non-empty input parts into the single value sent downstream."""
    parts: list[str] = []
    if text and text.strip():
        parts.append(text.strip())
    if url and url.strip():
        parts.append(f"Context URL: {url.strip()}")
    if file_content:
        parts.append(f"File Content ({file_name or 'uploaded file'}):\n{file_content}")
    return PART_SEPARATOR.join(parts)


def input_changes(current: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    """Expand an edit of an Input node's raw fields into a full change set.

    Recomputes ``value`` and resets the node to idle so downstream nodes know
    the input is fresh. Edits that touch no raw field pass through unchanged.
    """
    if not any(key in updates for key in RAW_FIELDS):
        return dict(updates)
    merged = {**current, **updates}
    return {
        **updates,
        "value": combine_input_value(
            merged.get("textValue"),
            merged.get("urlValue"),
            merged.get("fileContent"),
            merged.get("fileName"),
        ),
        "status": "idle",
    }


@NodeRegistry.register
class InputNode(BaseNode):
    NODE_TYPE = NodeType.INPUT
    DISPLAY_NAME = "Input"
    DESCRIPTION = "Workflow source: text, a context URL and an uploaded file, merged into one value"

    @classmethod
    def FIELDS(cls):
        return {
            "inputType": FieldSpec(dtype=DataType.STRING, default="text"),
            "value": FieldSpec(dtype=DataType.TEXT, default="", editable=False),
            "textValue": FieldSpec(dtype=DataType.TEXT),
            "urlValue": FieldSpec(dtype=DataType.STRING),
            "fileContent": FieldSpec(dtype=DataType.TEXT),
            "fileName": FieldSpec(dtype=DataType.STRING),
        }

    async def execute(self, node: Node, input: str, provider: GenerationProvider) -> NodeResult:
        # Reached through an edge: sources are already resolved, nothing to forward.
        return NodeResult()
