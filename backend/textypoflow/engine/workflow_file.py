"""Workflow file import/export.

File layout: ``{"nodes": [...], "edges": [...], "edgeType": "bezier",
"version": "1.0", "timestamp": <ms>}``. Import validates everything before
returning, so a rejected file never touches the live graph.
"""
import json
import time
from datetime import date
from typing import Any

from .graph import Graph
from .workspace import DEFAULT_EDGE_TYPE, EDGE_TYPES

FORMAT_VERSION = "1.0"


class WorkflowFormatError(ValueError):
    """The document is not a usable workflow file."""


def export_workflow(graph: Graph, edge_type: str = DEFAULT_EDGE_TYPE) -> dict[str, Any]:
    return {
        **graph.to_dict(),
        "edgeType": edge_type,
        "version": FORMAT_VERSION,
        "timestamp": int(time.time() * 1000),
    }


def export_filename(today: date | None = None) -> str:
    return f"textypoflow-workflow-{(today or date.today()).isoformat()}.json"


def import_workflow(document: str | bytes | dict[str, Any]) -> tuple[Graph, str]:
    """Parse a workflow document into (graph, edge_type).

    Raises WorkflowFormatError if the document is not JSON, lacks ``nodes``
    or ``edges``, or holds nodes/edges that cannot be read.
    """
    if isinstance(document, (str, bytes)):
        try:
            document = json.loads(document)
        except ValueError as e:
            raise WorkflowFormatError(f"Workflow file is not valid JSON: {e}") from e
    if not isinstance(document, dict):
        raise WorkflowFormatError("Workflow file must be a JSON object")
    for key in ("nodes", "edges"):
        if key not in document:
            raise WorkflowFormatError(f"Invalid workflow file: missing '{key}'")
        if not isinstance(document[key], list):
            raise WorkflowFormatError(f"Invalid workflow file: '{key}' must be an array")

    edge_type = document.get("edgeType") or DEFAULT_EDGE_TYPE
    if edge_type not in EDGE_TYPES:
        edge_type = DEFAULT_EDGE_TYPE

    try:
        graph = Graph.from_dict(document)
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise WorkflowFormatError(f"Invalid workflow file: {e}") from e

    ids = [n.id for n in graph.nodes]
    if len(ids) != len(set(ids)):
        raise WorkflowFormatError("Invalid workflow file: duplicate node ids")

    for edge in graph.edges:
        edge.extra["data"] = {**(edge.extra.get("data") or {}), "pathType": edge_type}
    return graph, edge_type
