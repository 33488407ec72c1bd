"""Graph validation: cycles, dangling edges, unreachable work.

Validation is advisory. A run never checks it; the editor shows the messages
so the user can fix the graph before running.
"""
from collections import deque

from ..nodes.registry import NodeRegistry
from .graph import Graph, NodeType


def validate_graph(graph: Graph) -> list[str]:
    """Validate a graph, returning a list of warning messages (empty = valid)."""
    errors: list[str] = []
    errors.extend(_check_duplicates(graph))
    errors.extend(_check_edges(graph))
    errors.extend(_check_cycles(graph))
    errors.extend(_check_sources(graph))
    return errors


def _check_duplicates(graph: Graph) -> list[str]:
    errors: list[str] = []
    seen: set[str] = set()
    for node in graph.nodes:
        if node.id in seen:
            errors.append(f"Duplicate node id: {node.id}")
        seen.add(node.id)
    return errors


def _check_cycles(graph: Graph) -> list[str]:
    """Detect cycles using Kahn's algorithm."""
    in_degree: dict[str, int] = {n.id: 0 for n in graph.nodes}
    adj: dict[str, list[str]] = {n.id: [] for n in graph.nodes}
    for edge in graph.edges:
        if edge.source in adj and edge.target in in_degree:
            in_degree[edge.target] += 1
            adj[edge.source].append(edge.target)

    queue = deque(nid for nid, deg in in_degree.items() if deg == 0)
    visited = 0
    while queue:
        node_id = queue.popleft()
        visited += 1
        for succ in adj[node_id]:
            in_degree[succ] -= 1
            if in_degree[succ] == 0:
                queue.append(succ)

    if visited != len(in_degree):
        return ["Graph contains a cycle"]
    return []


def _check_edges(graph: Graph) -> list[str]:
    errors: list[str] = []
    node_ids = {n.id for n in graph.nodes}
    for edge in graph.edges:
        if edge.source not in node_ids or edge.target not in node_ids:
            errors.append(f"Edge {edge.id} references missing node")
    for node in graph.nodes:
        try:
            NodeRegistry.get(node.type)
        except KeyError as e:
            errors.append(str(e.args[0]))
    return errors


def _check_sources(graph: Graph) -> list[str]:
    errors: list[str] = []
    inputs = graph.nodes_of_type(NodeType.INPUT)
    if not inputs:
        errors.append("Graph has no input node; a run would do nothing")
    for node in inputs:
        if not graph.get_outgoing_edges(node.id):
            errors.append(f"Input node '{node.id}' is not connected")
    return errors
