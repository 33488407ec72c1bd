"""Tests for graph validation: cycles, dangling edges, unconnected sources."""
from conftest import build_graph
from textypoflow.engine.graph import Graph, NodeType
from textypoflow.engine.validator import validate_graph
from textypoflow.engine.workspace import new_edge, new_node


class TestCycleDetection:
    def test_no_cycle(self, chain_graph):
        errors = validate_graph(chain_graph)
        assert not any("cycle" in e.lower() for e in errors)

    def test_self_loop(self):
        graph = build_graph(
            [("in", NodeType.INPUT, {}), ("a", NodeType.DISPLAY, {})],
            [("in", "a"), ("a", "a")],
        )
        errors = validate_graph(graph)
        assert any("cycle" in e.lower() for e in errors)

    def test_two_node_cycle(self):
        graph = build_graph(
            [
                ("in", NodeType.INPUT, {}),
                ("a", NodeType.PROCESSOR, {}),
                ("b", NodeType.PROCESSOR, {}),
            ],
            [("in", "a"), ("a", "b"), ("b", "a")],
        )
        errors = validate_graph(graph)
        assert any("cycle" in e.lower() for e in errors)

    def test_no_cycle_in_diamond(self, diamond_graph):
        errors = validate_graph(diamond_graph)
        assert not any("cycle" in e.lower() for e in errors)


class TestEdges:
    def test_edge_to_missing_node(self):
        graph = build_graph([("in", NodeType.INPUT, {})], [])
        graph.edges.append(new_edge("in", "ghost"))
        errors = validate_graph(graph)
        assert "Edge e-in-ghost references missing node" in errors

    def test_duplicate_node_ids(self):
        graph = Graph(nodes=[new_node(NodeType.INPUT, "x"), new_node(NodeType.DISPLAY, "x")])
        errors = validate_graph(graph)
        assert "Duplicate node id: x" in errors


class TestSources:
    def test_no_input_node(self):
        graph = build_graph([("d", NodeType.DISPLAY, {})], [])
        errors = validate_graph(graph)
        assert any("no input node" in e for e in errors)

    def test_unconnected_input(self):
        graph = build_graph(
            [("in", NodeType.INPUT, {}), ("lonely", NodeType.INPUT, {}), ("d", NodeType.DISPLAY, {})],
            [("in", "d")],
        )
        errors = validate_graph(graph)
        assert errors == ["Input node 'lonely' is not connected"]

    def test_valid_graph(self, chain_graph):
        assert validate_graph(chain_graph) == []
