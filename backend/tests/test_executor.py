"""Tests for the execution engine: traversal order, status, propagation, history."""
import asyncio

import pytest

from conftest import ScriptedProvider, build_graph
from textypoflow.engine.executor import EngineBusyError, RunState, WorkflowEngine
from textypoflow.engine.graph import EdgeStatus, NodeStatus, NodeType
from textypoflow.engine.workspace import Workspace, new_edge
from textypoflow.nodes.registry import NodeRegistry


def _running_count(events, node_id):
    return sum(
        1 for e in events
        if e["type"] == "node_update" and e["node_id"] == node_id
        and e["changes"].get("status") == "running"
    )


def _node(snapshot, node_id):
    return next(n for n in snapshot.nodes if n.id == node_id)


def _edge(snapshot, edge_id):
    return next(e for e in snapshot.edges if e.id == edge_id)


class TestPropagation:
    @pytest.mark.asyncio
    async def test_chain(self, provider, chain_graph):
        engine = WorkflowEngine(provider)
        snapshot = await engine.run(chain_graph)

        assert _node(snapshot, "in").status == NodeStatus.SUCCESS
        proc = _node(snapshot, "proc")
        assert proc.status == NodeStatus.SUCCESS
        assert proc.data.input_data == "hello"
        assert proc.data.output_data == "upper(hello)"
        out = _node(snapshot, "out")
        assert out.status == NodeStatus.SUCCESS
        assert out.data.content == "upper(hello)"
        assert provider.calls == [("text", "hello", "upper")]

    @pytest.mark.asyncio
    async def test_unreached_nodes_stay_idle(self, provider):
        graph = build_graph(
            [
                ("in", NodeType.INPUT, {"value": "v"}),
                ("out", NodeType.DISPLAY, {}),
                ("lonely", NodeType.PROCESSOR, {"systemInstruction": "x"}),
            ],
            [("in", "out")],
        )
        snapshot = await WorkflowEngine(provider).run(graph)
        assert _node(snapshot, "lonely").status == NodeStatus.IDLE
        assert _node(snapshot, "out").status == NodeStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_sources_processed_in_node_order(self, provider):
        graph = build_graph(
            [
                ("in2", NodeType.INPUT, {"value": "second"}),
                ("in1", NodeType.INPUT, {"value": "first"}),
                ("p", NodeType.PROCESSOR, {"systemInstruction": "P"}),
            ],
            [("in1", "p"), ("in2", "p")],
        )
        await WorkflowEngine(provider).run(graph)
        assert [c[1] for c in provider.calls] == ["second", "first"]

    @pytest.mark.asyncio
    async def test_fan_out_follows_edge_order_depth_first(self, provider):
        graph = build_graph(
            [
                ("in", NodeType.INPUT, {"value": "v"}),
                ("a", NodeType.PROCESSOR, {"systemInstruction": "A"}),
                ("a2", NodeType.PROCESSOR, {"systemInstruction": "A2"}),
                ("b", NodeType.PROCESSOR, {"systemInstruction": "B"}),
            ],
            [("in", "a"), ("in", "b"), ("a", "a2")],
        )
        await WorkflowEngine(provider).run(graph)
        # A's whole subtree finishes before B starts
        assert [c[2] for c in provider.calls] == ["A", "A2", "B"]

    @pytest.mark.asyncio
    async def test_diamond_runs_shared_node_once_per_path(self, provider, diamond_graph):
        events = []
        engine = WorkflowEngine(provider, progress_callback=events.append)
        snapshot = await engine.run(diamond_graph)

        assert _running_count(events, "c") == 2
        # Last arrival wins: the B path completes after the A path
        assert _node(snapshot, "c").data.content == "B(x)"

    @pytest.mark.asyncio
    async def test_display_forwards_its_content(self, provider):
        graph = build_graph(
            [
                ("in", NodeType.INPUT, {"value": "v"}),
                ("d1", NodeType.DISPLAY, {}),
                ("d2", NodeType.DISPLAY, {}),
            ],
            [("in", "d1"), ("d1", "d2")],
        )
        snapshot = await WorkflowEngine(provider).run(graph)
        assert _node(snapshot, "d2").data.content == "v"

    @pytest.mark.asyncio
    async def test_input_reached_as_target_does_not_forward(self, provider):
        graph = build_graph(
            [
                ("in1", NodeType.INPUT, {"value": "one"}),
                ("in2", NodeType.INPUT, {"value": "two"}),
                ("p", NodeType.PROCESSOR, {"systemInstruction": "P"}),
            ],
            [("in1", "in2"), ("in2", "p")],
        )
        events = []
        snapshot = await WorkflowEngine(provider, progress_callback=events.append).run(graph)
        assert _node(snapshot, "in2").status == NodeStatus.SUCCESS
        # p only runs once, as in2's own downstream
        assert _running_count(events, "p") == 1
        assert provider.calls == [("text", "two", "P")]

    @pytest.mark.asyncio
    async def test_edge_to_missing_node_is_skipped(self, provider):
        graph = build_graph([("in", NodeType.INPUT, {"value": "v"})], [])
        graph.edges.append(new_edge("in", "ghost"))
        snapshot = await WorkflowEngine(provider).run(graph)
        assert snapshot is not None
        assert _edge(snapshot, "e-in-ghost").status == EdgeStatus.DONE


class TestImageGen:
    @pytest.mark.asyncio
    async def test_prompt_and_description(self, provider):
        graph = build_graph(
            [
                ("in", NodeType.INPUT, {"value": "ctx"}),
                ("img", NodeType.IMAGE_GEN, {"prompt": "cat", "aspectRatio": "16:9"}),
                ("out", NodeType.DISPLAY, {}),
            ],
            [("in", "img"), ("img", "out")],
        )
        snapshot = await WorkflowEngine(provider).run(graph)

        kind, prompt, ratio = provider.calls[0]
        assert kind == "image"
        assert "cat" in prompt and "ctx" in prompt
        assert ratio == "16:9"

        img = _node(snapshot, "img")
        assert img.status == NodeStatus.SUCCESS
        assert img.data.generated_image == provider.image
        content = _node(snapshot, "out").data.content
        assert "16:9" in content and "cat" in content
        assert provider.image not in content

    @pytest.mark.asyncio
    async def test_empty_input_leaves_prompt_alone(self, provider):
        graph = build_graph(
            [
                ("in", NodeType.INPUT, {"value": ""}),
                ("img", NodeType.IMAGE_GEN, {"prompt": "cat", "aspectRatio": ""}),
            ],
            [("in", "img")],
        )
        await WorkflowEngine(provider).run(graph)
        assert provider.calls == [("image", "cat", "1:1")]


class TestFailures:
    @pytest.mark.asyncio
    async def test_failed_node_stops_its_branch_only(self):
        provider = ScriptedProvider(fail_on={"bad"})
        graph = build_graph(
            [
                ("in", NodeType.INPUT, {"value": "v"}),
                ("p", NodeType.PROCESSOR, {"systemInstruction": "bad"}),
                ("pd", NodeType.DISPLAY, {}),
                ("q", NodeType.PROCESSOR, {"systemInstruction": "good"}),
                ("qd", NodeType.DISPLAY, {}),
            ],
            [("in", "p"), ("in", "q"), ("p", "pd"), ("q", "qd")],
        )
        events = []
        snapshot = await WorkflowEngine(provider, progress_callback=events.append).run(graph)

        p = _node(snapshot, "p")
        assert p.status == NodeStatus.ERROR
        assert p.data.error_message == "generation failed for bad"
        # The edge out of the failed node never starts
        assert not [
            e for e in events
            if e["type"] == "edge_update" and e["edge_id"] == "e-p-pd" and e["status"] in ("running", "done")
        ]
        assert _edge(snapshot, "e-p-pd").status == EdgeStatus.IDLE
        assert _node(snapshot, "pd").status == NodeStatus.IDLE
        assert _node(snapshot, "qd").data.content == "good(v)"
        assert _node(snapshot, "qd").status == NodeStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_every_node_failing_still_records_history(self):
        provider = ScriptedProvider(fail_on={"P"})
        graph = build_graph(
            [("in", NodeType.INPUT, {"value": "v"}), ("p", NodeType.PROCESSOR, {"systemInstruction": "P"})],
            [("in", "p")],
        )
        engine = WorkflowEngine(provider)
        snapshot = await engine.run(graph)
        assert snapshot is not None
        assert len(engine.history) == 1

    @pytest.mark.asyncio
    async def test_error_message_cleared_on_next_run(self):
        provider = ScriptedProvider(fail_on={"P"})
        graph = build_graph(
            [("in", NodeType.INPUT, {"value": "v"}), ("p", NodeType.PROCESSOR, {"systemInstruction": "P"})],
            [("in", "p")],
        )
        engine = WorkflowEngine(provider)
        first = await engine.run(graph)
        graph.nodes = [_node(first, "in"), _node(first, "p")]
        provider.fail_on.clear()
        second = await engine.run(graph)
        assert _node(second, "p").status == NodeStatus.SUCCESS
        assert _node(second, "p").data.error_message is None

    @pytest.mark.asyncio
    async def test_driver_failure_records_nothing(self, provider, chain_graph, monkeypatch):
        def broken(node_type):
            raise RuntimeError("handler table corrupted")

        monkeypatch.setattr(NodeRegistry, "create", broken)
        events = []
        engine = WorkflowEngine(provider, progress_callback=events.append)
        result = await engine.run(chain_graph)

        assert result is None
        assert len(engine.history) == 0
        assert engine.state == RunState.IDLE
        assert events[-1]["type"] == "run_error"
        assert "handler table corrupted" in events[-1]["error"]

    @pytest.mark.asyncio
    async def test_cycle_hits_depth_guard(self, provider):
        graph = build_graph(
            [
                ("in", NodeType.INPUT, {"value": "v"}),
                ("a", NodeType.DISPLAY, {}),
                ("b", NodeType.DISPLAY, {}),
            ],
            [("in", "a"), ("a", "b"), ("b", "a")],
        )
        engine = WorkflowEngine(provider, max_depth=5)
        snapshot = await engine.run(graph)

        assert snapshot is not None
        errors = [n for n in snapshot.nodes if n.status == NodeStatus.ERROR]
        assert len(errors) == 1
        assert "Maximum traversal depth" in errors[0].data.error_message


class TestRunLifecycle:
    @pytest.mark.asyncio
    async def test_second_run_rejected_while_running(self, chain_graph):
        gate = asyncio.Event()
        engine = WorkflowEngine(ScriptedProvider(gate=gate))
        task = asyncio.create_task(engine.run(chain_graph))
        while not engine.is_running:
            await asyncio.sleep(0)

        with pytest.raises(EngineBusyError):
            await engine.run(chain_graph)

        gate.set()
        await engine.wait_idle()
        assert (await task) is not None
        assert engine.state == RunState.IDLE
        assert len(engine.history) == 1

    @pytest.mark.asyncio
    async def test_start_claims_engine_before_scheduling(self, provider, chain_graph):
        engine = WorkflowEngine(provider)
        job = engine.start(chain_graph, run_id="first")
        assert engine.is_running
        assert engine.current_run_id == "first"
        with pytest.raises(EngineBusyError):
            engine.start(chain_graph)

        assert (await job) is not None
        assert engine.state == RunState.IDLE
        assert len(engine.history) == 1

    @pytest.mark.asyncio
    async def test_run_does_not_see_edits_made_mid_run(self, chain_graph):
        gate = asyncio.Event()
        engine = WorkflowEngine(ScriptedProvider(gate=gate))
        task = asyncio.create_task(engine.run(chain_graph))
        while not engine.is_running:
            await asyncio.sleep(0)

        chain_graph.edges.clear()
        chain_graph.get_node("proc").update({"systemInstruction": "changed"})
        gate.set()
        snapshot = await task

        assert len(snapshot.edges) == 2
        assert _node(snapshot, "out").data.content == "upper(hello)"

    @pytest.mark.asyncio
    async def test_input_graph_is_not_mutated(self, provider, chain_graph):
        before = chain_graph.to_dict()
        await WorkflowEngine(provider).run(chain_graph)
        assert chain_graph.to_dict() == before

    @pytest.mark.asyncio
    async def test_repeated_runs_have_same_structure(self, provider, diamond_graph):
        engine = WorkflowEngine(provider)
        first = await engine.run(diamond_graph)
        second = await engine.run(diamond_graph)

        def structure(s):
            return (
                [(n.id, n.type) for n in s.nodes],
                [(e.id, e.source, e.target) for e in s.edges],
            )

        assert structure(first) == structure(second)
        assert first.id != second.id
        assert [s.id for s in engine.history.list()] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_events_replay_onto_workspace(self, provider, diamond_graph):
        workspace = Workspace(diamond_graph.copy())
        engine = WorkflowEngine(provider, progress_callback=workspace.apply_event)
        snapshot = await engine.run(diamond_graph)

        for node in snapshot.nodes:
            live = workspace.graph.get_node(node.id)
            assert live.status == node.status
            assert live.data.extra == node.data.extra
            if node.type == NodeType.PROCESSOR:
                assert live.data.output_data == node.data.output_data
        assert workspace.graph.get_node("c").data.content == "B(x)"
        assert all(e.status == EdgeStatus.DONE for e in workspace.graph.edges)

    @pytest.mark.asyncio
    async def test_event_sequence(self, provider, chain_graph):
        events = []
        await WorkflowEngine(provider, progress_callback=events.append).run(chain_graph)

        assert events[0]["type"] == "run_start"
        assert events[-1]["type"] == "run_complete"
        seqs = [e["seq"] for e in events]
        assert seqs == sorted(seqs)
        assert len({e["run_id"] for e in events}) == 1
        edge_states = [e["status"] for e in events if e["type"] == "edge_update" and e["edge_id"] == "e-proc-out"]
        assert edge_states == ["idle", "running", "done"]
