"""Execution engine: depth-first propagation from Input nodes, one run at a time.

A run works on a private deep copy of the graph it is given. Every mutation
is applied to that copy and then reported as an event dict to the progress
callbacks, which mirror it elsewhere (the live workspace, WebSocket clients).
The only suspension points of a run are the generation provider calls.

Ordering guarantees:
- Input nodes are processed in node-list order.
- Outgoing edges of a node are followed in edge-list order, each subtree
  finishing before the next edge starts.
- A node reached by several paths is processed once per arrival; its final
  state is the last arrival to finish.
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Coroutine

from ..config import settings
from ..nodes.registry import NodeRegistry
from ..observability import bind_context
from ..providers.base import GenerationProvider
from .graph import Edge, EdgeStatus, Graph, Node, NodeStatus, NodeType
from .history import HistorySnapshot, HistoryStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[dict[str, Any]], None]


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class EngineBusyError(RuntimeError):
    def __init__(self):
        super().__init__("A workflow run is already in progress")


@dataclass
class _Run:
    id: str
    graph: Graph


def _jsonable(changes: dict[str, Any]) -> dict[str, Any]:
    return {k: v.value if isinstance(v, Enum) else v for k, v in changes.items()}


class WorkflowEngine:
    """Runs workflow graphs against a generation provider."""

    def __init__(
        self,
        provider: GenerationProvider,
        history: HistoryStore | None = None,
        progress_callback: ProgressCallback | None = None,
        max_depth: int | None = None,
    ):
        self.provider = provider
        self.history = history if history is not None else HistoryStore()
        self.max_depth = max_depth if max_depth is not None else settings.max_depth
        self._callbacks: list[ProgressCallback] = []
        if progress_callback:
            self._callbacks.append(progress_callback)
        self._state = RunState.IDLE
        self._idle = asyncio.Event()
        self._idle.set()
        self._seq = 0
        self.current_run_id: str | None = None

    # -- observers ---------------------------------------------------------

    def subscribe(self, callback: ProgressCallback) -> None:
        self._callbacks.append(callback)

    def _emit(self, run: _Run, event: dict[str, Any]) -> None:
        self._seq += 1
        event = {**event, "run_id": run.id, "seq": self._seq}
        for callback in self._callbacks:
            callback(event)

    # -- run state ---------------------------------------------------------

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == RunState.RUNNING

    async def wait_idle(self) -> None:
        """Wait until no run is in flight."""
        await self._idle.wait()

    # -- driver ------------------------------------------------------------

    def start(self, graph: Graph, run_id: str | None = None) -> Coroutine[Any, Any, HistorySnapshot | None]:
        """Claim the engine for a run of ``graph`` and return the coroutine that performs it.

        The claim and the copy of ``graph`` happen before this returns, so a
        caller may schedule the coroutine later without racing another start.
        The returned coroutine must be awaited or scheduled. Raises
        EngineBusyError if a run is already claimed.
        """
        if self.is_running:
            raise EngineBusyError()
        run = _Run(id=run_id or uuid.uuid4().hex, graph=graph.copy())
        self._state = RunState.RUNNING
        self._idle.clear()
        self.current_run_id = run.id
        return self._drive(run)

    async def run(self, graph: Graph, run_id: str | None = None) -> HistorySnapshot | None:
        """Run ``graph`` to quiescence and record a history snapshot.

        Node failures are captured as node error status and never raised.
        Returns None, without recording history, only when the traversal
        itself fails. Raises EngineBusyError if a run is already in flight.
        """
        return await self.start(graph, run_id)

    async def _drive(self, run: _Run) -> HistorySnapshot | None:
        with bind_context(run_id=run.id):
            try:
                self._emit(run, {"type": "run_start"})
                logger.info(
                    "Run started: %d nodes, %d edges", len(run.graph.nodes), len(run.graph.edges),
                )
                self._reset(run)

                for node in run.graph.nodes_of_type(NodeType.INPUT):
                    self._update_node(run, node, {"status": NodeStatus.SUCCESS})
                    await self._propagate(run, node, node.data.value or "", depth=0)

                snapshot = self.history.record(run.graph)
                self._emit(run, {"type": "run_complete", "snapshot_id": snapshot.id})
                logger.info("Run finished, snapshot %s", snapshot.id)
                return snapshot
            except Exception as e:
                logger.exception("Workflow run failed")
                self._emit(run, {"type": "run_error", "error": str(e)})
                return None
            finally:
                self._state = RunState.IDLE
                self.current_run_id = None
                self._idle.set()

    def _reset(self, run: _Run) -> None:
        for node in run.graph.nodes:
            self._update_node(run, node, {"status": NodeStatus.IDLE, "errorMessage": None})
        for edge in run.graph.edges:
            self._set_edge_status(run, edge, EdgeStatus.IDLE)

    async def _propagate(self, run: _Run, node: Node, payload: str, depth: int) -> None:
        for edge in run.graph.get_outgoing_edges(node.id):
            self._set_edge_status(run, edge, EdgeStatus.RUNNING)
            await self._process(run, edge.target, payload, depth + 1)
            self._set_edge_status(run, edge, EdgeStatus.DONE)

    async def _process(self, run: _Run, node_id: str, payload: str, depth: int) -> None:
        node = run.graph.get_node(node_id)
        if node is None:
            # Edge points at a node that no longer exists
            return

        with bind_context(node_id=node.id):
            self._update_node(run, node, {"status": NodeStatus.RUNNING, "inputData": payload})
            if depth > self.max_depth:
                message = f"Maximum traversal depth ({self.max_depth}) exceeded; the graph may contain a cycle"
                logger.warning(message)
                self._update_node(run, node, {"status": NodeStatus.ERROR, "errorMessage": message})
                return

            handler = NodeRegistry.create(node.type)
            try:
                result = await handler.execute(node, payload, self.provider)
            except Exception as e:
                logger.warning("Node failed: %s", e)
                self._update_node(
                    run, node, {"status": NodeStatus.ERROR, "errorMessage": str(e) or type(e).__name__},
                )
                return

            self._update_node(run, node, {"status": NodeStatus.SUCCESS, **result.changes})

        if result.output is not None:
            await self._propagate(run, node, result.output, depth)

    # -- mutations ---------------------------------------------------------

    def _update_node(self, run: _Run, node: Node, changes: dict[str, Any]) -> None:
        node.update(changes)
        self._emit(run, {"type": "node_update", "node_id": node.id, "changes": _jsonable(changes)})

    def _set_edge_status(self, run: _Run, edge: Edge, status: EdgeStatus) -> None:
        edge.set_status(status)
        self._emit(run, {
            "type": "edge_update",
            "edge_id": edge.id,
            "status": edge.status.value,
            "animated": edge.animated,
        })
