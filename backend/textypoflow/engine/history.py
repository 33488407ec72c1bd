"""Run history: immutable snapshots of completed runs, newest first."""
import copy
import time
from dataclasses import dataclass
from typing import Any

from .graph import Edge, Graph, Node


@dataclass(frozen=True)
class HistorySnapshot:
    id: str
    timestamp: int  # ms since epoch
    nodes: tuple[Node, ...]
    edges: tuple[Edge, ...]

    @classmethod
    def capture(cls, graph: Graph, snapshot_id: str, timestamp: int) -> "HistorySnapshot":
        return cls(
            id=snapshot_id,
            timestamp=timestamp,
            nodes=tuple(copy.deepcopy(graph.nodes)),
            edges=tuple(copy.deepcopy(graph.edges)),
        )

    def to_graph(self) -> Graph:
        return Graph(nodes=copy.deepcopy(list(self.nodes)), edges=copy.deepcopy(list(self.edges)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }


class HistoryStore:
    """Append-only store. Readers always get copies, never the stored snapshot."""

    def __init__(self):
        self._snapshots: list[HistorySnapshot] = []
        self._last_id = 0

    def _next_id(self, timestamp: int) -> str:
        # Two runs finishing in the same millisecond still get distinct ids
        self._last_id = max(timestamp, self._last_id + 1)
        return str(self._last_id)

    def record(self, graph: Graph) -> HistorySnapshot:
        """Snapshot ``graph`` as it stands now and prepend it."""
        timestamp = int(time.time() * 1000)
        snapshot = HistorySnapshot.capture(graph, self._next_id(timestamp), timestamp)
        self._snapshots.insert(0, snapshot)
        return copy.deepcopy(snapshot)

    def list(self) -> list[HistorySnapshot]:
        return copy.deepcopy(self._snapshots)

    def get(self, snapshot_id: str) -> HistorySnapshot:
        for snapshot in self._snapshots:
            if snapshot.id == snapshot_id:
                return copy.deepcopy(snapshot)
        raise KeyError(f"History entry not found: {snapshot_id}")

    def restore(self, snapshot: "HistorySnapshot | str") -> Graph:
        """Return an independent copy of a snapshot's graph. Does not start a run."""
        if isinstance(snapshot, str):
            snapshot = self.get(snapshot)
        return snapshot.to_graph()

    def __len__(self) -> int:
        return len(self._snapshots)
