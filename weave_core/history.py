"""
Bounded, linear undo/redo history over full-graph snapshots.

The history is a list of immutable snapshots plus a cursor. Recording after an
undo discards the redone-away branch; there is no branching history. Once more
than `capacity` undo steps would be kept, the oldest snapshot is evicted.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

from .graph import Graph

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    """
    Immutable point-in-time copy of a graph's block list.

    The blocks are stored as canonical JSON text, so nothing can alias or mutate
    the recorded state. Selection and highlight state are not captured.
    """

    payload: str
    label: str = ""
    timestamp: float = field(default_factory=time.time, compare=False)

    @classmethod
    def from_graph(cls, graph: Graph, label: str = "") -> "Snapshot":
        return cls(json.dumps(graph.to_dict(), sort_keys=True, default=str), label)

    def to_graph(self) -> Graph:
        return Graph.from_dict(json.loads(self.payload))


class HistoryManager:
    """
    Linear undo/redo stack of snapshots.

    Attributes:
        capacity: Maximum number of undo steps retained
    """

    def __init__(self, capacity: int = 50):
        if capacity < 1:
            raise ValueError(f"History capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self._snapshots: List[Snapshot] = []
        self._position = -1

    def __len__(self) -> int:
        return len(self._snapshots)

    @property
    def position(self) -> int:
        return self._position

    @property
    def current(self) -> Optional[Snapshot]:
        if self._position < 0:
            return None
        return self._snapshots[self._position]

    @property
    def can_undo(self) -> bool:
        return self._position > 0

    @property
    def can_redo(self) -> bool:
        return self._position < len(self._snapshots) - 1

    @property
    def undo_depth(self) -> int:
        return max(self._position, 0)

    @property
    def redo_depth(self) -> int:
        return len(self._snapshots) - 1 - self._position

    def record(self, snapshot: Snapshot) -> None:
        """
        Push a snapshot taken after a mutation.

        Truncates any redo branch beyond the cursor, appends, advances the cursor
        and evicts the oldest snapshot when the capacity is exceeded.
        """
        if self.can_redo:
            dropped = len(self._snapshots) - 1 - self._position
            del self._snapshots[self._position + 1:]
            logger.debug("Discarded %d redo snapshot(s)", dropped)

        self._snapshots.append(snapshot)

        # The current state plus `capacity` states to undo into
        if len(self._snapshots) > self.capacity + 1:
            self._snapshots.pop(0)

        self._position = len(self._snapshots) - 1

    def undo(self) -> Optional[Snapshot]:
        """Move the cursor back one step. Returns the snapshot to restore, or None."""
        if not self.can_undo:
            return None
        self._position -= 1
        return self._snapshots[self._position]

    def redo(self) -> Optional[Snapshot]:
        """Move the cursor forward one step. Returns the snapshot to restore, or None."""
        if not self.can_redo:
            return None
        self._position += 1
        return self._snapshots[self._position]

    def reset(self, baseline: Optional[Snapshot] = None) -> None:
        """Drop all history, optionally starting over from a baseline snapshot."""
        self._snapshots.clear()
        self._position = -1
        if baseline is not None:
            self.record(baseline)
