"""
Block workspace: the public face of the engine.

A Workspace owns one Graph together with its ConnectionManager, ValidationCache
and HistoryManager. Every mutating operation updates the graph, clears the
validation cache and records a snapshot, in that order. Validity queries go
through the cache.

The workspace is single-threaded and synchronous; callers must serialize access
if several UI surfaces can mutate the same instance.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from functools import partial
from typing import Any, Dict, List, Optional

from .analysis import (
    ValidationResult,
    connection_graph,
    evaluate_requirements,
    graph_statistics,
)
from .cache import ValidationCache
from .config import WorkspaceConfig
from .connections import ConnectionManager
from .enums import BlockCategory
from .graph import Block, Graph, Port, PortRef, Position, Size, default_ports_for
from .history import HistoryManager, Snapshot

logger = logging.getLogger(__name__)


class Workspace:
    """
    A block program under construction.

    Attributes:
        graph: The block graph being edited
        config: Behavioral policies for this workspace
        connections: Connection manager bound to `graph`
        cache: Validation cache owned by this workspace
        history: Undo/redo history of graph snapshots
        workspace_id: Identifier used by persistence collaborators
    """

    def __init__(
        self,
        graph: Optional[Graph] = None,
        config: Optional[WorkspaceConfig] = None,
        workspace_id: str = "default_workspace",
    ):
        """
        Initialize a workspace and record its starting state as the history baseline.

        Args:
            graph: Initial graph (an empty graph when omitted)
            config: Workspace configuration (defaults when omitted)
            workspace_id: Identifier of this workspace
        """
        self.config = config or WorkspaceConfig()
        self.workspace_id = workspace_id
        self.graph = graph if graph is not None else Graph()
        self.connections = ConnectionManager(
            self.graph,
            allow_self_connections=self.config.allow_self_connections,
            on_change=self._commit,
        )
        self.cache = ValidationCache(
            requirement_evaluator=partial(
                evaluate_requirements,
                count_loop_blocks=self.config.count_loop_blocks_as_loop,
                min_sequence_length=self.config.min_sequence_length,
            )
        )
        self.history = HistoryManager(self.config.history_capacity)
        self.history.reset(Snapshot.from_graph(self.graph, "initial"))

        self._selected_block_id: Optional[str] = None
        self._highlighted_connection: Optional[PortRef] = None
        self._dirty = False

    # ----- bookkeeping -----
    def _commit(self, action: str, invalidate: bool = True) -> None:
        """Finish a mutation: clear the cache, check invariants, record history."""
        if invalidate:
            self.cache.invalidate_all()
        if self.config.check_invariants:
            self.graph.assert_invariants()
        self.history.record(Snapshot.from_graph(self.graph, action))
        self._dirty = True
        logger.debug("%s (history %d/%d)", action, self.history.position, len(self.history) - 1)

    def _restore(self, snapshot: Snapshot) -> None:
        self.graph.replace_with(snapshot.to_graph())
        if self.config.invalidate_cache_on_restore:
            self.cache.invalidate_all()
        if self._selected_block_id is not None and self._selected_block_id not in self.graph:
            self._selected_block_id = None
        if self._highlighted_connection is not None and self.graph.resolve(self._highlighted_connection) is None:
            self._highlighted_connection = None
        self._dirty = True

    def _replace_graph(self, incoming: Graph) -> None:
        # Check before swapping so a rejected graph never reaches the live one
        incoming.assert_invariants()
        self.graph.replace_with(incoming)

    @property
    def blocks(self) -> List[Block]:
        return self.graph.blocks

    @property
    def is_dirty(self) -> bool:
        """True if the workspace changed since it was created or last saved."""
        return self._dirty

    def mark_saved(self) -> None:
        self._dirty = False

    # ----- graph model -----
    def add_block(self, block: Block) -> Block:
        """
        Append a block to the workspace.

        Raises:
            AssertionError: If the block id is already in use
        """
        self.graph.add_block(block)
        self._commit("add_block")
        return block

    def add_block_from_category(
        self,
        category,
        position=None,
        block_id: Optional[str] = None,
        properties: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Create a block with the category's default ports and add it.

        Args:
            category: BlockCategory or its name (unknown names fall back to PATTERN)
            position: Top-left corner; (100, 100) when omitted
            block_id: Explicit id; a fresh unique id when omitted
            properties: Initial property map

        Returns:
            ID of the new block
        """
        cat = BlockCategory.parse(category)
        width, height = self.config.default_block_size
        x, y = position if position is not None else (100.0, 100.0)
        block = Block(
            id=block_id or f"block_{uuid.uuid4().hex[:12]}",
            category=cat,
            position=Position(float(x), float(y)),
            size=Size(width, height),
            properties=dict(properties or {}),
            ports=default_ports_for(cat),
            name=f"{cat.value.capitalize()} Block",
        )
        self.add_block(block)
        return block.id

    def remove_block(self, block_id: str) -> bool:
        """
        Remove a block and every edge touching it.

        Returns:
            True if a block was removed; False (no-op) if it did not exist
        """
        removed = self.graph.remove_block(block_id)
        if removed is None:
            return False
        if self._selected_block_id == block_id:
            self._selected_block_id = None
        if self._highlighted_connection is not None and self._highlighted_connection.block_id == block_id:
            self._highlighted_connection = None
        self._commit("remove_block")
        return True

    def update_block_position(self, block_id: str, position) -> bool:
        """
        Move a block. Position is not part of the canonical signature, so cached
        verdicts survive unless `invalidate_cache_on_position` is enabled.
        """
        if not self.graph.update_block_position(block_id, position):
            return False
        self._commit("move_block", invalidate=self.config.invalidate_cache_on_position)
        return True

    def update_block_properties(self, block_id: str, properties: Dict[str, Any]) -> bool:
        if not self.graph.update_block_properties(block_id, properties):
            return False
        self._commit("update_properties")
        return True

    def duplicate_block(self, block_id: str, offset=(20.0, 20.0)) -> Optional[str]:
        """
        Copy a block under a new id, shifted by `offset`, with all ports free.

        Returns:
            ID of the copy, or None if the source block does not exist
        """
        source = self.graph.find_block(block_id)
        if source is None:
            return None
        copy = Block(
            id=f"block_{uuid.uuid4().hex[:12]}",
            category=source.category,
            position=source.position.shifted(*offset),
            size=source.size,
            properties=dict(source.properties),
            ports=[Port(p.id, p.label, p.direction, p.offset) for p in source.ports],
            name=source.name,
            subtype=source.subtype,
        )
        self.add_block(copy)
        return copy.id

    def clear(self) -> None:
        """Remove every block. No-op on an empty workspace."""
        if not len(self.graph):
            return
        self.graph.clear()
        self._selected_block_id = None
        self._highlighted_connection = None
        self._commit("clear")

    def load_graph(self, graph: Graph) -> None:
        """
        Replace the workspace content with a copy of another graph (e.g. a template).

        Raises:
            AssertionError: If the copy violates the graph invariants; the workspace
                is left unchanged
        """
        self._replace_graph(graph.copy())
        self._selected_block_id = None
        self._highlighted_connection = None
        self._commit("load")

    def find_block(self, block_id: str) -> Optional[Block]:
        return self.graph.find_block(block_id)

    def find_port(self, block_id: str, port_id: str) -> Optional[Port]:
        return self.graph.find_port(block_id, port_id)

    def get_blocks_by_category(self, category) -> List[Block]:
        cat = BlockCategory.lookup(category)
        return self.graph.blocks_by_category(cat) if cat is not None else []

    def is_block_connected(self, block_id: str) -> bool:
        return self.graph.is_block_connected(block_id)

    # ----- connections -----
    def connect(self, source_block_id: str, source_port_id: str, target_block_id: str, target_port_id: str) -> bool:
        return self.connections.connect(source_block_id, source_port_id, target_block_id, target_port_id)

    def disconnect(self, block_id: str, port_id: str) -> bool:
        return self.connections.disconnect(block_id, port_id)

    def disconnect_pair(self, block_id1: str, port_id1: str, block_id2: str, port_id2: str) -> bool:
        return self.connections.disconnect_pair(block_id1, port_id1, block_id2, port_id2)

    def try_connect(self, block_id: str, port_id: str) -> bool:
        """
        Connect a port to the first compatible port of the selected block.

        Returns:
            False if nothing is selected, the selected block is the source block,
            or no compatible port exists
        """
        source = self.graph.find_port(block_id, port_id)
        if source is None or self._selected_block_id in (None, block_id):
            return False
        target_block = self.graph.find_block(self._selected_block_id)
        if target_block is None:
            return False
        target = self.connections.find_compatible_port(source, target_block)
        if target is None:
            return False
        return self.connect(block_id, port_id, target_block.id, target.id)

    def get_all_connections(self) -> List[Dict[str, str]]:
        return [c.to_dict() for c in self.graph.connections()]

    def connection_graph(self) -> Dict[str, List[str]]:
        return connection_graph(self.graph)

    # ----- history -----
    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def undo(self) -> bool:
        snapshot = self.history.undo()
        if snapshot is None:
            return False
        self._restore(snapshot)
        logger.debug("Undo to %s", snapshot.label or "snapshot")
        return True

    def redo(self) -> bool:
        snapshot = self.history.redo()
        if snapshot is None:
            return False
        self._restore(snapshot)
        logger.debug("Redo to %s", snapshot.label or "snapshot")
        return True

    # ----- validation -----
    def validate(self, requirements=None) -> ValidationResult:
        """
        Validate the current graph, using cached verdicts when the graph is unchanged.

        Args:
            requirements: Requirement record; None applies the default pattern rules
        """
        return self.cache.get_or_compute(self.graph, requirements)

    def meets_requirements(self, requirements) -> bool:
        return self.validate(requirements if requirements is not None else {}).satisfied

    def validate_pattern(self) -> bool:
        return self.validate().satisfied

    def statistics(self) -> Dict[str, Any]:
        return graph_statistics(self.graph, self.config.min_sequence_length)

    # ----- selection -----
    @property
    def selected_block_id(self) -> Optional[str]:
        return self._selected_block_id

    def select_block(self, block_id: str) -> bool:
        if block_id not in self.graph:
            return False
        self._selected_block_id = block_id
        return True

    def deselect_block(self) -> None:
        self._selected_block_id = None

    @property
    def highlighted_connection(self) -> Optional[PortRef]:
        return self._highlighted_connection

    def highlight_connection(self, block_id: str, port_id: str) -> bool:
        if self.graph.find_port(block_id, port_id) is None:
            return False
        self._highlighted_connection = PortRef(block_id, port_id)
        return True

    def clear_connection_highlight(self) -> None:
        self._highlighted_connection = None

    # ----- persistence contract -----
    def export_workspace(self) -> Dict[str, Any]:
        """Serializable record of the workspace for a persistence collaborator."""
        data = self.graph.to_dict()
        data["workspaceId"] = self.workspace_id
        data["timestamp"] = datetime.now().isoformat()
        return data

    def import_workspace(self, data: Dict[str, Any]) -> bool:
        """
        Replace the workspace content with an exported record.

        Returns:
            False (no change) if the record has no `blocks` entry

        Raises:
            AssertionError: If the record repeats ids or the loaded graph violates
                the graph invariants; the workspace is left unchanged
        """
        if "blocks" not in data:
            return False
        self._replace_graph(Graph.from_dict(data))
        if data.get("workspaceId"):
            self.workspace_id = str(data["workspaceId"])
        self._selected_block_id = None
        self._highlighted_connection = None
        self._commit("import")
        return True
