"""
Connection management for block graphs.

The ConnectionManager is the only component that creates or severs edges. It
enforces the compatibility rule (one INPUT, one OUTPUT), rejects self-connections
unless configured otherwise, and reports every successful change through an
optional callback so the owner can invalidate caches and record history.

Absence is data here: every operation returns False for missing blocks or ports
instead of raising.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from .enums import PortDirection
from .graph import Block, Graph, Port, PortRef

logger = logging.getLogger(__name__)


def ports_compatible(a: Port, b: Port) -> bool:
    """Two ports are compatible when exactly one is an INPUT and the other an OUTPUT."""
    return {a.direction, b.direction} == {PortDirection.INPUT, PortDirection.OUTPUT}


class ConnectionManager:
    """
    Builds and tears down edges between ports of a Graph.

    Attributes:
        graph: The graph whose ports are connected
        allow_self_connections: Whether two ports of the same block may be joined
        on_change: Called with an action name after every successful mutation
    """

    def __init__(
        self,
        graph: Graph,
        allow_self_connections: bool = False,
        on_change: Optional[Callable[[str], None]] = None,
    ):
        self.graph = graph
        self.allow_self_connections = allow_self_connections
        self.on_change = on_change

    def _changed(self, action: str) -> None:
        if self.on_change is not None:
            self.on_change(action)

    def can_connect(
        self,
        source_block_id: str,
        source_port_id: str,
        target_block_id: str,
        target_port_id: str,
    ) -> bool:
        """
        Check whether `connect` with the same arguments would succeed.

        Busy ports do not make a pair incompatible, since `connect` replaces
        existing edges.
        """
        source = self.graph.find_port(source_block_id, source_port_id)
        target = self.graph.find_port(target_block_id, target_port_id)
        if source is None or target is None:
            return False
        if source_block_id == target_block_id and not self.allow_self_connections:
            return False
        if source is target:
            return False
        return ports_compatible(source, target)

    def connect(
        self,
        source_block_id: str,
        source_port_id: str,
        target_block_id: str,
        target_port_id: str,
    ) -> bool:
        """
        Connect two ports, replacing any edge either port already has.

        Callers that want "fail if busy" semantics must check
        `port.connected_to is None` themselves beforehand.

        Args:
            source_block_id: ID of the first block
            source_port_id: ID of the port on the first block
            target_block_id: ID of the second block
            target_port_id: ID of the port on the second block

        Returns:
            True if the two ports are connected afterwards, False if nothing changed
        """
        if not self.can_connect(source_block_id, source_port_id, target_block_id, target_port_id):
            logger.debug(
                "Rejected connection %s.%s -> %s.%s",
                source_block_id, source_port_id, target_block_id, target_port_id,
            )
            return False

        source_ref = PortRef(source_block_id, source_port_id)
        target_ref = PortRef(target_block_id, target_port_id)
        source = self.graph.resolve(source_ref)

        # Already joined to each other
        if source.connected_to == target_ref:
            return True

        replaced = [r for r in (self.graph.unlink(source_ref), self.graph.unlink(target_ref)) if r]
        if replaced:
            logger.debug("Replacing existing edges at %s", ", ".join(str(r) for r in replaced))

        self.graph.link(source_ref, target_ref)
        logger.debug("Connected %s -> %s", source_ref, target_ref)
        self._changed("connect")
        return True

    def disconnect(self, block_id: str, port_id: str) -> bool:
        """
        Sever the edge on one port, and its reciprocal.

        Returns:
            True if an edge was removed, False if the port was free or missing
        """
        partner = self.graph.unlink(PortRef(block_id, port_id))
        if partner is None:
            return False
        logger.debug("Disconnected %s.%s from %s", block_id, port_id, partner)
        self._changed("disconnect")
        return True

    def disconnect_pair(
        self, block_id1: str, port_id1: str, block_id2: str, port_id2: str
    ) -> bool:
        """
        Sever a specific named pair of ports.

        Nothing happens unless the two ports are connected to each other, so a
        stale pair from the UI can never break the symmetry of unrelated edges.

        Returns:
            True if the pair was connected and is now severed
        """
        first = self.graph.find_port(block_id1, port_id1)
        if first is None or first.connected_to != PortRef(block_id2, port_id2):
            return False
        self.graph.unlink(PortRef(block_id1, port_id1))
        logger.debug("Disconnected pair %s.%s / %s.%s", block_id1, port_id1, block_id2, port_id2)
        self._changed("disconnect")
        return True

    def disconnect_block(self, block_id: str) -> int:
        """
        Sever every edge on a block's ports.

        Returns:
            Number of edges removed
        """
        block = self.graph.find_block(block_id)
        if block is None:
            return 0
        removed = 0
        for port in block.ports:
            if self.graph.unlink(PortRef(block_id, port.id)) is not None:
                removed += 1
        if removed:
            self._changed("disconnect")
        return removed

    def find_compatible_port(self, source: Port, target_block: Block) -> Optional[Port]:
        """
        Pick the port on `target_block` that `source` should connect to.

        Free compatible ports are preferred over busy ones.
        """
        candidates = [p for p in target_block.ports if p is not source and ports_compatible(source, p)]
        for port in candidates:
            if port.connected_to is None:
                return port
        return candidates[0] if candidates else None
