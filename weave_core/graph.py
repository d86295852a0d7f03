"""
Graph data structures for the block workspace.

This module defines the core data structures used to represent a block program:
- Port: A named, directional connection point on a block
- Block: A node of the program with a category, geometry, properties and ports
- Connection: A derived, symmetric pairing of two ports
- Graph: Ordered container for blocks with invariant-preserving link primitives

Ports refer to each other by (block id, port id) pairs rather than by object
reference, so a graph can be copied, serialized and restored without cycles.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, NamedTuple, Optional

from .enums import BlockCategory, PortDirection

try:
    import networkx as nx

    HAS_NETWORKX = True
except ImportError:
    HAS_NETWORKX = False

logger = logging.getLogger(__name__)


class Position(NamedTuple):
    """A 2D point in workspace coordinates."""

    x: float = 0.0
    y: float = 0.0

    def shifted(self, dx: float, dy: float) -> "Position":
        return Position(self.x + dx, self.y + dy)


class Size(NamedTuple):
    width: float = 100.0
    height: float = 100.0


class PortRef(NamedTuple):
    """Address of a port: the owning block id and the port id within that block."""

    block_id: str
    port_id: str

    def __str__(self) -> str:
        return f"{self.block_id}.{self.port_id}"


@dataclass
class Port:
    """
    A named connection point on a block.

    Attributes:
        id: Identifier, unique within the owning block
        label: Human-readable name shown next to the port
        direction: INPUT or OUTPUT
        offset: Position relative to the owning block's top-left corner
        connected_to: Address of the port at the other end of the edge, or None
    """

    id: str
    """Identifier, unique within the owning block."""

    label: str
    """Human-readable name of the port."""

    direction: PortDirection
    """INPUT or OUTPUT; an edge always joins one of each."""

    offset: Position = Position()
    """Offset from the owning block's position."""

    connected_to: Optional[PortRef] = None
    """Weak back reference to the other end of the edge."""

    @property
    def is_connected(self) -> bool:
        return self.connected_to is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.label,
            "type": self.direction.value,
            "position": {"x": self.offset.x, "y": self.offset.y},
            "connectedToId": self.connected_to.block_id if self.connected_to else None,
            "connectedToPointId": self.connected_to.port_id if self.connected_to else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Port":
        """
        Build a port from its serialized record.

        Raises:
            ValueError: If the record carries an unknown direction
        """
        direction = PortDirection.parse(data.get("type"))
        if direction is None:
            raise ValueError(f"Unknown port direction: {data.get('type')!r}")
        pos = data.get("position") or {}
        connected_block = data.get("connectedToId")
        connected_port = data.get("connectedToPointId")
        ref = None
        if connected_block is not None and connected_port is not None:
            ref = PortRef(str(connected_block), str(connected_port))
        return cls(
            id=str(data.get("id") or uuid.uuid4()),
            label=data.get("name") or direction.value.capitalize(),
            direction=direction,
            offset=Position(float(pos.get("x", 0.0)), float(pos.get("y", 0.0))),
            connected_to=ref,
        )


@dataclass
class Block:
    """
    A node in the block program.

    Attributes:
        id: Unique identifier within the graph
        category: Category tag deciding default ports and requirement matching
        position: Top-left corner in workspace coordinates
        size: Width and height of the block
        properties: Category-specific parameters (e.g. a loop's repeat count)
        ports: Ordered list of ports owned by this block
        name: Display name
        subtype: Free-form refinement of the category
    """

    id: str
    category: BlockCategory
    position: Position = Position()
    size: Size = Size()
    properties: Dict[str, Any] = field(default_factory=dict)
    ports: List[Port] = field(default_factory=list)
    name: str = ""
    subtype: str = ""

    def find_port(self, port_id: str) -> Optional[Port]:
        for port in self.ports:
            if port.id == port_id:
                return port
        return None

    @property
    def has_connections(self) -> bool:
        return any(p.is_connected for p in self.ports)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.category.value,
            "subtype": self.subtype,
            "position": {"x": self.position.x, "y": self.position.y},
            "size": {"width": self.size.width, "height": self.size.height},
            "connections": [p.to_dict() for p in self.ports],
            "properties": dict(self.properties),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Block":
        """Build a block from its serialized record, with lenient defaults for display fields."""
        pos = data.get("position") or {}
        size = data.get("size") or {}
        category = BlockCategory.parse(data.get("type", BlockCategory.PATTERN.value))
        return cls(
            id=str(data.get("id") or uuid.uuid4()),
            category=category,
            position=Position(float(pos.get("x", 0.0)), float(pos.get("y", 0.0))),
            size=Size(float(size.get("width", 100.0)), float(size.get("height", 100.0))),
            properties=dict(data.get("properties") or {}),
            ports=[Port.from_dict(p) for p in data.get("connections") or []],
            name=data.get("name") or f"{category.value.capitalize()} Block",
            subtype=data.get("subtype") or "",
        )


@dataclass(frozen=True)
class Connection:
    """
    A live edge between two ports.

    When the ports have opposite directions the OUTPUT port is reported as `source`.
    """

    source: PortRef
    target: PortRef

    @property
    def block_ids(self) -> tuple:
        return (self.source.block_id, self.target.block_id)

    def to_dict(self) -> Dict[str, str]:
        return {
            "sourceBlockId": self.source.block_id,
            "sourceConnectionId": self.source.port_id,
            "targetBlockId": self.target.block_id,
            "targetConnectionId": self.target.port_id,
        }


def default_ports_for(category: BlockCategory) -> List[Port]:
    """
    Return fresh, unconnected default ports for a block category.

    Inputs sit on the left edge and outputs on the right edge of a 100x100 block.

    Args:
        category: Category of the block being created

    Returns:
        List of new Port objects (never shared between calls)
    """

    def _in() -> Port:
        return Port("in", "Input", PortDirection.INPUT, Position(0.0, 50.0))

    def _out() -> Port:
        return Port("out", "Output", PortDirection.OUTPUT, Position(100.0, 50.0))

    if category is BlockCategory.PATTERN:
        return [_in()]
    if category is BlockCategory.COLOR:
        return [_out()]
    if category is BlockCategory.STRUCTURE:
        return [_in(), _out()]
    if category is BlockCategory.LOOP:
        return [_out()]
    if category is BlockCategory.COLUMN:
        return [_in()]
    raise ValueError(f"No default ports defined for category {category!r}")


class Graph:
    """
    Ordered container for blocks forming a block program.

    The Graph owns block storage and the two lowest-level edge primitives, `link`
    and `unlink`, which are the only code paths that write `Port.connected_to`.
    Both keep references symmetric, and a port's single `connected_to` slot makes
    at most one edge per port structural.

    Attributes:
        blocks: Blocks in insertion (z-)order
    """

    def __init__(self, blocks: Optional[List[Block]] = None):
        """Initialize a graph, optionally with unconnected blocks."""
        self._blocks: List[Block] = []
        self._index: Dict[str, Block] = {}
        for block in blocks or []:
            self.add_block(block)

    # ----- container protocol -----
    @property
    def blocks(self) -> List[Block]:
        return list(self._blocks)

    def __len__(self) -> int:
        return len(self._blocks)

    def __iter__(self) -> Iterator[Block]:
        return iter(list(self._blocks))

    def __contains__(self, block_id: object) -> bool:
        return block_id in self._index

    @property
    def block_ids(self) -> List[str]:
        return [b.id for b in self._blocks]

    # ----- block storage -----
    def add_block(self, block: Block) -> None:
        """
        Append a block to the graph.

        Args:
            block: Block with a fresh id and no live connections

        Raises:
            AssertionError: If the id is already used, port ids repeat within the
                block, or a port already carries a connection
        """
        assert block.id not in self._index, f"Duplicate block id '{block.id}'"
        port_ids = [p.id for p in block.ports]
        assert len(port_ids) == len(set(port_ids)), (
            f"Duplicate port ids on block '{block.id}': {port_ids}"
        )
        assert not block.has_connections, (
            "New blocks must be unconnected; use the connection manager to link them"
        )
        self._insert(block)

    def _insert(self, block: Block) -> None:
        self._blocks.append(block)
        self._index[block.id] = block

    def remove_block(self, block_id: str) -> Optional[Block]:
        """
        Remove a block after severing every edge touching its ports.

        Args:
            block_id: ID of the block to remove

        Returns:
            The removed block, or None if no such block exists
        """
        block = self._index.get(block_id)
        if block is None:
            return None
        for port in block.ports:
            if port.connected_to is not None:
                self.unlink(PortRef(block_id, port.id))
        self._blocks.remove(block)
        del self._index[block_id]
        return block

    def clear(self) -> None:
        self._blocks.clear()
        self._index.clear()

    def replace_with(self, other: "Graph") -> None:
        """Take over the blocks of another graph, keeping this instance's identity."""
        blocks = list(other._blocks)
        self.clear()
        for block in blocks:
            self._insert(block)

    def find_block(self, block_id: str) -> Optional[Block]:
        return self._index.get(block_id)

    def find_port(self, block_id: str, port_id: str) -> Optional[Port]:
        block = self._index.get(block_id)
        if block is None:
            return None
        return block.find_port(port_id)

    def resolve(self, ref: PortRef) -> Optional[Port]:
        return self.find_port(ref.block_id, ref.port_id)

    def update_block_position(self, block_id: str, position) -> bool:
        block = self._index.get(block_id)
        if block is None:
            return False
        block.position = Position(float(position[0]), float(position[1]))
        return True

    def update_block_properties(self, block_id: str, properties: Dict[str, Any]) -> bool:
        """Replace a block's property map. Returns False if the block does not exist."""
        block = self._index.get(block_id)
        if block is None:
            return False
        block.properties = dict(properties)
        return True

    # ----- edge primitives -----
    def link(self, a: PortRef, b: PortRef) -> None:
        """
        Record an edge between two free ports, on both sides.

        Compatibility is the connection manager's concern; this primitive only
        guards the structural invariants.

        Raises:
            AssertionError: If either port is missing or already connected
        """
        port_a = self.resolve(a)
        port_b = self.resolve(b)
        assert port_a is not None and port_b is not None, "Both ports must exist"
        assert port_a.connected_to is None and port_b.connected_to is None, (
            f"Ports {a} and {b} must be free before linking"
        )
        port_a.connected_to = b
        port_b.connected_to = a

    def unlink(self, ref: PortRef) -> Optional[PortRef]:
        """
        Sever the edge on a port and its reciprocal.

        Returns:
            Address of the former partner port, or None if the port was free or missing
        """
        port = self.resolve(ref)
        if port is None or port.connected_to is None:
            return None
        partner_ref = port.connected_to
        partner = self.resolve(partner_ref)
        if partner is not None and partner.connected_to == ref:
            partner.connected_to = None
        port.connected_to = None
        return partner_ref

    # ----- derived edges -----
    def connections(self) -> List[Connection]:
        """
        List every live edge exactly once, in block/port order.

        Returns:
            List of Connection objects with the OUTPUT side as source
        """
        seen = set()
        result: List[Connection] = []
        for block in self._blocks:
            for port in block.ports:
                if port.connected_to is None:
                    continue
                here = PortRef(block.id, port.id)
                key = frozenset((here, port.connected_to))
                if key in seen:
                    continue
                seen.add(key)
                if port.direction is PortDirection.INPUT:
                    result.append(Connection(port.connected_to, here))
                else:
                    result.append(Connection(here, port.connected_to))
        return result

    def connection_count(self) -> int:
        return len(self.connections())

    def blocks_by_category(self, category: BlockCategory) -> List[Block]:
        return [b for b in self._blocks if b.category == category]

    def categories(self) -> List[BlockCategory]:
        """Distinct categories present, in first-seen order."""
        result: List[BlockCategory] = []
        for block in self._blocks:
            if block.category not in result:
                result.append(block.category)
        return result

    def is_block_connected(self, block_id: str) -> bool:
        block = self._index.get(block_id)
        return block is not None and block.has_connections

    def port_position(self, block_id: str, port_id: str) -> Optional[Position]:
        """
        Absolute workspace position of a port (block position + port offset).

        Returns:
            The position, or None if the block or port does not exist
        """
        block = self._index.get(block_id)
        if block is None:
            return None
        port = block.find_port(port_id)
        if port is None:
            return None
        return block.position.shifted(port.offset.x, port.offset.y)

    # ----- invariants -----
    def integrity_issues(self) -> Dict[str, List[str]]:
        """
        Check the structural invariants of the graph.

        Checks for:
        - Duplicate block ids and duplicate port ids within a block
        - References to missing blocks or ports
        - One-way (asymmetric) references
        - Edges joining two ports of the same direction

        Returns:
            Dictionary of issues by category; empty when the graph is consistent
        """
        issues: Dict[str, List[str]] = {
            "duplicate_ids": [],
            "dangling_references": [],
            "asymmetric_references": [],
            "direction_mismatches": [],
        }

        seen_ids = set()
        for block in self._blocks:
            if block.id in seen_ids:
                issues["duplicate_ids"].append(f"Block id '{block.id}' is used more than once")
            seen_ids.add(block.id)
            port_ids = [p.id for p in block.ports]
            if len(port_ids) != len(set(port_ids)):
                issues["duplicate_ids"].append(f"Block '{block.id}' repeats port ids {port_ids}")

        for block in self._blocks:
            for port in block.ports:
                if port.connected_to is None:
                    continue
                here = PortRef(block.id, port.id)
                other = self.resolve(port.connected_to)
                if other is None:
                    issues["dangling_references"].append(
                        f"Port {here} references missing port {port.connected_to}"
                    )
                    continue
                if other.connected_to != here:
                    issues["asymmetric_references"].append(
                        f"Port {here} references {port.connected_to}, which points to {other.connected_to}"
                    )
                if other.direction == port.direction:
                    issues["direction_mismatches"].append(
                        f"Port {here} and {port.connected_to} are both {port.direction.value}"
                    )

        return {k: v for k, v in issues.items() if v}  # Remove empty categories

    def assert_invariants(self) -> None:
        """
        Raises:
            AssertionError: If any structural invariant is violated
        """
        issues = self.integrity_issues()
        assert not issues, f"Graph invariants violated: {issues}"

    def _repair_references(self) -> int:
        """
        Drop references that are dangling, not reciprocated, self-pointing or join
        two ports of the same direction. Returns the number dropped.
        """
        dropped = 0
        for block in self._blocks:
            for port in block.ports:
                if port.connected_to is None:
                    continue
                here = PortRef(block.id, port.id)
                other = self.resolve(port.connected_to)
                if (
                    other is None
                    or other is port
                    or other.connected_to != here
                    or other.direction == port.direction
                ):
                    logger.warning("Dropping invalid reference %s -> %s", here, port.connected_to)
                    port.connected_to = None
                    dropped += 1
        return dropped

    # ----- serialization -----
    def to_dict(self) -> Dict[str, Any]:
        return {"blocks": [b.to_dict() for b in self._blocks]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Graph":
        """
        Rebuild a graph from `to_dict` output.

        One-way, dangling, self-pointing or same-direction references in the record
        are dropped (with a warning) so the returned graph always satisfies the
        structural invariants.

        Raises:
            AssertionError: If block ids repeat, or port ids repeat within a block
            ValueError: If a port has an unknown direction
        """
        g = cls()
        for record in data.get("blocks") or []:
            block = Block.from_dict(record)
            assert block.id not in g._index, f"Duplicate block id '{block.id}'"
            port_ids = [p.id for p in block.ports]
            assert len(port_ids) == len(set(port_ids)), (
                f"Duplicate port ids on block '{block.id}': {port_ids}"
            )
            g._insert(block)
        g._repair_references()
        return g

    def copy(self) -> "Graph":
        return Graph.from_dict(self.to_dict())

    # ----- export -----
    def to_networkx(self) -> "nx.DiGraph":
        """
        Convert the block graph to a NetworkX DiGraph for export/visualization.

        Edges run from the OUTPUT port's block to the INPUT port's block.

        Returns:
            NetworkX DiGraph with one node per block and one edge per connection

        Raises:
            ImportError: If NetworkX is not available
        """
        if not HAS_NETWORKX:
            raise ImportError(
                "NetworkX is required for graph conversion. Install with: pip install networkx"
            )

        G = nx.DiGraph()

        for block in self._blocks:
            node_attrs = {
                "category": block.category.value,
                "name": block.name,
                "x": block.position.x,
                "y": block.position.y,
            }
            # GraphML only stores primitive attribute values
            for k, v in block.properties.items():
                if isinstance(v, (str, int, float, bool)):
                    node_attrs[f"prop_{k}"] = v
            G.add_node(block.id, **node_attrs)

        for conn in self.connections():
            G.add_edge(
                conn.source.block_id,
                conn.target.block_id,
                source_port=conn.source.port_id,
                target_port=conn.target.port_id,
            )

        return G

    def export_graphml(self, filepath: str) -> None:
        """
        Export the block graph to GraphML format.

        Args:
            filepath: Path where to save the GraphML file

        Raises:
            ImportError: If NetworkX is not available
        """
        nx_graph = self.to_networkx()
        nx.write_graphml(nx_graph, filepath)
