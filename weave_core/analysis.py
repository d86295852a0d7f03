"""
Structural analysis of block graphs.

Read-only graph algorithms answering "what shape is this graph":
- Connection-graph export (undirected block adjacency)
- Cycle detection (loop structure)
- Simple-path probing (sequence structure)
- Requirement satisfaction against a challenge's requirement record
- The default pattern validity verdict and summary statistics

None of these functions mutate the graph. Edges are treated as undirected and
several port pairs between the same two blocks collapse into one adjacency entry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .enums import BlockCategory, PortDirection, StructureShape
from .graph import Graph
from .requirements import Requirements

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """
    Verdict of a structural validation.

    Attributes:
        satisfied: True when every evaluated check passed
        checks: Outcome of each evaluated predicate, by name
        issues: Human-readable reasons for failed checks
    """

    satisfied: bool
    checks: Dict[str, bool] = field(default_factory=dict)
    issues: List[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.satisfied

    def to_dict(self) -> Dict[str, Any]:
        return {"satisfied": self.satisfied, "checks": dict(self.checks), "issues": list(self.issues)}


def connection_graph(graph: Graph) -> Dict[str, List[str]]:
    """
    Build the undirected adjacency of the graph over block ids.

    Every block appears as a key, including isolated ones. Neighbors are listed
    once each, in the order they are first reached through a block's ports.

    Returns:
        Mapping of block id to the ids of directly connected blocks
    """
    adjacency: Dict[str, List[str]] = {b.id: [] for b in graph}
    for conn in graph.connections():
        a, b = conn.block_ids
        if b not in adjacency[a]:
            adjacency[a].append(b)
        if a != b and a not in adjacency[b]:
            adjacency[b].append(a)
    return adjacency


def find_cycles(graph: Graph, adjacency: Optional[Dict[str, List[str]]] = None) -> List[List[str]]:
    """
    Detect cycles in the undirected connection graph using DFS.

    A cycle is reported when DFS reaches a block that is still on the recursion
    stack through an edge other than the one it arrived by.

    Args:
        graph: Graph to inspect
        adjacency: Precomputed `connection_graph(graph)`, if available

    Returns:
        List of cycles, each a list of block ids in traversal order
    """
    adj = adjacency if adjacency is not None else connection_graph(graph)
    cycles: List[List[str]] = []
    visited = set()
    rec_stack = set()

    def dfs(node_id: str, parent_id: Optional[str], path: List[str]) -> None:
        visited.add(node_id)
        rec_stack.add(node_id)
        path.append(node_id)

        for neighbor in adj.get(node_id, []):
            if neighbor == parent_id:
                continue
            if neighbor not in visited:
                dfs(neighbor, node_id, path)
            elif neighbor in rec_stack:
                # Found a cycle
                cycle_start = path.index(neighbor)
                cycles.append(path[cycle_start:])

        path.pop()
        rec_stack.remove(node_id)

    for block_id in adj:
        if block_id not in visited:
            dfs(block_id, None, [])

    return cycles


def has_cycle(graph: Graph) -> bool:
    return bool(find_cycles(graph))


def has_loop_structure(graph: Graph, count_loop_blocks: bool = False) -> bool:
    """
    Check for loop structure.

    Args:
        graph: Graph to inspect
        count_loop_blocks: Also accept a block tagged LOOP without a cycle

    Returns:
        True if the connection graph contains a cycle (or, optionally, a loop block)
    """
    if count_loop_blocks and graph.blocks_by_category(BlockCategory.LOOP):
        return True
    return has_cycle(graph)


def has_sequence_structure(graph: Graph, min_length: int = 3) -> bool:
    """
    Check for a simple path through at least `min_length` distinct blocks.

    Runs a backtracking DFS from every block and stops at the first path that is
    long enough.
    """
    adj = connection_graph(graph)
    if min_length <= 1:
        return bool(adj)

    def extend(node_id: str, on_path: set) -> bool:
        if len(on_path) >= min_length:
            return True
        for neighbor in adj[node_id]:
            if neighbor in on_path:
                continue
            on_path.add(neighbor)
            if extend(neighbor, on_path):
                return True
            on_path.remove(neighbor)
        return False

    return any(extend(start, {start}) for start in adj)


def has_conditional_structure(graph: Graph) -> bool:
    """Reserved for branch blocks. No category expresses a branch yet, so always False."""
    return False


def has_structure(
    graph: Graph,
    shape: StructureShape,
    count_loop_blocks: bool = False,
    min_sequence_length: int = 3,
) -> bool:
    if shape is StructureShape.LOOP:
        return has_loop_structure(graph, count_loop_blocks=count_loop_blocks)
    if shape is StructureShape.SEQUENCE:
        return has_sequence_structure(graph, min_length=min_sequence_length)
    return has_conditional_structure(graph)


def connected_components(graph: Graph) -> List[List[str]]:
    """
    Find all connected components of the undirected connection graph.

    Returns:
        List of sorted lists of block ids, one per component
    """
    adj = connection_graph(graph)
    visited = set()
    components = []

    for block_id in adj:
        if block_id in visited:
            continue
        component = []
        stack = [block_id]
        visited.add(block_id)
        while stack:
            node = stack.pop()
            component.append(node)
            for neighbor in adj[node]:
                if neighbor not in visited:
                    visited.add(neighbor)
                    stack.append(neighbor)
        components.append(sorted(component))

    return components


def find_connected_blocks(graph: Graph, start_block_id: str) -> List[str]:
    """
    Collect the ids of all blocks reachable from a starting block, itself included.

    Returns:
        Block ids in breadth-first order; empty if the start block does not exist
    """
    if start_block_id not in graph:
        return []
    adj = connection_graph(graph)
    order = [start_block_id]
    seen = {start_block_id}
    i = 0
    while i < len(order):
        for neighbor in adj[order[i]]:
            if neighbor not in seen:
                seen.add(neighbor)
                order.append(neighbor)
        i += 1
    return order


def contains_block_type(graph: Graph, category_name: str) -> bool:
    """True if a block of the named category exists. Unknown names never match."""
    category = BlockCategory.lookup(category_name)
    if category is None:
        return False
    return bool(graph.blocks_by_category(category))


def contains_connection(graph: Graph, spec: Dict[str, Any]) -> bool:
    """
    Check whether the graph contains an edge matching a required-connection spec.

    Recognized spec forms, checked in this order:
    - sourceType/targetType: an edge between blocks of those categories (either orientation)
    - sourceId/targetId: an edge between those two blocks
    - connectionType: any live edge on a port of that direction
    - patternProperty/patternValue: a connected block whose property has that value

    Returns:
        True if a matching edge exists; False for unmatched or unrecognized specs
    """
    connections = graph.connections()

    if "sourceType" in spec and "targetType" in spec:
        source_type = BlockCategory.lookup(spec["sourceType"])
        target_type = BlockCategory.lookup(spec["targetType"])
        if source_type is None or target_type is None:
            return False
        for conn in connections:
            a = graph.find_block(conn.source.block_id)
            b = graph.find_block(conn.target.block_id)
            if (a.category, b.category) in ((source_type, target_type), (target_type, source_type)):
                return True
        return False

    if "sourceId" in spec and "targetId" in spec:
        wanted = {str(spec["sourceId"]), str(spec["targetId"])}
        for conn in connections:
            if set(conn.block_ids) == wanted:
                return True
        return False

    if "connectionType" in spec:
        direction = PortDirection.parse(spec["connectionType"])
        if direction is None:
            return False
        for block in graph:
            if any(p.direction is direction and p.is_connected for p in block.ports):
                return True
        return False

    if "patternProperty" in spec and "patternValue" in spec:
        prop = spec["patternProperty"]
        value = spec["patternValue"]
        for block in graph:
            if prop in block.properties and block.properties[prop] == value and block.has_connections:
                return True
        return False

    logger.debug("Unrecognized connection requirement %r", spec)
    return False


def evaluate_requirements(
    graph: Graph,
    requirements,
    count_loop_blocks: bool = False,
    min_sequence_length: int = 3,
) -> ValidationResult:
    """
    Evaluate a requirement record against the graph.

    Each present predicate is evaluated independently; the overall verdict is
    their logical AND. A record without recognized keys is satisfied.

    Args:
        graph: Graph to evaluate
        requirements: A Requirements instance or a raw requirement mapping
        count_loop_blocks: Treat LOOP blocks as loop structure
        min_sequence_length: Path length needed for sequence structure

    Returns:
        ValidationResult with one check per evaluated predicate
    """
    req = Requirements.from_dict(requirements)
    checks: Dict[str, bool] = {}
    issues: List[str] = []

    if req.min_connections is not None:
        count = graph.connection_count()
        checks["minConnections"] = count >= req.min_connections
        if not checks["minConnections"]:
            issues.append(f"Needs at least {req.min_connections} connections, found {count}")

    if req.requires_block_type:
        missing = [t for t in req.requires_block_type if not contains_block_type(graph, t)]
        checks["requiresBlockType"] = not missing
        if missing:
            issues.append(f"Missing block types: {missing}")

    if req.requires_connection:
        unmatched = [s for s in req.requires_connection if not contains_connection(graph, s)]
        checks["requiresConnection"] = not unmatched
        if unmatched:
            issues.append(f"Missing required connections: {unmatched}")

    if req.requires_structure is not None:
        ok = has_structure(
            graph,
            req.requires_structure,
            count_loop_blocks=count_loop_blocks,
            min_sequence_length=min_sequence_length,
        )
        checks["requiresStructure"] = ok
        if not ok:
            issues.append(f"Pattern has no {req.requires_structure.value} structure")

    return ValidationResult(satisfied=all(checks.values()), checks=checks, issues=issues)


def is_valid_pattern(graph: Graph) -> ValidationResult:
    """
    Default verdict used when a caller supplies no requirement record.

    A valid pattern has consistent connections, at least two blocks, at least one
    PATTERN block, and no block left without connections.
    """
    checks: Dict[str, bool] = {}
    issues: List[str] = []

    integrity = graph.integrity_issues()
    checks["connections"] = not integrity
    for found in integrity.values():
        issues.extend(found)

    checks["minBlocks"] = len(graph) >= 2
    if not checks["minBlocks"]:
        issues.append("A pattern needs at least two blocks")

    checks["patternBlock"] = bool(graph.blocks_by_category(BlockCategory.PATTERN))
    if not checks["patternBlock"]:
        issues.append("A pattern needs at least one pattern block")

    disconnected = [b.id for b in graph if not b.has_connections]
    checks["allConnected"] = not disconnected
    if disconnected:
        issues.append(f"Disconnected blocks: {disconnected}")

    return ValidationResult(satisfied=all(checks.values()), checks=checks, issues=issues)


def graph_statistics(graph: Graph, min_sequence_length: int = 3) -> Dict[str, Any]:
    """
    Summarize a graph for monitoring and display.

    Returns:
        Dictionary with block/connection counts, components, cycles and shape flags
    """
    adjacency = connection_graph(graph)
    components = connected_components(graph)
    cycles = find_cycles(graph, adjacency)
    by_category = {c.value: len(graph.blocks_by_category(c)) for c in BlockCategory}
    degrees = [len(n) for n in adjacency.values()]

    return {
        "blocks": len(graph),
        "connections": graph.connection_count(),
        "blocks_by_category": {k: v for k, v in by_category.items() if v},
        "connected_components": len(components),
        "isolated_blocks": sum(1 for c in components if len(c) == 1),
        "max_degree": max(degrees) if degrees else 0,
        "cycles": [" -> ".join(c + [c[0]]) for c in cycles],
        "structures": {
            StructureShape.SEQUENCE.value: has_sequence_structure(graph, min_sequence_length),
            StructureShape.LOOP.value: bool(cycles),
            StructureShape.CONDITIONAL.value: has_conditional_structure(graph),
        },
        "valid_pattern": is_valid_pattern(graph).satisfied,
    }
