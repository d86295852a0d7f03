"""
YAML template compiler for block workspaces.

This module compiles a template description into a `Graph` of blocks joined
through the ConnectionManager, so templates obey the same connection rules as
interactive edits. It also loads requirement records from YAML.

YAML schema (minimal):

blocks:
  - id: pattern1
    category: pattern
    position: [100, 100]          # or {x: 100, y: 100}
    properties: {patternType: dame}
  - id: color1
    category: color
    position: [250, 100]
    ports:                        # optional; defaults to the category's ports
      - {id: out, direction: output}
connections:
  - {source: color1, sourcePort: out, target: pattern1, targetPort: in}

Notes:
- Blocks without an id, or with an unknown category, are skipped with a warning.
- Repeated block ids keep the first occurrence.
- A connection is skipped with a warning if either port is missing or already
  in use, or if the pair is incompatible.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import yaml

from .connections import ConnectionManager
from .enums import BlockCategory, PortDirection
from .graph import Block, Graph, Port, Position, Size, default_ports_for
from .requirements import Requirements

logger = logging.getLogger(__name__)


def _parse_xy(value: Any, default: Position) -> Position:
    if isinstance(value, dict):
        return Position(float(value.get("x", default.x)), float(value.get("y", default.y)))
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return Position(float(value[0]), float(value[1]))
    return default


def _parse_ports(entries: List[Dict[str, Any]], block_id: str) -> List[Port]:
    ports: List[Port] = []
    for entry in entries:
        direction = PortDirection.parse(entry.get("direction", entry.get("type")))
        pid = entry.get("id")
        if direction is None or not pid:
            logger.warning("Skipping ill-formed port %r on block '%s'", entry, block_id)
            continue
        if any(p.id == pid for p in ports):
            logger.warning("Skipping repeated port id '%s' on block '%s'", pid, block_id)
            continue
        default_offset = Position(0.0, 50.0) if direction is PortDirection.INPUT else Position(100.0, 50.0)
        ports.append(Port(
            id=str(pid),
            label=entry.get("label") or direction.value.capitalize(),
            direction=direction,
            offset=_parse_xy(entry.get("offset"), default_offset),
        ))
    return ports


def _build_block(entry: Dict[str, Any]) -> Optional[Block]:
    bid = entry.get("id")
    if not bid:
        logger.warning("Skipping block entry without id: %r", entry)
        return None
    category = BlockCategory.lookup(entry.get("category", entry.get("type")))
    if category is None:
        logger.warning("Skipping block '%s' with unknown category %r", bid, entry.get("category"))
        return None

    if entry.get("ports"):
        ports = _parse_ports(entry["ports"], str(bid))
    else:
        ports = default_ports_for(category)

    size = entry.get("size") or {}
    if isinstance(size, (list, tuple)) and len(size) == 2:
        size = {"width": size[0], "height": size[1]}

    return Block(
        id=str(bid),
        category=category,
        position=_parse_xy(entry.get("position"), Position(100.0, 100.0)),
        size=Size(float(size.get("width", 100.0)), float(size.get("height", 100.0))),
        properties=dict(entry.get("properties") or {}),
        ports=ports,
        name=entry.get("name") or f"{category.value.capitalize()} Block",
        subtype=entry.get("subtype") or "",
    )


def compile_from_dict(spec: Dict[str, Any], allow_self_connections: bool = False) -> Graph:
    """
    Compile a YAML-parsed template dictionary into a `Graph`.

    Args:
        spec: Parsed YAML dictionary
        allow_self_connections: Passed to the ConnectionManager used for wiring

    Returns:
        Graph: The compiled block graph
    """
    g = Graph()

    for entry in spec.get("blocks", []) or []:
        if not isinstance(entry, dict):
            logger.warning("Skipping non-mapping block entry: %r", entry)
            continue
        block = _build_block(entry)
        if block is None:
            continue
        if block.id in g:
            logger.warning("Skipping repeated block id '%s'", block.id)
            continue
        g.add_block(block)

    manager = ConnectionManager(g, allow_self_connections=allow_self_connections)
    for conn in spec.get("connections", []) or []:
        if not isinstance(conn, dict):
            logger.warning("Skipping non-mapping connection entry: %r", conn)
            continue
        src, src_port = str(conn.get("source")), str(conn.get("sourcePort", "out"))
        dst, dst_port = str(conn.get("target")), str(conn.get("targetPort", "in"))

        # Templates never silently replace an edge declared earlier
        busy = [
            f"{b}.{p}" for b, p in ((src, src_port), (dst, dst_port))
            if g.find_port(b, p) is not None and g.find_port(b, p).is_connected
        ]
        if busy:
            logger.warning("Skipping connection %s.%s -> %s.%s: port already in use (%s)",
                           src, src_port, dst, dst_port, ", ".join(busy))
            continue
        if not manager.connect(src, src_port, dst, dst_port):
            logger.warning("Skipping invalid connection %s.%s -> %s.%s", src, src_port, dst, dst_port)

    return g


def compile_from_yaml(yaml_text: str, allow_self_connections: bool = False) -> Graph:
    """Compile from YAML text into a `Graph`."""
    data = yaml.safe_load(yaml_text) or {}
    return compile_from_dict(data, allow_self_connections=allow_self_connections)


def compile_from_file(path: str, allow_self_connections: bool = False) -> Graph:
    """Compile from a YAML file path into a `Graph`."""
    with open(path, "r", encoding="utf-8") as f:
        txt = f.read()
    return compile_from_yaml(txt, allow_self_connections=allow_self_connections)


def load_requirements_from_yaml(yaml_text: str) -> Requirements:
    """
    Parse a requirement record from YAML text.

    A document with a top-level `requirements` mapping (as challenge files have)
    is unwrapped first.
    """
    data = yaml.safe_load(yaml_text) or {}
    if isinstance(data, dict) and isinstance(data.get("requirements"), dict):
        data = data["requirements"]
    return Requirements.from_dict(data)


def load_requirements_from_file(path: str) -> Requirements:
    with open(path, "r", encoding="utf-8") as f:
        return load_requirements_from_yaml(f.read())
