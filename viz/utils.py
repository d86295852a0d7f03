"""
Lightweight render-data utilities decoupled from any UI toolkit to enable testing.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from weave_core.graph import Graph, PortRef


def build_render_elements(
    graph: Graph,
    selected_block_id: Optional[str] = None,
    highlighted: Optional[PortRef] = None,
) -> List[Dict[str, Any]]:
    """Convert a Graph into node and edge elements for a canvas renderer.

    Node elements carry the block geometry and its ports' absolute positions.
    Edge elements carry the absolute positions of both port endpoints, so a
    renderer can draw a connection line without resolving ports itself.

    Property overrides supported on blocks:
    - label: string shown instead of the block name
    - color: CSS color (defaults to a per-category color)
    """
    elements: List[Dict[str, Any]] = []

    # Nodes
    for block in graph:
        props = block.properties or {}
        label = props.get("label") or block.name or block.id
        color = props.get("color") if isinstance(props.get("color"), str) else _color_for_category(block.category.value)
        node: Dict[str, Any] = {
            "data": {
                "id": block.id,
                "label": label,
                "color": color,
                "category": block.category.value,
                "size": {"width": block.size.width, "height": block.size.height},
                "selected": block.id == selected_block_id,
                "ports": [
                    {
                        "id": p.id,
                        "direction": p.direction.value,
                        "x": block.position.x + p.offset.x,
                        "y": block.position.y + p.offset.y,
                        "connected": p.is_connected,
                    }
                    for p in block.ports
                ],
            },
            "position": {"x": block.position.x, "y": block.position.y},
        }
        elements.append(node)

    # Edges
    for conn in graph.connections():
        start = graph.port_position(*conn.source)
        end = graph.port_position(*conn.target)
        elements.append({
            "data": {
                "id": f"{conn.source}->{conn.target}",
                "source": conn.source.block_id,
                "target": conn.target.block_id,
                "sourcePort": conn.source.port_id,
                "targetPort": conn.target.port_id,
                "start": {"x": start.x, "y": start.y},
                "end": {"x": end.x, "y": end.y},
                "highlighted": highlighted in (conn.source, conn.target),
            }
        })

    return elements


def _color_for_category(category: str) -> str:
    category_colors = {
        "pattern": "#60A5FA",
        "color": "#F59E0B",
        "structure": "#A78BFA",
        "loop": "#10B981",
        "column": "#9CA3AF",
    }
    return category_colors.get(category, "#60A5FA")
