"""
Tests for viz.utils.build_render_elements.
"""

from weave_core.enums import BlockCategory
from weave_core.graph import Block, Graph, PortRef, Position, default_ports_for
from viz.utils import build_render_elements


def two_block_graph():
    g = Graph([
        Block("c", BlockCategory.COLOR, position=Position(10, 20),
              ports=default_ports_for(BlockCategory.COLOR), name="Color Block",
              properties={"color": "#112233"}),
        Block("p", BlockCategory.PATTERN, position=Position(200, 20),
              ports=default_ports_for(BlockCategory.PATTERN), name="Pattern Block",
              properties={"label": "Dame"}),
    ])
    g.link(PortRef("c", "out"), PortRef("p", "in"))
    return g


def test_builder_basic_nodes_and_edges():
    els = build_render_elements(two_block_graph())
    node_ids = {e['data']['id'] for e in els if 'source' not in e['data']}
    edges = [e for e in els if 'source' in e['data']]

    assert node_ids == {'c', 'p'}
    assert len(edges) == 1
    assert edges[0]['data']['id'] == 'c.out->p.in'
    assert edges[0]['data']['source'] == 'c'
    assert edges[0]['data']['target'] == 'p'


def test_node_attributes():
    els = build_render_elements(two_block_graph())
    node_c = next(e for e in els if e['data']['id'] == 'c')
    node_p = next(e for e in els if e['data']['id'] == 'p')

    assert node_c['data']['label'] == 'Color Block'
    assert node_c['data']['color'] == '#112233'
    assert node_c['data']['category'] == 'color'
    assert node_c['data']['size'] == {'width': 100.0, 'height': 100.0}
    assert node_c['position'] == {'x': 10.0, 'y': 20.0}
    assert node_p['data']['label'] == 'Dame'
    assert node_p['data']['color'] == '#60A5FA'
    assert node_p['data']['ports'][0]['connected'] is True


def test_edge_endpoints_are_absolute_port_positions():
    els = build_render_elements(two_block_graph())
    edge = next(e for e in els if 'source' in e['data'])
    assert edge['data']['start'] == {'x': 110.0, 'y': 70.0}
    assert edge['data']['end'] == {'x': 200.0, 'y': 70.0}


def test_selection_and_highlight_flags():
    els = build_render_elements(two_block_graph(), selected_block_id='p', highlighted=PortRef('p', 'in'))
    node_p = next(e for e in els if e['data']['id'] == 'p')
    edge = next(e for e in els if 'source' in e['data'])
    assert node_p['data']['selected'] is True
    assert edge['data']['highlighted'] is True


def test_empty_graph():
    assert build_render_elements(Graph()) == []
