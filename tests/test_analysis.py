"""
Unit tests for structural analysis.

These tests exercise the connection-graph export, cycle and sequence detection,
requirement evaluation against challenge records, the default pattern verdict
and graph statistics.
"""

import pytest

from weave_core.analysis import (
    connected_components,
    connection_graph,
    contains_block_type,
    contains_connection,
    evaluate_requirements,
    find_connected_blocks,
    find_cycles,
    graph_statistics,
    has_conditional_structure,
    has_loop_structure,
    has_sequence_structure,
    is_valid_pattern,
)
from weave_core.enums import BlockCategory, PortDirection
from weave_core.graph import Block, Graph, Port, PortRef, default_ports_for


def make_block(block_id, category=BlockCategory.STRUCTURE, properties=None):
    return Block(block_id, category, ports=default_ports_for(category),
                 properties=dict(properties or {}), name=block_id)


def hub_block(block_id, n_ports=4):
    """Structure block with alternating input/output ports for ring and star shapes."""
    ports = []
    for i in range(n_ports):
        direction = PortDirection.INPUT if i % 2 == 0 else PortDirection.OUTPUT
        ports.append(Port(f"p{i}", f"P{i}", direction))
    return Block(block_id, BlockCategory.STRUCTURE, ports=ports, name=block_id)


def chain(*ids):
    g = Graph([make_block(i) for i in ids])
    for a, b in zip(ids, ids[1:]):
        g.link(PortRef(a, "out"), PortRef(b, "in"))
    return g


def ring(*ids):
    """Each block's p1 (output) feeds the next block's p0 (input), wrapping around."""
    g = Graph([hub_block(i) for i in ids])
    for a, b in zip(ids, ids[1:] + ids[:1]):
        g.link(PortRef(a, "p1"), PortRef(b, "p0"))
    return g


class TestConnectionGraph:
    """Test the undirected block adjacency export."""

    def test_includes_isolated_blocks(self):
        g = chain("a", "b")
        g.add_block(make_block("lonely"))
        adj = connection_graph(g)
        assert adj == {"a": ["b"], "b": ["a"], "lonely": []}

    def test_parallel_edges_collapse(self):
        g = Graph([hub_block("a"), hub_block("b")])
        g.link(PortRef("a", "p1"), PortRef("b", "p0"))
        g.link(PortRef("a", "p3"), PortRef("b", "p2"))
        adj = connection_graph(g)
        assert adj == {"a": ["b"], "b": ["a"]}

    def test_empty_graph(self):
        assert connection_graph(Graph()) == {}


class TestCycles:
    """Test loop (cycle) detection."""

    def test_three_ring_has_cycle(self):
        g = ring("a", "b", "c")
        cycles = find_cycles(g)
        assert len(cycles) == 1
        assert sorted(cycles[0]) == ["a", "b", "c"]
        assert has_loop_structure(g)

    def test_open_chain_has_no_cycle(self):
        g = chain("a", "b", "c")
        assert find_cycles(g) == []
        assert not has_loop_structure(g)

    def test_two_blocks_with_parallel_edges_is_not_a_cycle(self):
        g = Graph([hub_block("a"), hub_block("b")])
        g.link(PortRef("a", "p1"), PortRef("b", "p0"))
        g.link(PortRef("a", "p3"), PortRef("b", "p2"))
        assert not has_loop_structure(g)

    def test_loop_block_counts_only_when_enabled(self):
        g = Graph([make_block("l", BlockCategory.LOOP)])
        assert not has_loop_structure(g)
        assert has_loop_structure(g, count_loop_blocks=True)

    def test_cycle_in_second_component(self):
        g = ring("a", "b", "c")
        g.add_block(make_block("x"))
        assert has_loop_structure(g)


class TestSequence:
    """Test simple-path sequence detection."""

    def test_two_blocks_not_a_sequence(self):
        assert not has_sequence_structure(chain("a", "b"))

    def test_three_blocks_form_a_sequence(self):
        assert has_sequence_structure(chain("a", "b", "c"))

    def test_star_center_path_counts(self):
        g = Graph([hub_block("hub"), make_block("x"), make_block("y")])
        g.link(PortRef("hub", "p0"), PortRef("x", "out"))
        g.link(PortRef("hub", "p1"), PortRef("y", "in"))
        assert has_sequence_structure(g)

    def test_custom_min_length(self):
        g = chain("a", "b", "c")
        assert not has_sequence_structure(g, min_length=4)
        assert has_sequence_structure(chain("a", "b"), min_length=2)

    def test_conditional_never_detected(self):
        assert not has_conditional_structure(ring("a", "b", "c"))


class TestComponents:
    """Test connected components and reachability."""

    def test_components(self):
        g = chain("a", "b")
        g.add_block(make_block("c"))
        assert connected_components(g) == [["a", "b"], ["c"]]

    def test_find_connected_blocks(self):
        g = chain("a", "b", "c")
        g.add_block(make_block("d"))
        assert find_connected_blocks(g, "a") == ["a", "b", "c"]
        assert find_connected_blocks(g, "d") == ["d"]
        assert find_connected_blocks(g, "missing") == []


class TestRequirementPredicates:
    """Test individual requirement predicates."""

    def test_contains_block_type(self):
        g = Graph([make_block("p", BlockCategory.PATTERN)])
        assert contains_block_type(g, "pattern")
        assert contains_block_type(g, "PATTERN")
        assert not contains_block_type(g, "color")
        assert not contains_block_type(g, "unicorn")

    def test_connection_by_type_either_orientation(self):
        g = Graph([make_block("p", BlockCategory.PATTERN), make_block("c", BlockCategory.COLOR)])
        g.link(PortRef("c", "out"), PortRef("p", "in"))
        assert contains_connection(g, {"sourceType": "color", "targetType": "pattern"})
        assert contains_connection(g, {"sourceType": "pattern", "targetType": "color"})
        assert not contains_connection(g, {"sourceType": "loop", "targetType": "pattern"})
        assert not contains_connection(g, {"sourceType": "unicorn", "targetType": "pattern"})

    def test_connection_by_ids(self):
        g = chain("a", "b", "c")
        assert contains_connection(g, {"sourceId": "a", "targetId": "b"})
        assert contains_connection(g, {"sourceId": "b", "targetId": "a"})
        assert not contains_connection(g, {"sourceId": "a", "targetId": "c"})

    def test_connection_by_direction(self):
        g = chain("a", "b")
        assert contains_connection(g, {"connectionType": "output"})
        assert not contains_connection(Graph([make_block("a")]), {"connectionType": "input"})
        assert not contains_connection(g, {"connectionType": "sideways"})

    def test_connection_by_pattern_property(self):
        g = Graph([
            make_block("p", BlockCategory.PATTERN, {"patternType": "dame"}),
            make_block("c", BlockCategory.COLOR),
        ])
        spec = {"patternProperty": "patternType", "patternValue": "dame"}
        assert not contains_connection(g, spec)
        g.link(PortRef("c", "out"), PortRef("p", "in"))
        assert contains_connection(g, spec)

    def test_unrecognized_spec_fails(self):
        assert not contains_connection(chain("a", "b"), {"colour": "red"})


class TestEvaluateRequirements:
    """Test evaluation of complete requirement records."""

    def test_empty_record_is_satisfied(self):
        result = evaluate_requirements(Graph(), {})
        assert result.satisfied
        assert result.checks == {}

    def test_unknown_keys_ignored(self):
        assert evaluate_requirements(Graph(), {"difficulty": "hard"}).satisfied

    def test_min_connections(self):
        g = chain("a", "b")
        assert evaluate_requirements(g, {"minConnections": 1}).satisfied
        result = evaluate_requirements(g, {"minConnections": 2})
        assert not result.satisfied
        assert result.checks == {"minConnections": False}
        assert result.issues

    def test_all_predicates_are_anded(self):
        g = Graph([make_block("p", BlockCategory.PATTERN), make_block("c", BlockCategory.COLOR)])
        g.link(PortRef("c", "out"), PortRef("p", "in"))
        record = {
            "minConnections": 1,
            "requiresBlockType": ["pattern", "color"],
            "requiresConnection": [{"sourceType": "color", "targetType": "pattern"}],
            "requiresStructure": "sequence",
        }
        result = evaluate_requirements(g, record)
        assert result.checks == {
            "minConnections": True,
            "requiresBlockType": True,
            "requiresConnection": True,
            "requiresStructure": False,
        }
        assert not result.satisfied

    def test_loop_structure_requirement(self):
        assert evaluate_requirements(ring("a", "b", "c"), {"requiresStructure": "loop"}).satisfied
        assert not evaluate_requirements(chain("a", "b", "c"), {"requiresStructure": "loop"}).satisfied

    def test_loop_blocks_option(self):
        g = Graph([make_block("l", BlockCategory.LOOP)])
        record = {"requiresStructure": "loop"}
        assert not evaluate_requirements(g, record).satisfied
        assert evaluate_requirements(g, record, count_loop_blocks=True).satisfied

    def test_unknown_category_never_matches(self):
        g = Graph([make_block("p", BlockCategory.PATTERN)])
        assert not evaluate_requirements(g, {"requiresBlockType": ["pattern", "dragon"]}).satisfied

    def test_malformed_value_raises(self):
        with pytest.raises(ValueError):
            evaluate_requirements(Graph(), {"minConnections": "two"})


class TestPatternValidity:
    """Test the default pattern verdict."""

    def test_connected_pattern_is_valid(self):
        g = Graph([make_block("p", BlockCategory.PATTERN), make_block("c", BlockCategory.COLOR)])
        g.link(PortRef("c", "out"), PortRef("p", "in"))
        result = is_valid_pattern(g)
        assert result.satisfied
        assert bool(result)

    def test_single_block_invalid(self):
        result = is_valid_pattern(Graph([make_block("p", BlockCategory.PATTERN)]))
        assert not result.checks["minBlocks"]
        assert not result.satisfied

    def test_requires_pattern_block(self):
        assert not is_valid_pattern(chain("a", "b")).checks["patternBlock"]

    def test_disconnected_block_invalid(self):
        g = Graph([make_block("p", BlockCategory.PATTERN), make_block("c", BlockCategory.COLOR)])
        g.link(PortRef("c", "out"), PortRef("p", "in"))
        g.add_block(make_block("s"))
        result = is_valid_pattern(g)
        assert not result.checks["allConnected"]
        assert any("s" in issue for issue in result.issues)

    def test_asymmetric_reference_invalid(self):
        g = Graph([make_block("p", BlockCategory.PATTERN), make_block("c", BlockCategory.COLOR)])
        g.find_port("c", "out").connected_to = PortRef("p", "in")
        assert not is_valid_pattern(g).checks["connections"]


class TestGraphStatistics:
    """Test summary statistics."""

    def test_ring_statistics(self):
        g = ring("a", "b", "c")
        g.add_block(make_block("x", BlockCategory.PATTERN))
        stats = graph_statistics(g)
        assert stats["blocks"] == 4
        assert stats["connections"] == 3
        assert stats["blocks_by_category"] == {"pattern": 1, "structure": 3}
        assert stats["connected_components"] == 2
        assert stats["isolated_blocks"] == 1
        assert stats["max_degree"] == 2
        assert len(stats["cycles"]) == 1
        assert stats["structures"] == {"sequence": True, "loop": True, "conditional": False}
        assert stats["valid_pattern"] is False

    def test_empty_statistics(self):
        stats = graph_statistics(Graph())
        assert stats["blocks"] == 0
        assert stats["max_degree"] == 0
        assert stats["cycles"] == []
