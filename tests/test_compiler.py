"""
Unit tests for the YAML template compiler.

These tests validate graph construction from dictionary templates, YAML text and
files, including default ports, explicit ports, connection wiring and the
skipping of ill-formed entries, plus loading requirement records.
"""

import logging
import os
import tempfile

import pytest
import yaml

from weave_core.compiler import (
    compile_from_dict,
    compile_from_file,
    compile_from_yaml,
    load_requirements_from_file,
    load_requirements_from_yaml,
)
from weave_core.enums import BlockCategory, PortDirection, StructureShape
from weave_core.graph import Graph, PortRef, Position


BASIC_TEMPLATE = """
blocks:
  - id: color1
    category: color
    position: [100, 100]
  - id: pattern1
    category: pattern
    position: {x: 250, y: 100}
    properties: {patternType: dame}
connections:
  - {source: color1, sourcePort: out, target: pattern1, targetPort: in}
"""


class TestCompileFromDict:
    def test_blocks_and_connections(self):
        g: Graph = compile_from_yaml(BASIC_TEMPLATE)
        assert g.block_ids == ["color1", "pattern1"]
        assert g.find_block("color1").category is BlockCategory.COLOR
        assert g.find_block("pattern1").position == Position(250.0, 100.0)
        assert g.find_block("pattern1").properties == {"patternType": "dame"}
        assert g.find_port("pattern1", "in").connected_to == PortRef("color1", "out")
        assert g.integrity_issues() == {}

    def test_explicit_ports(self):
        spec = {
            "blocks": [
                {"id": "hub", "category": "structure", "ports": [
                    {"id": "a", "direction": "input"},
                    {"id": "b", "direction": "input", "offset": [0, 80]},
                    {"id": "c", "direction": "output", "label": "Result"},
                    {"id": "c", "direction": "output"},
                    {"direction": "output"},
                ]},
            ],
        }
        g = compile_from_dict(spec)
        hub = g.find_block("hub")
        assert [p.id for p in hub.ports] == ["a", "b", "c"]
        assert hub.find_port("b").offset == Position(0.0, 80.0)
        assert hub.find_port("c").label == "Result"
        assert hub.find_port("c").direction is PortDirection.OUTPUT

    def test_ill_formed_blocks_skipped(self, caplog):
        spec = {
            "blocks": [
                {"category": "pattern"},
                {"id": "x", "category": "dragon"},
                {"id": "p", "category": "pattern"},
                {"id": "p", "category": "color"},
                "not a mapping",
            ],
        }
        with caplog.at_level(logging.WARNING):
            g = compile_from_dict(spec)
        assert g.block_ids == ["p"]
        assert g.find_block("p").category is BlockCategory.PATTERN
        assert "dragon" in caplog.text

    def test_invalid_connections_skipped(self):
        spec = {
            "blocks": [
                {"id": "c", "category": "color"},
                {"id": "p1", "category": "pattern"},
                {"id": "p2", "category": "pattern"},
                {"id": "s", "category": "structure"},
            ],
            "connections": [
                {"source": "c", "sourcePort": "out", "target": "p1", "targetPort": "in"},
                # color output already in use
                {"source": "c", "sourcePort": "out", "target": "p2", "targetPort": "in"},
                # two inputs
                {"source": "p2", "sourcePort": "in", "target": "s", "targetPort": "in"},
                # missing block
                {"source": "ghost", "sourcePort": "out", "target": "p2", "targetPort": "in"},
                # self connection
                {"source": "s", "sourcePort": "out", "target": "s", "targetPort": "in"},
            ],
        }
        g = compile_from_dict(spec)
        assert g.connection_count() == 1
        assert g.find_port("p1", "in").connected_to == PortRef("c", "out")
        assert g.find_port("p2", "in").connected_to is None

    def test_self_connection_allowed(self):
        spec = {
            "blocks": [{"id": "s", "category": "structure"}],
            "connections": [{"source": "s", "target": "s"}],
        }
        assert compile_from_dict(spec).connection_count() == 0
        assert compile_from_dict(spec, allow_self_connections=True).connection_count() == 1

    def test_default_ports_by_category(self):
        g = compile_from_dict({"blocks": [{"id": "l", "category": "loop"}]})
        assert [p.id for p in g.find_block("l").ports] == ["out"]
        assert g.find_block("l").position == Position(100.0, 100.0)


class TestCompileFromYamlAndFile:
    def test_empty_yaml(self):
        assert len(compile_from_yaml("")) == 0

    def test_compile_from_file(self):
        with tempfile.TemporaryDirectory() as td:
            path = os.path.join(td, "template.yaml")
            with open(path, "w", encoding="utf-8") as f:
                f.write(BASIC_TEMPLATE)
            g = compile_from_file(path)
            assert g.connection_count() == 1

    def test_yaml_errors_propagate(self):
        with pytest.raises(yaml.YAMLError):
            compile_from_yaml("blocks: [unclosed")


class TestLoadRequirements:
    def test_plain_record(self):
        req = load_requirements_from_yaml("minConnections: 2\nrequiresStructure: loop\n")
        assert req.min_connections == 2
        assert req.requires_structure is StructureShape.LOOP

    def test_wrapped_record(self):
        text = """
title: Two colors
requirements:
  requiresBlockType: [pattern, color]
"""
        req = load_requirements_from_yaml(text)
        assert req.requires_block_type == ["pattern", "color"]

    def test_empty_document(self):
        assert load_requirements_from_yaml("").is_empty

    def test_from_file(self, tmp_path):
        path = tmp_path / "challenge.yaml"
        path.write_text("requirements:\n  minConnections: 1\n", encoding="utf-8")
        assert load_requirements_from_file(str(path)).min_connections == 1
