"""
Weave Core Package.

This package contains the block-graph engine behind a visual block-programming
workspace, including:

- Core data structures (Graph, Block, Port, Connection)
- Connection management with symmetric port references
- Structural analysis (cycles, sequences, requirement satisfaction)
- A validation cache and bounded undo/redo history
- The Workspace facade tying them together, and a YAML template compiler

Blocks are placed on a canvas and wired port-to-port; the engine answers whether
the resulting graph meets a challenge's structural requirements.
"""

# Weave Core Package

__version__ = "0.1.0"

from .enums import BlockCategory, PortDirection, StructureShape
from .config import WorkspaceConfig
from .graph import Block, Connection, Graph, Port, PortRef, Position, Size, default_ports_for
from .connections import ConnectionManager
from .requirements import Requirements
from .analysis import (
    ValidationResult,
    connection_graph,
    evaluate_requirements,
    find_cycles,
    graph_statistics,
    has_loop_structure,
    has_sequence_structure,
    is_valid_pattern,
)
from .cache import ValidationCache, canonical_signature
from .history import HistoryManager, Snapshot
from .workspace import Workspace
from .compiler import (
    compile_from_dict,
    compile_from_file,
    compile_from_yaml,
    load_requirements_from_file,
    load_requirements_from_yaml,
)
