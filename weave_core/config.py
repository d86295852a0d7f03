"""
Configuration objects for the block workspace.

Exposes the tunable policies of the engine (history depth, connection rules,
cache behavior) so callers and tests can change them without editing core logic.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple


@dataclass
class WorkspaceConfig:
    """
    Configuration for `Workspace` behavior.

    Defaults suit an interactive editor: self-connections are rejected and moving
    a block keeps cached verdicts.
    """

    # Number of undo steps kept by the history manager
    history_capacity: int = 50

    # Connection rules
    # A port may never connect to a port on its own block unless enabled
    allow_self_connections: bool = False

    # Cache policy
    # Block position is not part of the canonical signature, so moving a block
    # leaves cached verdicts valid unless this is enabled.
    invalidate_cache_on_position: bool = False
    invalidate_cache_on_restore: bool = True

    # Structural classification
    # When enabled, a block tagged `loop` counts as loop structure even without a cycle.
    count_loop_blocks_as_loop: bool = False
    min_sequence_length: int = 3

    # Debug checks: assert the full graph invariant set after every mutation
    check_invariants: bool = False

    # Size given to blocks created from a bare category
    default_block_size: Tuple[float, float] = (100.0, 100.0)
