"""
Validation cache for block graphs.

Structural verdicts are memoized under a canonical signature of the graph: its
sorted (block id, category) pairs followed by its sorted port connection pairs.
Positions, sizes and properties are not part of the signature. Requirements that
match on property values add a digest of the block properties to their key, so
those verdicts stay correct even when a restore keeps the cache. The cache is
cleared wholesale by every graph mutation; graphs here are small enough that no
TTL or LRU eviction is needed.

Each workspace owns its own cache instance, so independent workspaces never
share verdicts.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Callable, Dict, Optional

from .analysis import ValidationResult, evaluate_requirements, is_valid_pattern
from .graph import Graph, PortRef
from .requirements import Requirements

logger = logging.getLogger(__name__)


def canonical_signature(graph: Graph) -> str:
    """
    Deterministic text encoding of the structural content of a graph.

    Port references are block-qualified, so equal port ids on different blocks
    never collide.
    """
    blocks = sorted((b.id, b.category.value) for b in graph)
    links = sorted(
        f"{PortRef(b.id, p.id)}->{p.connected_to}"
        for b in graph
        for p in b.ports
        if p.connected_to is not None
    )
    return "|".join(f"{bid}:{cat}" for bid, cat in blocks) + "#" + ";".join(links)


def properties_digest(graph: Graph) -> str:
    """Stable digest of every block's property map, keyed by block id."""
    text = json.dumps({b.id: b.properties for b in graph}, sort_keys=True, default=str)
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


class ValidationCache:
    """
    Memoizes structural verdicts keyed by canonical signature and requirement.

    Attributes:
        hits: Number of lookups answered from the cache
        misses: Number of lookups that ran the analyzer
    """

    def __init__(
        self,
        requirement_evaluator: Optional[Callable[[Graph, Requirements], ValidationResult]] = None,
        pattern_evaluator: Optional[Callable[[Graph], ValidationResult]] = None,
    ):
        """
        Args:
            requirement_evaluator: Computes a verdict for a graph and requirement record
                (defaults to `evaluate_requirements`)
            pattern_evaluator: Computes the default verdict when no requirement is given
                (defaults to `is_valid_pattern`)
        """
        self._entries: Dict[str, ValidationResult] = {}
        self._requirement_evaluator = requirement_evaluator or evaluate_requirements
        self._pattern_evaluator = pattern_evaluator or is_valid_pattern
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    @staticmethod
    def key_for(graph: Graph, requirements: Optional[Requirements] = None) -> str:
        req_key = requirements.cache_key() if requirements is not None else "<pattern>"
        key = f"{canonical_signature(graph)}@{req_key}"
        if requirements is not None and requirements.reads_properties:
            key += "$" + properties_digest(graph)
        return key

    def get_or_compute(self, graph: Graph, requirements=None) -> ValidationResult:
        """
        Return the cached verdict for the graph, computing it on a miss.

        Args:
            graph: Graph to validate
            requirements: Requirement record (mapping or Requirements); None uses the
                default pattern validity verdict

        Returns:
            The ValidationResult for this exact graph content and requirement
        """
        req = Requirements.from_dict(requirements) if requirements is not None else None
        key = self.key_for(graph, req)
        cached = self._entries.get(key)
        if cached is not None:
            self.hits += 1
            logger.debug("Validation cache hit (%d entries)", len(self._entries))
            return cached

        self.misses += 1
        if req is None:
            result = self._pattern_evaluator(graph)
        else:
            result = self._requirement_evaluator(graph, req)
        self._entries[key] = result
        logger.debug("Validation cache miss; stored verdict satisfied=%s", result.satisfied)
        return result

    def invalidate_all(self) -> None:
        if self._entries:
            logger.debug("Clearing %d cached verdicts", len(self._entries))
        self._entries.clear()
