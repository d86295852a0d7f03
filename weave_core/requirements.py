"""
Requirement records supplied by challenges.

A requirement record is a plain mapping, usually loaded from JSON or YAML, with
these recognized keys:

    minConnections: 2
    requiresBlockType: [pattern, color]
    requiresConnection:
      - {sourceType: pattern, targetType: color}
      - {sourceId: b1, targetId: b2}
      - {connectionType: output}
      - {patternProperty: patternType, patternValue: dame}
    requiresStructure: loop | sequence | conditional

Unrecognized keys are ignored. A record with no recognized keys is trivially
satisfied.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .enums import StructureShape

logger = logging.getLogger(__name__)

RECOGNIZED_KEYS = ("minConnections", "requiresBlockType", "requiresConnection", "requiresStructure")


@dataclass
class Requirements:
    """
    Parsed requirement record.

    Attributes:
        min_connections: Minimum number of live edges, or None
        requires_block_type: Category names that must all be present
        requires_connection: Required-edge specs, all of which must match
        requires_structure: Required shape, or None
    """

    min_connections: Optional[int] = None
    requires_block_type: List[str] = field(default_factory=list)
    requires_connection: List[Dict[str, Any]] = field(default_factory=list)
    requires_structure: Optional[StructureShape] = None

    @property
    def is_empty(self) -> bool:
        return (
            self.min_connections is None
            and not self.requires_block_type
            and not self.requires_connection
            and self.requires_structure is None
        )

    @classmethod
    def from_dict(cls, record: Optional[Dict[str, Any]]) -> "Requirements":
        """
        Parse a requirement record.

        Args:
            record: Mapping using the recognized keys; None means no requirements

        Returns:
            Requirements instance

        Raises:
            ValueError: If a recognized key carries a value of the wrong shape
        """
        if record is None:
            return cls()
        if isinstance(record, Requirements):
            return record
        if not isinstance(record, dict):
            raise ValueError(f"Requirement record must be a mapping, got {type(record).__name__}")

        unknown = sorted(k for k in record if k not in RECOGNIZED_KEYS)
        if unknown:
            logger.debug("Ignoring unrecognized requirement keys: %s", unknown)

        req = cls()

        if record.get("minConnections") is not None:
            value = record["minConnections"]
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"minConnections must be an integer, got {value!r}")
            req.min_connections = value

        if record.get("requiresBlockType") is not None:
            types = record["requiresBlockType"]
            if isinstance(types, str):
                types = [types]
            if not isinstance(types, list):
                raise ValueError(f"requiresBlockType must be a list, got {types!r}")
            req.requires_block_type = [str(t) for t in types]

        if record.get("requiresConnection") is not None:
            specs = record["requiresConnection"]
            if isinstance(specs, dict):
                specs = [specs]
            if not isinstance(specs, list) or not all(isinstance(s, dict) for s in specs):
                raise ValueError("requiresConnection must be a list of mappings")
            req.requires_connection = [dict(s) for s in specs]

        if record.get("requiresStructure") is not None:
            shape = str(record["requiresStructure"]).strip().lower()
            try:
                req.requires_structure = StructureShape(shape)
            except ValueError:
                logger.warning("Ignoring unknown requiresStructure value %r", record["requiresStructure"])

        return req

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.min_connections is not None:
            out["minConnections"] = self.min_connections
        if self.requires_block_type:
            out["requiresBlockType"] = list(self.requires_block_type)
        if self.requires_connection:
            out["requiresConnection"] = [dict(s) for s in self.requires_connection]
        if self.requires_structure is not None:
            out["requiresStructure"] = self.requires_structure.value
        return out

    @property
    def reads_properties(self) -> bool:
        """True if a required-connection spec matches on block property values."""
        return any("patternProperty" in s for s in self.requires_connection)

    def cache_key(self) -> str:
        """Deterministic text form, used as part of validation cache keys."""
        return json.dumps(self.to_dict(), sort_keys=True, default=str)
