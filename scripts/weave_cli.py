#!/usr/bin/env python3
"""
Weave CLI

Usage modes:
- Default run: load a workspace template (YAML) or exported workspace (JSON) and print a summary
- Validation: check the graph against a requirement file or the default pattern rules
- Stats: print graph statistics (components, cycles, structures)
- Export: write GraphML for external tools
- Utility: list sample templates, show version
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from glob import glob
from pathlib import Path
from typing import Any, Dict, List

from weave_core import Workspace  # type: ignore
from weave_core.config import WorkspaceConfig  # type: ignore
from weave_core.compiler import compile_from_file, load_requirements_from_file  # type: ignore
from weave_core.graph import Graph  # type: ignore


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Load a block workspace and validate, summarize or export it",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    # Utilities / meta
    p.add_argument("--version", action="store_true", help="Print version and exit")
    p.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v, -vv)")
    p.add_argument("--list-templates", action="store_true", help="List bundled sample YAML templates and exit")

    # Primary input
    p.add_argument("workspace", nargs="?", help="Path to a YAML template or exported JSON workspace")

    # Workspace config overrides
    p.add_argument("--allow-self-connections", action="store_true", help="Allow ports of the same block to be joined")
    p.add_argument("--count-loop-blocks", action="store_true", help="Treat loop blocks as loop structure")
    p.add_argument("--min-sequence", type=int, default=None, help="Blocks needed for sequence structure")

    # Analysis / export
    p.add_argument("--requirements", type=str, default="", help="YAML requirement record to validate against")
    p.add_argument("--validate", action="store_true", help="Validate the workspace and exit non-zero on failure")
    p.add_argument("--stats", action="store_true", help="Print graph statistics")
    p.add_argument("--export-graphml", type=str, default="", help="Export the graph to GraphML at given path")
    p.add_argument("--out", type=str, default="", help="Optional output JSON file path")

    return p.parse_args(argv)


def build_config(args: argparse.Namespace) -> WorkspaceConfig:
    cfg = WorkspaceConfig()
    if args.allow_self_connections:
        cfg.allow_self_connections = True
    if args.count_loop_blocks:
        cfg.count_loop_blocks_as_loop = True
    if args.min_sequence is not None:
        cfg.min_sequence_length = int(args.min_sequence)
    return cfg


def setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def find_sample_templates() -> List[str]:
    # Search relative to repo root and this script location
    here = Path(__file__).resolve()
    repo_root = here.parent.parent
    candidates = []
    for base in [repo_root, here.parent]:
        candidates.extend(sorted(glob(str(base / "*.yaml"))))
        candidates.extend(sorted(glob(str(base / "scripts" / "*.yaml"))))
    # Deduplicate while preserving order
    seen = set()
    result = []
    for c in candidates:
        if c not in seen:
            seen.add(c)
            result.append(c)
    return result


def load_graph(path: str, cfg: WorkspaceConfig) -> Graph:
    if path.endswith(".json"):
        with open(path, "r", encoding="utf-8") as f:
            return Graph.from_dict(json.load(f))
    return compile_from_file(path, allow_self_connections=cfg.allow_self_connections)


def write_output(payload: Dict[str, Any], out: str) -> None:
    if out:
        with open(out, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
    else:
        print(json.dumps(payload, indent=2))


def main(argv: List[str] | None = None) -> int:
    from weave_core import __version__ as weave_version  # type: ignore

    args = parse_args(argv)
    setup_logging(args.verbose)

    if args.version:
        print(weave_version)
        return 0

    if args.list_templates:
        print(json.dumps(find_sample_templates(), indent=2))
        return 0

    if not args.workspace:
        print("error: missing workspace path (try --list-templates)", file=sys.stderr)
        return 2

    cfg = build_config(args)

    logging.info("Loading workspace from %s", args.workspace)
    ws = Workspace(graph=load_graph(args.workspace, cfg), config=cfg)

    requirements = None
    if args.requirements:
        logging.info("Loading requirements from %s", args.requirements)
        requirements = load_requirements_from_file(args.requirements)

    # Optional export
    if args.export_graphml:
        logging.info("Exporting GraphML to %s", args.export_graphml)
        ws.graph.export_graphml(args.export_graphml)

    if args.validate:
        result = ws.validate(requirements)
        logging.info("Validation %s (%d issue(s))", "passed" if result.satisfied else "failed", len(result.issues))
        payload: Dict[str, Any] = {"validation": result.to_dict()}
        if args.stats:
            payload["stats"] = ws.statistics()
        write_output(payload, args.out)
        # Non-zero exit on failure
        return 0 if result.satisfied else 1

    if args.stats:
        write_output(ws.statistics(), args.out)
        return 0

    # Provide a minimal workspace summary
    summary = {
        "blocks": len(ws.graph),
        "connections": ws.graph.connection_count(),
        "satisfied": ws.validate(requirements).satisfied,
    }
    write_output(summary, args.out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
