#!/usr/bin/env python3
# scripts/run_rules.py
# Run a project's rules against its play grid, save the result and receipts

"""
Usage:
    python scripts/run_rules.py project.json [--stride N] [--limit N] [--seed N]
        [--select RULE_ID ...] [--out PATH] [--receipts PATH] [--check-determinism]

The updated project is written to --out (default: overwrite the input).
Exit code 1 on NONDETERMINISTIC_EXECUTION or invalid input.
"""

from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root))

from tilerule.config import RULE_APPLICATION_LIMIT
from tilerule.io.project import load_project, save_project
from tilerule.io.save import write_jsonl
from tilerule.op.pattern import ValidationError
from tilerule.op.receipts import ApplyStats, aggregate
from tilerule.runner import check_determinism, run_session


def summarize(stats: ApplyStats, limit: int) -> str:
    """One-line summary in the editor's console wording."""
    checked = stats.application_count + stats.failed_count
    groups = len(stats.groups)
    if stats.groups_that_hit_limit:
        return (f"{groups} groups checked, {len(stats.groups_that_hit_limit)} "
                f"hit the limit of {limit} applications")
    if groups == 1:
        return f"Rule applied {stats.application_count} times"
    return f"Checked {checked} rules, applied {stats.application_count} rules"


def main():
    parser = argparse.ArgumentParser(description="Run rewrite rules against a project's play grid")
    parser.add_argument("project", type=str, help="Project JSON path")
    parser.add_argument("--stride", type=int, default=None, help="Match stride (default: project tile_size)")
    parser.add_argument("--limit", type=int, default=RULE_APPLICATION_LIMIT, help="Max applications per group")
    parser.add_argument("--seed", type=int, default=None, help="Seed for outcome choices")
    parser.add_argument("--select", type=str, nargs="*", default=None, help="Only run these rule ids")
    parser.add_argument("--out", type=str, default=None, help="Output project path")
    parser.add_argument("--receipts", type=str, default=None, help="Append receipt to this JSONL file")
    parser.add_argument("--check-determinism", action="store_true", help="Run twice and compare hashes")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        project = load_project(args.project)
    except ValidationError as e:
        print(f"ERROR: invalid project: {e}")
        sys.exit(1)

    stride = args.stride if args.stride is not None else project.tile_size
    selection = set(args.select) if args.select is not None else None

    print(f"Project: {args.project}")
    print(f"Rules: {len(project.rules)}  play grid: {project.play_pattern.width}x{project.play_pattern.height}")
    print(f"Stride: {stride}  limit: {args.limit}  seed: {args.seed}\n")

    try:
        if args.check_determinism:
            seed = args.seed if args.seed is not None else 0
            stats, rc = check_determinism(project.rules, project.play_pattern, stride,
                                          args.limit, selection, seed)
        else:
            stats, rc = run_session(project.rules, project.play_pattern, stride,
                                    args.limit, selection, args.seed)
    except ValidationError as e:
        print(f"ERROR: {e}")
        sys.exit(1)
    except RuntimeError as e:
        print(f"\n❌ {e}")
        sys.exit(1)

    print(summarize(stats, args.limit))
    for g in stats.groups:
        flag = "  LIMIT" if g.hit_limit else ""
        print(f"  {g.group_id}: {g.success} applied, {g.failure} failed ({g.rule_count} rules){flag}")

    if args.receipts:
        write_jsonl(args.receipts, [aggregate(rc)], append=True)
        print(f"\nReceipt appended to: {args.receipts}")

    if stats.application_count < 1:
        print("\nNothing changed")
        sys.exit(0)

    out_path = args.out or args.project
    save_project(out_path, project)
    print(f"\nProject written to: {out_path}")
    print(f"target_after: {rc.hashes['target_after']}")


if __name__ == "__main__":
    main()
