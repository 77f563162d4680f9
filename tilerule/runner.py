#!/usr/bin/env python3
# tilerule/runner.py
# Session orchestration: validate -> expand -> per-group loop -> stats + receipts

"""
Frozen order (no reordering):
validate(rules, target, stride, limit) → build_groups → run_group per group → aggregate

Determinism: with the same seed, rules and starting target, two sessions
produce identical target hashes and identical stats.
"""

from __future__ import annotations
import logging
import numpy as np
from typing import AbstractSet, List, Optional, Sequence, Tuple

from tilerule.op.expand import build_groups
from tilerule.op.hash import hash_grid
from tilerule.op.loop import EngineContext, run_group
from tilerule.op.pattern import Pattern, Rule, ValidationError, validate_pattern, validate_rules
from tilerule.op.receipts import ApplyRc, ApplyStats, env_fingerprint, section_hash, table_hash

logger = logging.getLogger(__name__)


def _check_positive(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value <= 0:
        raise ValidationError(f"{name} must be a positive integer, got {value!r}")


def run(ctx: EngineContext) -> ApplyStats:
    """
    Run every group of ctx.rules against ctx.target.

    Inputs are assumed valid; use apply() for the checked entry point.
    """
    stats = ApplyStats()
    groups = build_groups(ctx.rules, ctx.selection, ctx.ids)

    for group in groups:
        rc = run_group(group, ctx)
        stats.groups.append(rc)
        stats.application_count += rc.success
        stats.failed_count += rc.failure
        if rc.success > 0:
            stats.groups_application_count += 1
        else:
            stats.groups_failed_count += 1
        if rc.hit_limit:
            stats.groups_that_hit_limit.append(rc.group_id)

    logger.info(
        "applied %d times over %d groups (%d failed checks, %d at limit)",
        stats.application_count,
        len(groups),
        stats.failed_count,
        len(stats.groups_that_hit_limit),
    )
    return stats


def apply(
    rules: Sequence[Rule],
    target: Pattern,
    stride: int,
    limit: int,
    selection: Optional[AbstractSet[str]] = None,
    rng: Optional[np.random.Generator] = None,
) -> ApplyStats:
    """
    Apply the rule list to `target` in place.

    Contract:
    - all inputs are validated before any matching; a violation raises
      ValidationError and leaves target untouched
    - groups run in authoring order; reaching the limit in one group does
      not stop the others
    - returns stats even if nothing changed

    Args:
        rules: authored rules in priority order
        target: grid mutated in place
        stride: match stride (> 0)
        limit: max successful applications per group (> 0)
        selection: optional rule ids to run, each as its own group
        rng: outcome choice generator (default: fresh unseeded generator)

    Returns:
        ApplyStats

    Raises:
        ValidationError: on malformed input
    """
    _check_positive("stride", stride)
    _check_positive("limit", limit)
    validate_pattern(target)
    validate_rules(rules)

    ctx = EngineContext(
        rules=list(rules),
        target=target,
        stride=int(stride),
        limit=int(limit),
        rng=rng if rng is not None else np.random.default_rng(),
        selection=selection,
    )
    return run(ctx)


def run_session(
    rules: Sequence[Rule],
    target: Pattern,
    stride: int,
    limit: int,
    selection: Optional[AbstractSet[str]] = None,
    seed: Optional[int] = None,
) -> Tuple[ApplyStats, ApplyRc]:
    """
    Seeded apply() with a receipt.

    Returns:
        (stats, receipt) where receipt.hashes holds target_before,
        target_after and one hash per section
    """
    before = hash_grid(target.pixels)
    stats = apply(rules, target, stride, limit, selection, np.random.default_rng(seed))
    after = hash_grid(target.pixels)

    sections = {
        "params": {
            "stride": int(stride),
            "limit": int(limit),
            "rule_ids": [r.id for r in rules],
            "selection": sorted(selection) if selection is not None else None,
        },
        "stats": stats,
    }
    hashes = {k: section_hash(v) for k, v in sections.items()}
    hashes["target_before"] = before
    hashes["target_after"] = after

    rc = ApplyRc(
        env=env_fingerprint(),
        seed=seed,
        sections=sections,
        hashes=hashes,
        table_hash=table_hash(hashes),
    )
    return stats, rc


def check_determinism(
    rules: Sequence[Rule],
    target: Pattern,
    stride: int,
    limit: int,
    selection: Optional[AbstractSet[str]] = None,
    seed: int = 0,
) -> Tuple[ApplyStats, ApplyRc]:
    """
    Run the session twice from the same seed and compare all hashes.

    The first run mutates `target`; the second runs on a copy of the
    original grid.

    Raises:
        RuntimeError: NONDETERMINISTIC_EXECUTION if any hash differs
    """
    shadow = Pattern(id=target.id, width=target.width, height=target.height,
                     pixels=target.pixels.copy())

    stats, rc1 = run_session(rules, target, stride, limit, selection, seed)
    _, rc2 = run_session(rules, shadow, stride, limit, selection, seed)

    diffs: List[str] = [
        k for k in sorted(rc1.hashes) if rc1.hashes[k] != rc2.hashes.get(k)
    ]
    if diffs or rc1.table_hash != rc2.table_hash:
        raise RuntimeError(f"NONDETERMINISTIC_EXECUTION: sections differ: {diffs}")
    return stats, rc1
