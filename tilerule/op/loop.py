# tilerule/op/loop.py
# Rule Application Loop: per-group priority-restart fixed point with a success cap

from __future__ import annotations
import logging
import numpy as np
from dataclasses import dataclass, field
from typing import AbstractSet, List, Optional

from .applier import apply_rule
from .pattern import IdSource, Pattern, Rule, RuleGroup
from .receipts import GroupRc

logger = logging.getLogger(__name__)


@dataclass
class EngineContext:
    """
    Everything one engine call reads or writes.

    The target is owned by the caller and mutated in place; nothing else
    may touch it while the call runs.
    """
    rules: List[Rule]
    target: Pattern
    stride: int
    limit: int
    rng: np.random.Generator
    selection: Optional[AbstractSet[str]] = None
    ids: IdSource = field(default_factory=IdSource)


def run_group(group: RuleGroup, ctx: EngineContext) -> GroupRc:
    """
    Apply a group's rules until none makes progress or the limit is hit.

    Contract:
    - rule_index starts at 0
    - success: count it and restart from rule 0 (highest priority)
    - failure: count it and advance to the next rule
    - stop when rule_index runs past the last rule or successes == limit

    Args:
        group: ordered concrete rules
        ctx: engine context (target, stride, limit, rng)

    Returns:
        GroupRc with success/failure counts and hit_limit flag
    """
    rule_index = 0
    success = 0
    failure = 0
    per_rule = [0] * len(group.rules)

    while success < ctx.limit and rule_index < len(group.rules):
        if apply_rule(group.rules[rule_index], ctx.target, ctx.stride, ctx.rng):
            success += 1
            per_rule[rule_index] += 1
            rule_index = 0
        else:
            failure += 1
            rule_index += 1

    hit_limit = success >= ctx.limit
    if hit_limit:
        logger.warning("group %s hit the application limit (%d)", group.id, ctx.limit)
    else:
        logger.debug("group %s: %d applied, %d failed", group.id, success, failure)

    return GroupRc(
        group_id=group.id,
        rule_count=len(group.rules),
        success=success,
        failure=failure,
        hit_limit=hit_limit,
        per_rule_success=per_rule,
    )
