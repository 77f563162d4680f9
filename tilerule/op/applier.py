# tilerule/op/applier.py
# Atomic multi-part rule application with randomized outcome selection

from __future__ import annotations
import numpy as np
from typing import List, Tuple

from tilerule.config import WILDCARD
from .matcher import find
from .pattern import Part, Pattern, Rule


def match_parts(rule: Rule, target: Pattern, stride: int) -> List[Tuple[Part, int, int]]:
    """
    Locate every part's match template in the target.

    Returns:
        [(part, x, y), ...] for the parts that matched, in part order
    """
    matches = []
    for part in rule.parts:
        pos = find(part.patterns[0], target, stride)
        if pos is None:
            continue
        x, y = pos
        matches.append((part, x, y))
    return matches


def write_outcome(outcome: Pattern, target: Pattern, x: int, y: int) -> int:
    """
    Write the non-wildcard cells of `outcome` into `target` at (x, y).

    Returns:
        number of target cells whose value changed
    """
    region = target.pixels[y:y + outcome.height, x:x + outcome.width]
    O = outcome.pixels
    changed = (O != WILDCARD) & (region != O)
    count = int(np.count_nonzero(changed))
    if count:
        region[changed] = O[changed]
    return count


def apply_rule(rule: Rule, target: Pattern, stride: int, rng: np.random.Generator) -> bool:
    """
    Apply one concrete rule to the target, all parts or nothing.

    Contract:
    1. Every part's patterns[0] must match somewhere (first match in scan
       order); otherwise return False and leave the target untouched.
    2. For each matched part with outcomes, one of patterns[1:] is chosen
       uniformly via rng and its non-wildcard cells are written at the match
       offset. Parts are written in list order; overlapping writes from later
       parts win. Guards (single-pattern parts) write nothing.
    3. Return True only if at least one target cell changed value.

    Args:
        rule: concrete (non-rotating) rule
        target: grid mutated in place
        stride: match stride
        rng: source of outcome choices

    Returns:
        True if the rule made progress
    """
    matches = match_parts(rule, target, stride)
    if len(matches) < len(rule.parts):
        return False

    changed = 0
    for part, x, y in matches:
        if part.is_guard:
            continue
        choice = 1 + int(rng.integers(0, len(part.patterns) - 1))
        changed += write_outcome(part.patterns[choice], target, x, y)
    return changed > 0
