# tilerule/op/expand.py
# Rule Expander: authored rules -> ordered rule groups of concrete rules

from __future__ import annotations
from typing import AbstractSet, List, Optional, Sequence

from tilerule.config import ROTATION_VARIANTS
from .pattern import IdSource, Rule, RuleGroup, clone_with_ids
from .transforms import rotate_rule


def expand_rotations(rule: Rule, ids: IdSource) -> List[Rule]:
    """
    Materialize the concrete variants of one authored rule.

    Contract:
    - rotate=False: [rule] unchanged
    - rotate=True: [clone0, clone1, clone2, clone3] where clone0 has the
      authored geometry and clone k is clone k-1 turned 90° clockwise.
      All clones get fresh ids and rotate=False.
    """
    if not rule.rotate:
        return [rule]

    variants = []
    current = clone_with_ids(rule, ids)
    current.rotate = False
    variants.append(current)
    for _ in range(ROTATION_VARIANTS - 1):
        current = rotate_rule(clone_with_ids(current, ids), 1)
        variants.append(current)
    return variants


def build_groups(
    rules: Sequence[Rule],
    selected: Optional[AbstractSet[str]] = None,
    ids: Optional[IdSource] = None,
) -> List[RuleGroup]:
    """
    Turn the authored rule list into ordered rule groups.

    Contract:
    - selected given: each selected rule is its own group (part_of_group is
      ignored); an empty selection yields no groups
    - selected None: a rule with part_of_group=True joins the open group,
      any other rule (and always the first one) opens a new group named
      after its id
    - rotating rules are expanded in place into their 4 variants

    Args:
        rules: authored rules in priority order
        selected: optional set of rule ids to run
        ids: id source for rotated clones

    Returns:
        list of RuleGroup in authoring order
    """
    if ids is None:
        ids = IdSource()

    groups: List[RuleGroup] = []

    if selected is not None:
        for rule in rules:
            if rule.id in selected:
                groups.append(RuleGroup(id=rule.id, rules=expand_rotations(rule, ids)))
        return groups

    open_group: Optional[RuleGroup] = None
    for rule in rules:
        if open_group is None or not rule.part_of_group:
            open_group = RuleGroup(id=rule.id)
            groups.append(open_group)
        open_group.rules.extend(expand_rotations(rule, ids))
    return groups
