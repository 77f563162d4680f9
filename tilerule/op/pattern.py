# tilerule/op/pattern.py
# Grid/Pattern model: Pattern, Part, Rule, id generation, tagged cloning, validation

from __future__ import annotations
import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Union

from tilerule.config import WILDCARD


class ValidationError(ValueError):
    """Malformed rule or pattern input, raised before any matching begins."""


@dataclass
class Pattern:
    """
    Rectangular grid of palette indices.

    Contract:
    - pixels.shape == (height, width), integer dtype
    - -1 is the wildcard: matches anything in a match template,
      leaves the target cell unchanged in an outcome template
    """
    id: str
    width: int
    height: int
    pixels: np.ndarray

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[int]], id: str = "pat") -> "Pattern":
        """
        Build a Pattern from nested lists.

        Raises:
            ValidationError: if rows is empty or ragged
        """
        if len(rows) == 0 or len(rows[0]) == 0:
            raise ValidationError(f"Pattern {id}: empty pixel grid")
        width = len(rows[0])
        for y, row in enumerate(rows):
            if len(row) != width:
                raise ValidationError(
                    f"Pattern {id}: row {y} has {len(row)} cells, expected {width}"
                )
        return cls(id=id, width=width, height=len(rows), pixels=np.array(rows, dtype=np.int64))

    def to_rows(self) -> List[List[int]]:
        return [[int(v) for v in row] for row in self.pixels]


@dataclass
class Part:
    """patterns[0] is the match template, patterns[1:] are outcome templates."""
    id: str
    patterns: List[Pattern] = field(default_factory=list)

    @property
    def is_guard(self) -> bool:
        return len(self.patterns) == 1


@dataclass
class Rule:
    id: str
    parts: List[Part] = field(default_factory=list)
    rotate: bool = False
    part_of_group: bool = False
    label: Optional[int] = None
    comment: str = ""
    show_comment: bool = False


@dataclass
class RuleGroup:
    """Rules sharing one priority-restart loop. id is the first authored rule's id."""
    id: str
    rules: List[Rule] = field(default_factory=list)


# ============================================================================
# Ids and cloning
# ============================================================================

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    out = []
    while n:
        n, d = divmod(n, 36)
        out.append(_BASE36[d])
    return "".join(reversed(out))


class IdSource:
    """Counter-backed id generator. One instance per engine run keeps ids reproducible."""

    def __init__(self, start: int = 0):
        self.counter = start

    def next(self, prefix: str = "id") -> str:
        new_id = f"{prefix}_{_base36(self.counter)}"
        self.counter += 1
        return new_id


Clonable = Union[Pattern, Part, Rule]


def clone_with_ids(obj: Clonable, ids: IdSource) -> Clonable:
    """
    Deep-copy a Pattern, Part or Rule, giving every nested object a fresh id.

    Dispatch is on the object's type: Pattern → "pat", Part → "part",
    Rule → "rule".

    Raises:
        TypeError: for any other object
    """
    if isinstance(obj, Pattern):
        return Pattern(
            id=ids.next("pat"),
            width=obj.width,
            height=obj.height,
            pixels=obj.pixels.copy(),
        )
    if isinstance(obj, Part):
        return Part(
            id=ids.next("part"),
            patterns=[clone_with_ids(p, ids) for p in obj.patterns],
        )
    if isinstance(obj, Rule):
        return Rule(
            id=ids.next("rule"),
            parts=[clone_with_ids(p, ids) for p in obj.parts],
            rotate=obj.rotate,
            part_of_group=obj.part_of_group,
            label=obj.label,
            comment=obj.comment,
            show_comment=obj.show_comment,
        )
    raise TypeError(f"clone_with_ids: unsupported object {type(obj).__name__}")


def blank_pattern(w: int, h: int, fill: int = 0, ids: Optional[IdSource] = None) -> Pattern:
    """New w×h pattern filled with `fill`."""
    if w <= 0 or h <= 0:
        raise ValidationError(f"blank_pattern: non-positive size ({w}, {h})")
    pat_id = ids.next("pat") if ids is not None else "pat"
    return Pattern(id=pat_id, width=w, height=h, pixels=np.full((h, w), fill, dtype=np.int64))


def normalize_rules(rules: List[Rule]) -> List[Rule]:
    """The first rule never joins a group; returns the same list."""
    if rules:
        rules[0].part_of_group = False
    return rules


# ============================================================================
# Validation
# ============================================================================

def validate_pattern(pattern: Pattern) -> None:
    """
    Check the Pattern shape invariants.

    Raises:
        ValidationError: on non-positive dimensions, a pixel grid that does not
            match (height, width), non-integer cells or values below -1
    """
    if pattern.width <= 0 or pattern.height <= 0:
        raise ValidationError(
            f"Pattern {pattern.id}: non-positive size ({pattern.width}, {pattern.height})"
        )
    G = pattern.pixels
    if not isinstance(G, np.ndarray) or G.ndim != 2:
        raise ValidationError(f"Pattern {pattern.id}: pixels must be a 2-D array")
    if G.shape != (pattern.height, pattern.width):
        raise ValidationError(
            f"Pattern {pattern.id}: pixels shape {G.shape} != (height, width) "
            f"({pattern.height}, {pattern.width})"
        )
    if G.dtype.kind not in "iu":
        raise ValidationError(f"Pattern {pattern.id}: pixels must be integer dtype, got {G.dtype}")
    if G.size and int(G.min()) < WILDCARD:
        raise ValidationError(f"Pattern {pattern.id}: cell value {int(G.min())} below {WILDCARD}")


def validate_rules(rules: Sequence[Rule]) -> None:
    """
    Validate every rule, part and pattern.

    Raises:
        ValidationError: for a rule without parts, a part without patterns,
            any malformed pattern, or an outcome sized unlike its match template
    """
    for rule in rules:
        if not rule.parts:
            raise ValidationError(f"Rule {rule.id}: has no parts")
        for part in rule.parts:
            if not part.patterns:
                raise ValidationError(f"Part {part.id} of rule {rule.id}: has no patterns")
            for pattern in part.patterns:
                validate_pattern(pattern)
            before = part.patterns[0]
            for outcome in part.patterns[1:]:
                if (outcome.width, outcome.height) != (before.width, before.height):
                    raise ValidationError(
                        f"Part {part.id} of rule {rule.id}: outcome {outcome.id} is "
                        f"{outcome.width}x{outcome.height}, match template is "
                        f"{before.width}x{before.height}"
                    )
