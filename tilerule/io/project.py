# tilerule/io/project.py
# Project JSON reader/writer (the editor's save format, read as-is)

from __future__ import annotations
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List

import numpy as np

from tilerule.config import DEFAULT_PLAY_TILES, DEFAULT_TILE_SIZE
from tilerule.io.save import write_json
from tilerule.op.pattern import Part, Pattern, Rule, ValidationError, normalize_rules

# Keys owned by this module; everything else on the project object is kept verbatim
_KNOWN_KEYS = ("tile_size", "rules", "play_pattern")


@dataclass
class Project:
    """
    Editor project: rules plus the play grid they run against.

    extras holds keys the engine does not use (palette, selection,
    id counter) so that load → save is lossless.
    """
    rules: List[Rule]
    play_pattern: Pattern
    tile_size: int = DEFAULT_TILE_SIZE
    extras: Dict[str, Any] = field(default_factory=dict)


def pattern_from_dict(d: Dict[str, Any]) -> Pattern:
    """
    Expected format: {"id": str, "width": int, "height": int, "pixels": [[int]]}

    Raises:
        ValidationError: if declared width/height disagree with the pixel grid
    """
    pattern = Pattern.from_rows(d["pixels"], id=d["id"])
    declared = (d.get("width", pattern.width), d.get("height", pattern.height))
    if declared != (pattern.width, pattern.height):
        raise ValidationError(
            f"Pattern {pattern.id}: declared size {declared} != pixel grid "
            f"({pattern.width}, {pattern.height})"
        )
    return pattern


def pattern_to_dict(p: Pattern) -> Dict[str, Any]:
    return {"id": p.id, "width": p.width, "height": p.height, "pixels": p.to_rows()}


def rule_from_dict(d: Dict[str, Any]) -> Rule:
    parts = [
        Part(id=pd["id"], patterns=[pattern_from_dict(x) for x in pd.get("patterns", [])])
        for pd in d.get("parts", [])
    ]
    return Rule(
        id=d["id"],
        parts=parts,
        rotate=bool(d.get("rotate", False)),
        part_of_group=bool(d.get("part_of_group", False)),
        label=d.get("label"),
        comment=d.get("comment", ""),
        show_comment=bool(d.get("show_comment", False)),
    )


def rule_to_dict(r: Rule) -> Dict[str, Any]:
    return {
        "id": r.id,
        "label": r.label,
        "part_of_group": r.part_of_group,
        "rotate": r.rotate,
        "show_comment": r.show_comment,
        "comment": r.comment,
        "parts": [
            {"id": part.id, "patterns": [pattern_to_dict(p) for p in part.patterns]}
            for part in r.parts
        ],
    }


def project_from_dict(d: Dict[str, Any]) -> Project:
    if "play_pattern" not in d:
        raise ValidationError("Project has no play_pattern")
    rules = normalize_rules([rule_from_dict(r) for r in d.get("rules", [])])
    return Project(
        rules=rules,
        play_pattern=pattern_from_dict(d["play_pattern"]),
        tile_size=int(d.get("tile_size", DEFAULT_TILE_SIZE)),
        extras={k: v for k, v in d.items() if k not in _KNOWN_KEYS},
    )


def project_to_dict(project: Project) -> Dict[str, Any]:
    out: Dict[str, Any] = dict(project.extras)
    out["tile_size"] = project.tile_size
    out["rules"] = [rule_to_dict(r) for r in project.rules]
    out["play_pattern"] = pattern_to_dict(project.play_pattern)
    return out


def load_project(path: str) -> Project:
    """
    Load a project from JSON file.

    Expected format:
    {
        "tile_size": 5,
        "rules": [{"id": ..., "parts": [{"id": ..., "patterns": [...]}], ...}],
        "play_pattern": {"id": ..., "width": W, "height": H, "pixels": [[...]]}
    }

    Raises:
        json.JSONDecodeError: on malformed JSON
        ValidationError: on structurally invalid projects
    """
    with open(path, "r") as f:
        return project_from_dict(json.load(f))


def blank_play_pattern(tile_size: int = DEFAULT_TILE_SIZE, tiles: int = DEFAULT_PLAY_TILES) -> Pattern:
    """All-zero play grid of tiles×tiles tiles."""
    edge = tile_size * tiles
    return Pattern(id="play_pattern", width=edge, height=edge,
                   pixels=np.zeros((edge, edge), dtype=np.int64))


def save_project(path: str, project: Project) -> None:
    """Write a project back in the editor's indented JSON form."""
    write_json(path, project_to_dict(project), indent=2)
