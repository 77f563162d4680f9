#!/usr/bin/env python3
"""Project JSON load/save and grid hashing tests"""

import json
import os
import tempfile

import numpy as np
from tilerule.io.project import (
    blank_play_pattern, load_project, project_from_dict, project_to_dict, save_project,
)
from tilerule.io.save import write_jsonl
from tilerule.op.bytes import from_bytes_grid, to_bytes_grid
from tilerule.op.hash import hash_grid
from tilerule.op.pattern import IdSource, ValidationError, blank_pattern
from tilerule.runner import apply


def _project_dict():
    return {
        "tile_size": 1,
        "palette": ["#131916", "#ffffff", "#6cd9b5", "#036965"],
        "editor_obj_id_counter": 12,
        "selected": {"paths": [], "type": None},
        "rules": [
            {
                "id": "rule_a",
                "label": 1,
                "part_of_group": False,
                "rotate": True,
                "show_comment": True,
                "comment": "grow",
                "parts": [
                    {"id": "part_a", "patterns": [
                        {"id": "pat_a0", "width": 2, "height": 1, "pixels": [[1, 0]]},
                        {"id": "pat_a1", "width": 2, "height": 1, "pixels": [[-1, 1]]},
                    ]},
                ],
            },
            {
                "id": "rule_b",
                "label": 2,
                "part_of_group": True,
                "rotate": False,
                "show_comment": False,
                "comment": "",
                "parts": [
                    {"id": "part_b", "patterns": [
                        {"id": "pat_b0", "width": 1, "height": 1, "pixels": [[3]]},
                    ]},
                ],
            },
        ],
        "play_pattern": {"id": "play_pattern", "width": 3, "height": 2, "pixels": [[0, 0, 0], [0, 1, 0]]},
    }


def test_round_trip_is_lossless():
    print("Testing project round trip...")

    d = _project_dict()
    project = project_from_dict(d)

    assert project.tile_size == 1
    assert [r.id for r in project.rules] == ["rule_a", "rule_b"]
    assert project.rules[0].rotate and project.rules[1].part_of_group
    assert project.rules[0].comment == "grow"
    assert project.play_pattern.pixels.shape == (2, 3)
    assert project.extras["editor_obj_id_counter"] == 12

    assert project_to_dict(project) == d, "load → save must be lossless"

    print("  ✓ Round trip is lossless")


def test_declared_size_mismatch():
    print("Testing declared size mismatch...")

    d = _project_dict()
    d["play_pattern"]["width"] = 4
    try:
        project_from_dict(d)
        assert False, "Should raise ValidationError"
    except ValidationError:
        pass

    d = _project_dict()
    d["rules"][0]["parts"][0]["patterns"][0]["pixels"] = [[1, 0], [1]]
    try:
        project_from_dict(d)
        assert False, "Should raise ValidationError"
    except ValidationError:
        pass

    print("  ✓ Size mismatch detected")


def test_first_rule_never_grouped():
    print("Testing first rule normalization...")

    d = _project_dict()
    d["rules"][0]["part_of_group"] = True
    project = project_from_dict(d)
    assert project.rules[0].part_of_group is False

    print("  ✓ First rule is never grouped")


def test_load_run_save():
    """Load from disk, run the engine, save, reload."""
    print("Testing load/run/save...")

    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "project.json")
        with open(path, "w") as f:
            json.dump(_project_dict(), f)

        project = load_project(path)
        stats = apply(project.rules, project.play_pattern, project.tile_size, 100,
                      rng=np.random.default_rng(0))
        assert stats.application_count > 0

        out = os.path.join(tmp, "out", "project.json")
        save_project(out, project)
        again = load_project(out)
        assert np.array_equal(again.play_pattern.pixels, project.play_pattern.pixels)
        assert again.rules[0].rotate is True, "Authored rules keep their rotate flag"

        receipts = os.path.join(tmp, "out", "run.jsonl")
        write_jsonl(receipts, [{"n": 1}])
        write_jsonl(receipts, [{"n": 2}], append=True)
        with open(receipts) as f:
            assert [json.loads(line)["n"] for line in f] == [1, 2]

    print("  ✓ Load/run/save works")


def test_blank_play_pattern():
    p = blank_play_pattern(tile_size=5, tiles=8)
    assert (p.width, p.height) == (40, 40)
    assert not p.pixels.any()

    q = blank_pattern(3, 2, fill=-1, ids=IdSource())
    assert (q.width, q.height) == (3, 2)
    assert q.to_rows() == [[-1, -1, -1], [-1, -1, -1]]
    assert q.id == "pat_0"

    try:
        blank_pattern(0, 2)
        assert False, "Should raise ValidationError"
    except ValidationError:
        pass


def test_grid_hash_includes_shape():
    """Same cells in a 2×3 and a 3×2 grid hash differently."""
    print("Testing grid hashing...")

    a = np.array([[1, 2, 3], [4, 5, -1]], dtype=np.int64)
    b = a.reshape(3, 2)
    assert hash_grid(a) != hash_grid(b)
    assert hash_grid(a) == hash_grid(a.copy())
    assert len(hash_grid(a)) == 64
    assert np.array_equal(from_bytes_grid(to_bytes_grid(a)), a)

    try:
        to_bytes_grid(np.zeros((2, 2)))
        assert False, "Float grids should raise TypeError"
    except TypeError:
        pass

    print("  ✓ Grid hashing works")


def run_tests():
    print("\n" + "="*60)
    print("Project IO Tests")
    print("="*60 + "\n")

    test_round_trip_is_lossless()
    test_declared_size_mismatch()
    test_first_rule_never_grouped()
    test_load_run_save()
    test_blank_play_pattern()
    test_grid_hash_includes_shape()

    print("\n✓ All project IO tests passed\n")


if __name__ == "__main__":
    run_tests()
