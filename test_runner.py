#!/usr/bin/env python3
"""Session orchestration tests: apply(), validation, receipts, determinism"""

import numpy as np
from tilerule.op.hash import hash_grid
from tilerule.op.pattern import Part, Pattern, Rule, ValidationError
from tilerule.op.receipts import aggregate, diff_receipts
from tilerule.runner import apply, check_determinism, run_session


def _part(part_id, *grids):
    return Part(id=part_id, patterns=[Pattern.from_rows(g, id=f"{part_id}_{i}") for i, g in enumerate(grids)])


def _zeros(h, w):
    return Pattern(id="play", width=w, height=h, pixels=np.zeros((h, w), dtype=np.int64))


def test_full_tile_rewrite():
    """8×8 all-wildcard before, 8×8 all-1 after, stride 8: one application fills the grid."""
    print("Testing full tile rewrite...")

    target = _zeros(8, 8)
    before = [[-1] * 8 for _ in range(8)]
    after = [[1] * 8 for _ in range(8)]
    rule = Rule(id="fill", parts=[_part("p", before, after)])

    stats = apply([rule], target, stride=8, limit=100, rng=np.random.default_rng(0))

    assert stats.application_count == 1, f"Expected 1 application, got {stats.application_count}"
    assert stats.failed_count == 1
    assert stats.groups_application_count == 1
    assert stats.groups_failed_count == 0
    assert stats.groups_that_hit_limit == []
    assert (target.pixels == 1).all(), "Whole target should become 1"

    print("  ✓ Full tile rewrite works")


def test_group_stats_and_limit():
    """A ping-pong group hits the limit; other groups still run."""
    print("Testing group stats...")

    target = Pattern.from_rows([[0, 5]], id="play")
    up = Rule(id="up", parts=[_part("u", [[0]], [[1]])])
    down = Rule(id="down", parts=[_part("d", [[1]], [[0]])], part_of_group=True)
    never = Rule(id="never", parts=[_part("n", [[9]], [[8]])])
    five = Rule(id="five", parts=[_part("f", [[5]], [[6]])])

    stats = apply([up, down, never, five], target, stride=1, limit=3, rng=np.random.default_rng(0))

    assert [g.group_id for g in stats.groups] == ["up", "never", "five"]
    assert stats.groups_that_hit_limit == ["up"]
    assert stats.groups_application_count == 2
    assert stats.groups_failed_count == 1
    assert stats.application_count == 3 + 1
    assert stats.failed_count == 1 + 1 + 1
    assert target.to_rows() == [[1, 6]], f"Got {target.to_rows()}"

    print("  ✓ Group stats work")


def test_selection_runs_only_selected():
    print("Testing selection...")

    target = Pattern.from_rows([[0, 0]], id="play")
    a = Rule(id="a", parts=[_part("a", [[0]], [[1]])])
    b = Rule(id="b", parts=[_part("b", [[0]], [[2]])], part_of_group=True)

    stats = apply([a, b], target, 1, 100, selection={"b"}, rng=np.random.default_rng(0))
    assert target.to_rows() == [[2, 2]]
    assert [g.group_id for g in stats.groups] == ["b"]

    target = Pattern.from_rows([[0, 0]], id="play")
    stats = apply([a, b], target, 1, 100, selection=set(), rng=np.random.default_rng(0))
    assert stats.application_count == 0 and stats.groups == []
    assert target.to_rows() == [[0, 0]]

    print("  ✓ Selection works")


def test_rotated_rule_matches_vertical():
    """A horizontal rule with rotate=True rewrites a vertical pair."""
    print("Testing rotated rule...")

    target = _zeros(3, 3)
    target.pixels[0:2, 0] = 1
    rule = Rule(id="pair", parts=[_part("p", [[1, 1]], [[2, 2]])], rotate=True)

    stats = apply([rule], target, 1, 100, rng=np.random.default_rng(0))

    assert stats.application_count == 1
    assert stats.groups[0].rule_count == 4
    assert stats.groups[0].per_rule_success == [0, 1, 0, 0]
    assert target.to_rows() == [[2, 0, 0], [2, 0, 0], [0, 0, 0]], f"Got {target.to_rows()}"

    print("  ✓ Rotated rule works")


def test_validation_errors():
    """Malformed input raises ValidationError before the target is touched."""
    print("Testing validation...")

    good = Rule(id="ok", parts=[_part("p", [[0]], [[1]])])

    def expect_error(rules, target=None, stride=1, limit=10):
        target = target if target is not None else _zeros(2, 2)
        snapshot = target.pixels.copy()
        try:
            apply(rules, target, stride, limit)
            assert False, "Should raise ValidationError"
        except ValidationError:
            pass
        assert np.array_equal(target.pixels, snapshot)

    expect_error([Rule(id="empty", parts=[])])
    expect_error([good, Rule(id="r", parts=[Part(id="nopat", patterns=[])])])
    expect_error([good], stride=0)
    expect_error([good], limit=0)
    expect_error([good], stride=True)

    bad_dims = Pattern(id="bad", width=3, height=1, pixels=np.zeros((1, 2), dtype=np.int64))
    expect_error([Rule(id="r", parts=[Part(id="p", patterns=[bad_dims])])])

    zero = Pattern(id="zero", width=0, height=1, pixels=np.zeros((1, 0), dtype=np.int64))
    expect_error([good], target=zero)

    low = Pattern.from_rows([[-2]], id="low")
    expect_error([Rule(id="r", parts=[Part(id="p", patterns=[low])])])

    floats = Pattern(id="f", width=1, height=1, pixels=np.zeros((1, 1)))
    expect_error([Rule(id="r", parts=[Part(id="p", patterns=[floats])])])

    mismatched = Rule(id="r", parts=[_part("p", [[0]], [[1, 1]])])
    expect_error([mismatched])

    try:
        Pattern.from_rows([[1, 2], [3]])
        assert False, "Ragged rows should raise ValidationError"
    except ValidationError:
        pass

    print("  ✓ Validation works")


def test_run_session_receipt():
    print("Testing session receipt...")

    target = _zeros(4, 4)
    start = hash_grid(target.pixels)
    rule = Rule(id="r", parts=[_part("p", [[0]], [[1]], [[2]])])

    stats, rc = run_session([rule], target, 1, 100, seed=3)

    assert stats.application_count == 16
    assert rc.seed == 3
    assert rc.hashes["target_before"] == start
    assert rc.hashes["target_after"] == hash_grid(target.pixels)
    assert set(rc.hashes) == {"params", "stats", "target_before", "target_after"}

    plain = aggregate(rc)
    assert plain["sections"]["stats"]["application_count"] == 16
    assert plain["sections"]["params"]["stride"] == 1
    assert plain["env"]["endian"] in ("little", "big")

    print("  ✓ Session receipt works")


def test_same_seed_same_grid():
    print("Testing seeded determinism...")

    rule = Rule(id="r", parts=[_part("p", [[0]], [[1]], [[2]], [[3]])])

    t1, t2 = _zeros(6, 6), _zeros(6, 6)
    _, rc1 = run_session([rule], t1, 1, 1000, seed=42)
    _, rc2 = run_session([rule], t2, 1, 1000, seed=42)
    assert np.array_equal(t1.pixels, t2.pixels)
    assert rc1.table_hash == rc2.table_hash

    t3 = _zeros(6, 6)
    stats, rc3 = check_determinism([rule], t3, 1, 1000, seed=42)
    assert np.array_equal(t3.pixels, t1.pixels)
    assert rc3.hashes["target_after"] == rc1.hashes["target_after"]
    assert stats.application_count == 36

    plain1 = {k: v for k, v in aggregate(rc1).items() if k != "env"}
    plain2 = {k: v for k, v in aggregate(rc2).items() if k != "env"}
    assert diff_receipts(plain1, plain2) == []

    _, rc4 = run_session([rule], _zeros(6, 6), 1, 1000, seed=7)
    plain4 = {k: v for k, v in aggregate(rc4).items() if k != "env"}
    diffs = diff_receipts(plain1, plain4)
    assert any(d.startswith("seed:") for d in diffs), f"Got {diffs}"

    print("  ✓ Seeded determinism works")


def run_tests():
    print("\n" + "="*60)
    print("Runner Tests")
    print("="*60 + "\n")

    test_full_tile_rewrite()
    test_group_stats_and_limit()
    test_selection_runs_only_selected()
    test_rotated_rule_matches_vertical()
    test_validation_errors()
    test_run_session_receipt()
    test_same_seed_same_grid()

    print("\n✓ All runner tests passed\n")


if __name__ == "__main__":
    run_tests()
