#!/usr/bin/env python3
# scripts/check_receipts.py
# Receipt comparison tool: diff two run_rules.py receipt logs

from __future__ import annotations
import json
import sys
from pathlib import Path

repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root))

from tilerule.op.receipts import diff_receipts


def load_jsonl(path: str) -> list[dict]:
    with open(path) as f:
        return [json.loads(line) for line in f if line.strip()]


def main():
    """
    Compare two receipt JSONL files record by record.

    Environment differences are reported as NONDETERMINISTIC_ENV warnings;
    any other difference is RECEIPTS_DIFFER.

    Usage:
        python scripts/check_receipts.py <file1.jsonl> <file2.jsonl>

    Exit codes:
        0: receipts match
        1: receipts differ
    """
    if len(sys.argv) != 3:
        print("Usage: python scripts/check_receipts.py <file1.jsonl> <file2.jsonl>")
        sys.exit(1)

    file_a, file_b = sys.argv[1], sys.argv[2]

    print(f"Comparing receipts:")
    print(f"  A: {file_a}")
    print(f"  B: {file_b}")

    records_a = load_jsonl(file_a)
    records_b = load_jsonl(file_b)

    if len(records_a) != len(records_b):
        print(f"✗ RECEIPTS_DIFFER: record count mismatch ({len(records_a)} vs {len(records_b)})")
        sys.exit(1)

    all_match = True
    for i, (rec_a, rec_b) in enumerate(zip(records_a, records_b)):
        env_diffs = diff_receipts(rec_a.get("env", {}), rec_b.get("env", {}), f"record[{i}].env")
        if env_diffs:
            print(f"\n⚠️  NONDETERMINISTIC_ENV in record {i}:")
            for diff in env_diffs:
                print(f"  {diff}")

        body_a = {k: v for k, v in rec_a.items() if k != "env"}
        body_b = {k: v for k, v in rec_b.items() if k != "env"}
        diffs = diff_receipts(body_a, body_b, f"record[{i}]")
        if diffs:
            all_match = False
            print(f"\n✗ Differences in record {i}:")
            for diff in diffs[:10]:
                print(f"  {diff}")
            if len(diffs) > 10:
                print(f"  ... and {len(diffs) - 10} more differences")

    if all_match:
        print(f"✓ RECEIPTS_MATCH ({len(records_a)} records)")
        return

    print("\n✗ RECEIPTS_DIFFER")
    sys.exit(1)


if __name__ == "__main__":
    main()
