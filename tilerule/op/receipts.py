# tilerule/op/receipts.py
# Run receipts and environment fingerprinting

from __future__ import annotations
import platform
import sys
import json
import numpy as np
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, List, Optional
from .hash import hash_bytes


@dataclass
class EnvRc:
    """
    Environment fingerprint.

    Two runs with equal seeds must produce equal hashes when the
    fingerprints match; differing fingerprints flag an environment change
    rather than an engine bug.
    """
    platform: str
    endian: str
    py_version: str
    numpy_version: str
    build_flags_hash: str


def env_fingerprint() -> EnvRc:
    """Capture environment fingerprint for determinism checking."""
    build_info = {
        "py_version": sys.version,
        "implementation": platform.python_implementation(),
        "version_info": list(sys.version_info),
    }
    flags = hash_bytes(json.dumps(build_info, sort_keys=True).encode())

    return EnvRc(
        platform=platform.platform(),
        endian=sys.byteorder,
        py_version=platform.python_version(),
        numpy_version=np.__version__,
        build_flags_hash=flags,
    )


@dataclass
class GroupRc:
    """
    Per-group application loop receipt.

    per_rule_success[i] counts successes of group.rules[i] (rotated
    variants are counted separately).
    """
    group_id: str
    rule_count: int
    success: int
    failure: int
    hit_limit: bool
    per_rule_success: List[int] = field(default_factory=list)


@dataclass
class ApplyStats:
    """Aggregate result of one apply(...) call."""
    application_count: int = 0
    failed_count: int = 0
    groups_application_count: int = 0
    groups_failed_count: int = 0
    groups_that_hit_limit: List[str] = field(default_factory=list)
    groups: List[GroupRc] = field(default_factory=list)


@dataclass
class ApplyRc:
    """
    Root receipt for one engine session.

    sections: {"stats": {...}, "params": {...}}
    hashes:   BLAKE3 per section plus target_before / target_after
    table_hash: BLAKE3(concat(sorted(key + ':' + hash)))
    """
    env: EnvRc
    seed: Optional[int]
    sections: Dict[str, Any]
    hashes: Dict[str, str]
    table_hash: str


def section_hash(section: Any) -> str:
    """BLAKE3 of the compact, key-sorted JSON form of a section."""
    payload = json.dumps(aggregate(section), sort_keys=True, separators=(",", ":"))
    return hash_bytes(payload.encode())


def table_hash(hashes: Dict[str, str]) -> str:
    joined = "".join(f"{k}:{hashes[k]}" for k in sorted(hashes))
    return hash_bytes(joined.encode())


def aggregate(run: Any) -> Any:
    """
    Convert nested receipts (dataclasses or dicts) to JSON-serializable data.

    Args:
        run: ApplyRc, any receipt dataclass, or dict containing receipts

    Returns:
        plain dict/list/scalar representation
    """
    def to_plain(x: Any) -> Any:
        """Recursively convert dataclasses to dicts."""
        if hasattr(x, "__dataclass_fields__"):
            return {k: to_plain(v) for k, v in asdict(x).items()}
        if isinstance(x, dict):
            return {k: to_plain(v) for k, v in x.items()}
        if isinstance(x, (list, tuple)):
            return [to_plain(v) for v in x]
        return x

    return to_plain(run)


def diff_receipts(a: Dict[str, Any], b: Dict[str, Any], path: str = "") -> List[str]:
    """
    Recursively list differences between two plain receipts.

    Args:
        a, b: aggregated receipts (dicts)
        path: prefix for difference descriptions

    Returns:
        list of "path: A != B" / "path: keys only in X" lines, empty if equal
    """
    diffs = []

    a_keys = set(a.keys())
    b_keys = set(b.keys())
    if a_keys - b_keys:
        diffs.append(f"{path}: keys only in A: {sorted(a_keys - b_keys)}")
    if b_keys - a_keys:
        diffs.append(f"{path}: keys only in B: {sorted(b_keys - a_keys)}")

    for key in sorted(a_keys & b_keys):
        new_path = f"{path}.{key}" if path else key
        val_a, val_b = a[key], b[key]
        if isinstance(val_a, dict) and isinstance(val_b, dict):
            diffs.extend(diff_receipts(val_a, val_b, new_path))
        elif val_a != val_b:
            diffs.append(f"{new_path}: {val_a!r} != {val_b!r}")
    return diffs
