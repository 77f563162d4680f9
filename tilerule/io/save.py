# tilerule/io/save.py
# JSON writers for projects and receipts

from __future__ import annotations
import json
import os
from typing import Any


def _ensure_parent(path: str) -> None:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)


def write_json(path: str, obj: Any, indent: int | None = None) -> None:
    """
    Write object as JSON to file.

    Creates parent directories if needed. Compact separators unless an
    indent is given (projects are saved indented, like the editor does).
    """
    _ensure_parent(path)
    with open(path, "w") as f:
        if indent is None:
            json.dump(obj, f, separators=(",", ":"))
        else:
            json.dump(obj, f, indent=indent)


def write_jsonl(path: str, records: list[Any], append: bool = False) -> None:
    """
    Write list of objects as JSONL (one JSON object per line).

    Used for receipts output.
    """
    _ensure_parent(path)
    with open(path, "a" if append else "w") as f:
        for record in records:
            f.write(json.dumps(record, separators=(",", ":")) + "\n")
