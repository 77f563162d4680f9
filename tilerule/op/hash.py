# tilerule/op/hash.py
# BLAKE3 hashing helpers

from __future__ import annotations
from blake3 import blake3
import numpy as np
from .bytes import to_bytes_grid


def hash_bytes(b: bytes) -> str:
    """
    Hash bytes with BLAKE3, return hex digest (64 hex chars).
    """
    return blake3(b).hexdigest()


def hash_grid(G: np.ndarray) -> str:
    """
    Hash a grid via its canonical encoding (see bytes.to_bytes_grid).

    Args:
        G: numpy array of integer cells

    Returns:
        str: BLAKE3 hex digest
    """
    return hash_bytes(to_bytes_grid(G))
