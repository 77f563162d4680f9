# tilerule/op/bytes.py
# Canonical grid encoding for hashing: LEB128 dims + int32 little-endian cells

from __future__ import annotations
import numpy as np


def varu(n: int) -> bytes:
    """
    Encode unsigned integer as LEB128 varint.

    Raises:
        ValueError: if n < 0
    """
    if n < 0:
        raise ValueError("varu expects unsigned (n >= 0)")

    out = bytearray()
    while True:
        byte = n & 0x7F
        n >>= 7
        if n:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            break
    return bytes(out)


def unvaru(b: bytes) -> tuple[int, bytes]:
    """
    Decode LEB128 varint from bytes.

    Returns:
        (value, remaining_bytes)
    """
    result = 0
    shift = 0
    i = 0

    while i < len(b):
        byte = b[i]
        i += 1
        result |= (byte & 0x7F) << shift
        if not (byte & 0x80):
            return result, b[i:]
        shift += 7

    raise ValueError("Incomplete LEB128 varint")


def to_bytes_grid(G: np.ndarray) -> bytes:
    """
    Encode H×W grid as <H><W> varints followed by int32_le row-major cells.

    The dims prefix keeps a 2×3 grid and a 3×2 grid with the same cells
    distinct. The wildcard -1 encodes as 0xFFFFFFFF.

    Raises:
        TypeError: if G is not integer dtype
    """
    if G.dtype.kind not in "iu":
        raise TypeError("Grid must be integer dtype")
    H, W = G.shape
    g32 = np.ascontiguousarray(G, dtype=np.dtype("<i4"))
    return varu(H) + varu(W) + g32.tobytes(order="C")


def from_bytes_grid(b: bytes) -> np.ndarray:
    """Inverse of to_bytes_grid."""
    H, rest = unvaru(b)
    W, rest = unvaru(rest)
    expected_len = H * W * 4
    if len(rest) != expected_len:
        raise ValueError(f"Expected {expected_len} bytes for {(H, W)}, got {len(rest)}")
    return np.frombuffer(rest, dtype="<i4").reshape(H, W).astype(np.int64)
