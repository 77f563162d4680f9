# tilerule/op/matcher.py
# Positional search of a sub-pattern inside a target grid, wildcards on either side

from __future__ import annotations
import numpy as np
from numpy.lib.stride_tricks import sliding_window_view
from typing import Optional, Tuple

from .pattern import Pattern


def is_match(template: Pattern, target: Pattern, x: int, y: int) -> bool:
    """
    Check whether `template` matches `target` with its top-left at (x, y).

    Contract:
    A cell mismatches only when both cells are non-wildcard (>= 0) and differ.
    A -1 on either side matches anything.

    Args:
        template: sub-pattern to test
        target: grid searched
        x, y: top-left offset of the window in target

    Returns:
        True if every template cell matches
    """
    T = template.pixels
    window = target.pixels[y:y + template.height, x:x + template.width]
    if window.shape != T.shape:
        return False
    mismatch = (T >= 0) & (window >= 0) & (T != window)
    return not bool(mismatch.any())


def find(template: Pattern, target: Pattern, stride: int) -> Optional[Tuple[int, int]]:
    """
    Find the first offset where `template` matches `target`.

    Contract:
    Offsets are visited row-major, y outer and x inner, both in steps of
    `stride` starting at 0. The first matching offset wins, so ties resolve
    to the smallest (y, x).

    Args:
        template: sub-pattern (match template)
        target: grid searched
        stride: step between candidate offsets (> 0)

    Returns:
        (x, y) of the first match, or None if no offset matches
    """
    h, w = template.height, template.width
    if h > target.height or w > target.width:
        return None

    # windows[iy, ix] is the h×w view at (ix*stride, iy*stride)
    windows = sliding_window_view(target.pixels, (h, w))[::stride, ::stride]
    T = template.pixels
    mismatch = (T >= 0) & (windows >= 0) & (windows != T)
    ok = ~mismatch.any(axis=(2, 3))

    hits = np.argwhere(ok)
    if hits.size == 0:
        return None
    iy, ix = hits[0]
    return int(ix) * stride, int(iy) * stride
