# tilerule/op/transforms.py
# Geometric pattern transforms: rotate, resize, shift, flip
# All transforms are pure: they return a new Pattern and never touch the input

from __future__ import annotations
import numpy as np

from .pattern import Pattern, Rule, ValidationError


def _with_pixels(pattern: Pattern, G: np.ndarray) -> Pattern:
    H, W = G.shape
    return Pattern(id=pattern.id, width=W, height=H, pixels=G.copy(order="C"))


def rotate(pattern: Pattern, times: int = 1) -> Pattern:
    """
    Rotate a pattern 90° clockwise `times` times.

    Note: numpy's rot90(k=1) is 90° counterclockwise, so clockwise turns
    use a negative k. Width and height swap on odd turns.

    Args:
        pattern: input pattern
        times: number of clockwise quarter turns (negative = counterclockwise)

    Returns:
        Rotated pattern (same id)
    """
    k = times % 4
    if k == 0:
        return _with_pixels(pattern, pattern.pixels)
    return _with_pixels(pattern, np.rot90(pattern.pixels, k=-k))


def resize(pattern: Pattern, new_w: int, new_h: int, fill: int = 0) -> Pattern:
    """
    Crop or pad a pattern to (new_w, new_h), anchored at the top-left.

    Cells outside the old grid are set to `fill`; content is not rescaled.

    Raises:
        ValidationError: if new_w or new_h is not positive
    """
    if new_w <= 0 or new_h <= 0:
        raise ValidationError(f"resize: non-positive size ({new_w}, {new_h})")
    G = np.full((new_h, new_w), fill, dtype=pattern.pixels.dtype)
    h = min(new_h, pattern.height)
    w = min(new_w, pattern.width)
    G[:h, :w] = pattern.pixels[:h, :w]
    return _with_pixels(pattern, G)


def shift(pattern: Pattern, dx: int, dy: int) -> Pattern:
    """
    Toroidal translation: cell (x, y) moves to ((x+dx) mod w, (y+dy) mod h).

    Vertical pass first, then horizontal pass.
    """
    G = pattern.pixels
    if dy != 0:
        G = np.roll(G, dy, axis=0)
    if dx != 0:
        G = np.roll(G, dx, axis=1)
    return _with_pixels(pattern, G)


def flip(pattern: Pattern, horizontal: bool = True) -> Pattern:
    """Horizontal flip reverses each row; vertical flip reverses row order."""
    if horizontal:
        G = np.fliplr(pattern.pixels)
    else:
        G = np.flipud(pattern.pixels)
    return _with_pixels(pattern, G)


def rotate_rule(rule: Rule, times: int = 1) -> Rule:
    """Rotate every pattern of every part of `rule` in place; returns the rule."""
    for part in rule.parts:
        part.patterns = [rotate(p, times) for p in part.patterns]
    return rule
