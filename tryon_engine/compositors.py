"""Per-pixel compositors operating in place on an RGBA ``uint8`` buffer.

Rasterisation rules shared by every compositor:

* a box covers each pixel whose unit square overlaps it, i.e. columns
  ``floor(x - margin)`` to ``ceil(x + width + margin) - 1`` (rows likewise),
  clamped to the image;
* a polygon covers each pixel whose center ``(px + 0.5, py + 0.5)`` is inside
  it under the even-odd rule.

Channel arithmetic is done in float32, rounded with ``rint`` and clamped to
``[0, 255]`` before it is stored. The alpha channel is never written.
"""
from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple

import numpy as np

from .models import BoundingBox, Point2D

Color = Tuple[int, int, int]
Bounds = Tuple[int, int, int, int]


def _store(values: np.ndarray) -> np.ndarray:
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


def _luminance(rgb: np.ndarray) -> np.ndarray:
    return rgb.astype(np.float32).sum(axis=-1) / 3.0


def box_bounds(
    box: BoundingBox,
    margin: float,
    shape: Tuple[int, int],
) -> Optional[Bounds]:
    """Clamped ``(x0, y0, x1, y1)`` pixel bounds, or None when nothing is covered."""
    if box.is_empty:
        return None
    h, w = shape
    x0 = max(int(math.floor(box.x - margin)), 0)
    y0 = max(int(math.floor(box.y - margin)), 0)
    x1 = min(int(math.ceil(box.x + box.width + margin)), w)
    y1 = min(int(math.ceil(box.y + box.height + margin)), h)
    if x1 <= x0 or y1 <= y0:
        return None
    return x0, y0, x1, y1


def polygon_mask(points: Sequence[Point2D], shape: Tuple[int, int]) -> np.ndarray:
    """Even-odd scanline fill sampled at pixel centers."""
    h, w = shape
    mask = np.zeros((h, w), dtype=bool)
    if len(points) < 3:
        return mask
    xs = np.array([pt.x for pt in points], dtype=np.float64)
    ys = np.array([pt.y for pt in points], dtype=np.float64)
    xs_next = np.roll(xs, -1)
    ys_next = np.roll(ys, -1)

    row0 = max(int(math.floor(ys.min())), 0)
    row1 = min(int(math.ceil(ys.max())), h)
    for row in range(row0, row1):
        yc = row + 0.5
        # half-open test so a vertex on the scanline is counted once
        crossing = (ys <= yc) != (ys_next <= yc)
        if not np.any(crossing):
            continue
        x0, y0 = xs[crossing], ys[crossing]
        x1, y1 = xs_next[crossing], ys_next[crossing]
        hits = np.sort(x0 + (yc - y0) * (x1 - x0) / (y1 - y0))
        for left, right in zip(hits[0::2], hits[1::2]):
            c0 = max(int(math.ceil(left - 0.5)), 0)
            c1 = min(int(math.ceil(right - 0.5)), w)
            if c1 > c0:
                mask[row, c0:c1] = True
    return mask


def blend_color(
    region: np.ndarray,
    mask: np.ndarray,
    color: Color,
    alpha: float = 1.0,
) -> None:
    """Alpha-blend ``color`` over the masked pixels of ``region``."""
    alpha = float(np.clip(alpha, 0.0, 1.0))
    if alpha <= 0 or not np.any(mask):
        return
    rgb = region[..., :3]
    if alpha >= 1.0:
        rgb[mask] = color
        return
    base = rgb[mask].astype(np.float32)
    overlay = np.array(color, dtype=np.float32)
    rgb[mask] = _store(base * (1.0 - alpha) + overlay * alpha)


def fill_box(
    buffer: np.ndarray,
    box: BoundingBox,
    color: Color,
    padding: float = 0,
    opacity: float = 1.0,
) -> bool:
    bounds = box_bounds(box, padding, buffer.shape[:2])
    if bounds is None:
        return False
    x0, y0, x1, y1 = bounds
    region = buffer[y0:y1, x0:x1]
    blend_color(region, np.ones(region.shape[:2], dtype=bool), color, opacity)
    return True


def fill_polygon(
    buffer: np.ndarray,
    points: Sequence[Point2D],
    color: Color,
    opacity: float = 1.0,
) -> bool:
    mask = polygon_mask(points, buffer.shape[:2])
    if not np.any(mask):
        return False
    blend_color(buffer, mask, color, opacity)
    return True


def darken_box(
    buffer: np.ndarray,
    box: BoundingBox,
    margin: float,
    factor: float,
) -> bool:
    """Multiply R, G, B by ``factor``; keeps the underlying shading."""
    bounds = box_bounds(box, margin, buffer.shape[:2])
    if bounds is None:
        return False
    x0, y0, x1, y1 = bounds
    rgb = buffer[y0:y1, x0:x1, :3]
    rgb[...] = _store(rgb.astype(np.float32) * max(0.0, factor))
    return True


def recolor_luminance_band(
    buffer: np.ndarray,
    box: BoundingBox,
    color: Color,
    low: float,
    high: float,
) -> bool:
    """Overwrite pixels whose mean brightness lies strictly within (low, high)."""
    bounds = box_bounds(box, 0, buffer.shape[:2])
    if bounds is None:
        return False
    x0, y0, x1, y1 = bounds
    region = buffer[y0:y1, x0:x1]
    luminance = _luminance(region[..., :3])
    blend_color(region, (luminance > low) & (luminance < high), color)
    return True


def add_curl_texture(
    buffer: np.ndarray,
    box: BoundingBox,
    frequency: float,
    amplitude: float,
) -> bool:
    """Additive ``sin(x*f) * cos(y*f) * A`` texture in image coordinates.

    Not idempotent: a second pass adds the texture again.
    """
    bounds = box_bounds(box, 0, buffer.shape[:2])
    if bounds is None:
        return False
    x0, y0, x1, y1 = bounds
    grid_x, grid_y = np.meshgrid(
        np.arange(x0, x1, dtype=np.float32),
        np.arange(y0, y1, dtype=np.float32),
    )
    delta = np.sin(grid_x * frequency) * np.cos(grid_y * frequency) * amplitude
    rgb = buffer[y0:y1, x0:x1, :3]
    rgb[...] = _store(rgb.astype(np.float32) + delta[..., None])
    return True


def brighten(
    buffer: np.ndarray,
    box: BoundingBox,
    factor: float,
    ceiling: Optional[float] = None,
) -> bool:
    """Multiplicative brighten, skipping pixels already at or above ``ceiling``."""
    bounds = box_bounds(box, 0, buffer.shape[:2])
    if bounds is None:
        return False
    x0, y0, x1, y1 = bounds
    rgb = buffer[y0:y1, x0:x1, :3]
    brightened = _store(rgb.astype(np.float32) * factor)
    if ceiling is None:
        rgb[...] = brightened
    else:
        gate = _luminance(rgb) < ceiling
        rgb[gate] = brightened[gate]
    return True
