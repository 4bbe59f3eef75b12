"""Turn freehand 2D strokes into a fixed-size custom point cloud.

Strokes are walked at a uniform arc-length step so the particles spread
evenly along the drawing regardless of how fast the pointer moved.
"""

from __future__ import annotations

import math
from typing import List, Mapping, Optional, Sequence, Tuple

import numpy as np

__all__ = ["fit_to_count", "resample", "resample_from_payload", "parse_strokes"]

Stroke = List[Tuple[float, float]]

DEPTH_JITTER = 0.5
SCALE_DIVISOR = 5.0


def _parse_point(entry: object) -> Optional[Tuple[float, float]]:
    if isinstance(entry, Mapping):
        raw = (entry.get("x"), entry.get("y"))
    elif isinstance(entry, (list, tuple)) and len(entry) >= 2:
        raw = (entry[0], entry[1])
    else:
        return None
    try:
        x = float(raw[0])  # type: ignore[arg-type]
        y = float(raw[1])  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(x) and math.isfinite(y)):
        return None
    return (x, y)


def parse_strokes(strokes: object) -> List[Stroke]:
    """Normalise stroke input to lists of ``(x, y)`` float tuples."""

    if not isinstance(strokes, Sequence) or isinstance(strokes, (str, bytes)):
        return []
    out: List[Stroke] = []
    for stroke in strokes:
        if not isinstance(stroke, Sequence) or isinstance(stroke, (str, bytes)):
            continue
        points = [p for p in (_parse_point(entry) for entry in stroke) if p is not None]
        out.append(points)
    return out


def _stroke_length(stroke: Stroke) -> float:
    total = 0.0
    for (x0, y0), (x1, y1) in zip(stroke, stroke[1:]):
        total += math.hypot(x1 - x0, y1 - y0)
    return total


def _walk(stroke: Stroke, length: float, budget: int) -> List[Tuple[float, float]]:
    """Place ``budget`` samples at a uniform step along ``stroke``."""

    step = length / budget
    samples: List[Tuple[float, float]] = []
    walked = 0.0
    seg = 0
    for i in range(budget):
        target = i * step
        while seg < len(stroke) - 1:
            (x0, y0), (x1, y1) = stroke[seg], stroke[seg + 1]
            seg_len = math.hypot(x1 - x0, y1 - y0)
            if walked + seg_len >= target:
                t = (target - walked) / seg_len if seg_len > 0.0 else 0.0
                samples.append((x0 + (x1 - x0) * t, y0 + (y1 - y0) * t))
                break
            walked += seg_len
            seg += 1
    return samples


def resample(
    strokes: object,
    target_count: int,
    canvas_size: Tuple[float, float],
    rng: Optional[np.random.Generator] = None,
) -> Optional[np.ndarray]:
    """Resample ``strokes`` into a flat float32 cloud of ``3 * target_count`` values.

    Returns ``None`` for degenerate drawings (no strokes, fewer than two
    points, zero total length) so the caller can keep its previous shape.
    """

    target_count = int(target_count)
    if target_count <= 0:
        return None
    width, height = float(canvas_size[0]), float(canvas_size[1])
    if not (width > 0.0 and height > 0.0):
        return None
    paths = parse_strokes(strokes)
    if sum(len(path) for path in paths) < 2:
        return None
    lengths = [_stroke_length(path) for path in paths]
    total = sum(lengths)
    if total <= 0.0:
        return None
    rng = rng if rng is not None else np.random.default_rng()

    cx = width / 2.0
    cy = height / 2.0
    scale = min(width, height) / SCALE_DIVISOR

    positions = np.zeros((target_count, 3), dtype=np.float32)
    p_idx = 0
    for path, length in zip(paths, lengths):
        if len(path) < 2 or length <= 0.0:
            continue
        budget = int(round(length / total * target_count))
        budget = min(budget, target_count - p_idx)
        if budget <= 0:
            continue
        samples = _walk(path, length, budget)
        if not samples:
            continue
        block = np.asarray(samples, dtype=np.float64)
        n = len(block)
        positions[p_idx:p_idx + n, 0] = (block[:, 0] - cx) / scale
        positions[p_idx:p_idx + n, 1] = -(block[:, 1] - cy) / scale
        positions[p_idx:p_idx + n, 2] = (rng.random(n) - 0.5) * DEPTH_JITTER
        p_idx += n

    if p_idx == 0:
        return None
    if p_idx < target_count:
        # rounding left gaps: duplicate already placed particles
        source = rng.integers(0, p_idx, size=target_count - p_idx)
        positions[p_idx:] = positions[source]
    return positions.reshape(-1)


def resample_from_payload(payload: Mapping[str, object], target_count: int,
                          rng: Optional[np.random.Generator] = None) -> Optional[np.ndarray]:
    """Accept the drawing canvas payload ``{strokes, canvasWidth, canvasHeight}``."""

    if not isinstance(payload, Mapping):
        return None
    try:
        width = float(payload.get("canvasWidth", 0) or 0)  # type: ignore[arg-type]
        height = float(payload.get("canvasHeight", 0) or 0)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return resample(payload.get("strokes"), target_count, (width, height), rng=rng)


def fit_to_count(points: np.ndarray, count: int, rng: Optional[np.random.Generator] = None) -> Optional[np.ndarray]:
    """Return ``points`` resized to ``count`` particles by random index selection."""

    flat = np.asarray(points, dtype=np.float32).reshape(-1)
    if flat.size < 3 or flat.size % 3 != 0:
        return None
    if flat.size == count * 3:
        return flat.copy()
    rng = rng if rng is not None else np.random.default_rng()
    cloud = flat.reshape(-1, 3)
    picks = rng.integers(0, len(cloud), size=count)
    return np.ascontiguousarray(cloud[picks]).reshape(-1)
