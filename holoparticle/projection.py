"""Camera projection of engine frames into widget coordinates.

Qt-free so it runs without a display.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from .engine import FrameOutput

__all__ = ["ProjectedPoints", "project_frame", "rotation_matrix"]

NEAR_PLANE = 0.1


@dataclass
class ProjectedPoints:
    x: np.ndarray
    y: np.ndarray
    radius: np.ndarray
    rgb: np.ndarray
    alpha: float

    def __len__(self) -> int:
        return len(self.x)


def rotation_matrix(rx: float, ry: float) -> np.ndarray:
    """Object rotation: ``ry`` around the vertical axis, then ``rx`` around X."""

    cx, sx = math.cos(rx), math.sin(rx)
    cy, sy = math.cos(ry), math.sin(ry)
    rot_x = np.array([[1.0, 0.0, 0.0], [0.0, cx, -sx], [0.0, sx, cx]])
    rot_y = np.array([[cy, 0.0, sy], [0.0, 1.0, 0.0], [-sy, 0.0, cy]])
    return rot_x @ rot_y


def project_frame(
    frame: FrameOutput,
    width: int,
    height: int,
    fov: float = 60.0,
    cam_distance: float = 10.0,
) -> ProjectedPoints:
    points = np.asarray(frame.positions, dtype=np.float64).reshape(-1, 3)
    colors = np.asarray(frame.colors, dtype=np.float64).reshape(-1, 3)
    if not len(points) or width <= 0 or height <= 0:
        empty = np.zeros(0)
        return ProjectedPoints(empty, empty, empty, np.zeros((0, 3)), frame.opacity)

    rotated = points @ rotation_matrix(*frame.rotation).T
    depth = cam_distance - rotated[:, 2]
    visible = depth > NEAR_PLANE
    rotated = rotated[visible]
    depth = depth[visible]

    focal = (height / 2.0) / math.tan(math.radians(max(1.0, min(179.0, fov))) / 2.0)
    scale = focal / depth
    sx = width / 2.0 + rotated[:, 0] * scale
    sy = height / 2.0 - rotated[:, 1] * scale
    radius = np.maximum(0.5, frame.point_size * scale * 0.5)
    rgb = np.clip(colors[visible], 0.0, 1.0)
    return ProjectedPoints(sx, sy, radius, rgb, float(frame.opacity))
