"""
Immutable colored point cloud used as the value type of the pipeline.

Positions are stored in meters, colors as RGB in [0, 255]. Both arrays are
read-only: preprocessing always produces a new cloud instead of editing one
in place, so a cloud can be shared between threads and candidates freely.

The byte form (to_bytes / from_bytes) is a packed little-endian record per
point (x, y, z as float64 and r, g, b as uint8). It is an immutable `bytes`
object, so copies are explicit.
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np


POINT_DTYPE = np.dtype([
    ('x', '<f8'), ('y', '<f8'), ('z', '<f8'),
    ('r', 'u1'), ('g', 'u1'), ('b', 'u1'),
])


def _readonly(array: np.ndarray) -> np.ndarray:
    array = np.array(array, dtype=np.float64, copy=True)
    array.setflags(write=False)
    return array


@dataclass(frozen=True, eq=False)
class PointCloud:
    """
    Unordered collection of colored 3-D points in a reference frame.

    Attributes:
        points: (N, 3) positions
        colors: (N, 3) RGB colors in [0, 255]
        frame_id: Reference frame identifier
    """
    points: np.ndarray
    colors: np.ndarray
    frame_id: str = ""

    def __post_init__(self):
        points = np.asarray(self.points, dtype=np.float64).reshape(-1, 3) if np.size(self.points) else np.zeros((0, 3))
        if self.colors is None or np.size(self.colors) == 0:
            colors = np.zeros_like(points)
        else:
            colors = np.asarray(self.colors, dtype=np.float64).reshape(-1, 3)

        if colors.shape != points.shape:
            raise ValueError(f"colors shape {colors.shape} does not match points shape {points.shape}")
        if not np.all(np.isfinite(points)):
            raise ValueError("point positions must be finite")

        object.__setattr__(self, 'points', _readonly(points))
        object.__setattr__(self, 'colors', _readonly(colors))

    @classmethod
    def empty(cls, frame_id: str = "") -> 'PointCloud':
        return cls(np.zeros((0, 3)), np.zeros((0, 3)), frame_id)

    def __len__(self) -> int:
        return self.points.shape[0]

    @property
    def is_empty(self) -> bool:
        return len(self) == 0

    def centroid(self) -> np.ndarray:
        """Mean position (undefined for an empty cloud)."""
        if self.is_empty:
            raise ValueError("centroid of an empty point cloud")
        return self.points.mean(axis=0)

    def average_color(self) -> Tuple[float, float, float]:
        """Arithmetic mean of each color channel."""
        if self.is_empty:
            raise ValueError("average color of an empty point cloud")
        r, g, b = self.colors.mean(axis=0)
        return float(r), float(g), float(b)

    def translated(self, offset) -> 'PointCloud':
        """New cloud with every point shifted by offset."""
        offset = np.asarray(offset, dtype=np.float64).reshape(3)
        return PointCloud(self.points + offset, self.colors, self.frame_id)

    def transformed(self, T) -> 'PointCloud':
        """New cloud with a 4x4 homogeneous transform applied to every point."""
        T = np.asarray(T, dtype=np.float64)
        if T.shape != (4, 4):
            raise ValueError(f"expected a 4x4 transform, got {T.shape}")
        points = self.points @ T[:3, :3].T + T[:3, 3]
        return PointCloud(points, self.colors, self.frame_id)

    def select(self, indices) -> 'PointCloud':
        """New cloud made of the points at the given indices (or boolean mask)."""
        indices = np.asarray(indices)
        return PointCloud(self.points[indices], self.colors[indices], self.frame_id)

    def with_frame(self, frame_id: str) -> 'PointCloud':
        return PointCloud(self.points, self.colors, frame_id)

    # =========================================================================
    # BYTE FORM
    # =========================================================================

    def to_bytes(self) -> bytes:
        records = np.zeros(len(self), dtype=POINT_DTYPE)
        records['x'], records['y'], records['z'] = self.points.T
        rgb = np.clip(np.rint(self.colors), 0, 255).astype(np.uint8)
        records['r'], records['g'], records['b'] = rgb.T
        return records.tobytes()

    @classmethod
    def from_bytes(cls, data: bytes, frame_id: str = "") -> 'PointCloud':
        if len(data) % POINT_DTYPE.itemsize != 0:
            raise ValueError(
                f"buffer of {len(data)} bytes is not a multiple of the point size ({POINT_DTYPE.itemsize})")
        records = np.frombuffer(data, dtype=POINT_DTYPE)
        points = np.stack([records['x'], records['y'], records['z']], axis=1)
        colors = np.stack([records['r'], records['g'], records['b']], axis=1).astype(np.float64)
        return cls(points, colors, frame_id)
