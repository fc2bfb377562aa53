"""Depth/point projection helpers for organized depth images."""

from __future__ import annotations

import cv2
import numpy as np

__all__ = [
    "depth_to_points",
    "project_points",
    "compute_radius",
]


def depth_to_points(
    depth: np.ndarray, K: np.ndarray, dtype: np.dtype | type | None = None
) -> np.ndarray:
    """
    Back-project a whole depth image into an organized point field.

    Parameters:
        depth: ``(rows, cols)`` depth image. NaN entries stay NaN in X, Y, Z.
        K:     3x3 intrinsic matrix (skew term honored).
        dtype: output precision, defaults to float64.

    Returns:
        np.ndarray: ``(rows, cols, 3)`` camera-frame XYZ.
    """
    dtype = np.dtype(dtype or np.float64)
    K = np.asarray(K, dtype=np.float64)
    z = np.asarray(depth, dtype=np.float64)
    rows, cols = z.shape
    us, vs = np.meshgrid(np.arange(cols, dtype=np.float64), np.arange(rows, dtype=np.float64))

    # y = (v - cy) / fy ; x = (u - cx - skew * y) / fx
    y = (vs - K[1, 2]) / K[1, 1]
    x = (us - K[0, 2] - K[0, 1] * y) / K[0, 0]
    points = np.stack([x * z, y * z, z], axis=-1)
    return points.astype(dtype, copy=False)


def project_points(points: np.ndarray, K: np.ndarray) -> np.ndarray:
    """
    Project camera-frame points to pixel coordinates with ``cv2.projectPoints``.

    ``points`` may have any leading shape ending in 3; the result keeps the
    leading shape and ends in 2.
    """
    points = np.asarray(points, dtype=np.float64)
    lead = points.shape[:-1]
    flat = np.ascontiguousarray(points.reshape(-1, 1, 3))
    pixels, _ = cv2.projectPoints(
        flat,
        np.zeros(3, dtype=np.float64),
        np.zeros(3, dtype=np.float64),
        np.asarray(K, dtype=np.float64),
        None,
    )
    return pixels.reshape(lead + (2,))


def compute_radius(points: np.ndarray) -> np.ndarray:
    """Distance of every point of a ``(rows, cols, 3)`` field to the origin."""
    points = np.asarray(points)
    return np.sqrt(np.sum(points * points, axis=-1))
