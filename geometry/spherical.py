"""Viewing-ray angles of every pixel in a spherical parameterization.

Theta is the azimuth from the optical axis (z) towards x, phi the elevation
from z towards y, following the OpenCV camera convention (x right, y down,
z forward). See ``Fast and Accurate Computation of Surface Normals from
Range Images`` by H. Badino, D. Huber, Y. Park and T. Kanade.
"""

from __future__ import annotations

from typing import NamedTuple

import numpy as np

from geometry.depth_projection import compute_radius, depth_to_points

__all__ = ["ThetaPhi", "compute_theta_phi", "direction_field"]


class ThetaPhi(NamedTuple):
    cos_theta: np.ndarray
    sin_theta: np.ndarray
    cos_phi: np.ndarray
    sin_phi: np.ndarray


def compute_theta_phi(
    rows: int, cols: int, K: np.ndarray, dtype: np.dtype | type = np.float64
) -> ThetaPhi:
    """
    Return cos/sin of theta and phi for a ``rows`` x ``cols`` image.

    A synthetic depth image (constant ``K[0, 0]``) is back-projected through
    ``K``; only ray directions matter, so the result depends on the camera
    alone and can be cached per configuration.
    """
    K = np.asarray(K, dtype=np.float64)
    depth = np.full((rows, cols), K[0, 0], dtype=np.float64)
    points = depth_to_points(depth, K)
    r = compute_radius(points)

    theta = np.arctan2(points[..., 0], points[..., 2])
    phi = np.arcsin(points[..., 1] / r)
    return ThetaPhi(
        np.cos(theta).astype(dtype),
        np.sin(theta).astype(dtype),
        np.cos(phi).astype(dtype),
        np.sin(phi).astype(dtype),
    )


def direction_field(angles: ThetaPhi) -> np.ndarray:
    """Unit viewing directions ``(sin t cos p, sin p, cos t cos p)``, ``(rows, cols, 3)``."""
    return np.stack(
        [
            angles.sin_theta * angles.cos_phi,
            angles.sin_phi,
            angles.cos_theta * angles.cos_phi,
        ],
        axis=-1,
    )
