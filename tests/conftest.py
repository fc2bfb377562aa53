import sys, os
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from utils.settings import INTRINSICS_DEPTH_MATRIX


def plane_points(rows, cols, K, normal, distance, dtype=np.float64):
    """Organized points of the plane ``normal . P = distance`` seen through ``K``."""
    K = np.asarray(K, dtype=np.float64)
    normal = np.asarray(normal, dtype=np.float64)
    normal = normal / np.linalg.norm(normal)
    vs, us = np.mgrid[0:rows, 0:cols].astype(np.float64)
    y = (vs - K[1, 2]) / K[1, 1]
    x = (us - K[0, 2] - K[0, 1] * y) / K[0, 0]
    rays = np.stack([x, y, np.ones_like(x)], axis=-1)
    z = distance / (rays @ normal)
    return (rays * z[..., None]).astype(dtype), normal


def rotated_normal(rx, ry, rz):
    """Camera-facing unit normal (0, 0, -1) rotated by xyz Euler angles in degrees."""
    R = Rotation.from_euler("xyz", [rx, ry, rz], degrees=True).as_matrix()
    return R @ np.array([0.0, 0.0, -1.0])


def angular_error_deg(normals, expected):
    cos = np.clip(np.sum(normals * expected, axis=-1), -1.0, 1.0)
    return np.degrees(np.arccos(cos))


@pytest.fixture
def K():
    return INTRINSICS_DEPTH_MATRIX.copy()


@pytest.fixture
def small_K():
    return np.array([[100.0, 0.0, 40.0], [0.0, 100.0, 30.0], [0.0, 0.0, 1.0]])


@pytest.fixture
def tilted_normal():
    # Facing the camera (z < 0) and off-axis in both x and y
    return np.array([0.2, -0.1, -1.0])
