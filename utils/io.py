"""File I/O helpers for depth frames, normal maps and calibration data."""

from __future__ import annotations

from pathlib import Path
from typing import Tuple

import cv2
import numpy as np

from utils.settings import DEPTH_EXT, IMAGE_EXT


def read_image(path: str | Path, unchanged: bool = False) -> np.ndarray | None:
    """Return an image from ``path`` or ``None`` if loading fails."""
    flags = cv2.IMREAD_UNCHANGED if unchanged else cv2.IMREAD_COLOR
    return cv2.imread(str(path), flags)


def write_image(path: str | Path, img: np.ndarray) -> None:
    """Save an image to disk."""
    if not cv2.imwrite(str(path), img):
        raise IOError(f"Failed to write image: {path}")


def load_npy(path: str | Path) -> np.ndarray:
    """Load an ``.npy`` array."""
    return np.load(str(path))


def save_npy(path: str | Path, arr: np.ndarray) -> None:
    """Save an array to an ``.npy`` file."""
    np.save(str(path), arr)


def load_depth(path: str | Path) -> np.ndarray:
    """
    Load a depth frame stored as ``.npy`` or as a 16-bit single-channel PNG.

    The array is returned as stored (no scaling, no dtype change).
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == DEPTH_EXT:
        return load_npy(path)
    if suffix == IMAGE_EXT:
        depth = read_image(path, unchanged=True)
        if depth is None:
            raise IOError(f"Failed to read depth image: {path}")
        if depth.ndim != 2:
            raise ValueError(f"Depth image must be single-channel: {path}")
        return depth
    raise ValueError(f"Unsupported depth file type: {path}")


def normals_to_rgb(normals: np.ndarray) -> np.ndarray:
    """
    Map a ``(rows, cols, 3)`` normal field to an 8-bit BGR preview.

    Components in [-1, 1] map to [0, 255] (x -> R, y -> G, z -> B);
    NaN pixels are black.
    """
    normals = np.asarray(normals, dtype=np.float64)
    valid = np.all(np.isfinite(normals), axis=-1)
    rgb = np.zeros(normals.shape, dtype=np.uint8)
    scaled = np.clip((normals[valid] + 1.0) * 127.5, 0, 255)
    rgb[valid] = np.round(scaled).astype(np.uint8)
    return np.ascontiguousarray(rgb[..., ::-1])


def load_camera_params(path: str | Path) -> Tuple[np.ndarray, np.ndarray]:
    """Read camera matrix and distortion coefficients from OpenCV XML/YAML."""
    fs = cv2.FileStorage(str(path), cv2.FILE_STORAGE_READ)
    if not fs.isOpened():
        raise IOError(f"Failed to open camera file: {path}")
    camera_matrix = fs.getNode("camera_matrix").mat()
    dist_coeffs = fs.getNode("dist_coeffs").mat()
    fs.release()
    if camera_matrix is None:
        raise ValueError(f"No camera_matrix node in {path}")
    if dist_coeffs is None:
        dist_coeffs = np.zeros((1, 5))
    return camera_matrix, dist_coeffs


def save_camera_params_xml(
    path: str | Path, K: np.ndarray, dist: np.ndarray | None = None
) -> None:
    """Write camera parameters to an XML/YAML file."""
    if dist is None:
        dist = np.zeros((1, 5))
    fs = cv2.FileStorage(str(path), cv2.FILE_STORAGE_WRITE)
    fs.write("camera_matrix", np.asarray(K, dtype=np.float64))
    fs.write("dist_coeffs", np.asarray(dist, dtype=np.float64))
    fs.release()
