"""Orientation convention for surface normals: unit length, facing the camera."""

from __future__ import annotations

import numpy as np

__all__ = ["sign_normal", "sign_normal_components"]


def sign_normal_components(
    a: np.ndarray, b: np.ndarray, c: np.ndarray, out: np.ndarray | None = None
) -> np.ndarray:
    """
    Normalize ``(a, b, c)`` and flip it where ``c > 0``.

    Returns a ``(..., 3)`` array (written into ``out`` when given). The
    input must not contain zero vectors: their result is NaN.
    """
    a = np.asarray(a)
    b = np.asarray(b)
    c = np.asarray(c)
    with np.errstate(divide="ignore", invalid="ignore"):
        inv_norm = 1 / np.sqrt(a * a + b * b + c * c)
        inv_norm = np.where(c > 0, -inv_norm, inv_norm)
        if out is None:
            out = np.empty(np.shape(a) + (3,), dtype=np.result_type(a, b, c))
        out[..., 0] = a * inv_norm
        out[..., 1] = b * inv_norm
        out[..., 2] = c * inv_norm
    return out


def sign_normal(normals: np.ndarray, out: np.ndarray | None = None) -> np.ndarray:
    """
    Make every vector of a ``(..., 3)`` field a unit vector with z <= 0.

    Zero vectors are a precondition violation and come out as NaN.
    """
    normals = np.asarray(normals)
    return sign_normal_components(
        normals[..., 0], normals[..., 1], normals[..., 2], out=out
    )
