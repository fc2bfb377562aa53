"""LINEMOD normals from raw depth.

Implements the depth-gradient normals of ``Gradient Response Maps for
Real-Time Detection of Texture-Less Objects`` (S. Hinterstoisser et al.):
a sparse 3x3 set of samples spaced ``margin`` pixels apart gives a robust
least-squares depth gradient, from which two tangents and their cross product
are built.
"""

from __future__ import annotations

import numpy as np

from normals.base import NormalsEstimator, NormalsMethod
from normals.sign import sign_normal
from utils.settings import normals as NORMALS_CFG

__all__ = ["LinemodEstimator", "inverse_intrinsics", "multiply_by_k_inv"]


def inverse_intrinsics(K: np.ndarray) -> np.ndarray:
    """Closed-form inverse of an upper triangular ``K`` with ``K[2, 2] == 1``."""
    K_inv = np.eye(3, dtype=K.dtype)
    fx, fy = K[0, 0], K[1, 1]
    K_inv[0, 0] = 1.0 / fx
    K_inv[0, 1] = -K[0, 1] / (fx * fy)
    K_inv[0, 2] = (K[0, 1] * K[1, 2] - K[0, 2] * fy) / (fx * fy)
    K_inv[1, 1] = 1.0 / fy
    K_inv[1, 2] = -K[1, 2] / fy
    return K_inv


def multiply_by_k_inv(
    K_inv: np.ndarray, a: np.ndarray, b: np.ndarray, c: np.ndarray
) -> np.ndarray:
    """``K_inv @ (a, b, c)`` skipping the known zeros of ``K_inv``."""
    return np.stack(
        [
            K_inv[0, 0] * a + K_inv[0, 1] * b + K_inv[0, 2] * c,
            K_inv[1, 1] * b + K_inv[1, 2] * c,
            K_inv[2, 2] * c,
        ],
        axis=-1,
    )


class LinemodEstimator(NormalsEstimator):
    """
    Stateless estimator working on a ``(rows, cols)`` depth map.

    Pixels closer than ``margin`` to the top/left border, or closer than
    ``margin + 1`` to the bottom/right border, are not estimated and hold
    NaN. Samples whose depth differs from the center by more than
    ``difference_threshold`` are ignored, and so are invalid samples (NaN,
    or 0 for integer depth). An invalid center gives a NaN normal.
    """

    method = NormalsMethod.LINEMOD
    margin = NORMALS_CFG.linemod_margin
    sample_step = NORMALS_CFG.linemod_margin
    difference_threshold = NORMALS_CFG.linemod_threshold

    def cache(self) -> None:
        self.logger.debug("LINEMOD has nothing to cache")

    def compute(
        self, points: np.ndarray, radius: np.ndarray | None, out: np.ndarray
    ) -> np.ndarray:
        depth = points
        r = self.margin
        out[...] = np.nan
        y0, y1 = r, self.rows - r - 1
        x0, x1 = r, self.cols - r - 1
        if y1 <= y0 or x1 <= x0:
            self.logger.warning(
                f"Image {self.rows}x{self.cols} too small for LINEMOD margin {r}"
            )
            return out

        integer = np.issubdtype(depth.dtype, np.integer)
        container = np.int64 if integer else depth.dtype
        d = depth.astype(container, copy=False)
        center = d[y0:y1, x0:x1]

        A0 = np.zeros(center.shape, dtype=container)
        A1 = np.zeros_like(A0)
        A3 = np.zeros_like(A0)
        b0 = np.zeros_like(A0)
        b1 = np.zeros_like(A0)
        with np.errstate(invalid="ignore"):
            for j in range(-r, r + 1, self.sample_step):
                for i in range(-r, r + 1, self.sample_step):
                    sample = d[y0 + j : y1 + j, x0 + i : x1 + i]
                    delta = sample - center
                    accept = np.abs(delta) <= self.difference_threshold
                    if integer:
                        accept &= sample != 0
                    A0 += i * i * accept
                    A1 += i * j * accept
                    A3 += j * j * accept
                    b0 += np.where(accept, i * delta, 0).astype(container)
                    b1 += np.where(accept, j * delta, 0).astype(container)

        # dx, dy stay scaled by det: only the direction of the normal matters
        det = A0 * A3 - A1 * A1
        dx = A3 * b0 - A1 * b1
        dy = -A1 * b0 + A0 * b1

        ys, xs = np.mgrid[y0:y1, x0:x1]
        K_inv = inverse_intrinsics(self.K)
        X1_minus_X = multiply_by_k_inv(K_inv, center * det + (xs + 1) * dx, ys * dx, dx)
        X2_minus_X = multiply_by_k_inv(K_inv, xs * dy, center * det + (ys + 1) * dy, dy)
        raw = np.cross(X1_minus_X, X2_minus_X)

        interior = out[y0:y1, x0:x1]
        sign_normal(raw, out=interior)
        invalid = np.isnan(center) if not integer else center == 0
        interior[invalid] = np.nan
        return out
