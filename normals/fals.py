"""FALS normals: least-squares plane fit in a spherical basis.

For a point ``P = r v`` on the plane ``n . P = d`` we have ``n . v = d / r``.
The windowed normal equations ``(sum v v^T) n/d = sum v / r`` have a matrix
that only depends on the viewing rays, so its inverse is cached and only the
right-hand side is built per frame.
"""

from __future__ import annotations

from dataclasses import dataclass

import cv2
import numpy as np

from geometry.depth_projection import compute_radius
from geometry.spherical import compute_theta_phi, direction_field
from normals.base import NormalsEstimator, NormalsMethod
from normals.sign import sign_normal
from utils.logger import Logger
from utils.math_utils import (
    flat9_to_mat33,
    invert_spd_field,
    mat33_to_flat9,
    outer_product_field,
)


@dataclass
class FalsCache:
    # float64 regardless of the working dtype: the windowed matrix is ill-conditioned
    V: np.ndarray  # (rows, cols, 3) unit viewing directions
    M_inv: np.ndarray  # (rows, cols, 9) inverted windowed sum of V V^T


class FalsEstimator(NormalsEstimator):
    method = NormalsMethod.FALS

    def __init__(self, config, logger=None):
        super().__init__(config, logger)
        self._cache: FalsCache | None = None

    def _box_filter(self, field: np.ndarray) -> np.ndarray:
        """Un-normalized window sum, channel by channel."""
        ksize = (self.window_size, self.window_size)
        channels = [
            cv2.boxFilter(
                np.ascontiguousarray(field[..., k]),
                -1,
                ksize,
                anchor=(-1, -1),
                normalize=False,
            )
            for k in range(field.shape[-1])
        ]
        return np.stack(channels, axis=-1)

    def cache(self) -> None:
        with Logger.timed(self.logger, "FALS cache"):
            angles = compute_theta_phi(self.rows, self.cols, self.K, np.float64)
            V = direction_field(angles)

            M = mat33_to_flat9(outer_product_field(V))
            M = self._box_filter(M)
            M_inv = invert_spd_field(flat9_to_mat33(M))

            singular = int(np.count_nonzero(~np.any(M_inv, axis=(-2, -1))))
            if singular:
                self.logger.warning(
                    f"{singular} pixels have a singular FALS matrix "
                    f"(window_size={self.window_size}); their normals will be NaN"
                )
            self._cache = FalsCache(V=V, M_inv=mat33_to_flat9(M_inv))

    @property
    def cached(self) -> FalsCache:
        if self._cache is None:
            raise RuntimeError("FALS cache() must run before compute()")
        return self._cache

    def compute(
        self, points: np.ndarray, radius: np.ndarray | None, out: np.ndarray
    ) -> np.ndarray:
        cache = self.cached
        invalid = np.isnan(radius)
        r = compute_radius(points.astype(np.float64, copy=False))

        with np.errstate(divide="ignore", invalid="ignore"):
            B = cache.V / r[..., None]
        B[invalid] = 0
        B = self._box_filter(B)

        M_inv = flat9_to_mat33(cache.M_inv)
        raw = np.einsum("...ij,...j->...i", M_inv, B)
        sign_normal(raw, out=out)

        # The NaN sentinel is copied as-is from the radius
        out[invalid] = radius[invalid][:, None]
        return out
