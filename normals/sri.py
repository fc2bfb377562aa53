"""SRI normals: derivatives of a spherical range image.

The radius image is resampled on a uniform (theta, phi) grid, differentiated
there, turned into normals through a cached per-cell rotation, and resampled
back to the image. See ``Fast and Accurate Computation of Surface Normals
from Range Images`` by H. Badino, D. Huber, Y. Park and T. Kanade.
"""

from __future__ import annotations

from dataclasses import dataclass

import cv2
import numpy as np

from geometry.depth_projection import project_points
from geometry.spherical import compute_theta_phi
from normals.base import NormalsEstimator, NormalsMethod
from normals.sign import sign_normal, sign_normal_components
from utils.error_tracker import NormalsConfigError
from utils.logger import Logger
from utils.math_utils import mat33_to_flat9, rotation_field_zy

# Cyclic axis permutation (x, y, z) -> (y, z, x)
_AXES_PERMUTATION = np.array(
    [[0.0, 1.0, 0.0], [0.0, 0.0, 1.0], [1.0, 0.0, 0.0]], dtype=np.float64
)


@dataclass
class SriCache:
    R_hat: np.ndarray  # (rows, cols, 9) per angular cell
    kx_dx: np.ndarray
    ky_dx: np.ndarray
    kx_dy: np.ndarray
    ky_dy: np.ndarray
    # image -> angular grid
    xy: np.ndarray
    fxy: np.ndarray
    # angular grid -> image
    inv_xy: np.ndarray
    inv_fxy: np.ndarray
    theta_range: tuple[float, float]
    phi_range: tuple[float, float]
    theta_step: float
    phi_step: float


class SriEstimator(NormalsEstimator):
    method = NormalsMethod.SRI

    def __init__(self, config, logger=None):
        super().__init__(config, logger)
        self._cache: SriCache | None = None

    def _angular_grid(self, angles) -> tuple[tuple[float, float], tuple[float, float]]:
        mid = self.cols // 2 - 1
        theta_range = (
            float(np.arcsin(angles.sin_theta[0, 0])),
            float(np.arcsin(angles.sin_theta[0, self.cols - 1])),
        )
        phi_range = (
            float(np.arcsin(angles.sin_phi[0, mid])),
            float(np.arcsin(angles.sin_phi[self.rows - 1, mid])),
        )
        return theta_range, phi_range

    def _rotation_field(self, theta: np.ndarray, phi: np.ndarray) -> np.ndarray:
        """Tangent-frame rotation per cell, with the normal correction term."""
        R = _AXES_PERMUTATION @ rotation_field_zy(theta, phi)
        cos_phi = np.cos(phi)
        R[..., :, 1] /= cos_phi[..., None]
        R[..., 0, 0] -= 2 * cos_phi * np.sin(theta)
        R[..., 1, 0] -= 2 * np.sin(phi)
        R[..., 2, 0] -= 2 * cos_phi * np.cos(theta)
        return R

    def _inverse_map(self, theta_range, phi_range, theta_step, phi_step) -> np.ndarray:
        """Angular-grid coordinates of every image pixel, ``(rows, cols, 2)``."""
        K = np.asarray(self.config.K, dtype=np.float64)
        vs, us = np.mgrid[0 : self.rows, 0 : self.cols].astype(np.float64)
        y = (vs - K[1, 2]) / K[1, 1]
        x = (us - K[0, 2] - K[0, 1] * y) / K[0, 0]
        theta = np.arctan(x)
        phi = np.arcsin(y / np.sqrt(x * x + y * y + 1.0))
        return np.stack(
            [
                (theta - theta_range[0]) / theta_step,
                (phi - phi_range[0]) / phi_step,
            ],
            axis=-1,
        ).astype(np.float32)

    def cache(self) -> None:
        if self.rows < 2 or self.cols < 2:
            raise NormalsConfigError(
                f"SRI needs at least a 2x2 image, got {self.rows}x{self.cols}"
            )
        with Logger.timed(self.logger, "SRI cache"):
            angles = compute_theta_phi(self.rows, self.cols, self.K, np.float64)

            kx_dx, ky_dx = cv2.getDerivKernels(
                1, 0, self.window_size, normalize=True, ktype=cv2.CV_64F
            )
            kx_dy, ky_dy = cv2.getDerivKernels(
                0, 1, self.window_size, normalize=True, ktype=cv2.CV_64F
            )

            theta_range, phi_range = self._angular_grid(angles)
            phi_step = (phi_range[1] - phi_range[0]) / (self.rows - 1)
            theta_step = (theta_range[1] - theta_range[0]) / (self.cols - 1)
            self.logger.debug(
                f"SRI grid theta {theta_range} step {theta_step:.6f}, "
                f"phi {phi_range} step {phi_step:.6f}"
            )

            phi_idx, theta_idx = np.mgrid[0 : self.rows, 0 : self.cols].astype(np.float64)
            theta = theta_range[0] + theta_idx * theta_step
            phi = phi_range[0] + phi_idx * phi_step

            R_hat = mat33_to_flat9(self._rotation_field(theta, phi))

            directions = np.stack(
                [np.sin(theta) * np.cos(phi), np.sin(phi), np.cos(theta) * np.cos(phi)],
                axis=-1,
            )
            forward = project_points(directions, self.K).astype(np.float32)
            xy, fxy = cv2.convertMaps(forward, None, cv2.CV_16SC2)

            inverse = self._inverse_map(theta_range, phi_range, theta_step, phi_step)
            inv_xy, inv_fxy = cv2.convertMaps(inverse, None, cv2.CV_16SC2)

            # Derivatives are taken on a grid whose step is not one pixel
            self._cache = SriCache(
                R_hat=R_hat.astype(self.dtype),
                kx_dx=(kx_dx / theta_step).astype(self.dtype),
                ky_dx=ky_dx.astype(self.dtype),
                kx_dy=kx_dy.astype(self.dtype),
                ky_dy=(ky_dy / phi_step).astype(self.dtype),
                xy=xy,
                fxy=fxy,
                inv_xy=inv_xy,
                inv_fxy=inv_fxy,
                theta_range=theta_range,
                phi_range=phi_range,
                theta_step=theta_step,
                phi_step=phi_step,
            )

    @property
    def cached(self) -> SriCache:
        if self._cache is None:
            raise RuntimeError("SRI cache() must run before compute()")
        return self._cache

    def compute(
        self, points: np.ndarray, radius: np.ndarray | None, out: np.ndarray
    ) -> np.ndarray:
        cache = self.cached
        radius = np.ascontiguousarray(radius)

        # Cells looking outside the image count as missing measurements
        r = cv2.remap(
            radius,
            cache.xy,
            cache.fxy,
            cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=float("nan"),
        )
        r_theta = cv2.sepFilter2D(r, -1, cache.kx_dx, cache.ky_dx)
        r_phi = cv2.sepFilter2D(r, -1, cache.kx_dy, cache.ky_dy)

        R = cache.R_hat
        with np.errstate(divide="ignore", invalid="ignore"):
            r_theta_over_r = r_theta / r
            r_phi_over_r = r_phi / r
        # R(1, 1) is 0
        normals = sign_normal_components(
            R[..., 0] + R[..., 1] * r_theta_over_r + R[..., 2] * r_phi_over_r,
            R[..., 3] + R[..., 5] * r_phi_over_r,
            R[..., 6] + R[..., 7] * r_theta_over_r + R[..., 8] * r_phi_over_r,
        ).astype(self.dtype, copy=False)
        invalid = np.isnan(r)
        normals[invalid] = r[invalid][:, None]

        resampled = cv2.remap(
            np.ascontiguousarray(normals),
            cache.inv_xy,
            cache.inv_fxy,
            cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=(float("nan"),) * 3,
        )
        # Interpolation denormalizes and may blend orientations
        sign_normal(resampled, out=out)

        missing = np.isnan(radius)
        out[missing] = radius[missing][:, None]
        return out
