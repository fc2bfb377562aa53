"""Facade selecting, caching and running a normal estimator."""

from __future__ import annotations

import dataclasses
from typing import Any

import numpy as np

from geometry.depth_projection import compute_radius
from normals.base import NormalsConfig, NormalsEstimator, NormalsMethod
from normals.fals import FalsEstimator
from normals.linemod import LinemodEstimator
from normals.sri import SriEstimator
from utils.error_tracker import NormalsInputError
from utils.logger import Logger, LoggerType

_ESTIMATORS: dict[NormalsMethod, type[NormalsEstimator]] = {
    NormalsMethod.FALS: FalsEstimator,
    NormalsMethod.LINEMOD: LinemodEstimator,
    NormalsMethod.SRI: SriEstimator,
}

_FLOAT_TYPES = (np.dtype(np.float32), np.dtype(np.float64))
_DEPTH_TYPES = (np.dtype(np.uint16),) + _FLOAT_TYPES


class RgbdNormals:
    """
    Compute surface normals of depth images or organized point clouds.

    The estimator for the current configuration is built lazily on first
    use and reused until the configuration changes. ``initialize()`` must
    not run concurrently; ``compute()`` only reads the cached state.

    Example:
        >>> est = RgbdNormals(480, 640, np.float32, K, window_size=5, method="sri")
        >>> normals = est(points)  # (480, 640, 3)
    """

    def __init__(
        self,
        rows: int,
        cols: int,
        dtype: Any,
        K: Any,
        window_size: int = 5,
        method: NormalsMethod | str = NormalsMethod.FALS,
        logger: LoggerType | None = None,
    ):
        self.logger = logger or Logger.get_logger("normals.rgbd")
        self._config = NormalsConfig(rows, cols, dtype, K, window_size, method)
        self._impl: NormalsEstimator | None = None
        self.cache_builds = 0

    @classmethod
    def from_config(
        cls, config: NormalsConfig, logger: LoggerType | None = None
    ) -> "RgbdNormals":
        return cls(
            config.rows,
            config.cols,
            config.dtype,
            config.K,
            config.window_size,
            config.method,
            logger=logger,
        )

    @property
    def config(self) -> NormalsConfig:
        return self._config

    @property
    def method(self) -> NormalsMethod:
        return self._config.method

    @property
    def estimator(self) -> NormalsEstimator | None:
        """The cached estimator, ``None`` before the first initialization."""
        return self._impl

    def configure(self, **changes: Any) -> NormalsConfig:
        """
        Replace configuration fields (``rows``, ``cols``, ``dtype``, ``K``,
        ``window_size``, ``method``). The cache is rebuilt on next use.
        """
        self._config = dataclasses.replace(self._config, **changes)
        return self._config

    def initialize(self) -> None:
        """Build the estimator cache unless it matches the configuration."""
        if self._impl is not None and self._impl.validate(self._config):
            return
        if self._impl is not None:
            self.logger.info(
                f"Configuration changed, rebuilding {self._config.method.value} cache"
            )
            self._impl = None

        impl = _ESTIMATORS[self._config.method](self._config)
        impl.cache()
        self._impl = impl
        self.cache_builds += 1
        self.logger.debug(
            f"Built {self._config.method.value} cache for "
            f"{self._config.rows}x{self._config.cols} {self._config.dtype.name} "
            f"window={self._config.window_size}"
        )

    def _check_input(self, points: np.ndarray) -> int:
        if points.ndim == 2:
            channels = 1
        elif points.ndim == 3:
            channels = points.shape[2]
        else:
            raise NormalsInputError(
                f"Expected a (rows, cols) or (rows, cols, 3) array, got {points.shape}"
            )

        dtype = points.dtype
        if self.method is NormalsMethod.LINEMOD:
            ok = (channels == 3 and dtype in _FLOAT_TYPES) or (
                channels == 1 and dtype in _DEPTH_TYPES
            )
        else:
            ok = channels == 3 and dtype in _FLOAT_TYPES
        if not ok:
            raise NormalsInputError(
                f"{self.method.value} does not accept {channels}-channel "
                f"{dtype.name} input"
            )

        if points.size and points.shape[:2] != self._config.shape:
            raise NormalsInputError(
                f"Input is {points.shape[0]}x{points.shape[1]}, estimator is "
                f"configured for {self._config.rows}x{self._config.cols}"
            )
        return channels

    def _check_output(self, out: np.ndarray, shape: tuple[int, ...]) -> np.ndarray:
        if out.shape != shape or out.dtype != self._config.dtype:
            raise NormalsInputError(
                f"Output must be {shape} {self._config.dtype.name}, "
                f"got {out.shape} {out.dtype.name}"
            )
        return out

    def compute(self, points: np.ndarray, out: np.ndarray | None = None) -> np.ndarray:
        """
        Return the ``(rows, cols, 3)`` normal field of ``points``.

        Parameters:
            points: ``(rows, cols, 3)`` float point field, or for LINEMOD also
                a ``(rows, cols)`` uint16/float depth map.
            out:    optional preallocated output in the working precision.

        Returns:
            np.ndarray: unit normals facing the camera; NaN where the input
            has no measurement.
        """
        points = np.asarray(points)
        channels = self._check_input(points)
        dtype = self._config.dtype

        radius = None
        depth = None
        if self.method is NormalsMethod.LINEMOD:
            if channels == 3:
                depth = points[..., 2].astype(dtype, copy=False)
            else:
                depth = points.reshape(points.shape[:2])
        else:
            points = points.astype(dtype, copy=False)
            radius = compute_radius(points)

        self.initialize()

        shape = (points.shape[0], points.shape[1], 3)
        if out is None:
            out = np.empty(shape, dtype=dtype)
        else:
            out = self._check_output(out, shape)
        if points.size == 0:
            return out

        if depth is not None:
            return self._impl.compute(np.ascontiguousarray(depth), None, out)
        return self._impl.compute(points, radius, out)

    __call__ = compute
