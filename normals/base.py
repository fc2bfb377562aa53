"""Configuration and common interface of the normal estimators."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Tuple

import numpy as np

from utils.error_tracker import NormalsConfigError
from utils.logger import Logger, LoggerType
from utils.settings import NORMALS_DTYPES, WINDOW_SIZES

Matrix33 = Tuple[Tuple[float, float, float], ...]


class NormalsMethod(str, Enum):
    """Available normal estimation algorithms."""

    FALS = "fals"
    LINEMOD = "linemod"
    SRI = "sri"

    @classmethod
    def parse(cls, value: "NormalsMethod | str") -> "NormalsMethod":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            names = ", ".join(m.value for m in cls)
            raise NormalsConfigError(
                f"Unknown normals method {value!r}, expected one of: {names}"
            ) from None


def _parse_dtype(dtype: Any) -> np.dtype:
    if dtype is None:
        raise NormalsConfigError("Precision must be given")
    try:
        parsed = np.dtype(dtype)
    except TypeError:
        raise NormalsConfigError(f"Unsupported precision {dtype!r}") from None
    if parsed.name not in NORMALS_DTYPES:
        raise NormalsConfigError(
            f"Unsupported precision {parsed.name}, expected one of {NORMALS_DTYPES}"
        )
    return parsed


def _parse_camera_matrix(K: Any) -> Matrix33:
    try:
        arr = np.asarray(K, dtype=np.float64)
    except (TypeError, ValueError):
        raise NormalsConfigError("Camera matrix K must be numeric") from None
    if arr.shape != (3, 3):
        raise NormalsConfigError(f"Camera matrix K must be 3x3, got {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise NormalsConfigError("Camera matrix K must be finite")
    return tuple(tuple(float(v) for v in row) for row in arr)


@dataclass(frozen=True)
class NormalsConfig:
    """
    Everything an estimator cache depends on.

    Instances are immutable and validated on construction; two configs are
    equal iff every field is equal, ``K`` compared element-wise.
    """

    rows: int
    cols: int
    dtype: Any
    K: Any
    window_size: int = 5
    method: Any = NormalsMethod.FALS

    def __post_init__(self) -> None:
        if int(self.rows) <= 0 or int(self.cols) <= 0:
            raise NormalsConfigError(
                f"Image size must be positive, got {self.rows}x{self.cols}"
            )
        if int(self.window_size) not in WINDOW_SIZES:
            raise NormalsConfigError(
                f"window_size must be one of {WINDOW_SIZES}, got {self.window_size}"
            )
        object.__setattr__(self, "rows", int(self.rows))
        object.__setattr__(self, "cols", int(self.cols))
        object.__setattr__(self, "window_size", int(self.window_size))
        object.__setattr__(self, "dtype", _parse_dtype(self.dtype))
        object.__setattr__(self, "K", _parse_camera_matrix(self.K))
        object.__setattr__(self, "method", NormalsMethod.parse(self.method))

    @classmethod
    def from_intrinsics(
        cls,
        rows: int,
        cols: int,
        fx: float,
        fy: float,
        cx: float,
        cy: float,
        *,
        skew: float = 0.0,
        dtype: Any = np.float32,
        window_size: int = 5,
        method: Any = NormalsMethod.FALS,
    ) -> "NormalsConfig":
        K = ((fx, skew, cx), (0.0, fy, cy), (0.0, 0.0, 1.0))
        return cls(rows, cols, dtype, K, window_size, method)

    @property
    def shape(self) -> tuple[int, int]:
        return self.rows, self.cols

    @property
    def camera_matrix(self) -> np.ndarray:
        """K as a fresh ndarray in the working precision."""
        return np.array(self.K, dtype=self.dtype)


class NormalsEstimator(ABC):
    """
    One normal estimation algorithm bound to one configuration.

    ``cache()`` precomputes whatever depends on the configuration only;
    ``compute()`` never mutates that state.
    """

    method: NormalsMethod

    def __init__(self, config: NormalsConfig, logger: LoggerType | None = None):
        self.config = config
        self.dtype = config.dtype
        self.K = config.camera_matrix
        self.logger = logger or Logger.get_logger(f"normals.{self.method.value}")

    @property
    def rows(self) -> int:
        return self.config.rows

    @property
    def cols(self) -> int:
        return self.config.cols

    @property
    def window_size(self) -> int:
        return self.config.window_size

    def validate(self, config: NormalsConfig) -> bool:
        """True when the cached state was built for ``config``."""
        return self.config == config

    @abstractmethod
    def cache(self) -> None:
        """Precompute configuration dependent data."""

    @abstractmethod
    def compute(
        self, points: np.ndarray, radius: np.ndarray | None, out: np.ndarray
    ) -> np.ndarray:
        """Fill ``out`` with the normal field and return it."""
