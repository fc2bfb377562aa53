"""Project wide configuration dataclasses and default values."""

from dataclasses import dataclass
from pathlib import Path

import numpy as np

# Root dir
BASE_DIR = Path(__file__).resolve().parent.parent

# Common file name extensions for depth frames and normal maps
IMAGE_EXT = ".png"
DEPTH_EXT = ".npy"
NORMALS_SUFFIX = "_normals"

# Supported normal estimation methods and working precisions
NORMALS_METHODS = ("fals", "linemod", "sri")
NORMALS_DTYPES = ("float32", "float64")
WINDOW_SIZES = (1, 3, 5, 7)


@dataclass(frozen=True)
class Paths:
    """
    Dataclass aggregating filesystem paths used in the project.
    """

    CONF_DIR: Path = BASE_DIR / "conf"
    CONFIG_FILE: Path = CONF_DIR / "normals.yaml"


paths = Paths()


@dataclass(frozen=True)
class LoggingCfg:
    """
    Logging configuration for the project.

    - level: Log level ("INFO", "DEBUG", etc.)
    - json: Enable/disable structured JSON logging.
    - log_dir: Directory where log files are stored.
    - log_format: Console log output format.
    - log_file_format: File log output format.
    - progress_bar_format: TQDM progress bar format.
    """

    level: str = "INFO"
    json: bool = True
    log_dir: Path = Path(".logs")
    log_format: str = (
        "<green>{time:MM-DD HH:mm:ss}</green>"
        "[<level>{level:.3}</level>]"
        "[<cyan>{extra[module]:.16}</cyan>:<cyan>{line:<3}</cyan>]"
        "<level>{message}</level>"
    )
    log_file_format: str = "{time:YYYY-MM-DD HH:mm:ss}[{level}][{file}:{line}]{message}"
    progress_bar_format: str = (
        "{l_bar}{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}]"
    )


logging = LoggingCfg()


@dataclass(frozen=True)
class NormalsCfg:
    """
    Defaults for surface normal estimation.

    - method: "fals", "linemod" or "sri"
    - window_size: smoothing / derivative window (1, 3, 5 or 7)
    - dtype: working precision of the normal field
    - linemod_margin: LINEMOD sampling radius, also the unset border band
    - linemod_threshold: LINEMOD max depth difference of an accepted sample
    - depth_scale: multiplier applied to integer depth read from disk
    """

    method: str = "fals"
    window_size: int = 5
    dtype: str = "float32"
    linemod_margin: int = 5
    linemod_threshold: float = 50.0
    depth_scale: float = 1.0


normals = NormalsCfg()


@dataclass(frozen=True)
class CameraIntrinsics:
    """
    Intrinsic camera parameters for the pinhole model.
    """

    width: int
    height: int
    ppx: float  # principal point X (cx)
    ppy: float  # principal point Y (cy)
    fx: float  # focal length X
    fy: float  # focal length Y

    def as_matrix(self) -> np.ndarray:
        return np.array(
            [
                [self.fx, 0.0, self.ppx],
                [0.0, self.fy, self.ppy],
                [0.0, 0.0, 1.0],
            ],
            dtype=np.float64,
        )


# Kinect-style VGA depth intrinsics
INTRINSICS_DEPTH = CameraIntrinsics(
    width=640,
    height=480,
    ppx=320.0,
    ppy=240.0,
    fx=525.0,
    fy=525.0,
)

INTRINSICS_DEPTH_MATRIX = INTRINSICS_DEPTH.as_matrix()

__all__ = [
    "Paths",
    "LoggingCfg",
    "NormalsCfg",
    "CameraIntrinsics",
    "paths",
    "logging",
    "normals",
    "IMAGE_EXT",
    "DEPTH_EXT",
    "NORMALS_SUFFIX",
    "NORMALS_METHODS",
    "NORMALS_DTYPES",
    "WINDOW_SIZES",
    "INTRINSICS_DEPTH",
    "INTRINSICS_DEPTH_MATRIX",
]
