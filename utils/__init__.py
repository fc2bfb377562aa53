"""Shared helper modules used across the project.

The :mod:`utils` package contains the logger, settings, YAML config loader,
error types, CLI dispatching and file I/O used by the normal estimators and
the command-line tools.
"""

from .logger import Logger, LoggerType
from .settings import (
    CameraIntrinsics,
    INTRINSICS_DEPTH,
    INTRINSICS_DEPTH_MATRIX,
    IMAGE_EXT,
    DEPTH_EXT,
    NORMALS_METHODS,
    NORMALS_DTYPES,
    WINDOW_SIZES,
    paths,
    logging,
    normals,
)
from .error_tracker import (
    ErrorTracker,
    NormalsError,
    NormalsConfigError,
    NormalsInputError,
)
from .io import (
    read_image,
    write_image,
    load_npy,
    save_npy,
    load_depth,
    normals_to_rgb,
    load_camera_params,
    save_camera_params_xml,
)
from .math_utils import (
    flat9_to_mat33,
    mat33_to_flat9,
    outer_product_field,
    invert_spd_field,
    rotation_field_zy,
)

__all__ = [
    "Logger",
    "LoggerType",
    "CameraIntrinsics",
    "INTRINSICS_DEPTH",
    "INTRINSICS_DEPTH_MATRIX",
    "IMAGE_EXT",
    "DEPTH_EXT",
    "NORMALS_METHODS",
    "NORMALS_DTYPES",
    "WINDOW_SIZES",
    "paths",
    "logging",
    "normals",
    "ErrorTracker",
    "NormalsError",
    "NormalsConfigError",
    "NormalsInputError",
    "read_image",
    "write_image",
    "load_npy",
    "save_npy",
    "load_depth",
    "normals_to_rgb",
    "load_camera_params",
    "save_camera_params_xml",
    "flat9_to_mat33",
    "mat33_to_flat9",
    "outer_product_field",
    "invert_spd_field",
    "rotation_field_zy",
]
