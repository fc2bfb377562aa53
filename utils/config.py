# utils/config.py
"""Configuration loader with YAML backend."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, cast

import numpy as np
from omegaconf import OmegaConf

from utils.logger import Logger
from utils.settings import INTRINSICS_DEPTH, normals as NORMALS_CFG, paths

DEFAULT_CONFIG_PATH = paths.CONFIG_FILE


class ConfigLoader:
    """Strategy interface for config loading."""

    def load(self, filename: str) -> Dict[str, Any]:
        raise NotImplementedError


class YamlConfigLoader(ConfigLoader):
    def load(self, filename: str) -> Dict[str, Any]:
        """Load YAML file and return plain ``dict`` data."""

        cfg = OmegaConf.load(filename)
        return cast(Dict[str, Any], OmegaConf.to_container(cfg, resolve=True))


class Config:
    _data: Dict[str, Any] | None = None
    _loader: ConfigLoader = YamlConfigLoader()
    _logger = Logger.get_logger("utils.config")

    @classmethod
    def load(
        cls, filename: Path | str = DEFAULT_CONFIG_PATH, force_reload: bool = False
    ) -> None:
        """Load configuration from ``filename`` unless already loaded."""

        if cls._data is not None and not force_reload:
            return

        try:
            cls._data = cls._loader.load(str(filename))
            cls._logger.info(f"Config loaded from {filename}")
            logging_cfg = cls._data.get("logging") or {}
            if logging_cfg:
                Logger.configure(
                    level=logging_cfg.get("level", "INFO"),
                    log_dir=logging_cfg.get("log_dir", ".logs"),
                    json_format=logging_cfg.get("json", True),
                )
        except Exception as e:
            cls._logger.error(f"Failed to load config: {e}")
            raise

    @classmethod
    def reset(cls) -> None:
        """Forget loaded data so the next access reloads it."""
        cls._data = None

    @classmethod
    def get(cls, path: str, default: Any | None = None) -> Any:
        """Retrieve value from dotted ``path`` or return ``default``."""
        if cls._data is None:
            cls.load()
        value = cls._data
        for key in path.split("."):
            if not isinstance(value, dict):
                cls._logger.warning(f"Key {key} not found in path {path}")
                return default
            value = value.get(key, None)
            if value is None:
                cls._logger.warning(f"Key {key} not found in path {path}")
                return default
        return value

    @classmethod
    def set_loader(cls, loader: ConfigLoader) -> None:
        """Replace the config loader strategy (useful for testing)."""

        cls._loader = loader
        cls._logger.info(f"Config loader set to {loader.__class__.__name__}")

    @classmethod
    def camera_matrix(cls) -> np.ndarray:
        """K built from the ``camera`` section, falling back to settings."""
        fx = cls.get("camera.fx", INTRINSICS_DEPTH.fx)
        fy = cls.get("camera.fy", INTRINSICS_DEPTH.fy)
        cx = cls.get("camera.cx", INTRINSICS_DEPTH.ppx)
        cy = cls.get("camera.cy", INTRINSICS_DEPTH.ppy)
        skew = cls.get("camera.skew", 0.0)
        return np.array(
            [[fx, skew, cx], [0.0, fy, cy], [0.0, 0.0, 1.0]], dtype=np.float64
        )

    @classmethod
    def normals_config(cls, rows: int | None = None, cols: int | None = None):
        """
        Build a ``NormalsConfig`` from the ``normals`` and ``camera`` sections.

        ``rows``/``cols`` override the configured image size (e.g. the size of
        the depth frame actually loaded).
        """
        from normals.base import NormalsConfig

        return NormalsConfig(
            rows=rows or cls.get("camera.height", INTRINSICS_DEPTH.height),
            cols=cols or cls.get("camera.width", INTRINSICS_DEPTH.width),
            dtype=cls.get("normals.dtype", NORMALS_CFG.dtype),
            K=cls.camera_matrix(),
            window_size=cls.get("normals.window_size", NORMALS_CFG.window_size),
            method=cls.get("normals.method", NORMALS_CFG.method),
        )
