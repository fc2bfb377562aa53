"""Logging helpers built on top of loguru."""

from __future__ import annotations

import os
import sys
import time
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator, TypeVar, cast

from loguru import logger as _logger
from loguru._logger import Logger as LoguruLogger
from tqdm.auto import tqdm

from utils.settings import logging as LOGCFG

LoggerType = LoguruLogger
T = TypeVar("T")

_is_configured = False
_log_dir = LOGCFG.log_dir
_log_file: Path | None = None


class Logger:
    """Project-wide logger wrapper using loguru and global config."""

    @staticmethod
    def _configure(level: str, json_format: bool, to_file: bool = True) -> None:
        """Configure log sinks on first use."""
        global _is_configured, _log_file
        _logger.remove()
        _logger.add(
            sys.stdout,
            level=level,
            serialize=False,
            format=LOGCFG.log_format,
        )
        if to_file:
            os.makedirs(_log_dir, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            _log_file = Path(_log_dir) / f"{timestamp}.log.json"
            _logger.add(
                _log_file,
                level=level,
                serialize=json_format,
                format=LOGCFG.log_file_format,
            )
        else:
            _log_file = None
        _is_configured = True

    @staticmethod
    def get_logger(
        name: str, level: str | None = None, json_format: bool | None = None
    ) -> LoguruLogger:
        """
        Return a configured loguru logger bound to ``name``.
        If level or json_format are not specified, uses global config.
        """
        if not _is_configured:
            Logger._configure(
                level or LOGCFG.level,
                json_format if json_format is not None else LOGCFG.json,
            )
        return _logger.bind(module=name)

    @staticmethod
    def progress(
        iterable: Iterable[T],
        desc: str | None = None,
        total: int | None = None,
    ) -> Iterable[T]:
        """Return a tqdm iterator with unified style."""
        return cast(
            Iterable[T],
            tqdm(
                iterable,
                desc=desc,
                total=total,
                leave=False,
                bar_format=LOGCFG.progress_bar_format,
            ),
        )

    @staticmethod
    @contextmanager
    def timed(logger: LoguruLogger, label: str) -> Iterator[None]:
        """Log the wall time spent inside the block at DEBUG level."""
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000.0
            logger.debug(f"{label} took {elapsed_ms:.1f} ms")

    @staticmethod
    def configure(
        level: str | None = None,
        log_dir: str | Path | None = None,
        json_format: bool | None = None,
        to_file: bool = True,
    ) -> None:
        """Manually configure the logger with given settings."""
        global _log_dir
        _log_dir = Path(log_dir) if log_dir is not None else LOGCFG.log_dir
        Logger._configure(
            level or LOGCFG.level,
            json_format if json_format is not None else LOGCFG.json,
            to_file=to_file,
        )

    @staticmethod
    def log_file() -> Path | None:
        """Path of the current file sink, if any."""
        return _log_file
