"""Error types and centralized unhandled exception tracking."""

from __future__ import annotations

import signal
import sys
import traceback
from typing import Callable, List, Optional

from utils.logger import Logger


class NormalsError(Exception):
    """Base class for normal estimation errors."""


class NormalsConfigError(NormalsError, ValueError):
    """Raised for invalid dimensions, precision, window size, method or K."""


class NormalsInputError(NormalsError, ValueError):
    """Raised when a depth map or point field does not fit the estimator."""


class ErrorTracker:
    """Installable global exception hook that logs uncaught errors."""

    logger = Logger.get_logger("utils.error_tracker")
    _installed = False
    _orig_hook: Optional[Callable[..., None]] = None
    _cleanup_funcs: List[Callable[[], None]] = []

    @classmethod
    def register_cleanup(cls, func: Callable[[], None]) -> None:
        """Register a cleanup function executed on fatal errors."""
        cls._cleanup_funcs.append(func)

    @classmethod
    def _run_cleanup(cls) -> None:
        for func in cls._cleanup_funcs:
            try:
                func()
            except Exception as e:
                cls.logger.error(f"Cleanup failed: {e}")

    @classmethod
    def install_excepthook(cls) -> None:
        """Log unhandled exceptions through the project logger."""
        if cls._installed:
            return

        cls._orig_hook = sys.excepthook

        def _hook(exc_type, exc, tb) -> None:
            message = "".join(traceback.format_exception(exc_type, exc, tb))
            cls.logger.error(f"Unhandled exception:\n{message}")
            cls._run_cleanup()
            if cls._orig_hook:
                cls._orig_hook(exc_type, exc, tb)

        sys.excepthook = _hook
        cls._installed = True
        cls.logger.debug("Global exception hook installed")

    @classmethod
    def uninstall_excepthook(cls) -> None:
        """Restore the interpreter's previous exception hook."""
        if not cls._installed:
            return
        sys.excepthook = cls._orig_hook or sys.__excepthook__
        cls._installed = False

    @classmethod
    def install_signal_handlers(cls) -> None:
        """Shutdown gracefully on SIGINT or SIGTERM."""

        def _handler(signum, frame) -> None:
            cls.logger.info(f"Received signal {signum}")
            cls._run_cleanup()
            raise SystemExit(1)

        signal.signal(signal.SIGINT, _handler)
        signal.signal(signal.SIGTERM, _handler)
