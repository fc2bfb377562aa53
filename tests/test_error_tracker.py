import sys, os
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from utils.error_tracker import (
    ErrorTracker,
    NormalsConfigError,
    NormalsError,
    NormalsInputError,
)
from utils.logger import Logger


def test_error_hierarchy():
    assert issubclass(NormalsConfigError, NormalsError)
    assert issubclass(NormalsInputError, NormalsError)
    # Callers validating arguments can still catch ValueError
    assert issubclass(NormalsConfigError, ValueError)
    assert issubclass(NormalsInputError, ValueError)


def test_excepthook_runs_cleanup_and_restores(monkeypatch):
    calls = []
    seen = []
    monkeypatch.setattr(ErrorTracker, "_cleanup_funcs", [])
    monkeypatch.setattr(sys, "excepthook", lambda *exc: seen.append(exc[0]))
    ErrorTracker.register_cleanup(lambda: calls.append("cleanup"))

    ErrorTracker.install_excepthook()
    try:
        sys.excepthook(RuntimeError, RuntimeError("boom"), None)
    finally:
        ErrorTracker.uninstall_excepthook()

    assert calls == ["cleanup"]
    assert seen == [RuntimeError]
    assert not ErrorTracker._installed


def test_failing_cleanup_does_not_stop_others(monkeypatch):
    calls = []
    monkeypatch.setattr(ErrorTracker, "_cleanup_funcs", [])

    def broken():
        raise OSError("device gone")

    ErrorTracker.register_cleanup(broken)
    ErrorTracker.register_cleanup(lambda: calls.append("second"))
    ErrorTracker._run_cleanup()
    assert calls == ["second"]


def test_logger_file_sink(tmp_path):
    Logger.configure(level="DEBUG", log_dir=tmp_path, json_format=False)
    try:
        log = Logger.get_logger("tests")
        with Logger.timed(log, "block"):
            pass
        path = Logger.log_file()
    finally:
        Logger.configure(to_file=False)
    assert Logger.log_file() is None
    assert path is not None and path.parent == tmp_path
    assert "block took" in path.read_text()
