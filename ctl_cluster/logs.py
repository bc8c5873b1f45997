"""
Logging setup, run-name tagging and suppressed-log buffering.
"""

import contextlib
import logging
import os
from collections.abc import Iterator

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Loggers whose records are held back while logs are suppressed.
SUPPRESSED_LOGGERS = ("ctl_cluster", "service", "plutip", "jsonwsp")

_current_run_name: str | None = None


class RunNameFilter(logging.Filter):
    """
    Logging filter that injects the current run name into all log records.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_name = _current_run_name or "no-run"
        return True


def set_current_run(run_name: str | None) -> None:
    """
    Set the current run name for logging.

    Called by the orchestrator when a run starts and cleared when it ends.
    """
    global _current_run_name
    _current_run_name = run_name


def get_current_run() -> str | None:
    return _current_run_name


def setup_logging(level: str = "INFO") -> None:
    """Configure root logger. `LOG_LEVEL` in the environment wins over `level`."""
    log_level = os.getenv("LOG_LEVEL", level).upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format=LOG_FORMAT,
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RunNameFilter) for f in handler.filters):
            handler.addFilter(RunNameFilter())


class BufferingHandler(logging.Handler):
    """Holds on to every record it receives."""

    def __init__(self):
        super().__init__(logging.NOTSET)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@contextlib.contextmanager
def suppressed_logs(enabled: bool = True) -> Iterator[BufferingHandler | None]:
    """
    Hold back orchestration log records for the duration of the block.

    If the block raises, the buffered records are replayed to the root logger's handlers before
    the exception propagates; on success they are dropped.
    """
    if not enabled:
        yield None
        return

    buffer = BufferingHandler()
    loggers = [logging.getLogger(name) for name in SUPPRESSED_LOGGERS]
    saved = [lg.propagate for lg in loggers]
    for lg in loggers:
        lg.addHandler(buffer)
        lg.propagate = False

    failed = False
    try:
        yield buffer
    except BaseException:
        failed = True
        raise
    finally:
        for lg, propagate in zip(loggers, saved):
            lg.removeHandler(buffer)
            lg.propagate = propagate
        if failed:
            root = logging.getLogger()
            for record in buffer.records:
                if record.levelno >= root.getEffectiveLevel():
                    root.handle(record)
