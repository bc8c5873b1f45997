"""
Readiness detection over a process's output.
"""

import time
from collections.abc import Callable

from ctl_cluster.errors import ProcessExitedEarly, ReadinessTimeout
from ctl_cluster.process import ManagedProcess

LinePredicate = Callable[[str], bool]


def any_line(line: str) -> bool:
    """Ready as soon as the process prints anything."""
    return True


def line_contains(text: str) -> LinePredicate:
    """Ready once a line containing `text` shows up."""

    def _check(line: str) -> bool:
        return text in line

    return _check


def wait_for_output(
    process: ManagedProcess,
    predicate: LinePredicate,
    timeout: float | None = None,
) -> str:
    """
    Block until `predicate` matches a line of the process's output.

    Lines printed before this call are considered too.

    Args:
        process: A started process
        predicate: Condition over a single output line
        timeout: Maximum time to wait in seconds (None waits indefinitely)

    Returns:
        The matching line

    Raises:
        ProcessExitedEarly: If the output ends (the process exited) without a match
        ReadinessTimeout: If `timeout` elapses first
    """
    deadline = None if timeout is None else time.monotonic() + timeout
    index = 0
    while True:
        remaining = None if deadline is None else max(deadline - time.monotonic(), 0.0)
        lines, index, eof = process.read_output(index, timeout=remaining)
        for line in lines:
            if predicate(line):
                return line
        if eof:
            raise ProcessExitedEarly(process.name, process.exit_code(), process.output_tail())
        if deadline is not None and time.monotonic() >= deadline:
            raise ReadinessTimeout(
                f"process '{process.name}' not ready after {timeout}s"
            )
