"""
Scoped acquisition of services.

`CleanupStack` is a LIFO list of deferred cleanup actions. Each resource pushes its cleanup as
soon as it is acquired; leaving the stack runs every cleanup exactly once in reverse order. A
failing cleanup is logged and swallowed so the exception that caused the unwind is the one the
caller sees.
"""

import logging
from collections.abc import Callable
from enum import Enum
from typing import TypeVar

logger = logging.getLogger(__name__)

H = TypeVar("H")
R = TypeVar("R")


class ServiceState(str, Enum):
    NotStarted = "not_started"
    Starting = "starting"
    Ready = "ready"
    FailedToStart = "failed_to_start"
    Stopping = "stopping"
    Stopped = "stopped"

    def __str__(self) -> str:
        return self.value


# Allowed transitions of the per-service state machine.
TRANSITIONS: dict[ServiceState, set[ServiceState]] = {
    ServiceState.NotStarted: {ServiceState.Starting},
    ServiceState.Starting: {ServiceState.Ready, ServiceState.FailedToStart},
    ServiceState.Ready: {ServiceState.Stopping},
    ServiceState.Stopping: {ServiceState.Stopped},
    ServiceState.FailedToStart: set(),
    ServiceState.Stopped: set(),
}


class CleanupStack:
    """
    Explicit stack of deferred cleanup actions.

    Usage:
        with CleanupStack() as stack:
            db = stack.enter_service("postgres", start_postgres, stop_postgres)
            ogmios = stack.enter_service("ogmios", start_ogmios, stop_ogmios)
            ...
        # ogmios stopped, then postgres, whatever happened inside the block
    """

    def __init__(self):
        self._actions: list[tuple[str, Callable[[], None]]] = []

    def __len__(self) -> int:
        return len(self._actions)

    def push(self, name: str, fn: Callable[[], None]) -> None:
        """Register a cleanup to run when the stack unwinds."""
        self._actions.append((name, fn))

    def enter_service(
        self,
        name: str,
        start_fn: Callable[[], H],
        stop_fn: Callable[[H], None],
    ) -> H:
        """
        Acquire a resource and register its release.

        If `start_fn` raises nothing is pushed; the resource was never acquired.
        """
        handle = start_fn()
        self.push(name, lambda: stop_fn(handle))
        return handle

    def unwind(self) -> None:
        """Run every registered cleanup, most recent first, each exactly once."""
        while self._actions:
            name, fn = self._actions.pop()
            logger.debug(f"cleanup: {name}")
            try:
                fn()
            except Exception as e:
                logger.error(f"cleanup of '{name}' failed, continuing teardown: {e!r}")

    def __enter__(self) -> "CleanupStack":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc is not None:
            logger.info(f"unwinding {len(self._actions)} resource(s) after error: {exc!r}")
        self.unwind()
        return False


def with_service(
    start_fn: Callable[[], H],
    stop_fn: Callable[[H], None],
    body: Callable[[H], R],
) -> R:
    """
    Run `body` with a freshly started resource, stopping it on every exit path.

    `stop_fn` runs exactly once per successful `start_fn`, whether `body` returns or raises. A
    failing `stop_fn` never replaces an exception raised by `body`.
    """
    with CleanupStack() as stack:
        handle = stack.enter_service(getattr(start_fn, "__name__", "service"), start_fn, stop_fn)
        return body(handle)
