"""
Service wrapper extending ManagedProcess with readiness and the stop contract.
"""

import logging
import signal
import subprocess
from typing import Any

from ctl_cluster.config import ServiceType
from ctl_cluster.errors import ProcessExitedEarly, RetryBudgetExceeded
from ctl_cluster.lifecycle import TRANSITIONS, ServiceState
from ctl_cluster.ports import wait_for_port_free
from ctl_cluster.process import ManagedProcess
from ctl_cluster.readiness import any_line, wait_for_output
from ctl_cluster.wait import DEFAULT_RETRY_POLICY, RetryPolicy

logger = logging.getLogger(__name__)


class ManagedService(ManagedProcess):
    """
    Extends ManagedProcess with a lifecycle state machine for cluster services.

    Subclasses override `_wait_ready()` to implement service-specific readiness checks. The
    default treats any output line as readiness.

    Provides:
    - wait_for_ready() - Block until the service is usable, or fail and clean up after itself
    - stop() - SIGINT, wait until the port is released, reap the process

    Usage:
        class MyService(ManagedService):
            def _wait_ready(self, timeout):
                wait_for_output(self, line_contains("listening"), timeout)

        svc = MyService(
            ServiceType.Ogmios,
            props={"port": 1338, "url": "ws://127.0.0.1:1338"},
            cmd=["myservice", "--port", "1338"],
            host="127.0.0.1",
            port=1338,
            logfile="/path/to/service.log",
        )
        svc.start()
        svc.wait_for_ready(timeout=30)
        svc.stop()
    """

    def __init__(
        self,
        service_type: ServiceType,
        props: dict[str, Any],
        cmd: list[str],
        host: str,
        port: int | None,
        logfile: str | None = None,
        name: str | None = None,
        env: dict[str, str] | None = None,
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    ):
        """
        Initialize service wrapper.

        Args:
            service_type: Which service of the topology this is
            props: Service properties (ports, URLs, etc.)
            cmd: Command and arguments to execute
            host: Host the service listens on
            port: Port the service listens on, checked for release on stop
            logfile: Path to log file for stdout/stderr
            name: Service name for logging
            env: Extra environment variables for the process
            retry_policy: Policy for health probes and the port-release wait
        """
        super().__init__(
            name or str(service_type), cmd, port=port, host=host, logfile=logfile, env=env
        )
        self.service_type = service_type
        self.props = props
        self.state = ServiceState.NotStarted
        self.stop_timeout = 10
        self.retry_policy = retry_policy

    def get_prop(self, name: str) -> Any:
        return self.props[name]

    def _transition(self, new: ServiceState) -> None:
        if new not in TRANSITIONS[self.state]:
            raise RuntimeError(f"service '{self.name}' cannot go from {self.state} to {new}")
        logger.debug(f"{self.name}: {self.state} -> {new}")
        self.state = new

    def start(self) -> None:
        self._transition(ServiceState.Starting)
        try:
            super().start()
        except Exception:
            self._transition(ServiceState.FailedToStart)
            raise

    def _ensure_running(self) -> None:
        """Raise if the process died; used inside health probes to fail fast."""
        if not self.check_status():
            raise ProcessExitedEarly(self.name, self.exit_code(), self.output_tail())

    def _wait_ready(self, timeout: float | None) -> None:
        """
        Block until the service is usable.

        Override this in subclasses to implement service-specific readiness checks.
        """
        wait_for_output(self, any_line, timeout)

    def wait_for_ready(self, timeout: float | None = None) -> None:
        """
        Wait until the service is ready.

        On failure the service is marked FailedToStart and its process is killed before the error
        propagates; a service that never became ready is never handed to a cleanup scope.
        """
        try:
            self._wait_ready(timeout)
        except BaseException:
            self._transition(ServiceState.FailedToStart)
            self._abort()
            raise
        self._transition(ServiceState.Ready)
        self._logger.info("ready")

    def _abort(self) -> None:
        try:
            self.kill()
            self._reap()
        except Exception as e:
            self._logger.error(f"failed to clean up after failed start: {e!r}")

    def _reap(self) -> None:
        try:
            self.wait(timeout=self.stop_timeout)
        except subprocess.TimeoutExpired:
            self.kill()
            self.wait()
        self.release()

    def stop(self) -> None:
        """
        Stop the service: deliver SIGINT, then block until its port is released.

        A service still holding its port once the retry budget is spent is force-killed, and the
        port is waited for again. The process is reaped on every path.

        Raises:
            RetryBudgetExceeded: If the port is still taken even after the force-kill
        """
        self._transition(ServiceState.Stopping)
        try:
            self.terminate(signal.SIGINT)
            if self.port is None:
                return
            try:
                wait_for_port_free(self.port, self.host, self.retry_policy)
            except RetryBudgetExceeded:
                self._logger.warning(f"port {self.port} still bound after SIGINT, force-killing")
                self.kill()
                self._reap()
                wait_for_port_free(self.port, self.host, self.retry_policy)
        finally:
            self._reap()
            self._transition(ServiceState.Stopped)
            self._logger.info("stopped")
