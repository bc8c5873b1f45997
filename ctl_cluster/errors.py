"""
Error taxonomy for cluster orchestration.

Every fatal condition during startup is one of these. Callers see exactly one of them per failed
run: the first fatal cause.
"""


class ClusterError(Exception):
    """Base class for all orchestration errors."""


class PortConflict(ClusterError):
    """Raised by preflight when configured ports are occupied or claimed twice."""

    def __init__(self, conflicts: dict[str, str]):
        # service name -> human readable reason
        self.conflicts = dict(conflicts)
        details = ", ".join(f"{svc} ({reason})" for svc, reason in self.conflicts.items())
        super().__init__(f"Port conflict for services: {details}")


class ProcessSpawnError(ClusterError):
    """Raised when the OS could not launch an executable."""

    def __init__(self, cmd: list[str], cause: OSError):
        self.cmd = cmd
        self.cause = cause
        super().__init__(f"Failed to launch {cmd[0]!r}: {cause}")


class ProcessExitedEarly(ClusterError):
    """Raised when a process exits before it signalled readiness."""

    def __init__(self, name: str, returncode: int | None, output_tail: list[str]):
        self.name = name
        self.returncode = returncode
        self.output_tail = output_tail
        tail = "\n".join(f"  {line}" for line in output_tail)
        msg = f"process '{name}' exited (code {returncode}) before it became ready"
        if tail:
            msg += f", last output:\n{tail}"
        super().__init__(msg)


class ReadinessTimeout(ClusterError):
    """Raised when a readiness wait runs past its timeout."""


class CommandFailed(ClusterError):
    """Raised when a one-shot admin command exits with a non-zero status."""

    def __init__(self, cmd: list[str], returncode: int, output: str):
        self.cmd = cmd
        self.returncode = returncode
        self.output = output
        super().__init__(
            f"command failed (exit {returncode}):\n"
            f"  cmd: {' '.join(cmd)}\n"
            f"  output: {output.strip()}"
        )


class RetryBudgetExceeded(ClusterError):
    """Raised when a bounded wait on a predicate exhausts its cumulative delay."""


class PlutipRequestError(ClusterError):
    """Raised when the emulator control service returns something we can't interpret."""


class ClusterStartupError(ClusterError):
    """Raised when the emulator refused to start the cluster."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"cluster failed to start: {reason}")


class ClusterStopError(ClusterError):
    """Raised when the emulator reports that the cluster could not be stopped."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"cluster failed to stop: {reason}")


class KeyDecodeError(ClusterError):
    """
    Raised when key material returned by the emulator cannot be turned into wallets.

    This indicates a protocol mismatch between this library and the emulator, never a user error.
    """

    def __init__(self, message: str):
        super().__init__(
            f"{message}. This is a bug in the cluster orchestrator, please report it."
        )


class JsonWspFault(ClusterError):
    """Raised when a JSON-WSP service answers a request with a fault."""

    def __init__(self, fault: dict):
        self.code = fault.get("code")
        self.string = fault.get("string")
        super().__init__(f"JSON-WSP fault {self.code}: {self.string}")


class EnvironmentClosed(ClusterError):
    """Raised when a runtime environment is used after teardown started."""
