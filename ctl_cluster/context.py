"""
Per-run context shared by the service factories.
"""

from dataclasses import dataclass, field
from pathlib import Path

from ctl_cluster.wait import DEFAULT_RETRY_POLICY, RetryPolicy


@dataclass(frozen=True)
class EnvContext:
    """
    Where a run keeps its files and how long services get to become ready.

    Attributes:
        workdir: Root directory of the run; every service gets a subdirectory
        readiness_timeout: Seconds a service may take to print its readiness line
        retry_policy: Policy for health probes and port-release waits
    """

    workdir: Path
    readiness_timeout: float | None = field(default=None)
    retry_policy: RetryPolicy = field(default=DEFAULT_RETRY_POLICY)

    def make_service_dir(self, name: str) -> Path:
        path = self.workdir / name
        path.mkdir(parents=True, exist_ok=True)
        return path
