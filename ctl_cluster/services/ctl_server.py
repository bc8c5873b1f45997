"""
Application server (ctl-server) wrapper.
"""

from typing import TypedDict

from ctl_cluster.config import CTL_SERVER_READY_MARKER
from ctl_cluster.readiness import line_contains, wait_for_output
from ctl_cluster.services.base import ManagedService


class CtlServerProps(TypedDict):
    """Properties for the application server."""

    host: str
    port: int
    url: str


class CtlServerService(ManagedService):
    """ManagedService for ctl-server, ready once it reports its Ogmios connection."""

    props: CtlServerProps

    def _wait_ready(self, timeout: float | None) -> None:
        wait_for_output(self, line_contains(CTL_SERVER_READY_MARKER), timeout)
