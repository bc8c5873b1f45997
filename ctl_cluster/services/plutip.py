"""
Emulator control service (plutip-server) wrapper with a stop-cluster liveness probe.
"""

from typing import TypedDict

import requests

from ctl_cluster.errors import PlutipRequestError
from ctl_cluster.plutip import PlutipClient
from ctl_cluster.services.base import ManagedService
from ctl_cluster.wait import retry


class PlutipProps(TypedDict):
    """Properties for the emulator control service."""

    host: str
    port: int
    url: str
    datadir: str


class PlutipService(ManagedService):
    """
    ManagedService for plutip-server with health check via `POST /stop`.

    The process starts listening some time after it is spawned; readiness is the first
    well-formed reply to a stop request, whether or not a cluster is running.
    """

    props: PlutipProps

    def create_client(self) -> PlutipClient:
        if not self.check_status():
            raise RuntimeError("Service is not running")

        return PlutipClient(self.props["url"], name=self.name)

    def _rpc_health_check(self, client: PlutipClient) -> None:
        """Check health by asking the emulator to stop a (possibly absent) cluster."""
        client.stop_cluster()

    def _wait_ready(self, timeout: float | None) -> None:
        def _probe():
            self._ensure_running()
            self._rpc_health_check(self.create_client())

        retry(
            _probe,
            self.retry_policy,
            retry_on=(requests.RequestException, PlutipRequestError),
        )
