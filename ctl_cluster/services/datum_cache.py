"""
Datum indexer (ogmios-datum-cache) wrapper.
"""

from typing import TypedDict

from websockets.exceptions import WebSocketException

from ctl_cluster.config import DATUM_CACHE_READY_MARKER
from ctl_cluster.ogmios import DatumCacheConnection
from ctl_cluster.readiness import line_contains, wait_for_output
from ctl_cluster.services.base import ManagedService
from ctl_cluster.wait import retry


class DatumCacheProps(TypedDict):
    """Properties for the datum indexer."""

    host: str
    port: int
    url: str


class DatumCacheService(ManagedService):
    """ManagedService for ogmios-datum-cache, ready once it found its chain intersection."""

    props: DatumCacheProps

    def _wait_ready(self, timeout: float | None) -> None:
        wait_for_output(self, line_contains(DATUM_CACHE_READY_MARKER), timeout)

    def create_connection(self) -> DatumCacheConnection:
        if not self.check_status():
            raise RuntimeError("Service is not running")

        return DatumCacheConnection(self.props["url"], name=self.name)

    def open_connection(self) -> DatumCacheConnection:
        conn = self.create_connection()
        retry(conn.open, self.retry_policy, retry_on=(OSError, WebSocketException))
        return conn
