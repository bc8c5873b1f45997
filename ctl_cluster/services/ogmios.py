"""
Query node (Ogmios) wrapper.
"""

from typing import TypedDict

from websockets.exceptions import WebSocketException

from ctl_cluster.ogmios import OgmiosConnection
from ctl_cluster.services.base import ManagedService
from ctl_cluster.wait import retry


class OgmiosProps(TypedDict):
    """Properties for the query node."""

    host: str
    port: int
    url: str
    node_socket: str
    node_config: str


class OgmiosService(ManagedService):
    """
    ManagedService for Ogmios.

    Ogmios prints as soon as it is up; whether it can actually reach the node is proven later by
    the datum indexer connecting through it. Uses the default any-output readiness.
    """

    props: OgmiosProps

    def create_connection(self) -> OgmiosConnection:
        if not self.check_status():
            raise RuntimeError("Service is not running")

        return OgmiosConnection(self.props["url"], name=self.name)

    def open_connection(self) -> OgmiosConnection:
        """Connect, retrying while the websocket listener comes up."""
        conn = self.create_connection()
        retry(conn.open, self.retry_policy, retry_on=(OSError, WebSocketException))
        return conn
