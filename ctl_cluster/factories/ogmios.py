"""
Query node factory.
"""

from ctl_cluster.config import ServerConfig, ServiceType
from ctl_cluster.context import EnvContext
from ctl_cluster.factories.base import ServiceFactory
from ctl_cluster.services import OgmiosProps, OgmiosService


class OgmiosFactory(ServiceFactory):
    """Factory for Ogmios attached to the cluster's node socket."""

    def create(
        self,
        ctx: EnvContext,
        server: ServerConfig,
        node_socket: str,
        node_config: str,
    ) -> OgmiosService:
        datadir = ctx.make_service_dir(ServiceType.Ogmios)
        logfile = datadir / "service.log"

        # fmt: off
        cmd = [
            self.executable,
            "--host", server.host,
            "--port", str(server.port),
            "--node-socket", node_socket,
            "--node-config", node_config,
        ]
        # fmt: on

        props: OgmiosProps = {
            "host": server.host,
            "port": server.port,
            "url": server.ws_url(),
            "node_socket": node_socket,
            "node_config": node_config,
        }

        svc = OgmiosService(
            ServiceType.Ogmios,
            dict(props),
            cmd,
            host=server.host,
            port=server.port,
            logfile=str(logfile),
            retry_policy=ctx.retry_policy,
        )
        self._start_and_wait(svc, ctx)
        return svc
