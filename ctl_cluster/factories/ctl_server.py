"""
Application server factory.
"""

from ctl_cluster.config import ServerConfig, ServiceType
from ctl_cluster.context import EnvContext
from ctl_cluster.factories.base import ServiceFactory
from ctl_cluster.services import CtlServerProps, CtlServerService


class CtlServerFactory(ServiceFactory):
    def create(self, ctx: EnvContext, server: ServerConfig, ogmios: ServerConfig) -> CtlServerService:
        datadir = ctx.make_service_dir(ServiceType.CtlServer)
        logfile = datadir / "service.log"

        # fmt: off
        cmd = [
            self.executable,
            "--port", str(server.port),
            "--ogmios-host", ogmios.host,
            "--ogmios-port", str(ogmios.port),
        ]
        # fmt: on

        props: CtlServerProps = {
            "host": server.host,
            "port": server.port,
            "url": server.http_url(),
        }

        svc = CtlServerService(
            ServiceType.CtlServer,
            dict(props),
            cmd,
            host=server.host,
            port=server.port,
            logfile=str(logfile),
            retry_policy=ctx.retry_policy,
        )
        self._start_and_wait(svc, ctx)
        return svc
