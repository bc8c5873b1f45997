"""
Emulator control service factory.
"""

from ctl_cluster.config import ServiceType
from ctl_cluster.context import EnvContext
from ctl_cluster.factories.base import ServiceFactory
from ctl_cluster.services import PlutipProps, PlutipService


class PlutipFactory(ServiceFactory):
    """
    Factory for plutip-server.

    Usage:
        factory = PlutipFactory("plutip-server")
        plutip = factory.create(ctx, "127.0.0.1", 8082)
        client = plutip.create_client()
    """

    def create(self, ctx: EnvContext, host: str, port: int) -> PlutipService:
        datadir = ctx.make_service_dir(ServiceType.Plutip)
        logfile = datadir / "service.log"

        cmd = [self.executable, "-p", str(port)]

        props: PlutipProps = {
            "host": host,
            "port": port,
            "url": f"http://{host}:{port}",
            "datadir": str(datadir),
        }

        svc = PlutipService(
            ServiceType.Plutip,
            dict(props),
            cmd,
            host=host,
            port=port,
            logfile=str(logfile),
            retry_policy=ctx.retry_policy,
        )
        self._start_and_wait(svc, ctx)
        return svc
