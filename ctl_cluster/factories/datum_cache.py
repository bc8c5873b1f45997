"""
Datum indexer factory.
"""

from ctl_cluster.config import PostgresConfig, ServerConfig, ServiceType
from ctl_cluster.config.constants import DATUM_CACHE_CONTROL_API
from ctl_cluster.context import EnvContext
from ctl_cluster.factories.base import ServiceFactory
from ctl_cluster.services import DatumCacheProps, DatumCacheService


class DatumCacheFactory(ServiceFactory):
    """Factory for ogmios-datum-cache, indexing from origin into the run's database."""

    def create(
        self,
        ctx: EnvContext,
        server: ServerConfig,
        ogmios: ServerConfig,
        pg: PostgresConfig,
    ) -> DatumCacheService:
        datadir = ctx.make_service_dir(ServiceType.DatumCache)
        logfile = datadir / "service.log"

        # fmt: off
        cmd = [
            self.executable,
            "--server-api", DATUM_CACHE_CONTROL_API,
            "--server-port", str(server.port),
            "--ogmios-address", ogmios.host,
            "--ogmios-port", str(ogmios.port),
            "--db-port", str(pg.port),
            "--db-host", pg.host,
            "--db-user", pg.user,
            "--db-name", pg.dbname,
            "--db-password", pg.password,
            "--use-latest",
            "--from-origin",
        ]
        # fmt: on

        props: DatumCacheProps = {
            "host": server.host,
            "port": server.port,
            "url": f"{server.ws_url()}/ws",
        }

        svc = DatumCacheService(
            ServiceType.DatumCache,
            dict(props),
            cmd,
            host=server.host,
            port=server.port,
            logfile=str(logfile),
            retry_policy=ctx.retry_policy,
        )
        self._start_and_wait(svc, ctx)
        return svc
