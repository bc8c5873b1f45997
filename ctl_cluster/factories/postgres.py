"""
Database factory: fresh data directory, server process, role and database.
"""

from ctl_cluster.config import PostgresConfig, ServiceType
from ctl_cluster.context import EnvContext
from ctl_cluster.factories.base import ServiceFactory
from ctl_cluster.services import PostgresProps, PostgresService
from ctl_cluster.services.postgres import run_admin_command


class PostgresFactory(ServiceFactory):
    """
    Factory for a throwaway PostgreSQL instance.

    Usage:
        factory = PostgresFactory("postgres", initdb="initdb", psql="psql", createdb="createdb")
        db = factory.create(ctx, PostgresConfig(port=5433))
        db.dsn
    """

    def __init__(
        self,
        executable: str = "postgres",
        initdb: str = "initdb",
        psql: str = "psql",
        createdb: str = "createdb",
    ):
        super().__init__(executable)
        self.initdb = initdb
        self.psql = psql
        self.createdb = createdb

    def create(self, ctx: EnvContext, pg: PostgresConfig) -> PostgresService:
        """
        Create the database service.

        Args:
            ctx: Run context
            pg: Host, port and credentials to set up
        """
        service_dir = ctx.make_service_dir(ServiceType.Postgres)
        datadir = service_dir / "data"
        logfile = service_dir / "service.log"

        run_admin_command([self.initdb, "-D", str(datadir)])

        # fmt: off
        cmd = [
            self.executable,
            "-D", str(datadir),
            "-p", str(pg.port),
            "-h", pg.host,
            "-k", str(service_dir),
        ]
        # fmt: on

        props: PostgresProps = {
            "host": pg.host,
            "port": pg.port,
            "user": pg.user,
            "password": pg.password,
            "dbname": pg.dbname,
            "datadir": str(datadir),
            "socket_dir": str(service_dir),
        }

        svc = PostgresService(
            ServiceType.Postgres,
            dict(props),
            cmd,
            host=pg.host,
            port=pg.port,
            logfile=str(logfile),
            retry_policy=ctx.retry_policy,
            psql=self.psql,
            createdb=self.createdb,
        )
        self._start_and_wait(svc, ctx)

        try:
            svc.provision()
        except Exception:
            self._stop_after_failure(svc)
            raise

        return svc
