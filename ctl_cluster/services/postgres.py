"""
PostgreSQL service wrapper: readiness via a trivial psql query, then role and database setup.
"""

import subprocess
from typing import TypedDict

from ctl_cluster.errors import CommandFailed, ProcessSpawnError
from ctl_cluster.services.base import ManagedService
from ctl_cluster.wait import retry

# Seconds a single admin command may take.
ADMIN_COMMAND_TIMEOUT = 60


def run_admin_command(cmd: list[str]) -> str:
    """
    Run a one-shot command and return its stdout.

    Raises:
        ProcessSpawnError: If the executable can't be launched
        CommandFailed: If it exits non-zero or hangs
    """
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            stdin=subprocess.DEVNULL,
            timeout=ADMIN_COMMAND_TIMEOUT,
        )
    except subprocess.TimeoutExpired as e:
        raise CommandFailed(cmd, -1, f"timed out after {ADMIN_COMMAND_TIMEOUT}s") from e
    except OSError as e:
        raise ProcessSpawnError(cmd, e) from e

    if result.returncode != 0:
        raise CommandFailed(cmd, result.returncode, result.stderr or result.stdout)
    return result.stdout.strip()


class PostgresProps(TypedDict):
    """Properties for the database service."""

    host: str
    port: int
    user: str
    password: str
    dbname: str
    datadir: str
    socket_dir: str


class PostgresService(ManagedService):
    """
    ManagedService for postgres.

    Readiness is the first successful `psql` round trip; `provision()` then creates the
    configured role and database.
    """

    props: PostgresProps

    def __init__(self, *args, psql: str = "psql", createdb: str = "createdb", **kwargs):
        super().__init__(*args, **kwargs)
        self.psql = psql
        self.createdb = createdb

    def _psql(self, sql: str) -> str:
        # fmt: off
        cmd = [
            self.psql,
            "-h", self.props["host"],
            "-p", str(self.props["port"]),
            "-d", "postgres",
            "-c", sql,
        ]
        # fmt: on
        return run_admin_command(cmd)

    def _wait_ready(self, timeout: float | None) -> None:
        def _probe():
            self._ensure_running()
            self._psql("SELECT 1;")

        retry(_probe, self.retry_policy, retry_on=(CommandFailed,))

    def provision(self) -> None:
        """Create the login role and the database owned by it."""
        user = self.props["user"]
        password = self.props["password"].replace("'", "''")
        role = user.replace('"', '""')
        self._psql(f"CREATE ROLE \"{role}\" WITH LOGIN SUPERUSER CREATEDB PASSWORD '{password}';")

        # fmt: off
        run_admin_command([
            self.createdb,
            "-h", self.props["host"],
            "-p", str(self.props["port"]),
            "-U", user,
            "-O", user,
            self.props["dbname"],
        ])
        # fmt: on
        self._logger.info(f"created role {user} and database {self.props['dbname']}")

    @property
    def dsn(self) -> str:
        p = self.props
        return f"postgresql://{p['user']}:{p['password']}@{p['host']}:{p['port']}/{p['dbname']}"
