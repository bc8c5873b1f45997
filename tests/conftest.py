import socket
import stat
import sys
from pathlib import Path

import pytest

from ctl_cluster.config import ClusterBinaries, ClusterConfig, PostgresConfig, ServerConfig

FIXTURES = Path(__file__).parent / "fixtures"


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def free_ports(n: int) -> list[int]:
    # Hold all sockets open at once so the ports are distinct.
    socks = []
    try:
        for _ in range(n):
            s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            s.bind(("127.0.0.1", 0))
            socks.append(s)
        return [s.getsockname()[1] for s in socks]
    finally:
        for s in socks:
            s.close()


def write_wrapper(bindir: Path, name: str, script: str, mode: str) -> str:
    """Executable shell wrapper running a fixture script in the given mode."""
    path = bindir / name
    path.write_text(
        "#!/bin/sh\n"
        f'exec "{sys.executable}" -u "{FIXTURES / script}" {mode} "$@"\n'
    )
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)


@pytest.fixture
def make_binaries(tmp_path):
    """Build ClusterBinaries pointing at fake executables; keyword args override modes."""
    bindir = tmp_path / "bin"
    bindir.mkdir()

    def _make(
        plutip: str = "ok",
        datum_cache: str = "datum-cache",
        ogmios: str = "ogmios",
    ) -> ClusterBinaries:
        return ClusterBinaries(
            plutip_server=write_wrapper(
                bindir, f"plutip-server-{plutip}", "fake_plutip_server.py", plutip
            ),
            initdb=write_wrapper(bindir, "initdb", "fake_pg_tool.py", "initdb"),
            postgres=write_wrapper(bindir, "postgres", "fake_service.py", "postgres"),
            psql=write_wrapper(bindir, "psql", "fake_pg_tool.py", "psql"),
            createdb=write_wrapper(bindir, "createdb", "fake_pg_tool.py", "createdb"),
            ogmios=write_wrapper(bindir, f"ogmios-{ogmios}", "fake_service.py", ogmios),
            ogmios_datum_cache=write_wrapper(
                bindir, f"ogmios-datum-cache-{datum_cache}", "fake_service.py", datum_cache
            ),
            ctl_server=write_wrapper(bindir, "ctl-server", "fake_service.py", "ctl-server"),
        )

    return _make


@pytest.fixture
def make_config(tmp_path, make_binaries):
    """Cluster configuration on free ports with fake executables."""

    def _make(with_ctl_server: bool = False, **binary_modes) -> ClusterConfig:
        plutip, pg, ogmios, datum, ctl = free_ports(5)
        return ClusterConfig(
            port=plutip,
            postgres=PostgresConfig(port=pg),
            ogmios=ServerConfig(port=ogmios),
            datum_cache=ServerConfig(port=datum),
            ctl_server=ServerConfig(port=ctl) if with_ctl_server else None,
            binaries=make_binaries(**binary_modes),
            workdir=str(tmp_path / "work"),
            readiness_timeout=30.0,
        )

    return _make
