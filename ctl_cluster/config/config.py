"""
Configuration dataclasses for the managed services.
"""

from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import toml

from ctl_cluster.config.constants import (
    DEFAULT_CTL_SERVER_PORT,
    DEFAULT_DATUM_CACHE_PORT,
    DEFAULT_HOST,
    DEFAULT_OGMIOS_PORT,
    DEFAULT_PLUTIP_PORT,
    DEFAULT_POSTGRES_CREDENTIAL,
    DEFAULT_POSTGRES_PORT,
    ServiceType,
)


@dataclass(frozen=True)
class ServerConfig:
    host: str = field(default=DEFAULT_HOST)
    port: int = field(default=0)
    secure: bool = field(default=False)
    path: str | None = field(default=None)

    def http_url(self) -> str:
        scheme = "https" if self.secure else "http"
        return f"{scheme}://{self.host}:{self.port}{self._path_suffix()}"

    def ws_url(self) -> str:
        scheme = "wss" if self.secure else "ws"
        return f"{scheme}://{self.host}:{self.port}{self._path_suffix()}"

    def _path_suffix(self) -> str:
        if not self.path:
            return ""
        return "/" + self.path.lstrip("/")


@dataclass(frozen=True)
class PostgresConfig:
    host: str = field(default=DEFAULT_HOST)
    port: int = field(default=DEFAULT_POSTGRES_PORT)
    user: str = field(default=DEFAULT_POSTGRES_CREDENTIAL)
    password: str = field(default=DEFAULT_POSTGRES_CREDENTIAL)
    dbname: str = field(default=DEFAULT_POSTGRES_CREDENTIAL)


@dataclass(frozen=True)
class ClusterBinaries:
    """Executables spawned by the orchestrator. Bare names are looked up on PATH."""

    plutip_server: str = field(default="plutip-server")
    initdb: str = field(default="initdb")
    postgres: str = field(default="postgres")
    psql: str = field(default="psql")
    createdb: str = field(default="createdb")
    ogmios: str = field(default="ogmios")
    ogmios_datum_cache: str = field(default="ogmios-datum-cache")
    ctl_server: str = field(default="ctl-server")


@dataclass(frozen=True)
class ClusterConfig:
    """
    Fully resolved configuration for one orchestration run.

    `host`/`port` locate the emulator control service (plutip-server). `ctl_server` is optional;
    when it is None the application server is not started.
    """

    host: str = field(default=DEFAULT_HOST)
    port: int = field(default=DEFAULT_PLUTIP_PORT)
    log_level: str = field(default="INFO")
    suppress_logs: bool = field(default=False)
    postgres: PostgresConfig = field(default_factory=PostgresConfig)
    ogmios: ServerConfig = field(default_factory=lambda: ServerConfig(port=DEFAULT_OGMIOS_PORT))
    datum_cache: ServerConfig = field(
        default_factory=lambda: ServerConfig(port=DEFAULT_DATUM_CACHE_PORT)
    )
    ctl_server: ServerConfig | None = field(default=None)
    binaries: ClusterBinaries = field(default_factory=ClusterBinaries)
    workdir: str | None = field(default=None)
    readiness_timeout: float = field(default=120.0)

    @property
    def plutip_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def service_ports(self) -> dict[ServiceType, tuple[str, int]]:
        """Every (host, port) a managed service will listen on, in startup order."""
        ports = {
            ServiceType.Plutip: (self.host, self.port),
            ServiceType.Postgres: (self.postgres.host, self.postgres.port),
            ServiceType.Ogmios: (self.ogmios.host, self.ogmios.port),
            ServiceType.DatumCache: (self.datum_cache.host, self.datum_cache.port),
        }
        if self.ctl_server is not None:
            ports[ServiceType.CtlServer] = (self.ctl_server.host, self.ctl_server.port)
        return ports

    def as_toml_string(self) -> str:
        d = asdict(self)
        # Remove None values (optional configs)
        d = {k: v for k, v in d.items() if v is not None}
        for section in ("ogmios", "datum_cache", "ctl_server"):
            if section in d:
                d[section] = {k: v for k, v in d[section].items() if v is not None}
        return toml.dumps(d)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClusterConfig":
        """
        Build a config from plain data, e.g. a parsed TOML file.

        A nested section only needs the keys it changes; the rest keep that service's defaults.

        Raises:
            ValueError: On keys that aren't part of the configuration
        """
        defaults = {
            "postgres": PostgresConfig(),
            "ogmios": ServerConfig(port=DEFAULT_OGMIOS_PORT),
            "datum_cache": ServerConfig(port=DEFAULT_DATUM_CACHE_PORT),
            "ctl_server": ServerConfig(port=DEFAULT_CTL_SERVER_PORT),
            "binaries": ClusterBinaries(),
        }
        kwargs = _checked_kwargs(cls, data)
        for key, default in defaults.items():
            if key in kwargs and isinstance(kwargs[key], dict):
                section = _checked_kwargs(type(default), kwargs[key])
                kwargs[key] = replace(default, **section)
        return cls(**kwargs)

    @classmethod
    def from_toml_file(cls, path: str | Path) -> "ClusterConfig":
        with open(path) as f:
            return cls.from_dict(toml.load(f))


def _checked_kwargs(cls: type, data: dict[str, Any]) -> dict[str, Any]:
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"unknown {cls.__name__} keys: {', '.join(sorted(unknown))}")
    return dict(data)
