"""
Constants used throughout the cluster orchestrator.
"""

from enum import Enum


class ServiceType(str, Enum):
    """
    Service type identifiers for the managed topology.

    Using str Enum allows direct string comparison while providing
    IDE autocomplete and type safety.

    Usage:
        factories = {ServiceType.Plutip: PlutipFactory(...), ...}
        ogmios = services[ServiceType.Ogmios]
    """

    Plutip = "plutip"
    Postgres = "postgres"
    Ogmios = "ogmios"
    DatumCache = "datum_cache"
    CtlServer = "ctl_server"

    def __str__(self) -> str:
        """Allow direct use in f-strings and format operations."""
        return self.value


# Readiness log lines printed by the external services. Must match literally.
DATUM_CACHE_READY_MARKER = "Intersection found"
CTL_SERVER_READY_MARKER = "Successfully connected to Ogmios"

# Control API credentials handed to ogmios-datum-cache.
DATUM_CACHE_CONTROL_API = "usr:pwd"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PLUTIP_PORT = 8082
DEFAULT_OGMIOS_PORT = 1338
DEFAULT_DATUM_CACHE_PORT = 10000
DEFAULT_CTL_SERVER_PORT = 8083
DEFAULT_POSTGRES_PORT = 5433
DEFAULT_POSTGRES_CREDENTIAL = "ctxlib"
