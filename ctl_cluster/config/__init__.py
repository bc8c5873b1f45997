"""
Configuration dataclasses and constants.
"""

from ctl_cluster.config.config import (
    ClusterBinaries,
    ClusterConfig,
    PostgresConfig,
    ServerConfig,
)
from ctl_cluster.config.constants import (
    CTL_SERVER_READY_MARKER,
    DATUM_CACHE_READY_MARKER,
    ServiceType,
)

__all__ = [
    # config.py
    "ClusterConfig",
    "ClusterBinaries",
    "PostgresConfig",
    "ServerConfig",
    # constants.py
    "ServiceType",
    "DATUM_CACHE_READY_MARKER",
    "CTL_SERVER_READY_MARKER",
]
