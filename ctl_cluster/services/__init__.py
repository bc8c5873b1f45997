"""
Service wrappers for the managed topology.
"""

from ctl_cluster.services.base import ManagedService
from ctl_cluster.services.ctl_server import CtlServerProps, CtlServerService
from ctl_cluster.services.datum_cache import DatumCacheProps, DatumCacheService
from ctl_cluster.services.ogmios import OgmiosProps, OgmiosService
from ctl_cluster.services.plutip import PlutipProps, PlutipService
from ctl_cluster.services.postgres import PostgresProps, PostgresService

__all__ = [
    "ManagedService",
    "PlutipService",
    "PlutipProps",
    "PostgresService",
    "PostgresProps",
    "OgmiosService",
    "OgmiosProps",
    "DatumCacheService",
    "DatumCacheProps",
    "CtlServerService",
    "CtlServerProps",
]
