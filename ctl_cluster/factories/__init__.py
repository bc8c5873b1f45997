"""Service factories for creating cluster services."""

from ctl_cluster.config import ClusterBinaries, ServiceType
from ctl_cluster.factories.base import ServiceFactory
from ctl_cluster.factories.ctl_server import CtlServerFactory
from ctl_cluster.factories.datum_cache import DatumCacheFactory
from ctl_cluster.factories.ogmios import OgmiosFactory
from ctl_cluster.factories.plutip import PlutipFactory
from ctl_cluster.factories.postgres import PostgresFactory


def default_factories(binaries: ClusterBinaries) -> dict[ServiceType, ServiceFactory]:
    """One factory per service type, spawning the given executables."""
    return {
        ServiceType.Plutip: PlutipFactory(binaries.plutip_server),
        ServiceType.Postgres: PostgresFactory(
            binaries.postgres,
            initdb=binaries.initdb,
            psql=binaries.psql,
            createdb=binaries.createdb,
        ),
        ServiceType.Ogmios: OgmiosFactory(binaries.ogmios),
        ServiceType.DatumCache: DatumCacheFactory(binaries.ogmios_datum_cache),
        ServiceType.CtlServer: CtlServerFactory(binaries.ctl_server),
    }


__all__ = [
    "ServiceFactory",
    "PlutipFactory",
    "PostgresFactory",
    "OgmiosFactory",
    "DatumCacheFactory",
    "CtlServerFactory",
    "default_factories",
]
