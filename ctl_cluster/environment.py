"""
The runtime handle handed to code running against a live cluster.
"""

import logging
import threading
from typing import Any

from ctl_cluster.config import ClusterConfig
from ctl_cluster.errors import EnvironmentClosed
from ctl_cluster.ogmios import DatumCacheConnection, OgmiosConnection

logger = logging.getLogger(__name__)


class UsedTxOuts:
    """
    Transaction outputs reserved by in-flight transactions.

    Thread-safe: concurrent transaction builders can lock outputs without double-spending.
    """

    def __init__(self):
        self._locked: set[tuple[str, int]] = set()
        self._lock = threading.Lock()

    def lock(self, tx_hash: str, index: int) -> bool:
        """Reserve an output. Returns False if it was already reserved."""
        with self._lock:
            ref = (tx_hash, index)
            if ref in self._locked:
                return False
            self._locked.add(ref)
            return True

    def unlock(self, tx_hash: str, index: int) -> None:
        with self._lock:
            self._locked.discard((tx_hash, index))

    def is_locked(self, tx_hash: str, index: int) -> bool:
        with self._lock:
            return (tx_hash, index) in self._locked

    def locked(self) -> set[tuple[str, int]]:
        with self._lock:
            return set(self._locked)


class RuntimeEnvironment:
    """
    Live connections and configuration for one orchestration run.

    Built only once every service is ready. After `close()` the connections are gone and any
    access to them raises EnvironmentClosed.
    """

    def __init__(
        self,
        config: ClusterConfig,
        ogmios: OgmiosConnection,
        datum_cache: DatumCacheConnection,
        protocol_parameters: dict[str, Any],
        wallets: Any = None,
        ctl_server_url: str | None = None,
        used_tx_outs: UsedTxOuts | None = None,
    ):
        self._config = config
        self._ogmios = ogmios
        self._datum_cache = datum_cache
        self._protocol_parameters = protocol_parameters
        self._wallets = wallets
        self._ctl_server_url = ctl_server_url
        self._used_tx_outs = used_tx_outs or UsedTxOuts()
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise EnvironmentClosed("runtime environment was torn down")

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def config(self) -> ClusterConfig:
        return self._config

    @property
    def ogmios(self) -> OgmiosConnection:
        self._check_open()
        return self._ogmios

    @property
    def datum_cache(self) -> DatumCacheConnection:
        self._check_open()
        return self._datum_cache

    @property
    def protocol_parameters(self) -> dict[str, Any]:
        self._check_open()
        return self._protocol_parameters

    @property
    def wallets(self) -> Any:
        self._check_open()
        return self._wallets

    @property
    def ctl_server_url(self) -> str | None:
        self._check_open()
        return self._ctl_server_url

    @property
    def used_tx_outs(self) -> UsedTxOuts:
        self._check_open()
        return self._used_tx_outs

    def close(self) -> None:
        """Close every live connection. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            self._ogmios.close()
        finally:
            self._datum_cache.close()
        logger.debug("runtime environment closed")
