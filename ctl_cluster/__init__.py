"""
Local test-cluster orchestration for the Cardano transaction library.
"""

from ctl_cluster.config import ClusterBinaries, ClusterConfig, PostgresConfig, ServerConfig
from ctl_cluster.distribution import (
    KeyedWallets,
    NoWallets,
    SingleWallet,
    UtxoDistribution,
    WalletList,
    resolve_distribution,
)
from ctl_cluster.environment import RuntimeEnvironment, UsedTxOuts
from ctl_cluster.errors import ClusterError
from ctl_cluster.orchestrator import ClusterOrchestrator, run_cluster
from ctl_cluster.wallet import KeyWallet

__all__ = [
    "ClusterBinaries",
    "ClusterConfig",
    "ClusterError",
    "ClusterOrchestrator",
    "KeyWallet",
    "KeyedWallets",
    "NoWallets",
    "PostgresConfig",
    "RuntimeEnvironment",
    "ServerConfig",
    "SingleWallet",
    "UsedTxOuts",
    "UtxoDistribution",
    "WalletList",
    "resolve_distribution",
    "run_cluster",
]
