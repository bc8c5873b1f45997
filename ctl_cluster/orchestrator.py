"""
Top-level composition of the local test cluster.

Brings the services up one after another, each inside its own cleanup scope, hands a runtime
environment to the caller and tears everything down in reverse order afterwards.
"""

import contextlib
import itertools
import logging
import shutil
import tempfile
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any, TypeVar

from ctl_cluster.config import ClusterConfig, ServiceType
from ctl_cluster.context import EnvContext
from ctl_cluster.distribution import UtxoDistribution, resolve_distribution
from ctl_cluster.environment import RuntimeEnvironment
from ctl_cluster.errors import ClusterStartupError, ClusterStopError
from ctl_cluster.factories import ServiceFactory, default_factories
from ctl_cluster.lifecycle import CleanupStack
from ctl_cluster.logs import set_current_run, suppressed_logs
from ctl_cluster.plutip import (
    ClusterStartupFailure,
    ClusterStartupSuccess,
    PlutipClient,
    StopClusterFailure,
)
from ctl_cluster.ports import preflight
from ctl_cluster.wait import DEFAULT_RETRY_POLICY, RetryPolicy

logger = logging.getLogger(__name__)

R = TypeVar("R")

_run_ids = itertools.count(1)


def _stop_service(svc) -> None:
    svc.stop()


class ClusterOrchestrator:
    """
    Runs a local cluster for the duration of a block.

    Startup order is emulator control service, cluster, database, query node, indexer and
    (optionally) application server. The first fatal error aborts startup; everything acquired so
    far is released, most recent first, and that error propagates.

    Usage:
        orch = ClusterOrchestrator(ClusterConfig())
        with orch.start([[1_000_000_000], [2_000_000_000]]) as (env, wallets):
            env.ogmios.chain_tip()
    """

    def __init__(
        self,
        config: ClusterConfig,
        factories: dict[ServiceType, ServiceFactory] | None = None,
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    ):
        self.config = config
        self.factories = factories if factories is not None else default_factories(config.binaries)
        self.retry_policy = retry_policy

    @contextlib.contextmanager
    def start(self, distribution: Any = None) -> Iterator[tuple[RuntimeEnvironment, Any]]:
        """
        Bring the cluster up and yield `(env, wallets)`.

        `distribution` is anything `resolve_distribution` accepts; the shape of `wallets` follows
        it.
        """
        dist = resolve_distribution(distribution)
        run_name = f"cluster-{next(_run_ids)}"
        set_current_run(run_name)
        try:
            with suppressed_logs(self.config.suppress_logs):
                preflight(self.config)
                with CleanupStack() as stack:
                    env, wallets = self._bring_up(stack, dist)
                    logger.info(f"{run_name}: cluster is up")
                    yield env, wallets
                    logger.info(f"{run_name}: tearing down")
        finally:
            set_current_run(None)

    def run(self, distribution: Any, body: Callable[[RuntimeEnvironment, Any], R]) -> R:
        """Run `body(env, wallets)` against a fresh cluster and return its result."""
        with self.start(distribution) as (env, wallets):
            return body(env, wallets)

    def _make_context(self, stack: CleanupStack) -> EnvContext:
        if self.config.workdir is not None:
            workdir = Path(self.config.workdir)
            workdir.mkdir(parents=True, exist_ok=True)
        else:
            workdir = Path(tempfile.mkdtemp(prefix="ctl-cluster-"))
            stack.push("workdir", lambda: shutil.rmtree(workdir, ignore_errors=True))
        logger.debug(f"working directory: {workdir}")
        return EnvContext(
            workdir=workdir,
            readiness_timeout=self.config.readiness_timeout,
            retry_policy=self.retry_policy,
        )

    def _bring_up(
        self, stack: CleanupStack, dist: UtxoDistribution
    ) -> tuple[RuntimeEnvironment, Any]:
        cfg = self.config
        ctx = self._make_context(stack)
        f = self.factories

        plutip = stack.enter_service(
            str(ServiceType.Plutip),
            lambda: f[ServiceType.Plutip].create(ctx, cfg.host, cfg.port),
            _stop_service,
        )
        client = plutip.create_client()

        cluster = stack.enter_service(
            "cluster",
            lambda: self._start_cluster(client, dist),
            lambda _: self._stop_cluster(client),
        )
        wallets = dist.decode_wallets(cluster.private_keys)

        stack.enter_service(
            str(ServiceType.Postgres),
            lambda: f[ServiceType.Postgres].create(ctx, cfg.postgres),
            _stop_service,
        )
        ogmios = stack.enter_service(
            str(ServiceType.Ogmios),
            lambda: f[ServiceType.Ogmios].create(
                ctx, cfg.ogmios, cluster.node_socket_path, cluster.node_config_path
            ),
            _stop_service,
        )
        datum_cache = stack.enter_service(
            str(ServiceType.DatumCache),
            lambda: f[ServiceType.DatumCache].create(ctx, cfg.datum_cache, cfg.ogmios, cfg.postgres),
            _stop_service,
        )

        ctl_server_url = None
        if cfg.ctl_server is not None:
            ctl_server = stack.enter_service(
                str(ServiceType.CtlServer),
                lambda: f[ServiceType.CtlServer].create(ctx, cfg.ctl_server, cfg.ogmios),
                _stop_service,
            )
            ctl_server_url = ctl_server.get_prop("url")

        env = stack.enter_service(
            "environment",
            lambda: self._open_environment(ogmios, datum_cache, wallets, ctl_server_url),
            lambda e: e.close(),
        )
        return env, wallets

    def _start_cluster(self, client: PlutipClient, dist: UtxoDistribution) -> ClusterStartupSuccess:
        logger.info(f"starting cluster with {dist.wallet_count} funded wallet(s)")
        result = client.start_cluster(dist.encode())
        if isinstance(result, ClusterStartupFailure):
            raise ClusterStartupError(result.reason)
        logger.debug(f"cluster node socket: {result.node_socket_path}")
        return result

    def _stop_cluster(self, client: PlutipClient) -> None:
        result = client.stop_cluster()
        if isinstance(result, StopClusterFailure):
            raise ClusterStopError(result.reason)
        logger.info("cluster stopped")

    def _open_environment(
        self, ogmios, datum_cache, wallets: Any, ctl_server_url: str | None
    ) -> RuntimeEnvironment:
        ogmios_conn = ogmios.open_connection()
        try:
            datum_conn = datum_cache.open_connection()
        except BaseException:
            ogmios_conn.close()
            raise

        try:
            params = ogmios_conn.current_protocol_parameters()
        except BaseException:
            ogmios_conn.close()
            datum_conn.close()
            raise

        return RuntimeEnvironment(
            self.config,
            ogmios_conn,
            datum_conn,
            params,
            wallets=wallets,
            ctl_server_url=ctl_server_url,
        )


def run_cluster(
    config: ClusterConfig,
    distribution: Any,
    body: Callable[[RuntimeEnvironment, Any], R],
) -> R:
    """Shorthand for `ClusterOrchestrator(config).run(distribution, body)`."""
    return ClusterOrchestrator(config).run(distribution, body)
