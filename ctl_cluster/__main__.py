#!/usr/bin/env python3
"""
Start a local cluster and keep it alive until interrupted.

Usage:
    python -m ctl_cluster                              # Defaults, no wallets
    python -m ctl_cluster -c cluster.toml              # Config from file
    python -m ctl_cluster -w '[[1000000000], [5000000]]'
"""

import argparse
import json
import logging
import sys
import time

from ctl_cluster.config import ClusterConfig
from ctl_cluster.errors import ClusterError
from ctl_cluster.logs import setup_logging
from ctl_cluster.orchestrator import ClusterOrchestrator

logger = logging.getLogger("ctl_cluster.main")


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="ctl_cluster",
        description="Run a local test cluster",
    )
    parser.add_argument(
        "-c",
        "--config",
        help="TOML file with the cluster configuration",
    )
    parser.add_argument(
        "-w",
        "--wallets",
        type=json.loads,
        default=None,
        help="Funding distribution as JSON, e.g. '[[1000000000], [2000000000]]'",
    )
    parser.add_argument(
        "--dump-config",
        action="store_true",
        help="Print the resolved configuration as TOML and exit",
    )
    return parser.parse_args(argv[1:])


def _describe(env, wallets) -> str:
    cfg = env.config
    lines = [
        f"plutip-server:      {cfg.plutip_url}",
        f"ogmios:             {cfg.ogmios.ws_url()}",
        f"ogmios-datum-cache: {cfg.datum_cache.ws_url()}/ws",
        f"postgres:           {cfg.postgres.host}:{cfg.postgres.port}/{cfg.postgres.dbname}",
    ]
    if env.ctl_server_url is not None:
        lines.append(f"ctl-server:         {env.ctl_server_url}")
    if isinstance(wallets, dict):
        lines.extend(f"wallet {name}: {w.payment_key_hash}" for name, w in wallets.items())
    elif isinstance(wallets, list):
        lines.extend(f"wallet {i}: {w.payment_key_hash}" for i, w in enumerate(wallets))
    elif wallets is not None:
        lines.append(f"wallet: {wallets.payment_key_hash}")
    return "\n".join(lines)


def main(argv: list[str]) -> int:
    """Main entry point."""
    args = parse_args(argv)
    config = ClusterConfig.from_toml_file(args.config) if args.config else ClusterConfig()
    setup_logging(config.log_level)

    if args.dump_config:
        print(config.as_toml_string())
        return 0

    orch = ClusterOrchestrator(config)
    try:
        with orch.start(args.wallets) as (env, wallets):
            print(_describe(env, wallets), flush=True)
            logger.info("cluster running, press Ctrl-C to stop")
            while True:
                time.sleep(1)
    except KeyboardInterrupt:
        logger.info("interrupted, cluster stopped")
        return 0
    except ClusterError as e:
        logger.error(f"{e}")
        return 1


def cli() -> None:
    sys.exit(main(sys.argv))


if __name__ == "__main__":
    sys.exit(main(sys.argv))
