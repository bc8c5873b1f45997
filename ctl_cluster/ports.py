"""
Port probing: preflight checks and post-kill release confirmation.
"""

import logging
import socket

from ctl_cluster.config import ClusterConfig
from ctl_cluster.errors import PortConflict
from ctl_cluster.wait import DEFAULT_RETRY_POLICY, RetryPolicy, retry_until

logger = logging.getLogger(__name__)


def is_port_available(port: int, host: str = "127.0.0.1") -> bool:
    """
    Check whether a new listener could bind `host:port` right now.

    Binds with SO_REUSEADDR so sockets lingering in TIME_WAIT don't count as occupied.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            s.bind((host, port))
        except OSError:
            return False
    return True


def preflight(config: ClusterConfig) -> None:
    """
    Reject the run before anything is spawned if any configured port is unusable.

    Raises:
        PortConflict: Naming every service whose port is occupied, claimed twice or not fixed
    """
    conflicts: dict[str, str] = {}
    claimed: dict[int, str] = {}
    for svc, (host, port) in config.service_ports().items():
        name = str(svc)
        if not 0 < port < 65536:
            conflicts[name] = f"port {port} is not a fixed listening port"
            continue
        if port in claimed:
            conflicts[name] = f"port {port} also configured for {claimed[port]}"
            continue
        claimed[port] = name
        if not is_port_available(port, host):
            conflicts[name] = f"{host}:{port} is in use"

    if conflicts:
        raise PortConflict(conflicts)
    logger.debug(f"preflight ok, ports: {sorted(claimed)}")


def wait_for_port_free(
    port: int,
    host: str = "127.0.0.1",
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
) -> None:
    """
    Block until `host:port` can be bound again.

    Signal delivery is not synchronous with socket release, so this is used after every kill.

    Raises:
        RetryBudgetExceeded: If the port is still taken once the policy budget is spent
    """
    retry_until(
        lambda: is_port_available(port, host),
        policy,
        error_with=f"port {host}:{port} still in use",
    )
