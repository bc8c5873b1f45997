"""
Shared helpers for service factories.
"""

import logging

from ctl_cluster.context import EnvContext
from ctl_cluster.services.base import ManagedService

logger = logging.getLogger(__name__)


class ServiceFactory:
    """
    Base class for factories creating one kind of service.

    `create(ctx, ...)` on a subclass spawns the service and returns it only once it is ready. A
    service that fails to become ready is cleaned up by the factory itself; callers only ever
    receive ready services.
    """

    def __init__(self, executable: str):
        self.executable = executable

    def _start_and_wait(self, svc: ManagedService, ctx: EnvContext) -> None:
        svc.start()
        svc.wait_for_ready(ctx.readiness_timeout)

    @staticmethod
    def _stop_after_failure(svc: ManagedService) -> None:
        try:
            svc.stop()
        except Exception as e:
            logger.error(f"failed to stop '{svc.name}' after a failed setup: {e!r}")
