"""
Bounded retry utilities.

A `RetryPolicy` describes the cadence (per-attempt delay) and the cumulative delay budget; the
executor functions below consume it. Only the sleeps count against the budget, not the time spent
inside the action.
"""

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from ctl_cluster.errors import RetryBudgetExceeded

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Constant-delay retry policy limited by cumulative delay.

    Attributes:
        delay: Seconds to sleep between two failed attempts
        budget: Maximum total seconds spent sleeping
    """

    delay: float = field(default=0.1)
    budget: float = field(default=3.0)

    def __post_init__(self):
        if self.delay <= 0:
            raise ValueError(f"delay must be positive, got {self.delay}")
        if self.budget < 0:
            raise ValueError(f"budget must not be negative, got {self.budget}")

    @property
    def max_retries(self) -> int:
        """Number of retries (sleeps) the budget allows after the first attempt."""
        # tolerate float noise, 3.0 / 0.1 is 29.999999999999996
        return math.floor(self.budget / self.delay + 1e-9)


# 100ms steps, 3s in total.
DEFAULT_RETRY_POLICY = RetryPolicy(delay=0.1, budget=3.0)


def retry(
    action: Callable[[], T],
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
) -> T:
    """
    Call `action` until it returns without raising.

    Sleeps `policy.delay` between failures. Once the budget is spent, the last exception raised by
    the action is re-raised unchanged.

    Returns:
        Whatever the first successful call of `action` returned
    """
    retries_left = policy.max_retries
    while True:
        try:
            return action()
        except retry_on as e:
            if retries_left <= 0:
                logger.debug(f"retry budget of {policy.budget}s exhausted, last error: {e}")
                raise
            logger.debug(f"caught {type(e).__name__}, retrying in {policy.delay}s: {e}")
            retries_left -= 1
            time.sleep(policy.delay)


def retry_until(
    fn: Callable[[], T],
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    error_with: str = "Timed out",
) -> T:
    """
    Wait until `fn` returns a truthy value, polling at the cadence of `policy`.

    Exceptions raised by `fn` count as a falsy result.

    Returns:
        The first truthy value returned by `fn`

    Raises:
        RetryBudgetExceeded: If the budget is spent before `fn` returns a truthy value
    """
    for attempt in range(policy.max_retries + 1):
        try:
            r = fn()
            if r:
                return r
        except Exception as e:
            ety = type(e)
            logger.warning(f"caught exception {ety}, will still wait for timeout: {e}")
        if attempt < policy.max_retries:
            time.sleep(policy.delay)
    raise RetryBudgetExceeded(error_with)
