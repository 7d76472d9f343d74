"""Human-readable order numbers.

A number is the prefix, the last eight digits of the epoch-millisecond clock
and four random digits, e.g. ``RB483920171234``. Candidates are checked
against stored orders and regenerated a bounded number of times.
"""

import os
import random
import time
from collections.abc import Callable

import structlog

from ordering.errors import OrderNumberAllocationFailed

logger = structlog.get_logger(__name__)

_rng = random.SystemRandom()


def order_number_prefix() -> str:
    return os.getenv("ORDERING_ORDER_NUMBER_PREFIX", "RB")


def max_allocation_attempts() -> int:
    return int(os.getenv("ORDERING_ORDER_NUMBER_ATTEMPTS", "10"))


def candidate_order_number(prefix: str | None = None) -> str:
    prefix = order_number_prefix() if prefix is None else prefix
    timestamp = str(int(time.time() * 1000))[-8:]
    return f"{prefix}{timestamp}{_rng.randint(1000, 9999)}"


def allocate_order_number(is_taken: Callable[[str], bool], attempts: int | None = None, generate=None) -> str:
    """Return a candidate number for which ``is_taken`` is False."""
    attempts = attempts or max_allocation_attempts()
    generate = generate or candidate_order_number

    for attempt in range(1, attempts + 1):
        candidate = generate()
        if not is_taken(candidate):
            return candidate
        logger.warning("order_number_collision", candidate=candidate, attempt=attempt)

    logger.error("order_number_allocation_failed", attempts=attempts)
    raise OrderNumberAllocationFailed(attempts)
