"""
Retry delays for batch operations.

Implements "decorrelated jitter": each delay is drawn from a window that
grows with the previous one, so concurrent callers spread their retries
instead of hitting DynamoDB in lockstep.
https://aws.amazon.com/blogs/architecture/exponential-backoff-and-jitter/
"""

import random
import time

BASE_DELAY_MS = 50.0
MAX_DELAY_MS = 4000.0


def next_delay(previous_delay: float, rand: float | None = None) -> float:
    """
    Returns the next retry delay in milliseconds.

    ``min(4000, random() * previous_delay * 3 + 50)``; the first call uses
    ``previous_delay=0`` and always yields 50.

    Args:
        previous_delay: The delay used for the previous attempt, in ms
        rand: Random draw in [0, 1); drawn from ``random.random`` when omitted
    """
    if previous_delay < 0:
        raise ValueError("previous_delay must be >= 0")
    if rand is None:
        rand = random.random()
    return min(MAX_DELAY_MS, rand * previous_delay * 3 + BASE_DELAY_MS)


def sleep_ms(delay_ms: float) -> None:
    time.sleep(delay_ms / 1000)
