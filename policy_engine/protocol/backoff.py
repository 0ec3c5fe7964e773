"""Retry delays: exponential backoff with jitter, and Retry-After parsing.

All delays are in milliseconds.
"""

import random
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Callable, Optional

DEFAULT_BASE_DELAY_MS = 2000
MAX_DELAY_FACTOR = 10
JITTER_FRACTION = 0.25


def compute_backoff(
    attempt: int,
    base_delay_ms: float = DEFAULT_BASE_DELAY_MS,
    rng: Callable[[], float] = random.random,
) -> int:
    """Delay before retrying after ``attempt`` (0-indexed).

    ``min(base * 2^attempt, base * 10)`` plus up to 25% jitter, truncated.
    """
    if attempt < 0:
        raise ValueError(f"attempt must be non-negative, got {attempt}")
    max_delay = base_delay_ms * MAX_DELAY_FACTOR
    # Clamp the exponent before multiplying so huge attempts cannot overflow
    exponent = min(attempt, MAX_DELAY_FACTOR.bit_length())
    delay = min(base_delay_ms * (2 ** exponent), max_delay)
    jitter = delay * JITTER_FRACTION * rng()
    return int(delay + jitter)


def parse_retry_hint(header_value: Optional[str], now: Optional[datetime] = None) -> Optional[int]:
    """Parse a Retry-After header (delay-seconds or HTTP-date) into milliseconds.

    Returns None when the header is absent or unparseable.
    """
    if header_value is None:
        return None
    value = header_value.strip()
    if not value:
        return None

    if value.isascii() and value.isdigit():
        return int(value) * 1000

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)

    now = now or datetime.now(timezone.utc)
    delay_ms = int((when - now).total_seconds() * 1000)
    return max(0, delay_ms)


def sleep_ms(ms: float) -> None:
    if ms > 0:
        time.sleep(ms / 1000)
