"""Reads the server-reported rate limit and picks the tightest one in a round.

The API reports quota via two headers on every response:

    ratelimit-remaining: requests left before throttling kicks in
    ratelimit-reset:     seconds until the quota is replenished

`ratelimit-reset` is interpreted as relative seconds and converted to an
absolute epoch-millisecond deadline at the moment the response is observed.
Both functions here are pure; the caller supplies the observation time.
"""

import logging
import time
from typing import Iterable, Mapping, Optional

from bitrefill.domain.models.common import EpochMillis, RateLimitSnapshot

logger = logging.getLogger(__name__)

REMAINING_HEADER = "ratelimit-remaining"
RESET_HEADER = "ratelimit-reset"


def now_epoch_millis() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    value = headers.get(name)
    if value is not None:
        return value
    # Plain dicts are case-sensitive; fall back to a scan.
    for key, candidate in headers.items():
        if key.lower() == name:
            return candidate
    return None


def _parse_int(raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        return None


def parse_rate_limit_headers(headers: Optional[Mapping[str, str]], observed_at_ms: int) -> Optional[RateLimitSnapshot]:
    """Builds a snapshot from response headers.

    Args:
        headers: Response headers. Lookups are case-insensitive.
        observed_at_ms: Epoch milliseconds when the response was received.

    Returns:
        A RateLimitSnapshot, or None when either header is missing or not an integer.
    """
    if not headers:
        return None

    raw_remaining = _header(headers, REMAINING_HEADER)
    raw_reset = _header(headers, RESET_HEADER)
    remaining = _parse_int(raw_remaining)
    reset_seconds = _parse_int(raw_reset)
    if remaining is None or reset_seconds is None:
        if raw_remaining is not None or raw_reset is not None:
            logger.debug(f"Ignoring unparsable rate limit headers: remaining={raw_remaining!r}, reset={raw_reset!r}")
        return None

    return RateLimitSnapshot(
        remaining=max(0, remaining),
        reset_at_epoch_millis=EpochMillis(observed_at_ms + reset_seconds * 1000),
    )


def most_constrained(snapshots: Iterable[Optional[RateLimitSnapshot]]) -> Optional[RateLimitSnapshot]:
    """Returns the snapshot with the least quota left.

    Ties on `remaining` go to the later reset, the more conservative wait.
    None entries are skipped; None is returned when nothing is left, which
    callers treat as uncapped.
    """
    tightest: Optional[RateLimitSnapshot] = None
    for snapshot in snapshots:
        if snapshot is None:
            continue
        if tightest is None or (snapshot.remaining, -snapshot.reset_at_epoch_millis) < (
            tightest.remaining,
            -tightest.reset_at_epoch_millis,
        ):
            tightest = snapshot
    return tightest
