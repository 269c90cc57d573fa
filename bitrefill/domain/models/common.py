"""Defines common Value Objects used across different domain contexts.

These objects represent simple values like identifiers, offsets and the
rate-limit view reported by the server, plus the immutable tuning knobs
consumed by the pagination and polling services.
"""

from dataclasses import dataclass
from typing import NewType

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are plain values at runtime.
ProductId = NewType("ProductId", str)
InvoiceId = NewType("InvoiceId", str)
PageOffset = NewType("PageOffset", int)    # Value of the `start` query parameter
EpochMillis = NewType("EpochMillis", int)

# === Defaults ===
DEFAULT_BASE_URL = "https://api-bitrefill.com/v2"
DEFAULT_PAGE_SIZE = 50
DEFAULT_BATCH_SIZE = 10
DEFAULT_POLL_ATTEMPTS = 5
DEFAULT_POLL_DELAY_SECONDS = 1.0


@dataclass(frozen=True)
class RateLimitSnapshot:
    """Point-in-time view of the server quota, taken when a response arrived.

    Snapshots from requests issued concurrently carry no ordering guarantee
    relative to each other.
    """
    remaining: int
    reset_at_epoch_millis: EpochMillis

    def wait_seconds(self, now_ms: int) -> float:
        """Seconds until the quota resets, never negative."""
        return max(0, self.reset_at_epoch_millis - now_ms) / 1000.0


@dataclass(frozen=True)
class PaginationConfig:
    """Tuning for BulkPaginator."""
    page_size: int = DEFAULT_PAGE_SIZE
    batch_size: int = DEFAULT_BATCH_SIZE

    def __post_init__(self):
        if self.page_size < 1:
            raise ValueError(f"page_size must be positive, got {self.page_size}")
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")


@dataclass(frozen=True)
class PollingConfig:
    """Tuning for InvoiceCompletionPoller."""
    max_attempts: int = DEFAULT_POLL_ATTEMPTS
    delay_seconds: float = DEFAULT_POLL_DELAY_SECONDS

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.delay_seconds < 0:
            raise ValueError(f"delay_seconds must not be negative, got {self.delay_seconds}")
