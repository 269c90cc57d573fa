"""Domain Events related to catalog rounds, throttling and invoice polling.

Services hand these to `dispatch_event`, which currently writes them to the
debug log.
"""

from dataclasses import dataclass, field
import logging
import time
from typing import Any, Optional

logger = logging.getLogger(__name__)


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


@dataclass
class RoundStarted(DomainEvent):
    """A batch of page requests is about to be issued."""
    round_number: int
    first_offset: int
    request_count: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class PageFetchFailed(DomainEvent):
    """One page request in a round failed. The round carries on."""
    offset: int
    error_type: str
    error_message: str
    status: Optional[int] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class RoundCompleted(DomainEvent):
    """All requests of a round have settled."""
    round_number: int
    succeeded: int
    failed: int
    products_received: int
    will_continue: bool
    timestamp: float = field(default_factory=time.time)


@dataclass
class RoundDeferred(DomainEvent):
    """The next round is held back until the server quota resets."""
    round_number: int
    remaining: int
    wait_time_seconds: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class InvoicePolled(DomainEvent):
    """An invoice status was fetched while waiting for delivery."""
    invoice_id: str
    attempt_number: int
    status: Optional[str]
    timestamp: float = field(default_factory=time.time)


def dispatch_event(event: Any) -> None:
    # TODO: Replace with a subscriber registry once something needs to react to events
    logger.debug(f"EVENT: {event}")
