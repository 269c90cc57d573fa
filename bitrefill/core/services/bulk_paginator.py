"""Fetches every page of the product catalog in concurrent rounds.

Each round pre-plans `batch_size` non-overlapping page offsets, issues them
all at once and waits for every one to settle. Pagination carries on only
when the whole round came back with full pages; any short page, empty page
or failed request ends it. That rule may stop early if a request fails
spuriously near the end of the catalog, and it is kept on purpose: the
catalog has no total count to check against.

Between rounds the tightest quota reported by the server decides whether
to wait for the reset before the next round is sent.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence

from bitrefill.domain.events.api_events import (
    PageFetchFailed, RoundCompleted, RoundDeferred, RoundStarted, dispatch_event
)
from bitrefill.domain.exceptions import BitrefillError, FetchFailure, RateLimited
from bitrefill.domain.models.catalog import PageOutcome, PageResult, Product
from bitrefill.domain.models.common import PageOffset, PaginationConfig
from bitrefill.infrastructure.resilience.rate_limit_tracker import most_constrained, now_epoch_millis

logger = logging.getLogger(__name__)

# (start, limit, include_test_products) -> PageResult
PageFetcher = Callable[[int, int, Optional[bool]], Awaitable[PageResult]]


class BulkPaginator:
    """Collects a paginated collection using concurrent, rate-limit-aware rounds."""

    def __init__(
        self,
        fetch_page: PageFetcher,
        config: Optional[PaginationConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock_ms: Callable[[], int] = now_epoch_millis,
    ):
        """Initializes the paginator.

        Args:
            fetch_page: Coroutine function fetching one page. Must raise a
                BitrefillError subclass for request-level failures.
            config: Page and batch sizes. Defaults to 50 and 10.
            sleep: Awaitable used for throttling waits.
            clock_ms: Returns the current time in epoch milliseconds.
        """
        self.fetch_page = fetch_page
        self.config = config or PaginationConfig()
        self._sleep = sleep
        self._clock_ms = clock_ms

    async def fetch_all(self, include_test_products: Optional[bool] = None) -> List[Product]:
        """Fetches all products, round after round, until a round is not entirely full.

        Args:
            include_test_products: Passed through to every page request.

        Returns:
            Products in round order, then in request-issue order within a round.

        Raises:
            FetchFailure: If a request failed with something other than a
                BitrefillError, i.e. a fault in the client itself.
        """
        page_size = self.config.page_size
        batch_size = self.config.batch_size
        products: List[Product] = []
        start = 0
        round_number = 0

        while True:
            round_number += 1
            offsets: List[PageOffset] = []
            for _ in range(batch_size):
                offsets.append(PageOffset(start))
                start += page_size

            dispatch_event(RoundStarted(round_number=round_number, first_offset=offsets[0], request_count=len(offsets)))
            outcomes = await self._run_round(offsets, include_test_products)

            received = 0
            for outcome in outcomes:
                if outcome.succeeded:
                    products.extend(outcome.result.products)
                    received += len(outcome.result.products)

            will_continue = all(o.succeeded and o.result.is_full(page_size) for o in outcomes)
            succeeded = sum(1 for o in outcomes if o.succeeded)
            dispatch_event(RoundCompleted(
                round_number=round_number,
                succeeded=succeeded,
                failed=len(outcomes) - succeeded,
                products_received=received,
                will_continue=will_continue,
            ))
            logger.debug(
                f"Round {round_number}: {succeeded}/{len(outcomes)} pages ok, "
                f"{received} products, continue={will_continue}"
            )

            if not will_continue:
                break
            await self._throttle(round_number, outcomes)

        logger.info(f"Fetched {len(products)} products in {round_number} round(s)")
        return products

    async def _run_round(self, offsets: Sequence[PageOffset], include_test_products: Optional[bool]) -> List[PageOutcome]:
        """Issues one request per offset and waits for all of them to settle."""
        settled = await asyncio.gather(
            *(self.fetch_page(offset, self.config.page_size, include_test_products) for offset in offsets),
            return_exceptions=True,
        )

        outcomes: List[PageOutcome] = []
        unexpected: Optional[Exception] = None
        for offset, result in zip(offsets, settled):
            if isinstance(result, BitrefillError):
                self._report_failure(offset, result)
                outcomes.append(PageOutcome(start=offset, error=result))
            elif isinstance(result, Exception):
                logger.error(f"Unexpected error fetching products at start={offset}: {result}", exc_info=result)
                unexpected = unexpected or result
                outcomes.append(PageOutcome(start=offset, error=result))
            elif isinstance(result, BaseException):
                raise result
            else:
                outcomes.append(PageOutcome(start=offset, result=result))

        if unexpected is not None:
            raise FetchFailure("Failed to fetch products", unexpected) from unexpected
        return outcomes

    def _report_failure(self, offset: int, error: BitrefillError) -> None:
        dispatch_event(PageFetchFailed(
            offset=offset,
            error_type=type(error).__name__,
            error_message=str(error),
            status=error.status,
        ))
        # 429s are expected while paging and stay out of the error log
        if isinstance(error, RateLimited):
            return
        logger.error(f"Error fetching products with start={offset}: {error}")

    async def _throttle(self, round_number: int, outcomes: Sequence[PageOutcome]) -> None:
        """Waits for the quota reset when the next round would not fit in it."""
        tightest = most_constrained(o.result.rate_limit for o in outcomes if o.succeeded)
        if tightest is None or tightest.remaining >= self.config.batch_size:
            return

        wait_time = tightest.wait_seconds(self._clock_ms())
        dispatch_event(RoundDeferred(round_number=round_number + 1, remaining=tightest.remaining, wait_time_seconds=wait_time))
        if wait_time > 0:
            logger.info(
                f"Rate limit low ({tightest.remaining} remaining, batch of {self.config.batch_size}). "
                f"Waiting {wait_time:.2f}s before round {round_number + 1}"
            )
            await self._sleep(wait_time)
