import asyncio
import logging

import pytest

from bitrefill.core.services.bulk_paginator import BulkPaginator
from bitrefill.domain.exceptions import FetchFailure, RateLimited, TransportFailure, UpstreamStatus
from bitrefill.domain.models.catalog import PageResult
from bitrefill.domain.models.common import PaginationConfig, RateLimitSnapshot

NOW_MS = 1_700_000_000_000


def products_for(start, count):
    return [{"id": f"p{start + i}", "name": f"Product {start + i}"} for i in range(count)]


class ScriptedCatalog:
    """fetch_page double: `sizes` maps offset -> page length or an exception."""

    def __init__(self, sizes, default=0, snapshots=None):
        self.sizes = sizes
        self.default = default
        self.snapshots = snapshots or {}
        self.calls = []

    async def __call__(self, start, limit, include_test_products):
        self.calls.append((start, limit, include_test_products))
        outcome = self.sizes.get(start, self.default)
        if isinstance(outcome, Exception):
            raise outcome
        return PageResult(start=start, products=products_for(start, outcome), rate_limit=self.snapshots.get(start))


def make_paginator(catalog, sleeps, page_size=2, batch_size=3):
    return BulkPaginator(
        catalog,
        config=PaginationConfig(page_size=page_size, batch_size=batch_size),
        sleep=sleeps,
        clock_ms=lambda: NOW_MS,
    )


@pytest.mark.asyncio
async def test_full_round_is_followed_by_another(sleeps):
    catalog = ScriptedCatalog({0: 2, 2: 2, 4: 2, 6: 2, 8: 1, 10: 0})
    paginator = make_paginator(catalog, sleeps)

    products = await paginator.fetch_all(include_test_products=True)

    assert [c[0] for c in catalog.calls] == [0, 2, 4, 6, 8, 10]
    assert all(c[1] == 2 and c[2] is True for c in catalog.calls)
    assert [p["id"] for p in products] == [f"p{i}" for i in range(9)]


@pytest.mark.asyncio
@pytest.mark.parametrize("page_size, batch_size", [(1, 1), (2, 3), (5, 2), (50, 10)])
async def test_pagination_continues_only_while_every_page_is_full(sleeps, page_size, batch_size):
    full_rounds = 2
    sizes = {i * page_size: page_size for i in range(full_rounds * batch_size)}
    catalog = ScriptedCatalog(sizes, default=0)
    paginator = make_paginator(catalog, sleeps, page_size=page_size, batch_size=batch_size)

    products = await paginator.fetch_all()

    # two full rounds, then one round of empty pages ends it
    assert len(catalog.calls) == (full_rounds + 1) * batch_size
    assert len(products) == full_rounds * batch_size * page_size


@pytest.mark.asyncio
async def test_empty_first_round_returns_nothing(sleeps):
    catalog = ScriptedCatalog({}, default=0)
    paginator = make_paginator(catalog, sleeps, page_size=50, batch_size=10)

    assert await paginator.fetch_all() == []
    assert [c[0] for c in catalog.calls] == [i * 50 for i in range(10)]
    assert sleeps.recorded == []


@pytest.mark.asyncio
async def test_order_follows_issue_order_not_completion_order(sleeps):
    async def slow_first(start, limit, include_test_products):
        # earlier offsets finish later
        await asyncio.sleep(0.001 * (10 - start // limit))
        return PageResult(start=start, products=products_for(start, limit if start < 4 else 1))

    paginator = BulkPaginator(slow_first, config=PaginationConfig(page_size=2, batch_size=3), sleep=sleeps)

    products = await paginator.fetch_all()

    assert [p["id"] for p in products] == ["p0", "p1", "p2", "p3", "p4"]


@pytest.mark.asyncio
async def test_partial_failure_keeps_products_but_stops(sleeps, caplog):
    caplog.set_level(logging.DEBUG)
    sizes = {i * 5: 5 for i in range(10)}
    sizes[15] = TransportFailure("connection reset")
    sizes[40] = UpstreamStatus(503, "Service Unavailable")
    catalog = ScriptedCatalog(sizes)
    paginator = make_paginator(catalog, sleeps, page_size=5, batch_size=10)

    products = await paginator.fetch_all()

    assert len(catalog.calls) == 10
    assert len(products) == 8 * 5
    ids = {p["id"] for p in products}
    assert "p15" not in ids and "p40" not in ids
    errors = [r.getMessage() for r in caplog.records if r.levelno == logging.ERROR]
    assert any("start=15" in m for m in errors)
    assert any("start=40" in m for m in errors)


@pytest.mark.asyncio
async def test_rate_limited_pages_are_not_logged_as_errors(sleeps, caplog):
    caplog.set_level(logging.DEBUG)
    catalog = ScriptedCatalog({0: 2, 2: RateLimited(), 4: 2})
    paginator = make_paginator(catalog, sleeps)

    products = await paginator.fetch_all()

    assert len(products) == 4
    assert len(catalog.calls) == 3
    assert not [r for r in caplog.records if r.levelno >= logging.ERROR]


@pytest.mark.asyncio
async def test_unexpected_error_is_raised_after_round_settles(sleeps):
    catalog = ScriptedCatalog({0: 2, 2: KeyError("data"), 4: 2})
    paginator = make_paginator(catalog, sleeps)

    with pytest.raises(FetchFailure, match="Failed to fetch products"):
        await paginator.fetch_all()
    assert len(catalog.calls) == 3


@pytest.mark.asyncio
async def test_waits_for_reset_when_quota_below_batch_size(sleeps):
    snapshots = {
        0: RateLimitSnapshot(remaining=7, reset_at_epoch_millis=NOW_MS + 1000),
        2: RateLimitSnapshot(remaining=2, reset_at_epoch_millis=NOW_MS + 1500),
        4: RateLimitSnapshot(remaining=2, reset_at_epoch_millis=NOW_MS + 3000),
    }
    catalog = ScriptedCatalog({0: 2, 2: 2, 4: 2}, default=0, snapshots=snapshots)
    paginator = make_paginator(catalog, sleeps)

    await paginator.fetch_all()

    # tightest: remaining=2, later reset wins the tie
    assert sleeps.recorded == [3.0]
    assert len(catalog.calls) == 6


@pytest.mark.asyncio
async def test_no_wait_when_quota_covers_next_round(sleeps):
    snapshots = {o: RateLimitSnapshot(remaining=3, reset_at_epoch_millis=NOW_MS + 5000) for o in (0, 2, 4)}
    catalog = ScriptedCatalog({0: 2, 2: 2, 4: 2}, snapshots=snapshots)
    paginator = make_paginator(catalog, sleeps)

    await paginator.fetch_all()

    assert sleeps.recorded == []


@pytest.mark.asyncio
async def test_no_wait_without_rate_limit_headers(sleeps):
    catalog = ScriptedCatalog({0: 2, 2: 2, 4: 2})
    paginator = make_paginator(catalog, sleeps)

    await paginator.fetch_all()

    assert sleeps.recorded == []


@pytest.mark.asyncio
async def test_reset_already_passed_skips_sleep(sleeps):
    snapshots = {0: RateLimitSnapshot(remaining=0, reset_at_epoch_millis=NOW_MS - 10)}
    catalog = ScriptedCatalog({0: 2, 2: 2, 4: 2}, snapshots=snapshots)
    paginator = make_paginator(catalog, sleeps)

    await paginator.fetch_all()

    assert sleeps.recorded == []


@pytest.mark.asyncio
async def test_no_wait_after_final_round(sleeps):
    snapshots = {0: RateLimitSnapshot(remaining=0, reset_at_epoch_millis=NOW_MS + 9000)}
    catalog = ScriptedCatalog({0: 2, 2: 1, 4: 2}, snapshots=snapshots)
    paginator = make_paginator(catalog, sleeps)

    await paginator.fetch_all()

    assert sleeps.recorded == []
