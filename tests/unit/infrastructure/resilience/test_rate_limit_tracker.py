import httpx
import pytest

from bitrefill.domain.models.common import RateLimitSnapshot
from bitrefill.infrastructure.resilience.rate_limit_tracker import most_constrained, parse_rate_limit_headers

OBSERVED_AT = 1_700_000_000_000


def test_most_constrained_prefers_lowest_remaining_then_later_reset():
    snapshots = [
        RateLimitSnapshot(remaining=5, reset_at_epoch_millis=100),
        RateLimitSnapshot(remaining=2, reset_at_epoch_millis=200),
        RateLimitSnapshot(remaining=2, reset_at_epoch_millis=50),
    ]
    assert most_constrained(snapshots) == RateLimitSnapshot(remaining=2, reset_at_epoch_millis=200)


def test_most_constrained_skips_missing_snapshots():
    snapshot = RateLimitSnapshot(remaining=9, reset_at_epoch_millis=10)
    assert most_constrained([None, snapshot, None]) == snapshot


@pytest.mark.parametrize("snapshots", [[], [None, None]])
def test_most_constrained_without_data_is_uncapped(snapshots):
    assert most_constrained(snapshots) is None


def test_reset_is_relative_seconds_from_observation():
    # The reset header is read as seconds-from-now, not an absolute epoch.
    snapshot = parse_rate_limit_headers({"ratelimit-remaining": "19", "ratelimit-reset": "1"}, OBSERVED_AT)
    assert snapshot == RateLimitSnapshot(remaining=19, reset_at_epoch_millis=OBSERVED_AT + 1000)


@pytest.mark.parametrize("headers", [
    {"RateLimit-Remaining": "3", "RateLimit-Reset": "60"},
    {"RATELIMIT-REMAINING": "3", "RATELIMIT-RESET": "60"},
    httpx.Headers({"RateLimit-Remaining": "3", "RateLimit-Reset": "60"}),
])
def test_header_names_are_case_insensitive(headers):
    snapshot = parse_rate_limit_headers(headers, OBSERVED_AT)
    assert snapshot.remaining == 3
    assert snapshot.reset_at_epoch_millis == OBSERVED_AT + 60_000


@pytest.mark.parametrize("headers", [
    None,
    {},
    {"ratelimit-remaining": "3"},
    {"ratelimit-reset": "3"},
    {"ratelimit-remaining": "many", "ratelimit-reset": "3"},
    {"ratelimit-remaining": "3", "ratelimit-reset": "1.5"},
])
def test_malformed_or_missing_headers_give_no_snapshot(headers):
    assert parse_rate_limit_headers(headers, OBSERVED_AT) is None


def test_negative_remaining_is_clamped():
    snapshot = parse_rate_limit_headers({"ratelimit-remaining": "-1", "ratelimit-reset": "0"}, OBSERVED_AT)
    assert snapshot.remaining == 0


def test_wait_seconds_never_negative():
    snapshot = RateLimitSnapshot(remaining=0, reset_at_epoch_millis=OBSERVED_AT + 2500)
    assert snapshot.wait_seconds(OBSERVED_AT) == 2.5
    assert snapshot.wait_seconds(OBSERVED_AT + 5000) == 0
