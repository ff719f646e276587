"""Tests for wallet age lookup."""

import pytest

from src.models.risk import UNKNOWN_AGE, KnownAge
from src.parsers.wallet_age import age_from_first_seen, fetch_wallet_age, fetch_wallet_ages

NOW = 1_750_000_000
DAY = 86400


def test_age_in_whole_days():
    assert age_from_first_seen(NOW - 30 * DAY - 500, NOW) == KnownAge(days=30)


def test_same_day_is_zero():
    """Wallet created an hour ago is 0 days old, not unknown."""
    assert age_from_first_seen(NOW - 3600, NOW) == KnownAge(days=0)


def test_missing_first_seen_is_unknown():
    assert age_from_first_seen(None, NOW) is UNKNOWN_AGE
    assert age_from_first_seen(0, NOW) is UNKNOWN_AGE


def test_clock_skew_clamped():
    assert age_from_first_seen(NOW + 600, NOW) == KnownAge(days=0)


@pytest.mark.asyncio
async def test_fetch_known(fake_rpc):
    fake_rpc.first_seen["Wallet1"] = NOW - 10 * DAY

    assert await fetch_wallet_age(fake_rpc, "Wallet1", now=NOW) == KnownAge(days=10)


@pytest.mark.asyncio
async def test_fetch_failure_is_unknown(fake_rpc):
    fake_rpc.failing.add("get_wallet_first_seen")

    assert await fetch_wallet_age(fake_rpc, "Wallet1", now=NOW) is UNKNOWN_AGE


@pytest.mark.asyncio
async def test_fetch_many(fake_rpc):
    fake_rpc.first_seen = {"A": NOW - DAY, "B": NOW - 100 * DAY}

    ages = await fetch_wallet_ages(fake_rpc, ["A", "B", "C"], now=NOW)

    assert ages == {"A": KnownAge(days=1), "B": KnownAge(days=100), "C": UNKNOWN_AGE}


@pytest.mark.asyncio
async def test_fetch_many_empty(fake_rpc):
    assert await fetch_wallet_ages(fake_rpc, [], now=NOW) == {}
    assert fake_rpc.calls == []
