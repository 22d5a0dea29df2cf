"""Pytest configuration and fixtures."""

import pytest

from app.feed.models import Trade


@pytest.fixture
def trade_record():
    """Factory for raw feed trade records, as they arrive on the wire."""

    def _make(px="10", sz="1", side="B", tid=1, coin="HYPE", time=1_700_000_000_000, **overrides):
        record = {
            "coin": coin,
            "side": side,
            "px": px,
            "sz": sz,
            "hash": f"0x{tid:064x}",
            "time": time,
            "tid": tid,
            "users": ["0xbuyer", "0xseller"],
        }
        record.update(overrides)
        return record

    return _make


@pytest.fixture
def make_trade(trade_record):
    """Factory for parsed Trade objects."""

    def _make(**kwargs):
        return Trade.from_dict(trade_record(**kwargs))

    return _make
