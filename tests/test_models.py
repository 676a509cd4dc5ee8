"""
Tests for slot addressing and shared models.
"""

import asyncio

import pytest

from bridge.models import (
    CollectionReport,
    InvalidLocationError,
    ItemRef,
    Location,
    SlotAddress,
    TradeSession,
)
from core.waits import sleep_or_cancel, wait_until


class TestSlotAddress:

    def test_str(self):
        assert str(SlotAddress(Location.PACK, 3, 2)) == "pack3 2"
        assert str(SlotAddress(Location.BANK, 4, 1)) == "bank4 1"

    def test_parse(self):
        assert SlotAddress.parse("bank12 7") == SlotAddress(Location.BANK, 12, 7)

    @pytest.mark.parametrize("text", ["pack3", "closet1 2", "packx 1", ""])
    def test_parse_rejects_bad_text(self, text):
        with pytest.raises(ValueError):
            SlotAddress.parse(text)

    def test_refs_with_same_name_differ_by_slot(self):
        a = ItemRef("Diamond Coin", SlotAddress(Location.PACK, 1, 1))
        b = ItemRef("Diamond Coin", SlotAddress(Location.PACK, 1, 2))
        assert a != b
        assert len({a, b}) == 2


class TestLocation:

    def test_parse(self):
        assert Location.parse("PACK") == Location.PACK
        assert Location.parse(Location.BANK) == Location.BANK

    def test_invalid(self):
        with pytest.raises(InvalidLocationError):
            Location.parse("closet")


def test_trade_session_defaults():
    session = TradeSession(target="CharVendor", wanted=["A", "B"])

    assert list(session.pending) == ["A", "B"]
    assert session.requester == "CharVendor"
    assert not session.is_terminal


def test_report_summary():
    report = CollectionReport(roster=["CharTwo", "CharThree"], completed=["CharTwo"], aborted="CharThree")

    assert report.summary().splitlines() == [
        "Collected from 1/2 members",
        "  CharTwo: done",
        "  CharThree: aborted",
    ]


class TestWaits:

    @pytest.mark.asyncio
    async def test_wait_until_true(self):
        state = {"n": 0}

        def ready():
            state["n"] += 1
            return state["n"] >= 3

        assert await wait_until(ready, timeout=1, interval=0.001)

    @pytest.mark.asyncio
    async def test_wait_until_async_predicate_timeout(self):
        async def never():
            return False

        assert not await wait_until(never, timeout=0.02, interval=0.001)

    @pytest.mark.asyncio
    async def test_unbounded_wait_cancel(self):
        cancel = asyncio.Event()
        asyncio.get_running_loop().call_later(0.02, cancel.set)

        assert not await wait_until(lambda: False, timeout=None, interval=0.005, cancel=cancel)

    @pytest.mark.asyncio
    async def test_sleep_or_cancel(self):
        cancel = asyncio.Event()
        assert not await sleep_or_cancel(0.001, cancel)
        cancel.set()
        assert await sleep_or_cancel(10, cancel)
