"""
Tests for the trade session state machine.

WHAT: Targeting, approach, batched offering and trade confirmation
WHY: Batch boundaries and skip rules decide how many trades a give takes
HOW: Drive TradeRunner against the fake client and count trade windows
"""

import asyncio

import pytest

from bridge.models import FailureReason, Location, SessionState, TradeSession
from config import TradeConfig
from trading.trade_session import TRADE_BUTTON, TradeRunner


@pytest.fixture
def vendor(client):
    """CharVendor in range and targetable."""
    client.spawns["CharVendor"] = 5.0
    return client


def _session(wanted, **kwargs):
    return TradeSession(target="CharVendor", wanted=wanted, **kwargs)


class TestBatching:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count,batches", [(17, 3), (16, 2), (8, 1), (9, 2), (3, 1)])
    async def test_batch_boundaries(self, vendor, trade_runner, count, batches):
        vendor.fill_pack(["Bone Chips"] * count)

        session = await trade_runner.run(_session(["Bone Chips"]))

        assert session.state == SessionState.COMPLETED
        assert session.offered_count == count
        assert session.batches == batches
        assert vendor.trade_clicks == batches
        assert [len(t) for t in vendor.traded][:-1] == [8] * (batches - 1)

    @pytest.mark.asyncio
    async def test_batches_span_item_names(self, vendor, trade_runner):
        vendor.fill_pack(["Bone Chips"] * 5 + ["Rubicite Ore"] * 5)

        session = await trade_runner.run(_session(["Bone Chips", "Rubicite Ore"]))

        assert session.batches == 2
        assert vendor.traded[0] == ["Bone Chips"] * 5 + ["Rubicite Ore"] * 3
        assert vendor.traded[1] == ["Rubicite Ore"] * 2

    @pytest.mark.asyncio
    async def test_absent_items_do_not_count(self, vendor, trade_runner):
        vendor.fill_pack(["Bone Chips"] * 8)

        session = await trade_runner.run(
            _session(["Missing One", "Bone Chips", "Missing Two"])
        )

        assert session.batches == 1
        assert session.skipped == ["Missing One", "Missing Two"]

    @pytest.mark.asyncio
    async def test_failed_pickup_does_not_count(self, vendor, trade_runner):
        vendor.fill_pack(["Bone Chips"] * 9)
        snapshot = await trade_runner.slot_index.scan(Location.PACK)
        vendor.fail_pickup.add(snapshot.get("Bone Chips")[0].address)

        session = await trade_runner.run(_session(["Bone Chips"]))

        assert session.offered_count == 8
        assert session.batches == 1

    @pytest.mark.asyncio
    async def test_nothing_to_give(self, vendor, trade_runner):
        session = await trade_runner.run(_session(["Diamond Coin"]))

        assert session.state == SessionState.COMPLETED
        assert session.batches == 0
        assert TRADE_BUTTON not in vendor.commands
        assert vendor.tells == [("CharVendor", "Done sending you items")]

    @pytest.mark.asyncio
    async def test_configured_batch_size(self, vendor, client, slot_index, mover, signal, timing):
        runner = TradeRunner(client, slot_index, mover, signal, TradeConfig(batch_size=4), timing)
        vendor.fill_pack(["Bone Chips"] * 9)

        session = await runner.run(_session(["Bone Chips"]))

        assert session.batches == 3


class TestScenario:

    @pytest.mark.asyncio
    async def test_give_diamonds_to_vendor(self, vendor, trade_runner):
        vendor.add_container(Location.PACK, 2, 8)
        vendor.put(Location.PACK, 2, 1, "Diamond Coin")
        vendor.put(Location.PACK, 2, 5, "Diamond Coin")

        session = await trade_runner.run(
            _session(["Diamond Coin", "Blue Diamond", "Raw Diamond"], session_id="ab12cd34")
        )

        assert session.state == SessionState.COMPLETED
        assert [r.slot for r in session.offered] == ["pack2 1", "pack2 5"]
        assert session.skipped == ["Blue Diamond", "Raw Diamond"]
        assert session.batches == 1
        assert vendor.traded == [["Diamond Coin", "Diamond Coin"]]
        assert vendor.tells == [("CharVendor", "Done sending you items (session ab12cd34)")]

    @pytest.mark.asyncio
    async def test_done_goes_to_requester(self, vendor, trade_runner):
        session = await trade_runner.run(_session([], requester="CharOne"))

        assert session.state == SessionState.COMPLETED
        assert vendor.tells[0][0] == "CharOne"


class TestTargeting:

    @pytest.mark.asyncio
    async def test_unknown_target_fails(self, client, trade_runner):
        session = await trade_runner.run(_session(["Diamond Coin"]))

        assert session.state == SessionState.FAILED
        assert session.failure == FailureReason.TARGET_NOT_FOUND
        assert client.tells == []

    @pytest.mark.asyncio
    async def test_existing_target_is_not_retargeted(self, vendor, trade_runner):
        vendor.target = "CharVendor"

        await trade_runner.run(_session([]))

        assert not any(c.startswith("/target") for c in vendor.commands)

    @pytest.mark.asyncio
    async def test_navigates_when_far(self, vendor, trade_runner):
        vendor.spawns["CharVendor"] = 120.0
        vendor.nav_polls = 3

        session = await trade_runner.run(_session([]))

        assert session.state == SessionState.COMPLETED
        assert "/nav target distance=20" in vendor.commands
        assert vendor.nav_polls == 0

    @pytest.mark.asyncio
    async def test_no_navigation_when_close(self, vendor, trade_runner):
        await trade_runner.run(_session([]))

        assert not any(c.startswith("/nav") for c in vendor.commands)


class TestConfirm:

    @pytest.mark.asyncio
    async def test_clicks_until_peer_accepts(self, vendor, trade_runner):
        vendor.fill_pack(["Bone Chips"] * 2)
        vendor.peer_accept_after = 3

        session = await trade_runner.run(_session(["Bone Chips"]))

        assert session.state == SessionState.COMPLETED
        assert session.batches == 1
        assert session.confirm_attempts == 4

    @pytest.mark.asyncio
    async def test_cancel_while_waiting_for_peer(self, vendor, trade_runner):
        vendor.fill_pack(["Bone Chips"] * 2)
        vendor.peer_accept_after = 10 ** 6
        cancel = asyncio.Event()

        async def cancel_soon():
            await asyncio.sleep(0.2)
            cancel.set()

        asyncio.create_task(cancel_soon())
        session = await asyncio.wait_for(trade_runner.run(_session(["Bone Chips"]), cancel), 5)

        assert session.state == SessionState.FAILED
        assert session.failure == FailureReason.ABORTED
        assert vendor.tells == []
