"""
Tests for roster and bank collection.

WHAT: Sequential roster requests, trade auto-accept, bank moves
WHY: A member must finish before the next one is asked
HOW: Fake peers answer broadcast /give requests with done tells
"""

import asyncio

import pytest

from bridge.models import Location


class FakePeers:
    """Answers "/give <me> <session>" broadcasts like remote agents would."""

    def __init__(self, client, signal, delay=0.01, open_trade=False, silent=()):
        self.client = client
        self.signal = signal
        self.delay = delay
        self.open_trade = open_trade
        self.silent = set(silent)
        self.events = []
        client.on_broadcast = self._on_broadcast

    def _on_broadcast(self, member, command):
        self.events.append(("ask", member))
        _, requester, session_id = command.split()
        assert requester == self.client.me
        if member not in self.silent:
            asyncio.get_running_loop().create_task(self._give(member, session_id))

    async def _give(self, member, session_id):
        if self.open_trade:
            self.client.trade_open = True
            self.client.trade_offer = [f"{member} item"]
        await asyncio.sleep(self.delay)
        if self.open_trade:
            # Done only after our side accepted the trade
            while self.client.trade_open:
                await asyncio.sleep(0.001)
        self.events.append(("done", member))
        self.signal.handle_line(
            f"{member} tells you, 'Done sending you items (session {session_id})'"
        )


class TestRoster:

    @pytest.mark.asyncio
    async def test_members_visited_in_order(self, client, signal, collector):
        peers = FakePeers(client, signal)

        report = await collector.collect_from_roster(["CharTwo", "CharThree", "CharFour"])

        assert [m for kind, m in peers.events if kind == "ask"] == ["CharTwo", "CharThree", "CharFour"]
        assert report.completed == ["CharTwo", "CharThree", "CharFour"]

    @pytest.mark.asyncio
    async def test_next_member_waits_for_done(self, client, signal, collector):
        peers = FakePeers(client, signal, delay=0.03)

        await collector.collect_from_roster(["CharTwo", "CharThree", "CharFour"])

        assert peers.events == [
            ("ask", "CharTwo"), ("done", "CharTwo"),
            ("ask", "CharThree"), ("done", "CharThree"),
            ("ask", "CharFour"), ("done", "CharFour"),
        ]

    @pytest.mark.asyncio
    async def test_request_command_format(self, client, signal, collector):
        FakePeers(client, signal)

        await collector.collect_from_roster(["CharTwo"])

        member, command = client.broadcasts[0]
        assert member == "CharTwo"
        assert command.startswith("/give CharOne ")

    @pytest.mark.asyncio
    async def test_done_from_wrong_member_does_not_advance(self, client, signal, collector):
        FakePeers(client, signal, silent={"CharTwo"})
        cancel = asyncio.Event()

        async def impostor():
            await asyncio.sleep(0.02)
            _, command = client.broadcasts[0]
            session_id = command.split()[-1]
            signal.handle_line(f"CharNine tells you, 'Done sending you items (session {session_id})'")
            await asyncio.sleep(0.05)
            cancel.set()

        asyncio.create_task(impostor())
        report = await collector.collect_from_roster(["CharTwo", "CharThree"], cancel)

        assert report.completed == []
        assert report.aborted == "CharTwo"
        assert len(client.broadcasts) == 1

    @pytest.mark.asyncio
    async def test_accepts_trades_while_waiting(self, client, signal, collector):
        FakePeers(client, signal, open_trade=True)

        report = await collector.collect_from_roster(["CharTwo", "CharThree"])

        assert report.trades_confirmed == 2
        assert client.traded == [["CharTwo item"], ["CharThree item"]]

    @pytest.mark.asyncio
    async def test_collect_group_skips_self(self, client, signal, collector):
        client.group = ["CharTwo", "CharOne", "CharThree"]
        peers = FakePeers(client, signal)

        await collector.collect_group()

        assert [m for kind, m in peers.events if kind == "ask"] == ["CharTwo", "CharThree"]

    @pytest.mark.asyncio
    async def test_collect_peers_filters_to_visible(self, client, signal, collector):
        client.peers = ["CharOne", "CharTwo", "CharFar", "CharThree"]
        client.spawns = {"CharTwo": 10.0, "CharThree": 30.0}
        peers = FakePeers(client, signal)

        await collector.collect_peers()

        assert [m for kind, m in peers.events if kind == "ask"] == ["CharTwo", "CharThree"]

    @pytest.mark.asyncio
    async def test_empty_roster(self, collector):
        report = await collector.collect_from_roster([])

        assert report.completed == []


class TestBank:

    @pytest.mark.asyncio
    async def test_collect_from_bank_stows_twice(self, client, settings, collector):
        settings.add_item("CharOne", "Raw Diamond")
        client.add_container(Location.BANK, 2, 4)
        client.put(Location.BANK, 2, 1, "Raw Diamond")
        client.put(Location.BANK, 2, 3, "Raw Diamond")
        client.put(Location.BANK, 2, 4, "Bone Chips")

        moved = await collector.collect_from_bank("CharOne")

        assert moved == 2
        assert client.stowed == ["Raw Diamond", "Raw Diamond"]
        assert client.commands.count("/autoinventory") == 4

    @pytest.mark.asyncio
    async def test_collect_from_bank_missing_config(self, client, settings, collector):
        settings.add_item("CharOne", "Raw Diamond")

        assert await collector.collect_from_bank("Nobody") == 0
        assert client.commands == []

    @pytest.mark.asyncio
    async def test_give_to_bank(self, client, settings, collector):
        settings.add_item("CharOne", "Bone Chips")
        client.fill_pack(["Bone Chips", "Diamond Coin", "Bone Chips"])

        moved = await collector.give_to_bank("CharOne")

        assert moved == 2
        assert client.banked == ["Bone Chips", "Bone Chips"]
