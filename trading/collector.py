"""
Collector — Asks roster members, one at a time, to give us the items we want.

For each member: register a session, send "/give <me> <session>" over the
broadcast channel, then wait for that member's done acknowledgement while
accepting any trade window it opens. Bank variants move items locally.
"""

from __future__ import annotations
import asyncio
from typing import Iterable, List, Optional, TYPE_CHECKING
from bridge.models import CollectionReport, ConfigMissingError, Destination, Location
from core.waits import wait_until
from trading.agent_signal import new_session_id
from trading.trade_session import TRADE_BUTTON
import logging

if TYPE_CHECKING:
    from bridge.game_client import GameClient
    from config import TimingConfig
    from inventory.item_mover import ItemMover
    from inventory.slot_index import SlotIndex
    from storage.settings_store import SettingsStore
    from trading.agent_signal import AgentSignal

logger = logging.getLogger(__name__)


class Collector:
    """Sequences give requests across a roster and moves bank items."""

    def __init__(
        self,
        client: "GameClient",
        signal: "AgentSignal",
        slot_index: "SlotIndex",
        mover: "ItemMover",
        settings: "SettingsStore",
        timing: "TimingConfig",
    ):
        self.client = client
        self.signal = signal
        self.slot_index = slot_index
        self.mover = mover
        self.settings = settings
        self.timing = timing

    # ==================== Roster collection ====================

    async def collect_from_roster(
        self,
        roster: Iterable[str],
        cancel: Optional[asyncio.Event] = None,
    ) -> CollectionReport:
        """
        Ask each member in order for our items. The next member is only asked
        after the current one has acknowledged.
        """
        me = await self.client.me_name()
        report = CollectionReport(roster=list(roster))

        for member in report.roster:
            logger.info(f"[COLLECT] Asking {member} for items I want")
            session_id = new_session_id()
            done = await self._ask_for_items(me, member, session_id, report, cancel)
            if not done:
                report.aborted = member
                logger.warning(f"[COLLECT] Collection cancelled while waiting on {member}")
                break
            report.completed.append(member)
            logger.info(f"[COLLECT] {member} has finished sending items")

        logger.info(f"[COLLECT] {report.summary()}")
        return report

    async def collect_group(self, cancel: Optional[asyncio.Event] = None) -> CollectionReport:
        """Collect from every group member in group order."""
        members = await self.client.group_members()
        me = await self.client.me_name()
        roster = [m for m in members if m and m != me]
        return await self.collect_from_roster(roster, cancel)

    async def collect_peers(self, cancel: Optional[asyncio.Event] = None) -> CollectionReport:
        """Collect from every connected peer that is in the zone."""
        me = await self.client.me_name()
        roster: List[str] = []
        for name in await self.client.connected_peers():
            if name == me:
                continue
            if await self.client.spawn_exists(name):
                roster.append(name)
            else:
                logger.debug(f"[COLLECT] Peer {name} not in zone, skipping")
        return await self.collect_from_roster(roster, cancel)

    async def _ask_for_items(
        self,
        me: str,
        member: str,
        session_id: str,
        report: CollectionReport,
        cancel: Optional[asyncio.Event],
    ) -> bool:
        """Request a give from member and wait for its acknowledgement."""
        self.signal.expect(member, session_id)
        await self.client.command(f"/e3bct {member} /give {me} {session_id}")

        # Accept trades the member opens with us
        async def confirm_open_trade():
            if await self.client.trade_window_open():
                await self.client.command(TRADE_BUTTON)
                if await wait_until(
                    self.client.trade_window_closed,
                    timeout=self.timing.wait_time,
                    interval=self.timing.poll_interval,
                ):
                    report.trades_confirmed += 1

        try:
            return await self.signal.await_done(
                member,
                session_id,
                cancel=cancel,
                interval=self.timing.poll_interval,
                on_poll=confirm_open_trade,
            )
        finally:
            self.signal.discard(member, session_id)

    # ==================== Bank ====================

    async def collect_from_bank(self, target: str) -> int:
        """
        Move every bank item target wants into inventory.
        Returns the number of items moved.
        """
        logger.info(f"[COLLECT] Collecting items from bank for {target}")
        self.settings.load()
        try:
            wanted = self.settings.want_list(target)
        except ConfigMissingError as e:
            logger.info(f"[COLLECT] {e}")
            return 0

        bank = await self.slot_index.scan(Location.BANK)
        moved = 0
        for name in wanted:
            logger.debug(f"[COLLECT] Attempting to collect {name} from bank for {target}")
            for ref in bank.get(name):
                logger.debug(f"[COLLECT] Moving {name} from {ref.slot} to inventory")
                if not await self.mover.pick_up(ref.address):
                    continue
                stowed = await self.mover.auto_stow()
                # A single /autoinventory sometimes leaves the item on the cursor
                await self.client.command("/autoinventory")
                if stowed:
                    moved += 1

        logger.info(f"[COLLECT] All items moved to inventory ({moved})")
        return moved

    async def give_to_bank(self, target: str) -> int:
        """
        Move every pack item target wants into the open bank.
        Returns the number of items moved.
        """
        logger.info(f"[COLLECT] Moving all items to bank for {target}")
        self.settings.load()
        try:
            wanted = self.settings.want_list(target)
        except ConfigMissingError as e:
            logger.info(f"[COLLECT] {e}")
            return 0

        pack = await self.slot_index.scan(Location.PACK)
        moved = 0
        for name in wanted:
            logger.debug(f"[COLLECT] Attempting to move {name} to bank")
            for ref in pack.get(name):
                logger.debug(f"[COLLECT] Moving {name} from {ref.slot} to bank")
                if await self.mover.move(ref.address, Destination.BANK):
                    moved += 1

        logger.info(f"[COLLECT] All items moved to bank ({moved})")
        return moved
