"""
Trade Session — Drives one give operation through the trade handshake.

IDLE -> TARGETING -> APPROACHING -> OFFERING -> AWAITING_WINDOW_CLOSE -> COMPLETED
FAILED(reason) is reachable from any state.

Offering places up to batch_size items on the target, then the trade button is
clicked until the peer accepts and the window closes. Remaining items go in the
next batch.
"""

from __future__ import annotations
import asyncio
from typing import Optional, TYPE_CHECKING
from bridge.models import (
    Destination,
    FailureReason,
    InventorySnapshot,
    ItemRef,
    Location,
    SessionState,
    TradeSession,
)
from core.waits import wait_until
import logging

if TYPE_CHECKING:
    from bridge.game_client import GameClient
    from config import TimingConfig, TradeConfig
    from inventory.item_mover import ItemMover
    from inventory.slot_index import SlotIndex
    from trading.agent_signal import AgentSignal

logger = logging.getLogger(__name__)

TRADE_BUTTON = "/notify TradeWnd TRDW_Trade_Button leftmouseup"


class TradeRunner:
    """Runs TradeSessions against the local client."""

    def __init__(
        self,
        client: "GameClient",
        slot_index: "SlotIndex",
        mover: "ItemMover",
        signal: "AgentSignal",
        trade_config: "TradeConfig",
        timing: "TimingConfig",
    ):
        self.client = client
        self.slot_index = slot_index
        self.mover = mover
        self.signal = signal
        self.config = trade_config
        self.timing = timing

    async def run(
        self,
        session: TradeSession,
        cancel: Optional[asyncio.Event] = None,
    ) -> TradeSession:
        """Drive session to a terminal state and return it."""
        target = session.target
        logger.info(f"[TRADE] Giving {len(session.wanted)} wanted item names to {target}")

        self._transition(session, SessionState.TARGETING)
        if not await self._acquire_target(target):
            return self._fail(session, FailureReason.TARGET_NOT_FOUND)

        self._transition(session, SessionState.APPROACHING)
        if not await self._approach(target, cancel):
            if cancel is not None and cancel.is_set():
                return self._fail(session, FailureReason.ABORTED)
            return self._fail(session, FailureReason.TARGET_NOT_FOUND)

        snapshot = await self.slot_index.scan(Location.PACK)

        while True:
            self._transition(session, SessionState.OFFERING)
            placed = await self._offer_batch(session, snapshot, cancel)

            if placed:
                self._transition(session, SessionState.AWAITING_WINDOW_CLOSE)
                session.batches += 1
                if not await self._confirm_trade(session, cancel):
                    return self._fail(session, FailureReason.ABORTED)

            if cancel is not None and cancel.is_set():
                return self._fail(session, FailureReason.ABORTED)
            if not session.pending:
                break

        self._transition(session, SessionState.COMPLETED)
        logger.info(
            f"[TRADE] {target}: COMPLETED ✓ {session.offered_count} items in "
            f"{session.batches} trade(s), skipped {len(session.skipped)}"
        )
        await self.signal.notify_done(session.requester, session.session_id)
        return session

    # ==================== States ====================

    async def _acquire_target(self, target: str) -> bool:
        """Target by name if not already targeted, then verify."""
        if await self.client.target_name() != target:
            await self.client.command(f'/target "{target}"')
            await wait_until(
                self._target_is(target),
                timeout=self.timing.wait_time,
                interval=self.timing.poll_interval,
            )

        if await self.client.target_name() != target:
            logger.error(f'[TRADE] Target "{target}" not found')
            return False
        return True

    def _target_is(self, target: str):
        async def check() -> bool:
            return await self.client.target_name() == target
        return check

    async def _approach(self, target: str, cancel: Optional[asyncio.Event]) -> bool:
        """Navigate into trade range. False if the target has no resolvable distance."""
        distance = await self.client.spawn_distance(target)
        if distance is None:
            logger.error(f'[TRADE] Cannot resolve distance to "{target}"')
            return False
        if distance <= self.config.proximity:
            return True

        logger.debug(f"[TRADE] {target} is {distance:.1f} away. Navigating...")
        await self.client.command(f"/nav target distance={self.config.nav_stop_distance}")

        async def arrived() -> bool:
            return not await self.client.navigation_active()

        if not await wait_until(arrived, timeout=None, interval=self.timing.nav_poll_interval, cancel=cancel):
            return False
        logger.debug(f"[TRADE] Arrived at {target}")
        return True

    async def _offer_batch(
        self,
        session: TradeSession,
        snapshot: InventorySnapshot,
        cancel: Optional[asyncio.Event],
    ) -> int:
        """
        Place items until the batch is full or nothing is pending.
        Returns how many items were placed in this batch.
        """
        placed = 0
        while session.pending and placed < self.config.batch_size:
            if cancel is not None and cancel.is_set():
                break

            name = session.pending[0]
            ref = self._next_ref(session, snapshot, name)
            if ref is None:
                session.pending.popleft()
                if name not in snapshot:
                    logger.debug(f'[TRADE] No "{name}" to give')
                    session.skipped.append(name)
                continue

            session.consumed.add(ref.address)
            if await self._offer(ref):
                placed += 1
                session.offered.append(ref)
                logger.debug(
                    f"[TRADE] Offered {ref.name} from {ref.slot} "
                    f"({placed}/{self.config.batch_size} in window)"
                )

        return placed

    @staticmethod
    def _next_ref(session: TradeSession, snapshot: InventorySnapshot, name: str) -> Optional[ItemRef]:
        for ref in snapshot.get(name):
            if ref.address not in session.consumed:
                return ref
        return None

    async def _offer(self, ref: ItemRef) -> bool:
        """Pick up ref and drop it on the target."""
        if not await self.mover.pick_up(ref.address):
            return False
        if await self.mover.place(Destination.TRADE_TARGET):
            return True
        # Don't leave the item hanging on the cursor
        await self.mover.auto_stow()
        return False

    async def _confirm_trade(self, session: TradeSession, cancel: Optional[asyncio.Event]) -> bool:
        """
        Click Trade until the window closes. The peer may not have accepted yet,
        so there is no deadline; only cancel stops it.
        """
        while True:
            session.confirm_attempts += 1
            await self.client.command(TRADE_BUTTON)
            closed = await wait_until(
                self.client.trade_window_closed,
                timeout=self.timing.wait_time,
                interval=self.timing.poll_interval,
                cancel=cancel,
            )
            if closed:
                return True
            if cancel is not None and cancel.is_set():
                logger.warning(f"[TRADE] {session.target}: trade confirm cancelled")
                return False
            logger.debug(f"[TRADE] {session.target}: trade window still open, clicking again")

    # ==================== Helpers ====================

    @staticmethod
    def _transition(session: TradeSession, state: SessionState):
        logger.debug(f"[TRADE] {session.target}: {session.state.value} -> {state.value}")
        session.state = state

    @staticmethod
    def _fail(session: TradeSession, reason: FailureReason) -> TradeSession:
        session.state = SessionState.FAILED
        session.failure = reason
        logger.warning(f"[TRADE] {session.target}: FAILED ({reason.value})")
        return session
