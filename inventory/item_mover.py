"""
Item Mover — Pickup and placement primitives.

Each primitive issues one UI action and waits (bounded) for the cursor to confirm it.
A timeout returns False; retrying is the caller's decision.
"""

from __future__ import annotations
from typing import TYPE_CHECKING
from bridge.models import Destination, SlotAddress
from core.waits import wait_until
import logging

if TYPE_CHECKING:
    from bridge.game_client import GameClient
    from config import TimingConfig

logger = logging.getLogger(__name__)

PLACE_COMMANDS = {
    Destination.TRADE_TARGET: "/click left target",
    Destination.BANK: "/nomodkey /notify BigBankWnd BIGB_AutoButton leftmouseup",
    Destination.AUTO_STOW: "/autoinventory",
}


class ItemMover:
    """Moves items between slots, the cursor, and trade/bank destinations."""

    def __init__(self, client: "GameClient", timing: "TimingConfig"):
        self.client = client
        self.timing = timing

    async def pick_up(self, address: SlotAddress) -> bool:
        """Put the item at address on the cursor. False if the cursor stays empty."""
        await self.client.command(f"/shift /itemnotify in {address} leftmouseup")
        picked = await wait_until(
            self.client.cursor_has_item,
            timeout=self.timing.wait_time,
            interval=self.timing.poll_interval,
        )
        if not picked:
            logger.warning(f"[MOVE] Pickup from {address} timed out after {self.timing.wait_time}s")
        return picked

    async def place(self, destination: Destination) -> bool:
        """Drop the cursor item onto destination. False if the cursor stays full."""
        await self.client.command(PLACE_COMMANDS[destination])
        placed = await wait_until(
            self.client.cursor_is_empty,
            timeout=self.timing.wait_time,
            interval=self.timing.poll_interval,
        )
        if not placed:
            logger.warning(f"[MOVE] Place to {destination.value} timed out after {self.timing.wait_time}s")
        return placed

    async def auto_stow(self) -> bool:
        return await self.place(Destination.AUTO_STOW)

    async def move(self, address: SlotAddress, destination: Destination) -> bool:
        """Pick up then place. Stops at the first step that times out."""
        if not await self.pick_up(address):
            return False
        logger.debug(f"[MOVE] {address} -> {destination.value}")
        return await self.place(destination)
