"""
Game Client Interface.
The narrow set of queries and commands the collector needs from a live client.
SlotIndex, ItemMover and TradeSession only ever talk to this interface.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from bridge.models import Location

TRADE_WINDOW = "TradeWnd"


@dataclass
class FoundItem:
    """Raw result of the client's fast item search (game slot numbering)."""
    name: str
    item_slot: int
    item_slot2: int


class GameClient(ABC):
    """Capability interface onto one game client."""

    # ─── Identity / world ───

    @abstractmethod
    async def me_name(self) -> str: ...

    @abstractmethod
    async def target_name(self) -> Optional[str]: ...

    @abstractmethod
    async def spawn_exists(self, name: str) -> bool: ...

    @abstractmethod
    async def spawn_distance(self, name: str) -> Optional[float]:
        """3D distance to a spawn, None if it cannot be resolved."""

    @abstractmethod
    async def navigation_active(self) -> bool: ...

    @abstractmethod
    async def group_members(self) -> List[str]:
        """Group member names, excluding this character."""

    @abstractmethod
    async def connected_peers(self) -> List[str]:
        """Names of peers connected to the broadcast channel."""

    # ─── Cursor / windows ───

    @abstractmethod
    async def cursor_item(self) -> Optional[str]:
        """Name of the item on the cursor, None when empty."""

    @abstractmethod
    async def window_open(self, window: str) -> bool: ...

    # ─── Inventory ───

    @abstractmethod
    async def container_capacity(self, location: Location, index: int) -> Optional[int]:
        """Slot count of the container in top-level slot index, None if no container."""

    @abstractmethod
    async def slot_item(self, location: Location, index: int, sub_slot: int) -> Optional[str]:
        """Name of the item in a container sub-slot, None when empty."""

    @abstractmethod
    async def find_item(self, location: Location, name: str, exact: bool) -> Optional[FoundItem]:
        """Fast search for one instance of an item."""

    # ─── Actions ───

    @abstractmethod
    async def command(self, text: str) -> None:
        """Issue a slash command to the client."""

    # ─── Convenience ───

    async def cursor_has_item(self) -> bool:
        return await self.cursor_item() is not None

    async def cursor_is_empty(self) -> bool:
        return await self.cursor_item() is None

    async def trade_window_open(self) -> bool:
        return await self.window_open(TRADE_WINDOW)

    async def trade_window_closed(self) -> bool:
        return not await self.window_open(TRADE_WINDOW)
