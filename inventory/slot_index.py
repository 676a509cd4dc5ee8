"""
Slot Index — Locates items by name across packs or bank slots.
Read-only: only queries client state, never moves anything.
"""

from __future__ import annotations
from typing import List, Optional, Union, TYPE_CHECKING
from bridge.models import (
    InvalidLocationError,
    InventorySnapshot,
    ItemRef,
    Location,
    MatchMode,
    SlotAddress,
)
import logging

if TYPE_CHECKING:
    from bridge.game_client import GameClient
    from config import InventoryConfig

logger = logging.getLogger(__name__)


def name_matches(item_name: str, query: str, match_mode: MatchMode) -> bool:
    """Exact: full equality. Partial: case-insensitive containment."""
    if match_mode == MatchMode.EXACT:
        return item_name == query
    return query.lower() in item_name.lower()


class SlotIndex:
    """Builds name -> slot mappings for a container space."""

    def __init__(self, client: "GameClient", config: "InventoryConfig"):
        self.client = client
        self.config = config

    def total_slots(self, location: Location) -> int:
        if location == Location.PACK:
            return self.config.pack_slots
        return self.config.bank_slots

    async def scan(self, location: Union[Location, str]) -> InventorySnapshot:
        """
        Enumerate every occupied sub-slot of every container in the location.
        Empty top-level slots and non-containers are skipped.
        """
        try:
            location = Location.parse(location)
        except InvalidLocationError as e:
            logger.error(f"[INV] {e}")
            return InventorySnapshot(location=None)

        snapshot = InventorySnapshot(location=location)

        for index in range(1, self.total_slots(location) + 1):
            capacity = await self.client.container_capacity(location, index)
            logger.debug(f"[INV] Scanning {location.value}{index} (capacity={capacity})")
            if not capacity or capacity <= 0:
                continue

            for sub_slot in range(1, capacity + 1):
                name = await self.client.slot_item(location, index, sub_slot)
                if name is None:
                    continue
                snapshot.add(ItemRef(name, SlotAddress(location, index, sub_slot)))

        logger.debug(f"[INV] Scanned {location.value}: {snapshot.total} items, {len(snapshot.items)} names")
        return snapshot

    async def find(
        self,
        location: Union[Location, str],
        name: str,
        match_mode: MatchMode = MatchMode.EXACT,
    ) -> Optional[ItemRef]:
        """Fast path: ask the client for one instance of the item."""
        try:
            location = Location.parse(location)
        except InvalidLocationError as e:
            logger.error(f"[INV] {e}")
            return None

        logger.debug(f'[INV] Searching {location.value} for "{name}"')
        found = await self.client.find_item(location, name, match_mode == MatchMode.EXACT)
        if found is None:
            logger.debug(f'[INV] No items found matching "{name}"')
            return None

        if location == Location.PACK:
            offset = self.config.pack_slot_offset
        else:
            offset = self.config.bank_slot_offset
        address = SlotAddress(location, found.item_slot - offset, found.item_slot2 + 1)
        logger.debug(f"[INV] Found item: {found.name} {address}")
        return ItemRef(found.name, address)

    async def find_all(
        self,
        location: Union[Location, str],
        name: str,
        match_mode: MatchMode = MatchMode.EXACT,
    ) -> List[ItemRef]:
        """Every instance of the item, in slot order."""
        try:
            location = Location.parse(location)
        except InvalidLocationError as e:
            logger.error(f"[INV] {e}")
            return []

        # Skip the full scan when the fast search finds nothing
        if await self.find(location, name, match_mode) is None:
            return []

        snapshot = await self.scan(location)
        matches = [ref for ref in snapshot if name_matches(ref.name, name, match_mode)]
        for ref in matches:
            logger.debug(f'[INV] Found item: {ref.name} in "{ref.slot}"')
        return sorted(matches, key=lambda r: (r.address.container, r.address.sub_slot))
