"""
Command Dispatcher — Routes /give and /collect arguments to the engine.

/give                                   give to the current target
/give <char> [session]                  give <char> everything it wants
/give bank [char]                       move wanted pack items into the bank
/give find|findbank <item>              first matching item in pack / bank
/give findall|findallmatch <pack|bank> <item>
/collect [group]                        ask each group member for my items
/collect e3bots                         ask each connected peer for my items
/collect bank [char]                    move wanted bank items to inventory
/collect list                           list my wanted items
/collect scan <pack|bank>               list every item in pack / bank
/collect add [target|<char>]            add the cursor item to a want list
/collect debug [true|false]             toggle verbose logging
/collect sort                           sort the settings file
/collect abort                          cancel the running give or collect

Failures are reported as log lines; nothing here stops the agent.
"""

from __future__ import annotations
import asyncio
import logging
from typing import List, Optional, Sequence, TYPE_CHECKING
from bridge.models import (
    BridgeError,
    CollectionReport,
    ConfigMissingError,
    Location,
    MatchMode,
    SessionState,
    TradeSession,
)

if TYPE_CHECKING:
    from bridge.game_client import GameClient
    from inventory.slot_index import SlotIndex
    from notifications.telegram import TelegramNotifier
    from storage.settings_store import SettingsStore
    from trading.collector import Collector
    from trading.trade_session import TradeRunner

logger = logging.getLogger(__name__)


class CommandDispatcher:
    """Executes bound commands one at a time."""

    def __init__(
        self,
        client: "GameClient",
        settings: "SettingsStore",
        slot_index: "SlotIndex",
        trade_runner: "TradeRunner",
        collector: "Collector",
        notifier: Optional["TelegramNotifier"] = None,
    ):
        self.client = client
        self.settings = settings
        self.slot_index = slot_index
        self.trade_runner = trade_runner
        self.collector = collector
        self.notifier = notifier
        self.cancel = asyncio.Event()
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    async def dispatch(self, name: str, args: Sequence[str]):
        """Run one bound command. Overlapping requests are refused."""
        args = list(args)
        for i, arg in enumerate(args, start=1):
            logger.debug(f"[CMD] /{name} arg[{i}]: {arg}")

        if self._busy:
            logger.info(f"[CMD] Busy; ignoring /{name} {' '.join(args)}")
            return

        handler = {"give": self.give, "collect": self.collect}.get(name)
        if handler is None:
            logger.warning(f"[CMD] Unknown command /{name}")
            return

        self._busy = True
        self.cancel.clear()
        try:
            await handler(args)
        except BridgeError as e:
            logger.error(f"[CMD] /{name} failed: {e}")
        except Exception as e:
            logger.error(f"[CMD] /{name} error: {e}", exc_info=True)
        finally:
            self._busy = False

    def abort(self):
        """Cancel the running give/collect at its next wait."""
        self.cancel.set()

    # ==================== /give ====================

    async def give(self, args: List[str]):
        first = args[0] if args else None

        if first == "bank":
            target = args[1] if len(args) > 1 else await self.client.me_name()
            await self.collector.give_to_bank(target)
            return

        if first in ("find", "findbank"):
            if len(args) < 2:
                logger.info(f"[CMD] Usage: /give {first} <item>")
                return
            location = Location.PACK if first == "find" else Location.BANK
            await self._find(location, " ".join(args[1:]))
            return

        if first in ("findall", "findallmatch"):
            if len(args) < 3 or args[1] not in ("pack", "bank"):
                logger.info(f"[CMD] Usage: /give {first} <pack|bank> <item>")
                return
            mode = MatchMode.EXACT if first == "findall" else MatchMode.PARTIAL
            await self._find_all(args[1], " ".join(args[2:]), mode)
            return

        await self._give_to(first, args[1] if len(args) > 1 else None)

    async def _give_to(self, target: Optional[str], session_id: Optional[str]):
        if target is None:
            target = await self.client.target_name()
        if target is None:
            logger.info("[CMD] No target specified")
            logger.info("[CMD] Usage: /give")
            logger.info("[CMD] Usage: /give <character name>")
            return

        self.settings.load()
        try:
            wanted = self.settings.want_list(target)
        except ConfigMissingError as e:
            logger.info(f"[CMD] {e}")
            return

        session = TradeSession(target=target, wanted=wanted, session_id=session_id)
        await self.trade_runner.run(session, self.cancel)

        if session.state == SessionState.FAILED and self.notifier:
            await self.notifier.send_give_failed(target, session.failure.value)

    async def _find(self, location: Location, name: str):
        ref = await self.slot_index.find(location, name)
        if ref is None:
            logger.info(f'[CMD] No items found matching "{name}"')
            return
        logger.info(f"[CMD] Found item: {ref.name} in {ref.slot}")

    async def _find_all(self, location: str, name: str, mode: MatchMode):
        refs = await self.slot_index.find_all(location, name, mode)
        if not refs:
            logger.info(f'[CMD] No items found matching "{name}"')
        for ref in refs:
            logger.info(f"[CMD] Found item: {ref.name} in {ref.slot}")

    # ==================== /collect ====================

    async def collect(self, args: List[str]):
        first = args[0] if args else None
        second = args[1] if len(args) > 1 else None

        if first in (None, "group"):
            report = await self.collector.collect_group(self.cancel)
            await self._report(report)
        elif first == "e3bots":
            report = await self.collector.collect_peers(self.cancel)
            await self._report(report)
        elif first == "bank":
            target = " ".join(args[1:]) if second else await self.client.me_name()
            await self.collector.collect_from_bank(target)
        elif first == "list":
            await self._list()
        elif first == "scan":
            if second not in ("pack", "bank"):
                logger.info("[CMD] Usage: /collect scan <pack|bank>")
                return
            await self._scan(second)
        elif first == "debug":
            self._set_debug(second is None or second.lower() == "true")
        elif first == "sort":
            self.settings.load()
            self.settings.sort()
        elif first == "add":
            if second == "target":
                await self.add_item_on_cursor(await self.client.target_name())
            elif second is not None:
                await self.add_item_on_cursor(second)
            else:
                await self.add_item_on_cursor(await self.client.me_name())
        else:
            logger.info(f"[CMD] Unknown /collect option: {first}")

    async def _report(self, report: CollectionReport):
        if self.notifier:
            await self.notifier.send_collection_summary(report.summary())

    async def _list(self):
        me = await self.client.me_name()
        self.settings.load()
        try:
            wanted = self.settings.want_list(me)
        except ConfigMissingError as e:
            logger.info(f"[CMD] {e}")
            return
        for name in wanted:
            logger.info(f"[CMD] {name}")

    async def _scan(self, location: str):
        snapshot = await self.slot_index.scan(location)
        for name, refs in snapshot.items.items():
            logger.info(f"[CMD] {name}")
            for ref in refs:
                logger.debug(f"[CMD]   {ref.slot}")

    @staticmethod
    def _set_debug(enabled: bool):
        logging.getLogger().setLevel(logging.DEBUG if enabled else logging.INFO)
        logger.info(f"[CMD] Debug mode {'enabled' if enabled else 'disabled'}")

    async def add_item_on_cursor(self, target: Optional[str]):
        """Add the cursor item to target's want list, then stow it."""
        if target is None:
            target = await self.client.me_name()

        item = await self.client.cursor_item()
        if item is None:
            logger.info("[CMD] No item on cursor")
            return

        if not await self.client.spawn_exists(target):
            logger.info(f'[CMD] Target "{target}" not found')
            return

        self.settings.load()
        self.settings.add_item(target, item)
        await self.client.command("/autoinventory")
