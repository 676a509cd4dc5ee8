"""
Item Collector Agent — Main entry point.
Ties all components together: settings bootstrap, bridge connection, command and
chat handlers, shutdown.
"""

from __future__ import annotations
import asyncio
import os
import sys
import signal
from typing import Any, Dict
import logging

from dotenv import load_dotenv

# Load .env file before anything else
load_dotenv()

from config import CollectorConfig
from bridge.bridge_ws import BridgeClient
from bridge.models import BridgeError
from commands.dispatcher import CommandDispatcher
from inventory.item_mover import ItemMover
from inventory.slot_index import SlotIndex
from notifications.telegram import TelegramNotifier
from storage.settings_store import SettingsStore
from trading.agent_signal import AgentSignal
from trading.collector import Collector
from trading.trade_session import TradeRunner

logger = logging.getLogger(__name__)


def setup_logging(config: CollectorConfig):
    handlers = [logging.StreamHandler(sys.stdout)]
    if config.log_file:
        os.makedirs(os.path.dirname(config.log_file) or ".", exist_ok=True)
        handlers.append(logging.FileHandler(config.log_file))
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )


class Agent:
    """One collector agent bound to one game client."""

    def __init__(self, config: CollectorConfig):
        self.config = config
        self._tasks: set = set()

        self.client = BridgeClient(
            url=config.bridge.url,
            request_timeout=config.bridge.request_timeout,
            reconnect_delay=config.bridge.reconnect_delay,
        )
        self.settings = SettingsStore(config.storage.settings_path)
        self.notifier = TelegramNotifier(
            bot_token=config.notifications.telegram_bot_token,
            chat_id=config.notifications.telegram_chat_id,
            enabled=config.notifications.enabled,
        )

        # Engine
        self.slot_index = SlotIndex(self.client, config.inventory)
        self.mover = ItemMover(self.client, config.timing)
        self.signal = AgentSignal(self.client)
        self.trade_runner = TradeRunner(
            client=self.client,
            slot_index=self.slot_index,
            mover=self.mover,
            signal=self.signal,
            trade_config=config.trade,
            timing=config.timing,
        )
        self.collector = Collector(
            client=self.client,
            signal=self.signal,
            slot_index=self.slot_index,
            mover=self.mover,
            settings=self.settings,
            timing=config.timing,
        )
        self.dispatcher = CommandDispatcher(
            client=self.client,
            settings=self.settings,
            slot_index=self.slot_index,
            trade_runner=self.trade_runner,
            collector=self.collector,
            notifier=self.notifier,
        )

    async def start(self):
        """Full startup sequence."""
        logger.info("=" * 60)
        logger.info("   ITEM COLLECTOR — STARTING")
        logger.info("=" * 60)

        # 1. Settings (example config on first run)
        self.settings.bootstrap()

        # 2. Event handlers
        self.client.on("chat", self._on_chat)
        self.client.on("command", self._on_command)

        # 3. Connect and run
        bridge_task = asyncio.create_task(self.client.start())
        if await self.client.wait_connected(timeout=30):
            try:
                name = await self.client.me_name()
                self.notifier.agent = name
                logger.info(f"[BOOT] Bound to {name}")
            except BridgeError as e:
                logger.warning(f"[BOOT] Could not read character name: {e}")
            await self.notifier.send_agent_status("Started ✅")
        else:
            logger.warning(f"[BOOT] Bridge not reachable at {self.config.bridge.url}; retrying in background")

        logger.info("[BOOT] ✅ Listening for /give and /collect")
        await bridge_task

    async def stop(self):
        """Graceful shutdown."""
        logger.info("[SHUTDOWN] Stopping agent...")
        self.dispatcher.abort()
        for task in list(self._tasks):
            task.cancel()
        await self.notifier.send_agent_status("Stopped 🔴")
        await self.client.stop()
        await self.notifier.close()
        logger.info("[SHUTDOWN] Complete.")

    async def _on_chat(self, topic: str, data: Dict[str, Any]):
        self.signal.handle_line(data.get("line", ""))

    async def _on_command(self, topic: str, data: Dict[str, Any]):
        name = data.get("name", "").lstrip("/")
        args = [str(a) for a in data.get("args", [])]

        if name == "collect" and args[:1] == ["abort"]:
            self.dispatcher.abort()
            logger.info("[CMD] Abort requested")
            return

        # Commands call back into the bridge, so they must not block its reader
        task = asyncio.create_task(self.dispatcher.dispatch(name, args))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


async def main():
    """Entry point."""
    config = CollectorConfig.from_env()
    setup_logging(config)

    agent = Agent(config)

    # Graceful shutdown handler
    if sys.platform != "win32":
        loop = asyncio.get_running_loop()

        def handle_signal(sig):
            logger.info(f"Received signal {sig}. Initiating shutdown...")
            asyncio.create_task(agent.stop())

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: handle_signal(s))

    try:
        await agent.start()
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt received in main loop.")
        await agent.stop()
    except Exception as e:
        logger.critical(f"Fatal error: {e}", exc_info=True)
        await agent.stop()
        sys.exit(1)


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
