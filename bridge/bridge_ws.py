"""
Game Bridge WebSocket Client.
Talks JSON to the in-game bridge plugin: calls (queries/commands) and pushed events
(chat lines, bound commands). Auto-reconnects on disconnect.
"""

from __future__ import annotations
import asyncio
import itertools
import json
from typing import Any, Callable, Coroutine, Dict, List, Optional
import websockets
import logging

from bridge.game_client import FoundItem, GameClient
from bridge.models import BridgeError, Location

logger = logging.getLogger(__name__)

# Type for async callback: receives (topic, data)
EventCallback = Callable[[str, Dict[str, Any]], Coroutine[Any, Any, None]]


class BridgeClient(GameClient):
    """GameClient backed by a WebSocket connection to the bridge plugin."""

    def __init__(
        self,
        url: str,
        request_timeout: float = 5.0,
        reconnect_delay: int = 3,
    ):
        self.url = url
        self.request_timeout = request_timeout
        self.reconnect_delay = reconnect_delay

        self._ws: Optional[websockets.WebSocketClientProtocol] = None
        self._connected = asyncio.Event()
        self._pending: Dict[int, asyncio.Future] = {}
        self._ids = itertools.count(1)

        self._callbacks: Dict[str, List[EventCallback]] = {}
        self._running = False
        self._ping_interval = 20  # seconds

    def on(self, topic: str, callback: EventCallback):
        """Register a callback for a pushed event topic ("chat", "command")."""
        if topic not in self._callbacks:
            self._callbacks[topic] = []
        self._callbacks[topic].append(callback)

    async def start(self):
        """Run the connection loop until stopped."""
        self._running = True
        while self._running:
            try:
                async with websockets.connect(
                    self.url,
                    ping_interval=self._ping_interval,
                    ping_timeout=10,
                    close_timeout=5,
                ) as ws:
                    self._ws = ws
                    self._connected.set()
                    logger.info(f"[BRIDGE] Connected to {self.url}")

                    async for raw in ws:
                        await self._handle_message(raw)

            except websockets.ConnectionClosed as e:
                logger.warning(f"[BRIDGE] Connection closed: {e}. Reconnecting in {self.reconnect_delay}s...")
            except OSError as e:
                logger.error(f"[BRIDGE] Error: {e}. Reconnecting in {self.reconnect_delay}s...")

            self._ws = None
            self._connected.clear()
            self._fail_pending("connection lost")
            if self._running:
                await asyncio.sleep(self.reconnect_delay)

    async def stop(self):
        """Gracefully stop the connection."""
        self._running = False
        if self._ws:
            await self._ws.close()
        self._fail_pending("bridge stopped")

    async def wait_connected(self, timeout: Optional[float] = None) -> bool:
        try:
            await asyncio.wait_for(self._connected.wait(), timeout)
            return True
        except asyncio.TimeoutError:
            return False

    # ==================== Calls ====================

    async def call(self, method: str, *args: Any) -> Any:
        """Send a call and wait for its reply."""
        if self._ws is None:
            raise BridgeError(f"{method}: not connected to {self.url}")

        request_id = next(self._ids)
        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        msg = {"id": request_id, "op": "call", "method": method, "args": list(args)}

        try:
            await self._ws.send(json.dumps(msg))
            return await asyncio.wait_for(future, timeout=self.request_timeout)
        except asyncio.TimeoutError:
            raise BridgeError(f"{method}: no reply in {self.request_timeout}s") from None
        except websockets.ConnectionClosed as e:
            raise BridgeError(f"{method}: connection closed ({e})") from e
        finally:
            self._pending.pop(request_id, None)

    def _fail_pending(self, reason: str):
        for future in self._pending.values():
            if not future.done():
                future.set_exception(BridgeError(reason))
        self._pending.clear()

    # ==================== GameClient ====================

    async def me_name(self) -> str:
        return await self.call("me_name")

    async def target_name(self) -> Optional[str]:
        return await self.call("target_name")

    async def spawn_exists(self, name: str) -> bool:
        return bool(await self.call("spawn_exists", name))

    async def spawn_distance(self, name: str) -> Optional[float]:
        dist = await self.call("spawn_distance", name)
        return None if dist is None else float(dist)

    async def navigation_active(self) -> bool:
        return bool(await self.call("navigation_active"))

    async def group_members(self) -> List[str]:
        return list(await self.call("group_members") or [])

    async def connected_peers(self) -> List[str]:
        raw = await self.call("query", "e3,E3Bots.ConnectedClients") or ""
        return [name.strip() for name in raw.split(",") if name.strip()]

    async def cursor_item(self) -> Optional[str]:
        return await self.call("cursor_item")

    async def window_open(self, window: str) -> bool:
        return bool(await self.call("window_open", window))

    async def container_capacity(self, location: Location, index: int) -> Optional[int]:
        capacity = await self.call("container_capacity", f"{location.value}{index}")
        return None if capacity is None else int(capacity)

    async def slot_item(self, location: Location, index: int, sub_slot: int) -> Optional[str]:
        return await self.call("slot_item", f"{location.value}{index}", sub_slot)

    async def find_item(self, location: Location, name: str, exact: bool) -> Optional[FoundItem]:
        result = await self.call("find_item", location.value, name, exact)
        if not result:
            return None
        return FoundItem(
            name=result["name"],
            item_slot=int(result["slot"]),
            item_slot2=int(result["slot2"]),
        )

    async def command(self, text: str) -> None:
        logger.debug(f"[BRIDGE] > {text}")
        await self.call("command", text)

    # ==================== Internal ====================

    async def _handle_message(self, raw: str):
        """Route replies to waiting calls and events to callbacks."""
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                logger.warning(f"[BRIDGE] Ignoring non-object frame: {raw[:100]}")
                return

            if "id" in data:
                future = self._pending.get(data["id"])
                if future is None or future.done():
                    return
                if data.get("ok", True):
                    future.set_result(data.get("result"))
                else:
                    future.set_exception(BridgeError(data.get("error", "call failed")))
                return

            topic = data.get("topic", "")
            if not topic:
                return

            await self._dispatch(topic, data)

        except json.JSONDecodeError:
            logger.warning(f"[BRIDGE] Invalid JSON: {raw[:100]}")
        except Exception as e:
            logger.error(f"[BRIDGE] Message handling error: {e}", exc_info=True)

    async def _dispatch(self, topic: str, data: Dict):
        """Dispatch an event to its callbacks."""
        for cb in self._callbacks.get(topic, []):
            try:
                await cb(topic, data)
            except Exception as e:
                logger.error(f"[BRIDGE] Callback error for {topic}: {e}", exc_info=True)
