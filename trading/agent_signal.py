"""
Agent Signal — Point-to-point "done" acknowledgements over chat tells.

Wire text, as seen by the receiver:
    <sender> tells you, 'Done sending you items'
    <sender> tells you, 'Done sending you items (session 3f9a1c2e)'

Each awaited acknowledgement is a future keyed by (peer, session id).
"""

from __future__ import annotations
import asyncio
import re
import uuid
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Tuple, TYPE_CHECKING
from core.waits import sleep_or_cancel
import logging

if TYPE_CHECKING:
    from bridge.game_client import GameClient

logger = logging.getLogger(__name__)

DONE_TEXT = "Done sending you items"

DONE_PATTERN = re.compile(
    r"^(?P<sender>\S+) tells you, '" + re.escape(DONE_TEXT)
    + r"(?: \(session (?P<session>[\w-]+)\))?'$"
)


@dataclass(frozen=True)
class DoneMessage:
    sender: str
    session_id: Optional[str] = None


def new_session_id() -> str:
    return uuid.uuid4().hex[:8]


def format_done(session_id: Optional[str] = None) -> str:
    """Tell body for a done acknowledgement."""
    if session_id:
        return f"{DONE_TEXT} (session {session_id})"
    return DONE_TEXT


def parse_done(line: str) -> Optional[DoneMessage]:
    """Parse an incoming chat line; None if it is not a done acknowledgement."""
    match = DONE_PATTERN.match(line.strip())
    if not match:
        return None
    return DoneMessage(sender=match.group("sender"), session_id=match.group("session"))


class AgentSignal:
    """Sends and awaits done acknowledgements between agents."""

    def __init__(self, client: "GameClient"):
        self.client = client
        self._waiting: Dict[Tuple[str, str], asyncio.Future] = {}

    @staticmethod
    def _key(peer: str, session_id: str) -> Tuple[str, str]:
        return (peer.lower(), session_id)

    async def notify_done(self, peer: str, session_id: Optional[str] = None):
        """Tell peer that we have finished sending items."""
        await self.client.command(f"/tell {peer} {format_done(session_id)}")
        logger.info(f"[SIGNAL] Told {peer} we are done" + (f" (session {session_id})" if session_id else ""))

    def expect(self, peer: str, session_id: str) -> asyncio.Future:
        """Register interest in a done acknowledgement from peer."""
        key = self._key(peer, session_id)
        future = self._waiting.get(key)
        if future is None or future.done():
            future = asyncio.get_running_loop().create_future()
            self._waiting[key] = future
        return future

    def is_done(self, peer: str, session_id: str) -> bool:
        future = self._waiting.get(self._key(peer, session_id))
        return future is not None and future.done() and not future.cancelled()

    def pending_for(self, peer: str) -> List[str]:
        """Session ids still waiting on peer, oldest first."""
        name = peer.lower()
        return [sid for (p, sid), f in self._waiting.items() if p == name and not f.done()]

    def discard(self, peer: str, session_id: str):
        future = self._waiting.pop(self._key(peer, session_id), None)
        if future is not None and not future.done():
            future.cancel()

    async def await_done(
        self,
        peer: str,
        session_id: str,
        timeout: Optional[float] = None,
        cancel: Optional[asyncio.Event] = None,
        interval: float = 0.1,
        on_poll: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> bool:
        """
        Block until peer acknowledges session_id. False on timeout or cancel.
        on_poll runs once per interval while still waiting.
        """
        future = self._waiting.get(self._key(peer, session_id))
        if future is None:
            future = self.expect(peer, session_id)
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout

        while not future.done():
            if cancel is not None and cancel.is_set():
                return False
            if deadline is not None and loop.time() >= deadline:
                return False
            if await sleep_or_cancel(interval, cancel):
                return False
            if on_poll is not None and not future.done():
                await on_poll()

        self._waiting.pop(self._key(peer, session_id), None)
        return not future.cancelled()

    def handle_line(self, line: str) -> bool:
        """
        Chat listener. Resolves the matching pending session.
        A message without a session id resolves the sender's oldest pending session.
        Returns True when a waiter was resolved.
        """
        message = parse_done(line)
        if message is None:
            return False

        if message.session_id is not None:
            future = self._waiting.get(self._key(message.sender, message.session_id))
        else:
            pending = self.pending_for(message.sender)
            future = self._waiting.get(self._key(message.sender, pending[0])) if pending else None

        if future is None or future.done():
            logger.debug(f"[SIGNAL] Ignoring done from {message.sender}: nothing pending")
            return False

        future.set_result(message)
        logger.debug(f"[SIGNAL] {message.sender} has finished sending items")
        return True
