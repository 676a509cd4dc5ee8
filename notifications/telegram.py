"""
Telegram Notifier — Sends collection summaries and failed-give alerts.
"""

from __future__ import annotations
import aiohttp
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Sends messages via Telegram Bot API."""

    def __init__(self, bot_token: str, chat_id: str, enabled: bool = True, agent: str = ""):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.enabled = enabled and bool(bot_token) and bool(chat_id)
        self.agent = agent
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()

    async def send(self, message: str, parse_mode: str = "HTML"):
        """Send a message to the configured chat."""
        if not self.enabled:
            logger.debug(f"[TG] (disabled) Would send: {message[:100]}...")
            return

        try:
            session = await self._get_session()
            url = f"https://api.telegram.org/bot{self.bot_token}/sendMessage"
            payload = {
                "chat_id": self.chat_id,
                "text": message,
                "parse_mode": parse_mode,
                "disable_web_page_preview": True,
            }

            async with session.post(url, json=payload) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    logger.warning(f"[TG] Send failed ({resp.status}): {body[:200]}")
                else:
                    logger.debug(f"[TG] Sent: {message[:80]}...")

        except aiohttp.ClientError as e:
            logger.warning(f"[TG] Error sending message: {e}")

    def _prefix(self) -> str:
        return f"<b>{self.agent}</b> " if self.agent else ""

    async def send_collection_summary(self, summary: str):
        """Send the result of a roster collection."""
        await self.send(f"📦 {self._prefix()}<b>COLLECTION</b>\n\n<code>{summary}</code>")

    async def send_give_failed(self, target: str, reason: str):
        """Send a failed give notification."""
        await self.send(f"❌ {self._prefix()}<b>GIVE FAILED</b>\nTarget: <code>{target}</code>\nReason: {reason}")

    async def send_agent_status(self, status: str):
        """Send agent lifecycle status."""
        await self.send(f"🤖 {self._prefix()}<b>AGENT</b>: {status}")
