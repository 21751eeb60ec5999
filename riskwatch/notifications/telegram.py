"""Telegram delivery for risk alerts and metrics snapshots."""
from __future__ import annotations

import logging
import ssl

import aiohttp
import certifi

from ..config import TelegramConfig

logger = logging.getLogger(__name__)

TELEGRAM_API = "https://api.telegram.org"
# Bot API rejects sendMessage text above this many characters.
MAX_MESSAGE_LENGTH = 4096
REQUEST_TIMEOUT = aiohttp.ClientTimeout(total=15)


def split_message(text: str, limit: int = MAX_MESSAGE_LENGTH) -> list[str]:
    """Split ``text`` into chunks of at most ``limit`` chars, preferring line breaks."""
    if len(text) <= limit:
        return [text]

    chunks: list[str] = []
    current = ""
    for line in text.split("\n"):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate
    if current:
        chunks.append(current)
    return chunks


class TelegramNotifier:
    """Alerts go to an audible bot; periodic metrics go to a muted log bot."""

    def __init__(self, config: TelegramConfig) -> None:
        self.alert_bot_token = config.alert_bot_token
        self.log_bot_token = config.log_bot_token
        self.chat_id = config.chat_id
        self._ssl_context = ssl.create_default_context(cafile=certifi.where())

    async def _post(self, text: str, bot_token: str, silent: bool) -> bool:
        if not bot_token or not self.chat_id:
            logger.warning("Telegram credentials not configured")
            return False

        url = f"{TELEGRAM_API}/bot{bot_token}/sendMessage"
        connector = aiohttp.TCPConnector(ssl=self._ssl_context)
        try:
            async with aiohttp.ClientSession(
                connector=connector, timeout=REQUEST_TIMEOUT
            ) as session:
                for part in split_message(text):
                    payload = {
                        "chat_id": self.chat_id,
                        "text": part,
                        "disable_notification": silent,
                    }
                    async with session.post(url, json=payload) as response:
                        if response.status != 200:
                            logger.error(
                                "Telegram sendMessage returned HTTP %s", response.status
                            )
                            return False
        except aiohttp.ClientError as e:
            logger.error("Telegram request failed: %s", e)
            return False
        return True

    async def send_alert(self, message: str, subject: str = "") -> bool:
        text = f"{subject}\n\n{message}" if subject else message
        if await self._post(text, self.alert_bot_token, silent=False):
            logger.info("Telegram alert sent to chat %s", self.chat_id)
            return True
        return False

    async def send_log(self, message: str, silent: bool = True) -> bool:
        if await self._post(message, self.log_bot_token, silent=silent):
            logger.debug("Telegram metrics log sent")
            return True
        return False
