"""
Telegram notification module.

Mirrors journal notifications and account milestones to a Telegram chat.
"""

import html
import logging
from datetime import datetime
from zoneinfo import ZoneInfo

import requests

from propjournal.accounts.transitions import AccountEvent
from propjournal.core.config import Config
from propjournal.notify.messages import format_event_message

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """
    Sends journal notifications to a Telegram bot.

    Delivery problems are logged and never interrupt a commit.
    """

    def __init__(self, config: Config):
        self.config = config
        self.bot_token = config.telegram_bot_token
        self.chat_id = config.telegram_chat_id
        self.timezone = ZoneInfo(config.timezone)

    def _timestamp(self) -> str:
        return datetime.now(self.timezone).strftime("%Y-%m-%d %H:%M")

    def send_message(self, text: str) -> bool:
        """
        Send a message to Telegram.

        Supports HTML formatting. Returns True if successful.
        """
        if not self.bot_token or not self.chat_id:
            logger.warning("Telegram not configured, skipping notification")
            return False

        url = f"https://api.telegram.org/bot{self.bot_token}/sendMessage"

        try:
            response = requests.post(
                url,
                json={
                    "chat_id": self.chat_id,
                    "text": text,
                    "parse_mode": "HTML",
                    "disable_web_page_preview": True,
                },
                timeout=10,
            )
            response.raise_for_status()
            logger.info("Telegram notification sent")
            return True

        except requests.RequestException as e:
            logger.error(f"Telegram notification failed: {e}")
            return False

    def notify_success(self, text: str) -> None:
        self.send_message(f"✅ {html.escape(text)}\n<i>{self._timestamp()}</i>")

    def notify_error(self, text: str) -> None:
        self.send_message(f"⚠️ <b>{html.escape(text)}</b>\n<i>{self._timestamp()}</i>")

    def send_event(self, event: AccountEvent) -> bool:
        """Send a lifecycle milestone."""
        message = html.escape(format_event_message(event, currency=self.config.currency))
        return self.send_message(f"<b>PropJournal</b>\n{message}\n<i>{self._timestamp()}</i>")
