"""
Telegram Bot API client.

Sends notifications via Telegram Bot API.
https://core.telegram.org/bots/api
"""

import html
import logging
from typing import Optional

import requests

from pronote_bot.config import get_settings
from pronote_bot.notify.base import Notifier

logger = logging.getLogger(__name__)

# Telegram Bot API endpoint
TELEGRAM_API_URL = "https://api.telegram.org/bot{token}/sendMessage"


class TelegramNotifier(Notifier):
    """
    Telegram Bot API client for sending notifications.

    Uses Telegram's Bot API to send text messages to a configured
    chat (user, group, or channel).
    """

    name = "telegram"

    def __init__(
        self,
        token: Optional[str] = None,
        chat_id: Optional[str] = None,
    ):
        """
        Initialize Telegram notifier.

        Args:
            token: Telegram Bot API token (from @BotFather)
            chat_id: Telegram chat ID (user, group, or channel)
        """
        if token is None or chat_id is None:
            settings = get_settings()
            token = token or settings.telegram_bot_token
            chat_id = chat_id or settings.telegram_chat_id

        self.token = token
        self.chat_id = chat_id

        self.api_url = TELEGRAM_API_URL.format(token=self.token)
        self.session = requests.Session()

    def send(self, title: str, message: str) -> bool:
        """Send the title in bold followed by the message."""
        return self.send_message(f"<b>{html.escape(title)}</b>\n{html.escape(message)}")

    def send_message(self, message: str) -> bool:
        """
        Send a text message via Telegram.

        Args:
            message: HTML message text to send

        Returns:
            bool: True if message was sent successfully
        """
        payload = {
            "chat_id": self.chat_id,
            "text": message,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }

        try:
            response = self.session.post(self.api_url, json=payload, timeout=30)

            if response.status_code == 200:
                data = response.json()
                if data.get("ok"):
                    message_id = data.get("result", {}).get("message_id", "unknown")
                    logger.info(f"Telegram message sent successfully: {message_id}")
                    return True
                else:
                    logger.error(f"Telegram API error: {data.get('description')}")
                    return False
            else:
                logger.error(
                    f"Telegram API error: {response.status_code} - {response.text}"
                )
                return False

        except requests.exceptions.Timeout:
            logger.error("Telegram API request timed out")
            return False
        except requests.exceptions.RequestException as e:
            logger.error(f"Telegram API request failed: {e}")
            return False
