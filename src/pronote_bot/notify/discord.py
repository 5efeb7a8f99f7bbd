"""
Discord webhook client.

Posts notifications to a Discord channel through an incoming webhook.
https://discord.com/developers/docs/resources/webhook#execute-webhook
"""

import logging
from typing import Optional

import requests

from pronote_bot.config import get_settings
from pronote_bot.notify.base import Notifier

logger = logging.getLogger(__name__)

# Discord rejects message content above 2000 characters
MAX_LENGTH = 2000


class DiscordNotifier(Notifier):
    """Discord webhook client for sending notifications."""

    name = "discord"

    def __init__(self, webhook_url: Optional[str] = None):
        """
        Initialize Discord notifier.

        Args:
            webhook_url: Webhook URL of the target channel
        """
        self.webhook_url = webhook_url or get_settings().discord_webhook_url
        self.session = requests.Session()

    def send(self, title: str, message: str) -> bool:
        """
        Post the title in bold followed by the message.

        Returns:
            bool: True if Discord accepted the message
        """
        content = f"**{title}**\n{message}"
        if len(content) > MAX_LENGTH:
            content = content[:MAX_LENGTH - 3] + "..."

        try:
            response = self.session.post(
                self.webhook_url, json={"content": content}, timeout=30
            )
        except requests.exceptions.Timeout:
            logger.error("Discord webhook request timed out")
            return False
        except requests.exceptions.RequestException as e:
            logger.error(f"Discord webhook request failed: {e}")
            return False

        if response.status_code in (200, 204):
            logger.info("Discord message sent successfully")
            return True

        logger.error(f"Discord webhook error: {response.status_code} - {response.text}")
        return False
