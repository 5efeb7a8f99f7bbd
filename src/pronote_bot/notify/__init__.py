"""Notification module for Pronote Bot."""

import logging
from typing import Optional

from pronote_bot.config import Settings, get_settings
from pronote_bot.notify.alertzy import AlertzyNotifier
from pronote_bot.notify.base import Notifier, NotifierGroup
from pronote_bot.notify.discord import DiscordNotifier
from pronote_bot.notify.formatters import MessageFormatter
from pronote_bot.notify.telegram import TelegramNotifier

logger = logging.getLogger(__name__)


def build_notifiers(settings: Optional[Settings] = None) -> NotifierGroup:
    """
    Create one notifier per configured channel.

    Args:
        settings: Optional settings instance, will be loaded if not provided

    Returns:
        NotifierGroup: Every channel whose credentials are set
    """
    if settings is None:
        settings = get_settings()

    notifiers = []
    if settings.discord_webhook_url:
        notifiers.append(DiscordNotifier(settings.discord_webhook_url))
    if settings.alertzy_account_key:
        notifiers.append(AlertzyNotifier(settings.alertzy_account_key))
    if settings.telegram_bot_token and settings.telegram_chat_id:
        notifiers.append(
            TelegramNotifier(settings.telegram_bot_token, settings.telegram_chat_id)
        )

    if not notifiers:
        logger.warning("No notification channel configured, notifications will be dropped")
    else:
        logger.debug(f"Notification channels: {', '.join(n.name for n in notifiers)}")

    return NotifierGroup(notifiers)


__all__ = [
    "AlertzyNotifier",
    "DiscordNotifier",
    "MessageFormatter",
    "Notifier",
    "NotifierGroup",
    "TelegramNotifier",
    "build_notifiers",
]
