"""
Alertzy push notification client.

Sends push notifications to the Alertzy mobile app.
https://alertzy.app/
"""

import logging
from typing import Optional

import requests

from pronote_bot.config import get_settings
from pronote_bot.notify.base import Notifier

logger = logging.getLogger(__name__)

ALERTZY_API_URL = "https://alertzy.app/send"


class AlertzyNotifier(Notifier):
    """Alertzy client for sending push notifications."""

    name = "alertzy"

    def __init__(self, account_key: Optional[str] = None):
        """
        Initialize Alertzy notifier.

        Args:
            account_key: Alertzy account key of the receiving device
        """
        self.account_key = account_key or get_settings().alertzy_account_key
        self.session = requests.Session()

    def send(self, title: str, message: str) -> bool:
        """
        Send a push notification.

        Returns:
            bool: True if Alertzy accepted the notification
        """
        params = {
            "accountKey": self.account_key,
            "title": title,
            "message": message,
        }

        try:
            response = self.session.post(ALERTZY_API_URL, params=params, timeout=30)
        except requests.exceptions.Timeout:
            logger.error("Alertzy request timed out")
            return False
        except requests.exceptions.RequestException as e:
            logger.error(f"Alertzy request failed: {e}")
            return False

        if response.status_code != 200:
            logger.error(f"Alertzy API error: {response.status_code} - {response.text}")
            return False

        try:
            data = response.json()
        except ValueError:
            data = {}
        if data.get("response") == "fail":
            logger.error(f"Alertzy API error: {data.get('error')}")
            return False

        logger.info("Alertzy notification sent successfully")
        return True
