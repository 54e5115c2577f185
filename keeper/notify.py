"""
Failure notifications.

Delivers one message per failed stage to a Telegram chat. Notification
problems are logged and never fail a backup task.
"""

import logging
from typing import Optional

import httpx

from keeper.models import NotificationEvent, TelegramSettings

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = 'https://api.telegram.org'


class NotifierError(Exception):
    """Raised when a message sink cannot be built or a message cannot be sent."""
    pass


class TelegramSink:
    """
    Telegram Bot API message sink.

    The token is checked with ``getMe`` on construction.
    """

    def __init__(self, bot_token: str, timeout: float = 30.0, api_url: str = TELEGRAM_API_URL):
        if not bot_token:
            raise NotifierError("Telegram bot token is empty")

        self.base_url = f"{api_url}/bot{bot_token}"
        self.timeout = timeout
        self.bot_name = self._call('getMe').get('username', '')

    def send(self, chat_id: int, text: str):
        """
        Send a text message to chat_id.

        Raises:
            NotifierError: If delivery fails
        """
        self._call('sendMessage', {'chat_id': chat_id, 'text': text})

    def _call(self, method: str, payload: Optional[dict] = None) -> dict:
        try:
            resp = httpx.post(f"{self.base_url}/{method}", json=payload or {}, timeout=self.timeout)
            data = resp.json()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise NotifierError(f"Telegram {method} failed: {e}")
        except ValueError:
            raise NotifierError(f"Telegram {method} returned invalid JSON (HTTP {resp.status_code})")

        if not isinstance(data, dict):
            raise NotifierError(f"Telegram {method} returned an unexpected reply (HTTP {resp.status_code})")

        if not data.get('ok'):
            raise NotifierError(f"Telegram {method} rejected: {data.get('description', resp.status_code)}")

        result = data.get('result')
        return result if isinstance(result, dict) else {}


class Notifier:
    """
    Sends failure events to one recipient, or only logs them when disabled.

    Holds no mutable state, so one instance is shared by all tasks.
    """

    def __init__(self, sink: Optional[TelegramSink] = None, chat_id: int = 0):
        self.sink = sink
        self.chat_id = chat_id

    @property
    def enabled(self) -> bool:
        return self.sink is not None

    def notify(self, event: NotificationEvent):
        """Deliver event. Never raises."""
        if not self.enabled:
            logger.debug("Notifications disabled, not sending: %s", event.text)
            return

        try:
            self.sink.send(self.chat_id, event.text)
            logger.info("Notification sent: %s", event.text)
        except Exception as e:
            logger.error("Error sending notification '%s': %s", event.text, e)


def create_notifier(settings: TelegramSettings, sink_factory=None) -> Notifier:
    """
    Build the notifier for the configured Telegram settings.

    A sink that cannot be constructed (bad token, API unreachable) leaves
    notifications disabled instead of stopping the backups.
    """
    if not settings.enable:
        logger.info("Telegram notifications disabled")
        return Notifier()

    try:
        sink = (sink_factory or TelegramSink)(settings.bot_token)
    except Exception as e:
        logger.error("Error creating Telegram bot, notifications disabled: %s", e)
        return Notifier()

    return Notifier(sink, settings.chat_id)
