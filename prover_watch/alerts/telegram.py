"""
Telegram Alerts
===============

Telegram delivery for the prover watch service.

Message types:
- Idle alerts: sent to the chat that subscribed to an idle prover
- Command replies: sent by the bot poller
- Service status: started/stopped notices to the operator chat, if configured
"""

import logging
import os
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Protocol

import requests

from ..config import config as settings

logger = logging.getLogger(__name__)

# Rate limiting constants
MIN_MESSAGE_INTERVAL_SECONDS = 0.5  # between any two messages
MAX_MESSAGES_PER_MINUTE = 20  # Global rate limit


class NotificationSink(Protocol):
    """Anything that can deliver an idle alert to a subscriber."""

    def send_idle_alert(self, subscriber_id: str, text: str) -> bool:
        ...


@dataclass
class AlertConfig:
    """Configuration for alert sending."""
    bot_token: str
    chat_id: Optional[str] = None  # operator chat for service status
    dry_run: bool = False
    parse_mode: Optional[str] = None  # reports are plain text
    max_message_length: int = 4000
    # Rate limiting settings
    min_message_interval: float = MIN_MESSAGE_INTERVAL_SECONDS
    max_messages_per_minute: int = MAX_MESSAGES_PER_MINUTE
    request_timeout: float = 10.0


class TelegramAlerts:
    """
    Telegram sender for idle alerts and bot replies.

    Calls are synchronous (requests); the monitor runs them in a worker
    thread, so rate limiting state is guarded by a lock.
    """

    def __init__(self, config: AlertConfig):
        """
        Initialize Telegram alerts.

        Args:
            config: AlertConfig with bot token and settings
        """
        self.config = config
        self._validate()

        # Rate limiting state
        self._lock = threading.Lock()
        self._last_message_time: float = 0
        self._messages_this_minute: List[float] = []  # timestamps of recent sends

    @classmethod
    def from_env(cls, dry_run: bool = False) -> Optional["TelegramAlerts"]:
        """
        Create TelegramAlerts from environment variables.

        Returns:
            TelegramAlerts instance if configured (or dry run), None otherwise
        """
        bot_token = settings.telegram_bot_token
        chat_id = settings.telegram_chat_id

        if dry_run:
            return cls(AlertConfig(bot_token=bot_token or "", chat_id=chat_id, dry_run=True))

        if not bot_token:
            logger.warning("Telegram not configured (set TELEGRAM_BOT_TOKEN)")
            return None

        parse_mode = os.environ.get("TELEGRAM_PARSE_MODE") or None
        return cls(AlertConfig(bot_token=bot_token, chat_id=chat_id, parse_mode=parse_mode))

    def _validate(self):
        """Validate configuration."""
        if not self.config.dry_run and not self.config.bot_token:
            raise ValueError("TELEGRAM_BOT_TOKEN is required (or use --dry-run)")

    @property
    def api_base(self) -> str:
        return f"https://api.telegram.org/bot{self.config.bot_token}"

    # -------------------------------------------------------------------------
    # Rate limiting
    # -------------------------------------------------------------------------

    def _check_rate_limit(self) -> bool:
        """
        Check if we're within rate limits.

        Returns:
            True if we can send, False if rate limited
        """
        now = time.time()

        # Clean up old timestamps (older than 1 minute)
        self._messages_this_minute = [t for t in self._messages_this_minute if now - t < 60]

        if len(self._messages_this_minute) >= self.config.max_messages_per_minute:
            logger.warning(f"Rate limited: {len(self._messages_this_minute)} messages in last minute")
            return False

        return True

    def _enforce_message_interval(self):
        """Enforce minimum interval between messages."""
        elapsed = time.time() - self._last_message_time

        if elapsed < self.config.min_message_interval:
            time.sleep(self.config.min_message_interval - elapsed)

    def _truncate_message(self, text: str) -> str:
        """Truncate message to Telegram's character limit."""
        if len(text) > self.config.max_message_length:
            return text[:self.config.max_message_length - 20] + "\n... (truncated)"
        return text

    # -------------------------------------------------------------------------
    # Sending
    # -------------------------------------------------------------------------

    def send_message(self, chat_id, text: str, skip_rate_limit: bool = False) -> Optional[int]:
        """
        Send a message via the Telegram Bot API.

        Args:
            chat_id: Destination chat
            text: Message text
            skip_rate_limit: If True, skip the per-minute limit (operational notices)

        Returns:
            message_id if successful, None otherwise
        """
        text = self._truncate_message(text)

        if self.config.dry_run:
            logger.info(f"[DRY RUN] Would send Telegram message to {chat_id}:\n{text}")
            return 999999

        with self._lock:
            if not skip_rate_limit and not self._check_rate_limit():
                logger.warning(f"Message to chat {chat_id} dropped due to rate limiting")
                return None

            self._enforce_message_interval()

            payload = {"chat_id": chat_id, "text": text}
            if self.config.parse_mode:
                payload["parse_mode"] = self.config.parse_mode

            try:
                response = requests.post(
                    f"{self.api_base}/sendMessage",
                    json=payload,
                    timeout=self.config.request_timeout,
                )
                response.raise_for_status()

                now = time.time()
                self._last_message_time = now
                self._messages_this_minute.append(now)

                message_id = response.json().get("result", {}).get("message_id")
                logger.info(f"Telegram message sent to chat {chat_id} (message_id: {message_id})")
                return message_id

            except requests.exceptions.Timeout:
                logger.error("Telegram request timed out")
                return None
            except requests.exceptions.HTTPError as e:
                # Log status code without exposing token in URL
                status_code = e.response.status_code if e.response is not None else "unknown"
                logger.error(f"Telegram HTTP error: {status_code}")
                if status_code == 429:
                    logger.warning("Telegram rate limit hit (429) - backing off")
                return None
            except requests.exceptions.ConnectionError:
                logger.error("Telegram connection error - network issue")
                return None
            except requests.exceptions.RequestException:
                # Don't log exception details which may contain URL/token
                logger.error("Telegram request failed")
                return None
            except ValueError:
                logger.error("Telegram returned a non-JSON response")
                return None

    def send_idle_alert(self, subscriber_id: str, text: str) -> bool:
        """
        Deliver an idle alert to the subscribing chat.

        Returns:
            True if delivered
        """
        return self.send_message(subscriber_id, text) is not None

    def send_service_status(self, status: str, details: str = "", timestamp: datetime = None) -> bool:
        """
        Send service status notification to the operator chat.

        Args:
            status: Status type ("started", "stopped", "error")
            details: Additional details
            timestamp: Timestamp (default: now)

        Returns:
            True if sent successfully (False if no operator chat is configured)
        """
        if not self.config.chat_id:
            return False

        if timestamp is None:
            timestamp = datetime.now(timezone.utc)

        status_text = {
            "started": "Prover watch started",
            "stopped": "Prover watch stopped",
            "error": "Prover watch error",
        }.get(status, f"Status: {status}")

        lines = [f"{status_text} at {timestamp.strftime('%H:%M:%S %Z')}"]
        if details:
            lines.append("")
            lines.append(details)

        return self.send_message(self.config.chat_id, "\n".join(lines), skip_rate_limit=True) is not None
