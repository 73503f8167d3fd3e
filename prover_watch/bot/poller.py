"""
Bot Poller
==========

Long-polls Telegram getUpdates and feeds text messages to CommandHandler.
Replies go out through TelegramAlerts.send_message so they share its rate
limiting.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from ..alerts.telegram import TelegramAlerts
from ..config import config
from .commands import CommandHandler

logger = logging.getLogger(__name__)


class BotPoller:
    """
    getUpdates long-poll loop.

    Runs as a task on the service event loop next to the HTTP API and the
    watchlist monitor.
    """

    def __init__(
        self,
        bot_token: str,
        handler: CommandHandler,
        alerts: TelegramAlerts,
        poll_timeout: int = None,
        error_backoff: float = 5.0,
    ):
        """
        Initialize the poller.

        Args:
            bot_token: Telegram bot token
            handler: Command dispatcher
            alerts: Sender used for replies
            poll_timeout: getUpdates long-poll timeout (seconds)
            error_backoff: Pause after a failed poll (seconds)
        """
        self.bot_token = bot_token
        self.handler = handler
        self.alerts = alerts
        self.poll_timeout = poll_timeout if poll_timeout is not None else config.bot_poll_timeout_sec
        self.error_backoff = error_backoff

        self._session: Optional[aiohttp.ClientSession] = None
        self._task: Optional[asyncio.Task] = None
        self._offset: Optional[int] = None
        self._running = False

    async def _ensure_session(self):
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.poll_timeout + 10)
            self._session = aiohttp.ClientSession(timeout=timeout)

    async def close(self):
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self):
        if self._running:
            return
        logger.info("Starting Telegram bot poller...")
        self._running = True
        self._task = asyncio.create_task(self._poll_loop())

    async def stop(self):
        logger.info("Stopping Telegram bot poller...")
        self._running = False
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        await self.close()

    async def _poll_loop(self):
        while self._running:
            try:
                updates = await self.get_updates()
                for update in updates:
                    await self._process_safely(update)
            except asyncio.CancelledError:
                break
            except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
                # str(e) of aiohttp errors can carry the request URL (and token)
                logger.warning(f"getUpdates failed ({type(e).__name__}), retrying in {self.error_backoff}s")
                await asyncio.sleep(self.error_backoff)

    async def _process_safely(self, update: Dict[str, Any]):
        try:
            await self.process_update(update)
        except Exception as e:
            logger.exception(f"Update {update.get('update_id')} failed: {e}")

    # -------------------------------------------------------------------------
    # Updates
    # -------------------------------------------------------------------------

    async def get_updates(self) -> List[Dict[str, Any]]:
        """
        Fetch pending updates, advancing the offset past them.

        Raises:
            aiohttp.ClientError / asyncio.TimeoutError: transport failure
            ValueError: malformed response
        """
        await self._ensure_session()
        params: Dict[str, Any] = {"timeout": self.poll_timeout, "allowed_updates": '["message"]'}
        if self._offset is not None:
            params["offset"] = self._offset

        url = f"https://api.telegram.org/bot{self.bot_token}/getUpdates"
        async with self._session.get(url, params=params) as response:
            if response.status != 200:
                raise ValueError(f"getUpdates HTTP {response.status}")
            body = await response.json()

        if not isinstance(body, dict) or not body.get("ok"):
            raise ValueError("getUpdates returned an error")

        updates = body.get("result") or []
        if updates:
            self._offset = max(u.get("update_id", 0) for u in updates) + 1
        return updates

    async def process_update(self, update: Dict[str, Any]) -> Optional[str]:
        """
        Dispatch one update and send the reply, if any.

        Returns:
            Reply text that was sent (None if nothing to reply)
        """
        message = update.get("message") or {}
        text = message.get("text")
        chat_id = (message.get("chat") or {}).get("id")
        if not text or chat_id is None:
            return None

        reply = await self.handler.handle(chat_id, text)
        if reply is None:
            return None

        await asyncio.to_thread(self.alerts.send_message, chat_id, reply)
        return reply
