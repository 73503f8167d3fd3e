"""
Bot Commands
============

Chat command handling for the Telegram bot.

Commands:
- /ping              liveness check
- /help              command list
- /status <addr>     full prover report
- /watch <addr>      subscribe this chat to idle alerts for a prover
- /unwatch <addr>    unsubscribe
- /list              provers watched by this chat

Subscriptions go into the monitor's own watchlist, so idle alerts for them
are delivered to the chat that issued /watch.
"""

import logging
from typing import Optional

from ..api.raw_call import normalize_participant
from ..core.monitor import WatchlistMonitor
from ..core.report import format_prover_message
from ..core.scanner import ParticipationScanner
from ..errors import InvalidParticipant, ProverWatchError

logger = logging.getLogger(__name__)

HELP_TEXT = "\n".join([
    "Prover watch commands:",
    "/status <prover> - prover participation report",
    "/watch <prover> - alert this chat when the prover goes idle",
    "/unwatch <prover> - stop watching a prover",
    "/list - provers watched in this chat",
    "/ping - check the bot is alive",
])


class CommandHandler:
    """Maps chat commands onto the scanner and the monitor."""

    def __init__(self, scanner: ParticipationScanner, monitor: WatchlistMonitor):
        self.scanner = scanner
        self.monitor = monitor

    async def handle(self, chat_id, text: str) -> Optional[str]:
        """
        Process one incoming message.

        Args:
            chat_id: Chat the message came from
            text: Message text

        Returns:
            Reply text, or None if the message is not a known command
        """
        parts = (text or "").strip().split()
        if not parts or not parts[0].startswith("/"):
            return None

        # "/watch@SomeBot 0x..." in group chats
        command = parts[0][1:].split("@", 1)[0].lower()
        args = parts[1:]

        handler = {
            "ping": self._ping,
            "start": self._help,
            "help": self._help,
            "status": self._status,
            "watch": self._watch,
            "unwatch": self._unwatch,
            "list": self._list,
        }.get(command)

        if handler is None:
            return None

        logger.info(f"Command /{command} from chat {chat_id}")
        return await handler(str(chat_id), args)

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    async def _ping(self, chat_id: str, args) -> str:
        return "🏓 Pong! Bot is alive"

    async def _help(self, chat_id: str, args) -> str:
        return HELP_TEXT

    async def _status(self, chat_id: str, args) -> str:
        if not args:
            return "Usage: /status <proverAddress>"

        try:
            result, shares = await self.scanner.scan_with_shares(args[0])
        except InvalidParticipant:
            return "Invalid address"
        except ProverWatchError as e:
            logger.warning(f"Status for {args[0]} failed: {e}")
            return f"Error: {e}"

        return format_prover_message(result, shares=shares)

    async def _watch(self, chat_id: str, args) -> str:
        if not args:
            return "Usage: /watch <proverAddress>"

        try:
            address = normalize_participant(args[0])
        except InvalidParticipant:
            return "Invalid address"

        if not self.monitor.watch(chat_id, address):
            return f"Already watching {address}"
        return (
            f"✅ Watching {address}. I'll alert if no participation for "
            f"{self.monitor.activity_threshold} epochs."
        )

    async def _unwatch(self, chat_id: str, args) -> str:
        if not args:
            return "Usage: /unwatch <proverAddress>"

        try:
            address = normalize_participant(args[0])
        except InvalidParticipant:
            return "Invalid address"

        removed = self.monitor.unwatch(chat_id, address)
        return f"🛑 Stopped watching {address}" if removed else "⚠️ No active watch found"

    async def _list(self, chat_id: str, args) -> str:
        entries = self.monitor.watchlist.for_subscriber(chat_id)
        if not entries:
            return "No active watches. Use /watch <prover> to add one."

        lines = ["Your watched provers:"]
        lines.extend(f"• {entry.participant}" for entry in entries)
        return "\n".join(lines)
