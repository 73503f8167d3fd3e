"""
Bot Module

Telegram chat commands (/status, /watch, /unwatch, /list) over long polling.
"""

from .commands import CommandHandler
from .poller import BotPoller

__all__ = ["BotPoller", "CommandHandler"]
