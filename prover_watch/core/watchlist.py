"""
Watchlist Management
====================

In-memory subscriptions: each subscriber (chat) watches a set of provers.
Nothing is persisted; subscriptions are lost on restart.
"""

import logging
from typing import Dict, List, Optional

from ..api.raw_call import normalize_participant
from ..models import WatchEntry

logger = logging.getLogger(__name__)


class Watchlist:
    """
    Subscriber -> prover -> WatchEntry mapping.

    Owned by WatchlistMonitor; the HTTP API and the bot reach it through
    the monitor.
    """

    def __init__(self):
        self._entries: Dict[str, Dict[str, WatchEntry]] = {}

    def add(self, subscriber_id, participant: str) -> bool:
        """
        Subscribe a chat to a prover.

        Args:
            subscriber_id: Chat / channel identifier (stored as str)
            participant: Prover address, normalized before storing

        Returns:
            True if the subscription is new, False if it already existed

        Raises:
            InvalidParticipant: malformed address
        """
        subscriber_id = str(subscriber_id)
        participant = normalize_participant(participant)

        provers = self._entries.setdefault(subscriber_id, {})
        if participant in provers:
            return False

        provers[participant] = WatchEntry(subscriber_id=subscriber_id, participant=participant)
        logger.info(f"Watch added for {participant} in chat {subscriber_id}")
        return True

    def remove(self, subscriber_id, participant: Optional[str] = None) -> bool:
        """
        Unsubscribe a chat from one prover, or from all provers.

        Returns:
            True if anything was removed
        """
        subscriber_id = str(subscriber_id)
        provers = self._entries.get(subscriber_id)
        if not provers:
            return False

        if participant is None:
            del self._entries[subscriber_id]
            logger.info(f"All watches removed for chat {subscriber_id}")
            return True

        participant = normalize_participant(participant)
        removed = provers.pop(participant, None) is not None
        if not provers:
            del self._entries[subscriber_id]
        if removed:
            logger.info(f"Watch removed for {participant} in chat {subscriber_id}")
        return removed

    def get(self, subscriber_id, participant: str) -> Optional[WatchEntry]:
        return self._entries.get(str(subscriber_id), {}).get(participant)

    def for_subscriber(self, subscriber_id) -> List[WatchEntry]:
        """All entries for one chat, in subscription order."""
        return list(self._entries.get(str(subscriber_id), {}).values())

    def entries(self) -> List[WatchEntry]:
        """Snapshot of every entry across all subscribers."""
        return [entry for provers in self._entries.values() for entry in provers.values()]

    def subscriber_count(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return sum(len(provers) for provers in self._entries.values())
