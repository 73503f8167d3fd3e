"""
Shared Data Models
==================

Dataclasses passed between the scanner, the monitor and the outer layers.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ScanResult:
    """
    Participation summary for one prover over a lookback window.

    Immutable so cached instances can be shared between callers.
    """
    participant: str
    current_epoch: int
    last_epoch_participated: Optional[int]
    participated_count_window: int
    total_rewards_window: int  # wei, exceeds 64-bit range
    is_active_now: bool
    window: int
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def idle_epochs(self) -> Optional[int]:
        """Epochs since the last participation, None if none in the window."""
        if self.last_epoch_participated is None:
            return None
        return self.current_epoch - self.last_epoch_participated

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON shape served by the HTTP API."""
        return {
            "prover": self.participant,
            "currentEpoch": self.current_epoch,
            "lastEpochParticipated": self.last_epoch_participated,
            "participatedCountWindow": self.participated_count_window,
            "totalRewardsWindow": str(self.total_rewards_window),
            "isActiveNow": self.is_active_now,
            "window": self.window,
            "fetchedAt": self.fetched_at.isoformat(),
        }


@dataclass
class WatchEntry:
    """
    One (subscriber, prover) subscription.

    last_notified_epoch is the epoch at which this subscriber was last alerted
    for this prover; a prover idle across many sweeps alerts once per epoch.
    """
    subscriber_id: str
    participant: str
    last_notified_epoch: Optional[int] = None

    # Tracking state from the most recent check
    added_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_checked_at: Optional[datetime] = None
    last_idle_epochs: Optional[int] = None
    last_error: Optional[str] = None

    @property
    def key(self) -> str:
        return f"{self.subscriber_id}:{self.participant}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prover": self.participant,
            "lastNotifiedEpoch": self.last_notified_epoch,
            "addedAt": self.added_at.isoformat(),
            "lastCheckedAt": self.last_checked_at.isoformat() if self.last_checked_at else None,
            "lastIdleEpochs": self.last_idle_epochs,
            "lastError": self.last_error,
        }
