"""
Watchlist Monitor

Periodic loop that:
1. Snapshots the watchlist
2. Scans each watched prover (through the scan cache)
3. Sends an idle alert when a prover has been idle for the scanner's
   activity_threshold epochs or more, at most once per (subscriber, prover, epoch)
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, TYPE_CHECKING

from ..config import config
from ..errors import ProverWatchError
from ..models import ScanResult, WatchEntry
from .report import format_idle_alert, format_prover_message
from .scanner import ParticipationScanner
from .watchlist import Watchlist

if TYPE_CHECKING:
    from ..alerts.telegram import NotificationSink

logger = logging.getLogger(__name__)


@dataclass
class SweepSummary:
    """Outcome of one pass over the watchlist."""
    checked: int = 0
    alerted: int = 0
    failed: int = 0
    skipped: int = 0  # checked, but no alert was due
    duration_sec: float = 0.0


def idle_epochs_for(result: ScanResult) -> int:
    """
    Idle epochs used for alerting.

    A prover with no participation in the window counts as idle since
    epoch 0, so it always crosses the threshold once the chain is old enough.
    """
    if result.last_epoch_participated is None:
        return result.current_epoch
    return result.current_epoch - result.last_epoch_participated


class WatchlistMonitor:
    """
    Idle-prover alert scheduler.

    Owns the Watchlist. A timer task fires tick() every interval; a tick
    that finds the previous sweep still running is skipped rather than
    queued, so sweeps never overlap.
    """

    def __init__(
        self,
        scanner: ParticipationScanner,
        sink: "NotificationSink",
        watchlist: Watchlist = None,
        interval: float = None,
        check_delay: float = None,
        lookback: int = None,
    ):
        """
        Initialize the monitor.

        Args:
            scanner: Participation scanner (shared with the HTTP API)
            sink: Alert delivery
            watchlist: Subscriptions to check (a fresh one if None)
            interval: Seconds between sweeps
            check_delay: Courtesy pause between entries within a sweep
            lookback: Scan window, defaults to the scanner's
        """
        self.scanner = scanner
        self.sink = sink
        self.watchlist = watchlist if watchlist is not None else Watchlist()
        self.interval = interval if interval is not None else config.watch_interval_sec
        self.check_delay = check_delay if check_delay is not None else config.watch_check_delay_sec
        self.lookback = lookback

        self._sweep_lock = asyncio.Lock()
        self._timer: Optional[asyncio.Task] = None
        self._ticks: List[asyncio.Task] = []
        self._running = False

        self.last_summary: Optional[SweepSummary] = None
        self.last_sweep_at: Optional[datetime] = None

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def watch(self, subscriber_id, participant: str) -> bool:
        return self.watchlist.add(subscriber_id, participant)

    def unwatch(self, subscriber_id, participant: Optional[str] = None) -> bool:
        return self.watchlist.remove(subscriber_id, participant)

    @property
    def activity_threshold(self) -> int:
        """Idle epochs at or above which to alert; the scanner's active/idle cutoff."""
        return self.scanner.activity_threshold

    @property
    def is_sweeping(self) -> bool:
        return self._sweep_lock.locked()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self):
        """Start the timer task. The first sweep fires immediately."""
        if self._running:
            return
        logger.info(
            f"Starting watchlist monitor (interval {self.interval:.0f}s, "
            f"threshold {self.activity_threshold} epochs)"
        )
        self._running = True
        self._timer = asyncio.create_task(self._timer_loop())

    async def stop(self):
        """Cancel the timer and any in-flight sweep, and wait for them."""
        logger.info("Stopping watchlist monitor...")
        self._running = False

        tasks = [t for t in [self._timer] + self._ticks if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self._timer = None
        self._ticks = []

    async def _timer_loop(self):
        while self._running:
            task = asyncio.create_task(self.tick())
            self._ticks.append(task)
            self._ticks = [t for t in self._ticks if not t.done()]
            await asyncio.sleep(self.interval)

    async def tick(self) -> Optional[SweepSummary]:
        """
        Run one sweep unless the previous one is still running.

        Returns:
            SweepSummary, or None if the tick was skipped
        """
        if self._sweep_lock.locked():
            logger.warning("Previous sweep still running, skipping this tick")
            return None

        async with self._sweep_lock:
            try:
                return await self.sweep()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception(f"Sweep failed: {e}")
                return None

    # -------------------------------------------------------------------------
    # Sweep
    # -------------------------------------------------------------------------

    async def sweep(self) -> SweepSummary:
        """
        Check every watched prover once.

        Entries are processed one at a time with a courtesy pause between
        them. A failure on one entry is recorded on it and does not stop
        the rest.
        """
        start_time = time.monotonic()
        summary = SweepSummary()
        entries = self.watchlist.entries()

        if entries:
            logger.info(f"Sweep started: {len(entries)} watched provers")

        for i, entry in enumerate(entries):
            if i > 0 and self.check_delay > 0:
                await asyncio.sleep(self.check_delay)

            # Unwatched while the sweep was running
            if self.watchlist.get(entry.subscriber_id, entry.participant) is not entry:
                continue

            summary.checked += 1
            try:
                alerted = await self._check_entry(entry)
            except ProverWatchError as e:
                summary.failed += 1
                entry.last_error = str(e)
                logger.warning(f"Check failed for {entry.participant} (chat {entry.subscriber_id}): {e}")
                continue

            if alerted:
                summary.alerted += 1
            else:
                summary.skipped += 1

        summary.duration_sec = time.monotonic() - start_time
        self.last_summary = summary
        self.last_sweep_at = datetime.now(timezone.utc)

        if entries:
            logger.info(
                f"Sweep complete: checked {summary.checked}, alerted {summary.alerted}, "
                f"failed {summary.failed} ({summary.duration_sec:.1f}s)"
            )
        return summary

    async def _check_entry(self, entry: WatchEntry) -> bool:
        """
        Scan one entry and alert if due.

        Returns:
            True if an alert was issued for this entry
        """
        result = await self.scanner.scan_participation(entry.participant, lookback=self.lookback)
        idle = idle_epochs_for(result)

        entry.last_checked_at = datetime.now(timezone.utc)
        entry.last_idle_epochs = idle
        entry.last_error = None

        if idle < self.activity_threshold:
            return False
        if entry.last_notified_epoch == result.current_epoch:
            logger.debug(f"{entry.participant} already alerted at epoch {result.current_epoch}")
            return False

        shares = await self.scanner.rollup.get_shares(result.participant)
        report = format_prover_message(result, shares=shares)
        text = format_idle_alert(result, idle, report)

        # Marked before delivery: an alert is sent at most once per epoch
        entry.last_notified_epoch = result.current_epoch
        logger.info(
            f"Idle alert: {entry.participant} idle {idle} epochs at epoch "
            f"{result.current_epoch}, notifying chat {entry.subscriber_id}"
        )

        try:
            delivered = await asyncio.to_thread(self.sink.send_idle_alert, entry.subscriber_id, text)
        except Exception as e:
            logger.error(f"Alert delivery to chat {entry.subscriber_id} raised: {e}")
            delivered = False

        if not delivered:
            logger.warning(f"Alert for {entry.participant} to chat {entry.subscriber_id} was not delivered")
        return True
