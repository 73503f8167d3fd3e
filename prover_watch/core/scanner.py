"""
Participation Scanner

Reconstructs a prover's recent participation from per-epoch reward reads:
1. Read the current epoch
2. Walk the lookback window newest-first in fixed-size batches
3. Aggregate rewards into a ScanResult

Results are cached per (prover, window) for a short TTL.
"""

import asyncio
import logging
import time
from typing import List, Optional, Tuple

from ..api.raw_call import normalize_participant
from ..api.rollup import RollupClient
from ..config import config
from ..errors import ExhaustedEndpoints
from ..models import ScanResult
from .cache import ScanCache

logger = logging.getLogger(__name__)


def epoch_window(current_epoch: int, lookback: int) -> List[int]:
    """
    Epochs covered by a scan, newest first.

    Returns the min(lookback, current_epoch + 1) most recent epochs ending
    at current_epoch, i.e. current_epoch down to max(0, current_epoch - lookback + 1).
    """
    start = max(0, current_epoch - lookback + 1)
    return list(range(current_epoch, start - 1, -1))


def batched(items: List[int], size: int) -> List[List[int]]:
    """Split items into consecutive chunks of at most size."""
    return [items[i:i + size] for i in range(0, len(items), size)]


class ParticipationScanner:
    """
    Windowed, batched participation scan with result caching.

    Within a batch, reward reads run concurrently (at most batch_size in
    flight); between batches the scanner pauses to spare the RPC providers.
    A reward read that exhausts every endpoint counts as zero for that epoch
    instead of failing the scan.
    """

    def __init__(
        self,
        rollup: RollupClient,
        cache: ScanCache = None,
        activity_threshold: int = None,
        lookback: int = None,
        batch_size: int = None,
        batch_delay: float = None,
    ):
        self.rollup = rollup
        self.cache = cache if cache is not None else ScanCache()
        self.activity_threshold = (
            activity_threshold if activity_threshold is not None else config.activity_threshold
        )
        self.lookback = lookback if lookback is not None else config.scan_lookback
        self.batch_size = batch_size if batch_size is not None else config.scan_batch_size
        self.batch_delay = batch_delay if batch_delay is not None else config.scan_batch_delay_sec

    # -------------------------------------------------------------------------
    # Public Methods
    # -------------------------------------------------------------------------

    async def scan_participation(
        self,
        participant: str,
        lookback: int = None,
        batch_size: int = None,
        inter_batch_delay: float = None,
    ) -> ScanResult:
        """
        Scan a prover's participation over the most recent epochs.

        Args:
            participant: Prover address (any case; normalized here)
            lookback: Number of epochs to examine
            batch_size: Reward reads per batch
            inter_batch_delay: Seconds to wait between batches

        Returns:
            ScanResult (possibly served from cache)

        Raises:
            InvalidParticipant: malformed address
            ExhaustedEndpoints / DecodeFailure: current epoch unavailable
        """
        participant = normalize_participant(participant)
        lookback = lookback if lookback is not None else self.lookback
        batch_size = batch_size if batch_size is not None else self.batch_size
        delay = inter_batch_delay if inter_batch_delay is not None else self.batch_delay

        if lookback < 1:
            raise ValueError(f"lookback must be >= 1, got {lookback}")
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")

        key = (participant, lookback)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Serving scan for {participant} (window {lookback}) from cache")
            return cached

        result = await self._scan(participant, lookback, batch_size, delay)
        self.cache.put(key, result)
        return result

    async def scan_with_shares(
        self,
        participant: str,
        lookback: int = None,
        inter_batch_delay: float = None,
    ) -> Tuple[ScanResult, Optional[int]]:
        """
        Scan participation, then read shares best-effort.

        Returns:
            (ScanResult, shares or None if unavailable)
        """
        result = await self.scan_participation(
            participant, lookback=lookback, inter_batch_delay=inter_batch_delay
        )
        shares = await self.rollup.get_shares(result.participant)
        return result, shares

    # -------------------------------------------------------------------------
    # Private Helpers
    # -------------------------------------------------------------------------

    async def _scan(
        self,
        participant: str,
        lookback: int,
        batch_size: int,
        delay: float,
    ) -> ScanResult:
        start_time = time.monotonic()
        current_epoch = await self.rollup.get_current_epoch()
        epochs = epoch_window(current_epoch, lookback)
        batches = batched(epochs, batch_size)

        rewards: List[int] = []
        for i, batch in enumerate(batches):
            batch_rewards = await asyncio.gather(
                *[self._reward_or_zero(epoch, participant) for epoch in batch]
            )
            rewards.extend(batch_rewards)
            logger.debug(f"Scan {participant}: batch {i + 1}/{len(batches)} done")

            if i < len(batches) - 1 and delay > 0:
                await asyncio.sleep(delay)

        total_rewards = 0
        participated_count = 0
        last_epoch_participated: Optional[int] = None

        # epochs are newest first, so the first hit is the most recent
        for epoch, reward in zip(epochs, rewards):
            if reward > 0:
                participated_count += 1
                total_rewards += reward
                if last_epoch_participated is None:
                    last_epoch_participated = epoch

        is_active_now = (
            last_epoch_participated is not None
            and current_epoch - last_epoch_participated < self.activity_threshold
        )

        elapsed = time.monotonic() - start_time
        logger.info(
            f"Scanned {participant}: epoch {current_epoch}, window {len(epochs)}, "
            f"participated {participated_count}, last {last_epoch_participated} ({elapsed:.1f}s)"
        )

        return ScanResult(
            participant=participant,
            current_epoch=current_epoch,
            last_epoch_participated=last_epoch_participated,
            participated_count_window=participated_count,
            total_rewards_window=total_rewards,
            is_active_now=is_active_now,
            window=lookback,
        )

    async def _reward_or_zero(self, epoch: int, participant: str) -> int:
        try:
            return await self.rollup.get_reward(epoch, participant)
        except ExhaustedEndpoints as e:
            logger.warning(f"Reward for epoch {epoch} unavailable, counting as zero: {e}")
            return 0
