"""
Rollup Contract Client

Single responsibility: the three rollup reads the monitor relies on
(current epoch, per-epoch prover reward, prover shares).
"""

import logging
from typing import Optional

from ..config import config
from ..errors import ConfigurationError, DecodeFailure, InvalidParticipant, ProverWatchError
from .raw_call import (
    GET_CURRENT_EPOCH,
    GET_PROVER_REWARDS_FOR_EPOCH,
    GET_SHARES_FOR,
    decode_uint,
    encode_call,
    normalize_participant,
)
from .rpc_pool import EndpointPool

logger = logging.getLogger(__name__)


class RollupClient:
    """
    Reads prover accounting from the rollup contract through an EndpointPool.

    Failure semantics differ per read:
    - get_current_epoch: any failure propagates
    - get_reward: an empty/undecodable result means zero; pool exhaustion propagates
    - get_shares: best-effort, returns None on any failure
    """

    def __init__(self, pool: EndpointPool, rollup_address: str = None):
        self.pool = pool
        try:
            self.address = normalize_participant(rollup_address or config.rollup_address)
        except InvalidParticipant as e:
            raise ConfigurationError(f"Invalid rollup address: {e.value!r}") from e

    async def get_current_epoch(self) -> int:
        """Return the rollup's current epoch."""
        result = await self.pool.call(self.address, encode_call(GET_CURRENT_EPOCH))
        return decode_uint(result)

    async def get_reward(self, epoch: int, participant: str) -> int:
        """
        Return the prover's reward for one epoch.

        Args:
            epoch: Epoch number
            participant: Checksummed prover address

        Returns:
            Reward in wei (0 when the contract returns nothing)

        Raises:
            ExhaustedEndpoints: no endpoint answered
        """
        data = encode_call(
            GET_PROVER_REWARDS_FOR_EPOCH,
            ["uint256", "address"],
            [epoch, participant],
        )
        result = await self.pool.call(self.address, data)
        try:
            return decode_uint(result)
        except DecodeFailure:
            return 0

    async def get_shares(self, participant: str) -> Optional[int]:
        """
        Return the prover's current shares, or None if they cannot be read.
        """
        data = encode_call(GET_SHARES_FOR, ["address"], [participant])
        try:
            result = await self.pool.call(self.address, data)
            return decode_uint(result)
        except ProverWatchError as e:
            logger.warning(f"Shares unavailable for {participant}: {e}")
            return None
