"""
Error Types
===========

Exception hierarchy shared by the RPC pool, the rollup client and the
scanner. Everything derives from ProverWatchError so callers can catch
chain failures without catching programming errors.
"""

from typing import List, Optional


class ProverWatchError(Exception):
    """Base class for all prover watch failures."""


class ConfigurationError(ProverWatchError):
    """Invalid configuration detected at startup (e.g. no RPC endpoints)."""


class TransportFailure(ProverWatchError):
    """A single endpoint was unreachable, timed out or returned an error."""

    def __init__(self, endpoint: str, reason: str):
        self.endpoint = endpoint
        self.reason = reason
        super().__init__(f"{endpoint}: {reason}")


class ExhaustedEndpoints(ProverWatchError):
    """Every configured endpoint failed for one logical call."""

    def __init__(self, attempts: List[TransportFailure]):
        self.attempts = attempts
        tried = ", ".join(a.endpoint for a in attempts)
        last = attempts[-1].reason if attempts else "no endpoints tried"
        super().__init__(f"All {len(attempts)} RPC endpoints failed ({tried}); last error: {last}")


class InvalidParticipant(ProverWatchError, ValueError):
    """Malformed prover address, rejected before any network call."""

    def __init__(self, value: Optional[str]):
        self.value = value
        super().__init__(f"Invalid prover address: {value!r}")


class DecodeFailure(ProverWatchError):
    """Empty or unexpected call result where an integer was required."""
