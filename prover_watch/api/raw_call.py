"""
Raw Contract Calls

Single responsibility: turn a function signature plus arguments into eth_call
data, and turn an eth_call hex result back into an unsigned integer.

The rollup exposes everything the monitor needs as uint256 view functions,
so no ABI JSON is loaded.
"""

from typing import Any, Optional, Sequence

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import decode_hex, encode_hex, is_address, keccak, to_checksum_address

from ..errors import DecodeFailure, InvalidParticipant

# Rollup view functions
GET_CURRENT_EPOCH = "getCurrentEpoch()"
GET_PROVER_REWARDS_FOR_EPOCH = "getSpecificProverRewardsForEpoch(uint256,address)"
GET_SHARES_FOR = "getSharesFor(address)"


def selector(signature: str) -> str:
    """Return the 4-byte function selector as 0x-prefixed hex."""
    return encode_hex(keccak(text=signature)[:4])


def encode_call(
    signature: str,
    arg_types: Sequence[str] = (),
    args: Sequence[Any] = (),
) -> str:
    """
    Build eth_call data for a function.

    Args:
        signature: Canonical signature, e.g. "getSharesFor(address)"
        arg_types: ABI types of the arguments
        args: Argument values

    Returns:
        0x-prefixed call data (selector + ABI-encoded arguments)
    """
    data = selector(signature)
    if arg_types:
        data += encode(list(arg_types), list(args)).hex()
    return data


def decode_uint(result: Optional[str]) -> int:
    """
    Decode a uint256 return value.

    Raises:
        DecodeFailure: result is missing, empty ("0x"), not hex, or shorter
            than one ABI word
    """
    if not isinstance(result, str):
        raise DecodeFailure(f"Expected hex string, got {type(result).__name__}")
    if not result or result in ("0x", "0X"):
        raise DecodeFailure(f"Empty call result: {result!r}")
    try:
        raw = decode_hex(result)
        return decode(["uint256"], raw)[0]
    except (TypeError, ValueError, DecodingError) as e:
        raise DecodeFailure(f"Cannot decode uint256 from {str(result)[:24]!r}: {e}") from e


def normalize_participant(address: Any) -> str:
    """
    Validate a prover address and return its checksummed form.

    Raises:
        InvalidParticipant: not a 20-byte hex address (or bad checksum)
    """
    if not isinstance(address, str):
        raise InvalidParticipant(address)
    candidate = address.strip()
    if not is_address(candidate):
        raise InvalidParticipant(address)
    return to_checksum_address(candidate)
