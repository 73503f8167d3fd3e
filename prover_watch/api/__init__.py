"""
API Package
===========

Chain access for the rollup contract.

Components:
- rpc_pool.py: EndpointPool, JSON-RPC eth_call with endpoint failover
- raw_call.py: selectors, call encoding, uint decoding, address normalization
- rollup.py: RollupClient, the epoch / reward / shares reads
"""

from .raw_call import decode_uint, encode_call, normalize_participant, selector
from .rollup import RollupClient
from .rpc_pool import EndpointPool

__all__ = [
    "EndpointPool",
    "RollupClient",
    "decode_uint",
    "encode_call",
    "normalize_participant",
    "selector",
]
