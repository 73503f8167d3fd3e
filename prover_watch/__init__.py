"""
Prover Watch
============

Tracks whether rollup provers are still submitting proofs and alerts
subscribers when a watched prover goes idle.

Packages:
- api: JSON-RPC endpoint pool, raw contract calls, rollup reads
- core: participation scanner, result cache, watchlist monitor, reports
- alerts: Telegram notification sink
- server: aiohttp HTTP API
- bot: Telegram command frontend
"""

__version__ = "1.0.0"
