"""
Core Module

Participation scanning, result caching, reporting and the watchlist monitor.
"""

from .cache import ScanCache
from .monitor import SweepSummary, WatchlistMonitor
from .report import format_idle_alert, format_prover_message
from .scanner import ParticipationScanner
from .watchlist import Watchlist

__all__ = [
    "ParticipationScanner",
    "ScanCache",
    "SweepSummary",
    "Watchlist",
    "WatchlistMonitor",
    "format_idle_alert",
    "format_prover_message",
]
