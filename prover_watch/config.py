"""
Configuration for Prover Watch

All settings in one place for easy tuning. Values that differ per
deployment come from the environment (or a .env file in the project root).
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
import os

from dotenv import load_dotenv

_project_root = Path(__file__).parent.parent
_env_path = _project_root / ".env"
if _env_path.exists():
    load_dotenv(_env_path)


# Public Sepolia endpoints used when SEPOLIA_RPCS is not set
DEFAULT_RPC_URLS = [
    "https://1rpc.io/sepolia",
    "https://ethereum-sepolia-rpc.publicnode.com",
    "https://sepolia.mztacat.xyz/geth/",
]

DEFAULT_ROLLUP_ADDRESS = "0x216f071653a82ced3ef9d29f3f0c0ed7829c8f81"


def parse_rpc_urls(raw: Optional[str]) -> List[str]:
    """
    Parse a comma-separated endpoint list.

    Args:
        raw: Value of SEPOLIA_RPCS (may be None or blank)

    Returns:
        List of endpoint URLs, falling back to DEFAULT_RPC_URLS when empty
    """
    urls = [u.strip() for u in (raw or "").split(",") if u.strip()]
    return urls or list(DEFAULT_RPC_URLS)


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    return int(value) if value else default


# =============================================================================
# Configuration
# =============================================================================

@dataclass
class Config:
    """All configuration settings."""

    # -------------------------------------------------------------------------
    # Chain
    # -------------------------------------------------------------------------
    rpc_urls: List[str] = field(
        default_factory=lambda: parse_rpc_urls(os.environ.get("SEPOLIA_RPCS"))
    )
    rollup_address: str = field(
        default_factory=lambda: os.environ.get("ROLLUP") or DEFAULT_ROLLUP_ADDRESS
    )

    # Per-attempt timeout for a single eth_call (seconds)
    rpc_timeout_sec: float = 15.0

    # Pause before retrying a call on the next endpoint (seconds)
    rpc_backoff_sec: float = 1.0

    # -------------------------------------------------------------------------
    # Participation scan
    # -------------------------------------------------------------------------
    # Number of most recent epochs examined per scan
    scan_lookback: int = 600

    # Reward queries in flight per batch
    scan_batch_size: int = 50

    # Pause between batches (seconds)
    scan_batch_delay_sec: float = 0.05

    # Scan results are reused for this long (seconds)
    cache_ttl_sec: float = 60.0

    # Idle epochs at or above which a prover is inactive and alert-worthy
    activity_threshold: int = field(
        default_factory=lambda: _env_int("ALERT_IF_IDLE_EPOCHS", 6)
    )

    # Hours per epoch, used only for the "time since last proof" line
    epoch_hours: int = 5

    # -------------------------------------------------------------------------
    # Watchlist monitor
    # -------------------------------------------------------------------------
    watch_interval_sec: float = field(
        default_factory=lambda: float(_env_int("CHECK_INTERVAL_SEC", 1800))
    )

    # Pause between successive watchlist entries within one sweep (seconds)
    watch_check_delay_sec: float = 1.0

    # -------------------------------------------------------------------------
    # HTTP server
    # -------------------------------------------------------------------------
    host: str = field(default_factory=lambda: os.environ.get("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: _env_int("PORT", 3000))

    # -------------------------------------------------------------------------
    # Telegram bot
    # -------------------------------------------------------------------------
    # Long-poll timeout for getUpdates (seconds)
    bot_poll_timeout_sec: int = 30

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: str = field(default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO"))
    log_file: str = "logs/prover_watch.log"

    # -------------------------------------------------------------------------
    # Telegram Settings (from environment)
    # -------------------------------------------------------------------------
    @property
    def telegram_bot_token(self) -> Optional[str]:
        return os.environ.get("TELEGRAM_BOT_TOKEN") or os.environ.get("BOT_TOKEN")

    @property
    def telegram_chat_id(self) -> Optional[str]:
        return os.environ.get("TELEGRAM_CHAT_ID")


# Global config instance
config = Config()
