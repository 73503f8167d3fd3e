"""
Prover Reports
==============

Human-readable renderings of a ScanResult.

The plain-text report is served by /scan-text and embedded in idle alerts.
Chat frontends parse "Last Epoch Participated: <digits>" out of it, so that
label must not change.
"""

from decimal import Decimal
from typing import Optional

from eth_utils import from_wei

from ..config import config
from ..models import ScanResult

LAST_EPOCH_LABEL = "Last Epoch Participated"


def format_ether(wei: int) -> str:
    """Format a wei amount as ether without scientific notation."""
    value = Decimal(from_wei(wei, "ether")).normalize()
    return format(value, "f")


def format_idle_time(idle_epochs: Optional[int], epoch_hours: int) -> str:
    if idle_epochs is None:
        return "N/A"
    plural = "" if idle_epochs == 1 else "s"
    return f"{idle_epochs * epoch_hours}h (~{idle_epochs} epoch{plural})"


def format_prover_message(
    result: ScanResult,
    epoch_hours: int = None,
    shares: Optional[int] = None,
) -> str:
    """
    Build the multi-line prover status report.

    Args:
        result: Scan to render
        epoch_hours: Hours per epoch for the idle-time line
        shares: Current shares, omitted from the report when None

    Returns:
        Report text
    """
    if epoch_hours is None:
        epoch_hours = config.epoch_hours

    last_epoch = result.last_epoch_participated
    status_icon = "🟢" if result.is_active_now else "🔴"
    status_text = "Actively proving" if result.is_active_now else "Idle"

    lines = [
        "🔷 PROVER NODE DETAILS 🔷",
        "",
        f"{status_icon} Status: {status_text}",
        "",
        "📋 PROVER DETAILS",
        f"🔑 Prover: {result.participant}",
        f"🔢 Current Epoch: {result.current_epoch}",
        f"🔢 {LAST_EPOCH_LABEL}: {last_epoch if last_epoch is not None else '—'}",
        f"🪪 Look-back Window: last {result.window} epochs",
    ]
    if shares is not None:
        lines.append(f"🧩 Current Shares: {shares}")

    lines.extend([
        "",
        "📊 PARTICIPATION",
        f"✅ Epochs Participated: {result.participated_count_window}",
        f"💰 Rewards (window): {format_ether(result.total_rewards_window)} ETH",
        f"⏱️ Time Since Last Proof: {format_idle_time(result.idle_epochs, epoch_hours)}",
    ])
    return "\n".join(lines)


def format_idle_alert(result: ScanResult, idle_epochs: int, report: str) -> str:
    """
    Build the alert sent when a watched prover is idle.

    Args:
        result: Scan that triggered the alert
        idle_epochs: Idle epochs used for the threshold decision
        report: Full status report to append
    """
    if result.last_epoch_participated is None:
        header = [
            f"⚠️ {result.participant}",
            f"No participation detected in the last {result.window} epochs.",
        ]
    else:
        header = [
            f"🚨 Prover idle alert: {result.participant}",
            f"No participation for {idle_epochs} epochs.",
        ]

    return "\n".join(header + ["", "Full status:", report])
