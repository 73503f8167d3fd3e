#!/usr/bin/env python3
"""
Prover Watch Service - CLI Entry Point
======================================

Runs the HTTP API, the watchlist monitor and (optionally) the Telegram bot
on one event loop.

Architecture:
    - EndpointPool: eth_call with failover across SEPOLIA_RPCS
    - ParticipationScanner: windowed reward scan, cached for 60s
    - WatchlistMonitor: sweeps watched provers every CHECK_INTERVAL_SEC
      and alerts once per epoch when a prover is idle
    - HTTP API: /scan, /scan-text, /watchlist/*, /health
    - Bot: /status, /watch, /unwatch, /list over long polling

Usage:
    # Start service
    python scripts/run_service.py

    # Dry run (alerts logged, nothing sent to Telegram)
    python scripts/run_service.py --dry-run

    # API and monitor only
    python scripts/run_service.py --no-bot
"""

import argparse
import asyncio
import logging
import signal
import sys
from datetime import datetime
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from prover_watch.alerts.telegram import TelegramAlerts
from prover_watch.api.rollup import RollupClient
from prover_watch.api.rpc_pool import EndpointPool
from prover_watch.bot.commands import CommandHandler
from prover_watch.bot.poller import BotPoller
from prover_watch.config import config
from prover_watch.core.cache import ScanCache
from prover_watch.core.monitor import WatchlistMonitor
from prover_watch.core.scanner import ParticipationScanner
from prover_watch.errors import ConfigurationError
from prover_watch.server.app import ApiServer

logger = logging.getLogger(__name__)


def setup_logging(log_level: str = None, log_file: str = None):
    """Configure logging for the service."""
    log_level = log_level or config.log_level
    log_path = Path(log_file or config.log_file)
    if not log_path.is_absolute():
        log_path = project_root / log_path
    log_path.parent.mkdir(parents=True, exist_ok=True)

    # Create date-stamped log file (e.g., logs/prover_watch_2026-01-18.log)
    date_str = datetime.now().strftime("%Y-%m-%d")
    dated_log_file = log_path.parent / f"{log_path.stem}_{date_str}{log_path.suffix}"

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    file_handler = logging.FileHandler(dated_log_file)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Reduce noise from HTTP libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)

    root_logger.info(f"Logging to: {dated_log_file}")


async def run_service(args) -> int:
    """Wire components together and serve until SIGINT/SIGTERM."""
    try:
        pool = EndpointPool()
        rollup = RollupClient(pool)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    alerts = TelegramAlerts.from_env(dry_run=args.dry_run)
    if alerts is None:
        logger.error("TELEGRAM_BOT_TOKEN not set; use --dry-run to log alerts instead")
        await pool.close()
        return 1

    scanner = ParticipationScanner(rollup, cache=ScanCache())
    monitor = WatchlistMonitor(scanner, alerts)
    server = ApiServer(scanner, monitor, pool, rollup)

    poller = None
    if not args.no_bot and not args.dry_run:
        poller = BotPoller(alerts.config.bot_token, CommandHandler(scanner, monitor), alerts)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows: fall back to KeyboardInterrupt
            pass

    try:
        await server.start(port=args.port)
        await monitor.start()
        if poller is not None:
            await poller.start()
        await asyncio.to_thread(alerts.send_service_status, "started", f"RPC endpoints: {len(pool.urls)}")

        await stop_event.wait()
    finally:
        if poller is not None:
            await poller.stop()
        await monitor.stop()
        await server.stop()
        await pool.close()
        await asyncio.to_thread(alerts.send_service_status, "stopped")

    return 0


def main():
    parser = argparse.ArgumentParser(
        description='Prover Watch Service',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_service.py               # Start service
  python scripts/run_service.py --dry-run     # Log alerts, no Telegram
  python scripts/run_service.py --port 8080   # Serve the API on port 8080
        """
    )

    parser.add_argument(
        '--port',
        type=int,
        default=config.port,
        help=f'HTTP API port (default: {config.port})'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Log alerts instead of sending them to Telegram (disables the bot)'
    )

    parser.add_argument(
        '--no-bot',
        action='store_true',
        help='Do not start the Telegram command bot'
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default=config.log_level.upper(),
        help=f'Log level (default: {config.log_level.upper()})'
    )

    args = parser.parse_args()

    setup_logging(args.log_level)

    print("\n" + "=" * 60)
    print("PROVER WATCH SERVICE")
    print("=" * 60)
    print(f"Rollup:          {config.rollup_address}")
    print(f"RPC endpoints:   {len(config.rpc_urls)}")
    print(f"Idle threshold:  {config.activity_threshold} epochs")
    print(f"Check interval:  {config.watch_interval_sec:.0f} seconds")
    print(f"Lookback:        {config.scan_lookback} epochs")
    print(f"Port:            {args.port}")
    print(f"Dry run:         {args.dry_run}")
    print("=" * 60)

    try:
        sys.exit(asyncio.run(run_service(args)))
    except KeyboardInterrupt:
        print("\n\nService stopped by user")
        sys.exit(0)
    except Exception as e:
        logger.exception(f"Service error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
