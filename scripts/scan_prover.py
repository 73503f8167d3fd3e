#!/usr/bin/env python3
"""
One-shot prover scan.

Scans a prover's recent participation and prints the report (or JSON).

Usage:
    python scripts/scan_prover.py 0xProverAddress
    python scripts/scan_prover.py 0xProverAddress --lookback 100 --json
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from prover_watch.api.rollup import RollupClient
from prover_watch.api.rpc_pool import EndpointPool
from prover_watch.config import config
from prover_watch.core.report import format_prover_message
from prover_watch.core.scanner import ParticipationScanner
from prover_watch.errors import ProverWatchError


async def scan(prover: str, lookback: int, as_json: bool) -> str:
    async with EndpointPool() as pool:
        scanner = ParticipationScanner(RollupClient(pool))
        result, shares = await scanner.scan_with_shares(prover, lookback=lookback)

    if as_json:
        payload = result.to_dict()
        payload["shares"] = str(shares) if shares is not None else None
        return json.dumps(payload, indent=2)
    return format_prover_message(result, shares=shares)


def main():
    parser = argparse.ArgumentParser(description='Scan a prover once and print its report')
    parser.add_argument('prover', help='Prover address (0x...)')
    parser.add_argument(
        '--lookback',
        type=int,
        default=config.scan_lookback,
        help=f'Epochs to scan (default: {config.scan_lookback})'
    )
    parser.add_argument('--json', action='store_true', help='Print JSON instead of the text report')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    try:
        print(asyncio.run(scan(args.prover, args.lookback, args.json)))
    except ValueError as e:
        print(f"Invalid input: {e}")
        sys.exit(2)
    except ProverWatchError as e:
        print(f"Scan failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
