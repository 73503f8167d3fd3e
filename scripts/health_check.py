#!/usr/bin/env python3
"""
Health check script for Prover Watch.

Returns exit code 0 if healthy, non-zero otherwise.
Used by Docker health checks to determine container health.

Checks:
1. /health answers 200 with ok=true
2. At least one RPC endpoint is configured
"""

import sys
from pathlib import Path

import requests

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from prover_watch.config import config


def check_health(base_url: str = None) -> bool:
    """
    Query the running service's /health endpoint.

    Returns:
        True if healthy, False otherwise
    """
    base_url = base_url or f"http://127.0.0.1:{config.port}"

    try:
        response = requests.get(f"{base_url}/health", timeout=5)
    except requests.exceptions.RequestException as e:
        print(f"FAIL: Could not reach {base_url}/health: {e}")
        return False

    if response.status_code != 200:
        print(f"FAIL: /health returned HTTP {response.status_code}")
        return False

    try:
        health = response.json()
    except ValueError:
        print("FAIL: /health returned invalid JSON")
        return False

    if not health.get("ok"):
        print("FAIL: service reports not ok")
        return False

    if not health.get("rpcCount"):
        print("FAIL: no RPC endpoints configured")
        return False

    cache = health.get("cache") or {}
    print(
        f"OK: {health.get('watchlistSize', 0)} watches across {health.get('subscribers', 0)} chats, "
        f"RPC {health.get('activeRpc')} ({health.get('rpcCount')} configured), "
        f"{cache.get('keys', 0)} cached scans"
    )
    return True


def main():
    """Run health check and exit with appropriate code."""
    base_url = sys.argv[1] if len(sys.argv) > 1 else None
    sys.exit(0 if check_health(base_url) else 1)


if __name__ == "__main__":
    main()
