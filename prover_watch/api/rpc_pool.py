"""
RPC Endpoint Pool

Single responsibility: execute eth_call against a list of JSON-RPC endpoints
with automatic failover.
"""

import asyncio
import itertools
import logging
from typing import Any, Dict, List, Optional, Set

import aiohttp

from ..config import config
from ..errors import ConfigurationError, ExhaustedEndpoints, TransportFailure

logger = logging.getLogger(__name__)


class EndpointPool:
    """
    Async JSON-RPC client over an ordered list of endpoints.

    Handles:
    - Tracking the active endpoint (shared by all callers of one pool)
    - Per-attempt timeouts
    - Round-robin failover, each endpoint tried at most once per call
    - Surfacing ExhaustedEndpoints when every endpoint failed
    """

    def __init__(
        self,
        urls: List[str] = None,
        timeout: float = None,
        backoff: float = None,
    ):
        self.urls = list(urls if urls is not None else config.rpc_urls)
        if not self.urls:
            raise ConfigurationError("At least one RPC endpoint must be configured")

        self.timeout = timeout if timeout is not None else config.rpc_timeout_sec
        self.backoff = backoff if backoff is not None else config.rpc_backoff_sec

        self._index = 0
        self._lock = asyncio.Lock()
        self._session: Optional[aiohttp.ClientSession] = None
        self._request_ids = itertools.count(1)
        self.rotations = 0

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self):
        """Create session if needed."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )

    async def close(self):
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    @property
    def active_index(self) -> int:
        return self._index

    @property
    def active_endpoint(self) -> str:
        return self.urls[self._index]

    # -------------------------------------------------------------------------
    # Public Methods
    # -------------------------------------------------------------------------

    async def call(self, to: str, data: str, block: str = "latest") -> str:
        """
        Execute eth_call, failing over across endpoints.

        Args:
            to: Contract address
            data: 0x-prefixed call data
            block: Block tag

        Returns:
            Raw hex result string

        Raises:
            ExhaustedEndpoints: every endpoint failed for this call
        """
        params = [{"to": to, "data": data}, block]
        failures: List[TransportFailure] = []
        tried: Set[int] = set()

        for attempt in range(len(self.urls)):
            index = await self._pick_endpoint(tried)
            tried.add(index)
            url = self.urls[index]

            try:
                return await self._post(url, "eth_call", params)
            except TransportFailure as e:
                failures.append(e)
                logger.warning(f"RPC attempt {attempt + 1}/{len(self.urls)} failed on {url}: {e.reason}")
                await self._rotate_from(index)
                if attempt < len(self.urls) - 1:
                    await asyncio.sleep(self.backoff)

        raise ExhaustedEndpoints(failures)

    # -------------------------------------------------------------------------
    # Private Helpers
    # -------------------------------------------------------------------------

    async def _pick_endpoint(self, tried: Set[int]) -> int:
        """
        Choose the endpoint for the next attempt.

        Normally the active endpoint. If a concurrent caller already rotated
        onto one this call has tried, take the next untried one instead.
        """
        async with self._lock:
            index = self._index
        for offset in range(len(self.urls)):
            candidate = (index + offset) % len(self.urls)
            if candidate not in tried:
                return candidate
        return index

    async def _rotate_from(self, failed_index: int):
        """Advance the active endpoint, only if it still points at the failed one."""
        async with self._lock:
            if self._index != failed_index:
                return
            self._index = (failed_index + 1) % len(self.urls)
            self.rotations += 1
            logger.warning(f"Rotating RPC endpoint to {self.urls[self._index]}")

    async def _post(self, url: str, method: str, params: List[Any]) -> Any:
        """
        Send one JSON-RPC request to one endpoint.

        Raises:
            TransportFailure: timeout, connection error, bad status or an
                error object in the JSON-RPC response
        """
        await self._ensure_session()
        payload: Dict[str, Any] = {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": method,
            "params": params,
        }

        try:
            async with self._session.post(
                url,
                json=payload,
                headers={"Content-Type": "application/json"},
            ) as response:
                if response.status != 200:
                    raise TransportFailure(url, f"HTTP {response.status}")
                body = await response.json(content_type=None)
        except asyncio.TimeoutError:
            raise TransportFailure(url, f"timeout after {self.timeout}s")
        except aiohttp.ClientError as e:
            raise TransportFailure(url, f"{type(e).__name__}: {e}")
        except ValueError as e:
            raise TransportFailure(url, f"invalid JSON response: {e}")

        if not isinstance(body, dict):
            raise TransportFailure(url, "unexpected JSON-RPC response")
        if body.get("error"):
            error = body["error"]
            message = error.get("message") if isinstance(error, dict) else error
            raise TransportFailure(url, f"RPC error: {message}")
        if "result" not in body:
            raise TransportFailure(url, "missing result")

        if not isinstance(body["result"], str):
            raise TransportFailure(url, f"non-string result: {type(body['result']).__name__}")

        return body["result"]
