"""
HTTP API
========

aiohttp.web frontend over the scanner and the watchlist monitor.

Routes:
- GET  /health             service and pool status
- GET  /scan               JSON ScanResult plus shares
- GET  /scan-text          plain-text prover report
- POST /watchlist/add      {chatId, prover}
- POST /watchlist/remove   {chatId[, prover]}
- GET  /watchlist/status   ?chatId=

Bad input answers 400; a chain failure (no current epoch) answers 502.
"""

import logging
from typing import Optional

from aiohttp import web

from ..api.rollup import RollupClient
from ..api.rpc_pool import EndpointPool
from ..config import config
from ..core.monitor import WatchlistMonitor
from ..core.report import format_prover_message
from ..core.scanner import ParticipationScanner
from ..errors import InvalidParticipant, ProverWatchError

logger = logging.getLogger(__name__)


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status)


def _int_param(request: web.Request, name: str, default: Optional[int]) -> Optional[int]:
    """
    Read an optional non-negative integer query parameter.

    Raises:
        ValueError: present but not a non-negative integer
    """
    raw = request.query.get(name)
    if raw is None or raw == "":
        return default
    value = int(raw)
    if value < 0:
        raise ValueError(f"{name} must be non-negative")
    return value


class ApiServer:
    """
    HTTP API over a shared scanner and monitor.

    The scanner's cache is shared with the monitor, so a prover scanned by
    the sweep is served from cache here and vice versa.
    """

    def __init__(
        self,
        scanner: ParticipationScanner,
        monitor: WatchlistMonitor,
        pool: EndpointPool,
        rollup: RollupClient,
    ):
        self.scanner = scanner
        self.monitor = monitor
        self.pool = pool
        self.rollup = rollup
        self._runner: Optional[web.AppRunner] = None

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/health", self.health_handler)
        app.router.add_get("/scan", self.scan_handler)
        app.router.add_get("/scan-text", self.scan_text_handler)
        app.router.add_post("/watchlist/add", self.watchlist_add_handler)
        app.router.add_post("/watchlist/remove", self.watchlist_remove_handler)
        app.router.add_get("/watchlist/status", self.watchlist_status_handler)
        return app

    async def start(self, host: str = None, port: int = None):
        """Bind and serve on host:port (non-blocking)."""
        host = host if host is not None else config.host
        port = port if port is not None else config.port

        self._runner = web.AppRunner(self.create_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, host=host, port=port)
        await site.start()
        logger.info(f"HTTP API listening on {host}:{port}")

    async def stop(self):
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    async def health_handler(self, request: web.Request) -> web.Response:
        return web.json_response({
            "ok": True,
            "rpcCount": len(self.pool.urls),
            "activeRpc": self.pool.active_endpoint,
            "rollup": self.rollup.address,
            "cache": self.scanner.cache.stats(),
            "watchlistSize": len(self.monitor.watchlist),
            "subscribers": self.monitor.watchlist.subscriber_count(),
        })

    async def scan_handler(self, request: web.Request) -> web.Response:
        prover = request.query.get("prover")
        if not prover:
            return _error("Missing ?prover=0x...", 400)

        try:
            lookback = _int_param(request, "lookback", None)
            delay_ms = _int_param(request, "delayMs", None)
        except ValueError as e:
            return _error(str(e), 400)

        delay = delay_ms / 1000 if delay_ms is not None else None
        try:
            result, shares = await self.scanner.scan_with_shares(
                prover, lookback=lookback, inter_batch_delay=delay
            )
        except (InvalidParticipant, ValueError) as e:
            return _error(str(e), 400)
        except ProverWatchError as e:
            logger.warning(f"Scan of {prover} failed: {e}")
            return _error(str(e), 502)

        payload = result.to_dict()
        payload["shares"] = str(shares) if shares is not None else None
        return web.json_response(payload)

    async def scan_text_handler(self, request: web.Request) -> web.Response:
        prover = request.query.get("prover")
        if not prover:
            return web.Response(text="Missing ?prover=0x...", status=400)

        try:
            lookback = _int_param(request, "lookback", None)
            epoch_hours = _int_param(request, "epochHours", None)
        except ValueError as e:
            return web.Response(text=str(e), status=400)

        try:
            result, shares = await self.scanner.scan_with_shares(prover, lookback=lookback)
        except (InvalidParticipant, ValueError) as e:
            return web.Response(text=str(e), status=400)
        except ProverWatchError as e:
            logger.warning(f"Scan of {prover} failed: {e}")
            return web.Response(text=str(e), status=502)

        text = format_prover_message(result, epoch_hours=epoch_hours, shares=shares)
        return web.Response(text=text, content_type="text/plain")

    async def watchlist_add_handler(self, request: web.Request) -> web.Response:
        body = await self._json_body(request)
        if body is None:
            return _error("invalid json body", 400)

        chat_id = body.get("chatId")
        prover = body.get("prover")
        if not chat_id or not prover:
            return _error("Missing chatId or prover", 400)

        try:
            self.monitor.watch(chat_id, prover)
        except InvalidParticipant as e:
            return _error(str(e), 400)

        return web.json_response({"success": True, "watchlistSize": len(self.monitor.watchlist)})

    async def watchlist_remove_handler(self, request: web.Request) -> web.Response:
        body = await self._json_body(request)
        if body is None:
            return _error("invalid json body", 400)

        chat_id = body.get("chatId")
        if not chat_id:
            return _error("Missing chatId", 400)

        try:
            removed = self.monitor.unwatch(chat_id, body.get("prover") or None)
        except InvalidParticipant as e:
            return _error(str(e), 400)

        return web.json_response({"success": removed, "watchlistSize": len(self.monitor.watchlist)})

    async def watchlist_status_handler(self, request: web.Request) -> web.Response:
        chat_id = request.query.get("chatId")
        if not chat_id:
            return _error("Missing chatId", 400)

        entries = self.monitor.watchlist.for_subscriber(chat_id)
        return web.json_response({
            "watching": bool(entries),
            "provers": [entry.to_dict() for entry in entries],
        })

    @staticmethod
    async def _json_body(request: web.Request) -> Optional[dict]:
        try:
            body = await request.json()
        except ValueError:
            return None
        return body if isinstance(body, dict) else None
