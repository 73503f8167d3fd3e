import unittest

from aiohttp.test_utils import AioHTTPTestCase

from prover_watch.api.raw_call import normalize_participant
from prover_watch.core.cache import ScanCache
from prover_watch.core.monitor import WatchlistMonitor
from prover_watch.core.scanner import ParticipationScanner
from prover_watch.errors import DecodeFailure
from prover_watch.server.app import ApiServer

from tests.fakes import PROVER_A, PROVER_B, FakePool, FakeRollup, FakeSink, exhausted


class ApiTestCase(AioHTTPTestCase):

    async def get_application(self):
        self.rollup = FakeRollup(current_epoch=50, rewards={47: 2 * 10 ** 18}, shares=777)
        self.scanner = ParticipationScanner(
            self.rollup,
            cache=ScanCache(ttl_sec=60),
            activity_threshold=6,
            lookback=10,
            batch_size=5,
            batch_delay=0,
        )
        self.monitor = WatchlistMonitor(self.scanner, FakeSink(), check_delay=0)
        self.pool = FakePool()
        return ApiServer(self.scanner, self.monitor, self.pool, self.rollup).create_app()


class TestScanEndpoints(ApiTestCase):

    async def test_scan_json(self):
        resp = await self.client.get("/scan", params={"prover": PROVER_A})
        self.assertEqual(resp.status, 200)

        data = await resp.json()
        self.assertEqual(data["prover"], normalize_participant(PROVER_A))
        self.assertEqual(data["currentEpoch"], 50)
        self.assertEqual(data["lastEpochParticipated"], 47)
        self.assertEqual(data["participatedCountWindow"], 1)
        self.assertEqual(data["totalRewardsWindow"], str(2 * 10 ** 18))
        self.assertTrue(data["isActiveNow"])
        self.assertEqual(data["window"], 10)
        self.assertEqual(data["shares"], "777")

    async def test_scan_lookback_param(self):
        resp = await self.client.get("/scan", params={"prover": PROVER_A, "lookback": "3", "delayMs": "0"})
        data = await resp.json()

        self.assertEqual(data["window"], 3)
        self.assertIsNone(data["lastEpochParticipated"])

    async def test_scan_null_shares(self):
        self.rollup.shares = None
        data = await (await self.client.get("/scan", params={"prover": PROVER_A})).json()
        self.assertIsNone(data["shares"])

    async def test_scan_bad_input(self):
        for params in [{}, {"prover": "0x1234"}, {"prover": PROVER_A, "lookback": "abc"},
                       {"prover": PROVER_A, "lookback": "0"}, {"prover": PROVER_A, "delayMs": "-5"}]:
            resp = await self.client.get("/scan", params=params)
            self.assertEqual(resp.status, 400, params)
            self.assertIn("error", await resp.json())
        self.assertEqual(self.rollup.epoch_calls, 0)

    async def test_scan_chain_failure(self):
        self.rollup.epoch_error = exhausted()
        resp = await self.client.get("/scan", params={"prover": PROVER_A})
        self.assertEqual(resp.status, 502)

        self.rollup.epoch_error = DecodeFailure("Empty call result")
        resp = await self.client.get("/scan-text", params={"prover": PROVER_A})
        self.assertEqual(resp.status, 502)

    async def test_scan_text(self):
        resp = await self.client.get("/scan-text", params={"prover": PROVER_A, "epochHours": "2"})
        self.assertEqual(resp.status, 200)
        self.assertTrue(resp.content_type.startswith("text/plain"))

        text = await resp.text()
        self.assertIn("Last Epoch Participated: 47", text)
        self.assertIn("Time Since Last Proof: 6h (~3 epochs)", text)
        self.assertIn("Current Shares: 777", text)

    async def test_scan_text_missing_prover(self):
        resp = await self.client.get("/scan-text")
        self.assertEqual(resp.status, 400)

    async def test_repeated_scan_uses_cache(self):
        await self.client.get("/scan", params={"prover": PROVER_A})
        await self.client.get("/scan-text", params={"prover": PROVER_A})
        self.assertEqual(self.rollup.epoch_calls, 1)


class TestWatchlistEndpoints(ApiTestCase):

    async def test_add_status_remove(self):
        resp = await self.client.post("/watchlist/add", json={"chatId": 42, "prover": PROVER_A})
        self.assertEqual(await resp.json(), {"success": True, "watchlistSize": 1})

        resp = await self.client.post("/watchlist/add", json={"chatId": 42, "prover": PROVER_B})
        self.assertEqual((await resp.json())["watchlistSize"], 2)

        data = await (await self.client.get("/watchlist/status", params={"chatId": "42"})).json()
        self.assertTrue(data["watching"])
        self.assertEqual(
            [p["prover"] for p in data["provers"]],
            [normalize_participant(PROVER_A), normalize_participant(PROVER_B)],
        )

        resp = await self.client.post("/watchlist/remove", json={"chatId": 42, "prover": PROVER_A})
        self.assertEqual(await resp.json(), {"success": True, "watchlistSize": 1})

        resp = await self.client.post("/watchlist/remove", json={"chatId": 42})
        self.assertEqual(await resp.json(), {"success": True, "watchlistSize": 0})

        data = await (await self.client.get("/watchlist/status", params={"chatId": "42"})).json()
        self.assertEqual(data, {"watching": False, "provers": []})

    async def test_remove_unknown_chat(self):
        resp = await self.client.post("/watchlist/remove", json={"chatId": "nobody"})
        self.assertEqual(await resp.json(), {"success": False, "watchlistSize": 0})

    async def test_bad_requests(self):
        cases = [
            ("/watchlist/add", {"chatId": 42}),
            ("/watchlist/add", {"prover": PROVER_A}),
            ("/watchlist/add", {"chatId": 42, "prover": "0xbad"}),
            ("/watchlist/remove", {}),
            ("/watchlist/remove", {"chatId": 42, "prover": "0xbad"}),
        ]
        for path, body in cases:
            resp = await self.client.post(path, json=body)
            self.assertEqual(resp.status, 400, (path, body))

        resp = await self.client.post("/watchlist/add", data="not json")
        self.assertEqual(resp.status, 400)

        resp = await self.client.get("/watchlist/status")
        self.assertEqual(resp.status, 400)


class TestHealth(ApiTestCase):

    async def test_health(self):
        self.monitor.watch("chat-1", PROVER_A)
        self.monitor.watch("chat-2", PROVER_A)

        data = await (await self.client.get("/health")).json()

        self.assertTrue(data["ok"])
        self.assertEqual(data["rpcCount"], 2)
        self.assertEqual(data["activeRpc"], self.pool.urls[0])
        self.assertEqual(data["rollup"], self.rollup.address)
        self.assertEqual(data["watchlistSize"], 2)
        self.assertEqual(data["subscribers"], 2)
        self.assertEqual(data["cache"]["keys"], 0)


if __name__ == "__main__":
    unittest.main()
