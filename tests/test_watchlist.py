import unittest

from prover_watch.api.raw_call import normalize_participant
from prover_watch.core.watchlist import Watchlist
from prover_watch.errors import InvalidParticipant

from tests.fakes import PROVER_A, PROVER_B


class TestWatchlist(unittest.TestCase):

    def setUp(self):
        self.watchlist = Watchlist()

    def test_add_normalizes_and_dedupes(self):
        self.assertTrue(self.watchlist.add(1001, PROVER_A))
        self.assertFalse(self.watchlist.add("1001", PROVER_A.upper().replace("0X", "0x")))

        entries = self.watchlist.for_subscriber(1001)
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].participant, normalize_participant(PROVER_A))
        self.assertEqual(entries[0].subscriber_id, "1001")
        self.assertIsNone(entries[0].last_notified_epoch)

    def test_multiple_provers_per_subscriber(self):
        self.watchlist.add("chat-1", PROVER_A)
        self.watchlist.add("chat-1", PROVER_B)
        self.watchlist.add("chat-2", PROVER_A)

        self.assertEqual(len(self.watchlist), 3)
        self.assertEqual(self.watchlist.subscriber_count(), 2)
        self.assertEqual(len(self.watchlist.entries()), 3)

    def test_remove_one(self):
        self.watchlist.add("chat-1", PROVER_A)
        self.watchlist.add("chat-1", PROVER_B)

        self.assertTrue(self.watchlist.remove("chat-1", PROVER_A))
        self.assertFalse(self.watchlist.remove("chat-1", PROVER_A))
        self.assertEqual([e.participant for e in self.watchlist.for_subscriber("chat-1")],
                         [normalize_participant(PROVER_B)])

    def test_removing_last_entry_drops_subscriber(self):
        self.watchlist.add("chat-1", PROVER_A)
        self.watchlist.remove("chat-1", PROVER_A)

        self.assertEqual(self.watchlist.subscriber_count(), 0)
        self.assertEqual(len(self.watchlist), 0)

    def test_remove_all_for_subscriber(self):
        self.watchlist.add("chat-1", PROVER_A)
        self.watchlist.add("chat-1", PROVER_B)
        self.watchlist.add("chat-2", PROVER_A)

        self.assertTrue(self.watchlist.remove("chat-1"))
        self.assertFalse(self.watchlist.remove("chat-1"))
        self.assertEqual(len(self.watchlist), 1)

    def test_invalid_address(self):
        with self.assertRaises(InvalidParticipant):
            self.watchlist.add("chat-1", "0x123")
        self.assertEqual(len(self.watchlist), 0)

    def test_entry_to_dict(self):
        self.watchlist.add("chat-1", PROVER_A)
        data = self.watchlist.for_subscriber("chat-1")[0].to_dict()

        self.assertEqual(data["prover"], normalize_participant(PROVER_A))
        self.assertIsNone(data["lastNotifiedEpoch"])
        self.assertIsNone(data["lastCheckedAt"])


if __name__ == "__main__":
    unittest.main()
