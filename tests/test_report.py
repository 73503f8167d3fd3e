import re
import unittest

from prover_watch.core.report import (
    LAST_EPOCH_LABEL,
    format_ether,
    format_idle_alert,
    format_idle_time,
    format_prover_message,
)
from prover_watch.models import ScanResult

from tests.fakes import PROVER_A

# What chat frontends extract from the report
LAST_EPOCH_PATTERN = re.compile(r"Last Epoch Participated: (\d+)")


def make_result(last=47, current=50, active=True, rewards=15 * 10 ** 17, count=1):
    return ScanResult(
        participant=PROVER_A,
        current_epoch=current,
        last_epoch_participated=last,
        participated_count_window=count,
        total_rewards_window=rewards,
        is_active_now=active,
        window=600,
    )


class TestFormatting(unittest.TestCase):

    def test_format_ether(self):
        self.assertEqual(format_ether(0), "0")
        self.assertEqual(format_ether(15 * 10 ** 17), "1.5")
        self.assertEqual(format_ether(100 * 10 ** 18), "100")
        self.assertEqual(format_ether(1), "0.000000000000000001")

    def test_format_idle_time(self):
        self.assertEqual(format_idle_time(None, 5), "N/A")
        self.assertEqual(format_idle_time(1, 5), "5h (~1 epoch)")
        self.assertEqual(format_idle_time(3, 5), "15h (~3 epochs)")


class TestProverMessage(unittest.TestCase):

    def test_contains_parseable_last_epoch(self):
        text = format_prover_message(make_result(), epoch_hours=5)

        self.assertEqual(LAST_EPOCH_LABEL, "Last Epoch Participated")
        match = LAST_EPOCH_PATTERN.search(text)
        self.assertIsNotNone(match)
        self.assertEqual(int(match.group(1)), 47)

    def test_no_participation_uses_dash(self):
        text = format_prover_message(make_result(last=None, active=False, rewards=0, count=0))

        self.assertIsNone(LAST_EPOCH_PATTERN.search(text))
        self.assertIn("Last Epoch Participated: —", text)
        self.assertIn("Time Since Last Proof: N/A", text)

    def test_fields(self):
        text = format_prover_message(make_result(), epoch_hours=5, shares=42)

        self.assertIn("🟢 Status: Actively proving", text)
        self.assertIn("Current Epoch: 50", text)
        self.assertIn("Look-back Window: last 600 epochs", text)
        self.assertIn("Current Shares: 42", text)
        self.assertIn("Epochs Participated: 1", text)
        self.assertIn("Rewards (window): 1.5 ETH", text)
        self.assertIn("Time Since Last Proof: 15h (~3 epochs)", text)

    def test_shares_omitted_when_unknown(self):
        text = format_prover_message(make_result(active=False))

        self.assertNotIn("Current Shares", text)
        self.assertIn("🔴 Status: Idle", text)


class TestIdleAlert(unittest.TestCase):

    def test_idle_alert(self):
        result = make_result(last=90, current=100, active=False)
        report = format_prover_message(result)
        text = format_idle_alert(result, 10, report)

        self.assertTrue(text.startswith(f"🚨 Prover idle alert: {PROVER_A}"))
        self.assertIn("No participation for 10 epochs.", text)
        self.assertTrue(text.endswith(report))

    def test_never_participated_alert(self):
        result = make_result(last=None, current=100, active=False, rewards=0, count=0)
        text = format_idle_alert(result, 100, format_prover_message(result))

        self.assertTrue(text.startswith(f"⚠️ {PROVER_A}"))
        self.assertIn("No participation detected in the last 600 epochs.", text)


if __name__ == "__main__":
    unittest.main()
