import unittest
from unittest.mock import MagicMock, patch

import requests

from prover_watch.alerts.telegram import AlertConfig, TelegramAlerts


def make_alerts(**kwargs):
    kwargs.setdefault("bot_token", "123:secret")
    kwargs.setdefault("min_message_interval", 0)
    return TelegramAlerts(AlertConfig(**kwargs))


def ok_response(message_id=10):
    response = MagicMock()
    response.raise_for_status.return_value = None
    response.json.return_value = {"ok": True, "result": {"message_id": message_id}}
    return response


class TestTelegramAlerts(unittest.TestCase):

    def test_token_required_unless_dry_run(self):
        with self.assertRaises(ValueError):
            TelegramAlerts(AlertConfig(bot_token=""))
        TelegramAlerts(AlertConfig(bot_token="", dry_run=True))

    def test_dry_run_does_not_post(self):
        alerts = make_alerts(dry_run=True)
        with patch("prover_watch.alerts.telegram.requests.post") as post:
            self.assertTrue(alerts.send_idle_alert("42", "idle"))
        post.assert_not_called()

    @patch("prover_watch.alerts.telegram.requests.post")
    def test_send_idle_alert(self, post):
        post.return_value = ok_response()
        alerts = make_alerts()

        self.assertTrue(alerts.send_idle_alert("42", "prover idle"))

        url = post.call_args[0][0]
        payload = post.call_args[1]["json"]
        self.assertTrue(url.endswith("/sendMessage"))
        self.assertEqual(payload, {"chat_id": "42", "text": "prover idle"})

    @patch("prover_watch.alerts.telegram.requests.post")
    def test_parse_mode_passed_when_set(self, post):
        post.return_value = ok_response()
        make_alerts(parse_mode="HTML").send_message("42", "x")
        self.assertEqual(post.call_args[1]["json"]["parse_mode"], "HTML")

    @patch("prover_watch.alerts.telegram.requests.post")
    def test_long_messages_truncated(self, post):
        post.return_value = ok_response()
        make_alerts(max_message_length=100).send_message("42", "x" * 500)

        text = post.call_args[1]["json"]["text"]
        self.assertLessEqual(len(text), 100)
        self.assertTrue(text.endswith("(truncated)"))

    @patch("prover_watch.alerts.telegram.requests.post")
    def test_http_error_reported_without_token(self, post):
        error_response = MagicMock(status_code=403)
        response = MagicMock()
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(
            "403 for url https://api.telegram.org/bot123:secret/sendMessage", response=error_response
        )
        post.return_value = response
        alerts = make_alerts()

        with self.assertLogs("prover_watch.alerts.telegram", level="ERROR") as logs:
            self.assertFalse(alerts.send_idle_alert("42", "idle"))
        self.assertNotIn("secret", "\n".join(logs.output))

    @patch("prover_watch.alerts.telegram.requests.post")
    def test_connection_error(self, post):
        post.side_effect = requests.exceptions.ConnectionError("boom")
        self.assertFalse(make_alerts().send_idle_alert("42", "idle"))

    @patch("prover_watch.alerts.telegram.requests.post")
    def test_rate_limit(self, post):
        post.return_value = ok_response()
        alerts = make_alerts(max_messages_per_minute=2)

        results = [alerts.send_idle_alert("42", f"m{i}") for i in range(3)]

        self.assertEqual(results, [True, True, False])
        self.assertEqual(post.call_count, 2)

    def test_service_status_needs_operator_chat(self):
        self.assertFalse(make_alerts(dry_run=True).send_service_status("started"))
        self.assertTrue(make_alerts(dry_run=True, chat_id="-100").send_service_status("started"))


if __name__ == "__main__":
    unittest.main()
