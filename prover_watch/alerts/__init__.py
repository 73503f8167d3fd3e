"""
Alerts Module

Telegram delivery of idle alerts, bot replies and service notices.
"""

from .telegram import AlertConfig, NotificationSink, TelegramAlerts

__all__ = ["AlertConfig", "NotificationSink", "TelegramAlerts"]
