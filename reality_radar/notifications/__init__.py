"""Outbound notifications."""

from reality_radar.notifications.base import Notifier
from reality_radar.notifications.telegram import TelegramNotifier

__all__ = ["Notifier", "TelegramNotifier"]
