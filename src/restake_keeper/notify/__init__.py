"""Outcome notification."""

from restake_keeper.notify.webhook import WebhookNotifier

__all__ = ["WebhookNotifier"]
