"""Notifier protocol - best-effort status reporting."""

from __future__ import annotations

from typing import Protocol


class Notifier(Protocol):
    """Sends one-line status messages to an external channel."""

    async def notify(self, message: str, is_error: bool = False) -> None:
        """Deliver a message. Must never raise."""
        ...
