"""Error taxonomy for the keeper."""

from __future__ import annotations


class KeeperError(Exception):
    """Base class for all keeper errors."""


class ConfigurationError(KeeperError):
    """Invalid or incomplete configuration. Fatal at startup."""


class SubmissionError(KeeperError):
    """The restake call could not be built, signed, or sent."""

    def __init__(self, message: str, tx_id: str | None = None) -> None:
        super().__init__(message)
        self.tx_id = tx_id


class ConfirmationError(KeeperError):
    """Waiting for finality failed (timeout, RPC failure)."""

    def __init__(self, message: str, tx_id: str | None = None) -> None:
        super().__init__(message)
        self.tx_id = tx_id


class ExecutionRejected(ConfirmationError):
    """The transaction reached a terminal status other than accepted."""

    def __init__(self, status: str, tx_id: str | None = None) -> None:
        super().__init__(f"Transaction failed with status: {status}", tx_id=tx_id)
        self.status = status


class NotificationError(KeeperError):
    """A status notification could not be delivered. Never propagated."""
