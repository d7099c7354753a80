"""Data models for the restake keeper."""

from restake_keeper.models.config import RunConfig
from restake_keeper.models.records import (
    ACCEPTED_STATUS,
    AttemptOutcome,
    ContractConfig,
    Receipt,
    ReceiptEvent,
    RestakeAttempt,
    RestakeResult,
)

__all__ = [
    "RunConfig",
    "ACCEPTED_STATUS", "AttemptOutcome", "ContractConfig",
    "Receipt", "ReceiptEvent", "RestakeAttempt", "RestakeResult",
]
