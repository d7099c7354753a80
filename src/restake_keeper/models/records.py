"""Chain receipts and restake outcome records."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

# Terminal transaction status that counts as accepted by the network
ACCEPTED_STATUS = "SUCCESS"


@dataclass(frozen=True)
class ReceiptEvent:
    """A contract event emitted by a finalized transaction."""

    keys: list[str]  # topics, as base64 XDR SCVal strings
    data: list[object]  # decoded data fields, in order


@dataclass(frozen=True)
class Receipt:
    """Terminal record of a submitted transaction."""

    tx_id: str
    status: str
    events: list[ReceiptEvent] = field(default_factory=list)
    ledger: int | None = None

    @property
    def accepted(self) -> bool:
        return self.status == ACCEPTED_STATUS


@dataclass(frozen=True)
class ContractConfig:
    """The restake contract's configuration as returned by get_config()."""

    staking_contract: str
    reward_token: str
    staker: str


class AttemptOutcome(str, Enum):
    """Outcome of a single restake attempt."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass
class RestakeAttempt:
    """One submission of the restake call."""

    index: int  # 0-based
    outcome: AttemptOutcome = AttemptOutcome.PENDING
    tx_id: str | None = None
    amount: int | None = None  # smallest unit, success only
    error: str | None = None


@dataclass
class RestakeResult:
    """Terminal outcome of one scheduled run."""

    success: bool
    attempts_made: int
    amount: int | None = None
    tx_id: str | None = None
    last_error: Exception | None = None
    attempts: list[RestakeAttempt] = field(default_factory=list)

    @classmethod
    def succeeded(
        cls, amount: int, tx_id: str, attempts: list[RestakeAttempt],
    ) -> RestakeResult:
        return cls(
            success=True,
            attempts_made=len(attempts),
            amount=amount,
            tx_id=tx_id,
            attempts=attempts,
        )

    @classmethod
    def failed(
        cls, last_error: Exception, attempts: list[RestakeAttempt],
    ) -> RestakeResult:
        return cls(
            success=False,
            attempts_made=len(attempts),
            last_error=last_error,
            attempts=attempts,
        )
