"""ChainClient protocol - the chain SDK boundary consumed by the keeper."""

from __future__ import annotations

from typing import Protocol

from restake_keeper.models.records import ContractConfig, Receipt


class ChainClient(Protocol):
    """Submits the restake call and reports its finality."""

    async def submit(self) -> str:
        """Build, sign, and send the restake call. Returns the transaction id.

        Raises SubmissionError if the call cannot be constructed or sent.
        """
        ...

    async def wait_for_finality(self, tx_id: str) -> Receipt:
        """Block until the transaction reaches a terminal status.

        Raises ConfirmationError if the wait itself fails.
        """
        ...

    async def read_config(self) -> ContractConfig:
        """Read the contract's staking configuration (simulation only)."""
        ...

    async def close(self) -> None:
        """Release network resources."""
        ...
