"""Restake executor - submit, confirm, parse, retry."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from restake_keeper.errors import ConfirmationError, ExecutionRejected, SubmissionError
from restake_keeper.interfaces.chain import ChainClient
from restake_keeper.models.records import (
    AttemptOutcome,
    Receipt,
    RestakeAttempt,
    RestakeResult,
)
from restake_keeper.stellar.events import RESTAKE_EXECUTED_SELECTOR

log = logging.getLogger(__name__)

# Position of the restaked amount in the event's data fields
AMOUNT_FIELD_INDEX = 2


def format_amount(amount: int, decimals: int = 18, places: int = 4) -> str:
    """Format a smallest-unit amount in display units, truncating extra digits."""
    whole, remainder = divmod(int(amount), 10**decimals)
    if places <= 0:
        return str(whole)
    fraction = str(remainder).rjust(decimals, "0")[:places].ljust(places, "0")
    return f"{whole}.{fraction}"


def _to_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, (str, bytes)):
        try:
            return int(value, 0)
        except ValueError:
            return None
    return None


def extract_amount(receipt: Receipt, selector: str = RESTAKE_EXECUTED_SELECTOR) -> int:
    """Find the restake event in a receipt and return its amount field.

    Returns 0 when the event is missing, too short, or the field is not
    an integer.
    """
    for event in receipt.events:
        if not event.keys or event.keys[0] != selector:
            continue
        if len(event.data) <= AMOUNT_FIELD_INDEX:
            log.warning(
                "Restake event in %s has %d data fields, expected at least %d",
                receipt.tx_id[:16], len(event.data), AMOUNT_FIELD_INDEX + 1,
            )
            return 0
        amount = _to_int(event.data[AMOUNT_FIELD_INDEX])
        if amount is None or amount < 0:
            log.warning(
                "Restake event in %s has non-integer amount %r",
                receipt.tx_id[:16], event.data[AMOUNT_FIELD_INDEX],
            )
            return 0
        return amount

    log.warning("No restake event found in %s, amount unknown", receipt.tx_id[:16])
    return 0


class RestakeExecutor:
    """Runs the restake call with a bounded, fixed-delay retry loop.

    Each attempt:
    1. Submits execute_auto_restake() (SubmissionError on failure)
    2. Waits for finality (ConfirmationError / ExecutionRejected)
    3. Reads the restaked amount from the receipt events

    Failures in 1-2 are retried after ``retry_delay`` seconds, at most
    ``max_retries`` times. Every retry resubmits from scratch.
    """

    def __init__(
        self,
        max_retries: int = 3,
        retry_delay: float = 60.0,
        selector: str = RESTAKE_EXECUTED_SELECTOR,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._selector = selector
        self._sleep = sleep

    @property
    def max_retries(self) -> int:
        return self._max_retries

    async def execute(self, chain: ChainClient) -> RestakeResult:
        """Execute the restake call. Never raises for transient failures."""
        attempts: list[RestakeAttempt] = []
        last_error: Exception | None = None

        for index in range(self._max_retries + 1):
            attempt = RestakeAttempt(index=index)
            attempts.append(attempt)
            log.info("Executing auto-restake (attempt %d/%d)", index + 1, self._max_retries + 1)

            try:
                amount = await self._attempt(chain, attempt)
            except (SubmissionError, ConfirmationError) as exc:
                last_error = exc
            except Exception as exc:
                last_error = SubmissionError(f"unexpected chain client error: {exc}")
                last_error.__cause__ = exc
            else:
                attempt.outcome = AttemptOutcome.SUCCESS
                attempt.amount = amount
                log.info(
                    "Auto-restake succeeded on attempt %d: amount=%d tx=%s",
                    index + 1, amount, attempt.tx_id,
                )
                return RestakeResult.succeeded(amount, attempt.tx_id or "", attempts)

            attempt.outcome = AttemptOutcome.FAILURE
            attempt.error = str(last_error)
            attempt.tx_id = attempt.tx_id or getattr(last_error, "tx_id", None)
            log.error(
                "Auto-restake failed (attempt %d): %s: %s",
                index + 1, type(last_error).__name__, last_error,
            )

            if index < self._max_retries:
                log.info("Retrying in %g seconds...", self._retry_delay)
                await self._sleep(self._retry_delay)

        assert last_error is not None
        log.error("Auto-restake gave up after %d attempts", len(attempts))
        return RestakeResult.failed(last_error, attempts)

    async def _attempt(self, chain: ChainClient, attempt: RestakeAttempt) -> int:
        tx_id = await chain.submit()
        attempt.tx_id = tx_id
        log.info("Transaction submitted: %s", tx_id)

        receipt = await chain.wait_for_finality(tx_id)
        if not receipt.accepted:
            raise ExecutionRejected(receipt.status, tx_id=tx_id)

        return extract_amount(receipt, self._selector)
