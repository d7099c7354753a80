"""Soroban chain client - submits execute_auto_restake() and tracks finality."""

from __future__ import annotations

import asyncio
import logging
import time

from stellar_sdk import Keypair, SorobanServerAsync, TransactionBuilder, scval, xdr
from stellar_sdk.soroban_rpc import GetTransactionStatus, SendTransactionStatus

from restake_keeper.errors import ConfirmationError, SubmissionError
from restake_keeper.models.records import ContractConfig, Receipt
from restake_keeper.stellar.events import addr_to_str, events_from_meta

log = logging.getLogger(__name__)

RESTAKE_FUNCTION = "execute_auto_restake"
CONFIG_FUNCTION = "get_config"

TX_TIMEOUT = 30  # seconds the built transaction stays valid


class SorobanChainClient:
    """Talks to the restake contract through Soroban RPC.

    Submission and finality are kept separate so the executor can tell
    a failed send apart from a failed confirmation.
    """

    def __init__(
        self,
        contract_id: str,
        rpc_url: str,
        network_passphrase: str,
        keypair: Keypair,
        base_fee: int = 100,
        finality_timeout: float = 120.0,
        poll_interval: float = 2.0,
        server: SorobanServerAsync | None = None,
    ) -> None:
        self._contract_id = contract_id
        self._network_passphrase = network_passphrase
        self._keypair = keypair
        self._public_key = keypair.public_key
        self._base_fee = base_fee
        self._finality_timeout = finality_timeout
        self._poll_interval = poll_interval
        self._server = server or SorobanServerAsync(rpc_url)

    @property
    def public_key(self) -> str:
        return self._public_key

    async def _build(self, function_name: str):
        source = await self._server.load_account(self._public_key)
        return (
            TransactionBuilder(source, self._network_passphrase, base_fee=self._base_fee)
            .append_invoke_contract_function_op(
                contract_id=self._contract_id,
                function_name=function_name,
                parameters=[],
            )
            .set_timeout(TX_TIMEOUT)
            .build()
        )

    async def submit(self) -> str:
        """Simulate, sign, and send execute_auto_restake(). Returns the tx hash."""
        log.info("Submitting %s to %s", RESTAKE_FUNCTION, self._contract_id[:16])
        try:
            tx = await self._build(RESTAKE_FUNCTION)
            tx = await self._server.prepare_transaction(tx)
            tx.sign(self._keypair)
            response = await self._server.send_transaction(tx)
        except Exception as exc:
            raise SubmissionError(f"{RESTAKE_FUNCTION} submission failed: {exc}") from exc

        if response.status == SendTransactionStatus.ERROR:
            raise SubmissionError(
                f"{RESTAKE_FUNCTION} rejected by RPC: {response.error_result_xdr}",
                tx_id=response.hash,
            )
        if response.status == SendTransactionStatus.TRY_AGAIN_LATER:
            raise SubmissionError(
                f"{RESTAKE_FUNCTION} not accepted: RPC asked to try again later",
                tx_id=response.hash,
            )
        if response.status == SendTransactionStatus.DUPLICATE:
            log.warning("Transaction %s already submitted", response.hash[:16])

        return response.hash

    async def wait_for_finality(self, tx_id: str) -> Receipt:
        """Poll get_transaction until SUCCESS/FAILED or the finality timeout."""
        deadline = time.monotonic() + self._finality_timeout
        while True:
            try:
                response = await self._server.get_transaction(tx_id)
            except Exception as exc:
                raise ConfirmationError(
                    f"get_transaction({tx_id[:16]}) failed: {exc}", tx_id=tx_id,
                ) from exc

            if response.status != GetTransactionStatus.NOT_FOUND:
                break

            if time.monotonic() >= deadline:
                raise ConfirmationError(
                    f"Transaction {tx_id[:16]} not final after {self._finality_timeout:g}s",
                    tx_id=tx_id,
                )
            await asyncio.sleep(self._poll_interval)

        status = response.status.value
        events = []
        if response.status == GetTransactionStatus.SUCCESS:
            try:
                events = events_from_meta(response.result_meta_xdr)
            except Exception as exc:
                # The transaction landed; an unreadable meta only costs us the amount
                log.warning("Could not decode result meta for %s: %s", tx_id[:16], exc)

        log.debug("Transaction %s final: %s (%d events)", tx_id[:16], status, len(events))
        return Receipt(
            tx_id=tx_id,
            status=status,
            events=events,
            ledger=response.ledger,
        )

    async def read_config(self) -> ContractConfig:
        """Simulate get_config() and decode (staking_contract, token, staker)."""
        tx = await self._build(CONFIG_FUNCTION)
        sim = await self._server.simulate_transaction(tx)
        if sim.error:
            raise RuntimeError(f"{CONFIG_FUNCTION} simulation failed: {sim.error}")
        if not sim.results:
            raise RuntimeError(f"{CONFIG_FUNCTION} returned no result")

        raw = scval.to_native(xdr.SCVal.from_xdr(sim.results[0].xdr))
        staking_contract, reward_token, staker = raw
        return ContractConfig(
            staking_contract=addr_to_str(staking_contract),
            reward_token=addr_to_str(reward_token),
            staker=addr_to_str(staker),
        )

    async def close(self) -> None:
        """Close the underlying aiohttp session."""
        try:
            await self._server.close()
        except Exception as exc:
            log.debug("Error closing Soroban RPC session: %s", exc)
