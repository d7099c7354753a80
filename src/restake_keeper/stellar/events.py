"""Receipt event decoding for the restake contract."""

from __future__ import annotations

import logging

from stellar_sdk import Address, scval, xdr

from restake_keeper.models.records import ReceiptEvent

log = logging.getLogger(__name__)

RESTAKE_EVENT_NAME = "AutoRestakeExecuted"

# Pre-computed XDR base64 of the event's first topic
RESTAKE_EXECUTED_SELECTOR = scval.to_symbol(RESTAKE_EVENT_NAME).to_xdr()


def addr_to_str(addr: object) -> str:
    """Extract the string address from a stellar_sdk.Address or plain str."""
    if isinstance(addr, Address):
        return addr.address
    return str(addr)


def decode_event(event) -> ReceiptEvent:
    """Convert an xdr.ContractEvent into a ReceiptEvent.

    Topics are kept as base64 XDR so they compare directly against
    pre-computed selectors. A vec/tuple payload is flattened into the
    ordered data fields; any other payload becomes a single field.
    """
    body = event.body.v0
    keys = [topic.to_xdr() for topic in body.topics]
    value = scval.to_native(body.data)
    if isinstance(value, (list, tuple)):
        data = list(value)
    else:
        data = [value]
    return ReceiptEvent(keys=keys, data=data)


def events_from_meta(result_meta_xdr: str | None) -> list[ReceiptEvent]:
    """Extract contract events from a base64 TransactionMeta.

    Handles TransactionMeta v3 (soroban_meta.events) and v4
    (per-operation events).
    """
    if not result_meta_xdr:
        return []

    meta = xdr.TransactionMeta.from_xdr(result_meta_xdr)
    raw_events = []
    if meta.v == 3 and meta.v3 is not None and meta.v3.soroban_meta is not None:
        raw_events = list(meta.v3.soroban_meta.events)
    elif meta.v == 4 and meta.v4 is not None:
        for op in meta.v4.operations:
            raw_events.extend(op.events)

    events: list[ReceiptEvent] = []
    for raw in raw_events:
        try:
            events.append(decode_event(raw))
        except Exception as exc:
            log.debug("Skipping undecodable contract event: %s", exc)
    return events
