"""
One submission attempt: bound, autofill, sign, submit, wait.

Shared by the payment executor and the receipt minter. Each call builds
a *fresh* transaction — a retry never resubmits a stale blob, so an
earlier attempt that was never validated simply expires at its
LastLedgerSequence instead of landing twice.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from impact_ledger.xrpl.client import LedgerClient
from impact_ledger.xrpl.errors import (
    LedgerRequestError,
    SubmissionFailed,
    classify_submit_result,
)
from impact_ledger.xrpl.signer import XRPLSigner

logger = logging.getLogger(__name__)


async def current_ledger_index(client: LedgerClient) -> int:
    """Index of the ledger currently being built by the connected node."""
    result = await client.request("ledger_current")
    index = result.get("ledger_current_index")
    if not isinstance(index, int):
        raise LedgerRequestError("ledger_current", "noCurrent", "no ledger_current_index")
    return index


async def submit_once(
    client: LedgerClient,
    signer: XRPLSigner,
    build_tx: Callable[[int], dict[str, Any]],
    *,
    ledger_margin: int,
) -> str:
    """Build, sign and submit one transaction; return its validated hash.

    Args:
        client: Open ledger client.
        signer: Signer for the sending account.
        build_tx: Builds the unsigned transaction given its
            LastLedgerSequence.
        ledger_margin: Ledgers added to the current index for expiry.

    Returns:
        Hash of the validated, successful transaction.

    Raises:
        SubmissionFailed: If the transaction was not validated with
            tesSUCCESS. ``kind`` says whether retrying makes sense.
    """
    current = await current_ledger_index(client)
    tx = build_tx(current + ledger_margin)
    filled = await client.autofill(tx)
    signed = signer.sign(filled)

    result = await client.submit_and_wait(signed.signed_tx_blob_hex)
    kind = classify_submit_result(result)
    if kind is not None:
        logger.warning(
            "%s %s not validated: kind=%s engine_result=%s",
            tx.get("TransactionType"),
            result.tx_hash or signed.tx_hash,
            kind.value,
            result.engine_result,
        )
        raise SubmissionFailed(result, kind)

    return result.tx_hash or signed.tx_hash
