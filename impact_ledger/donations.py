"""
Donation service — the end-to-end flows built on the ledger core.

    donate:    donor ──XRP + memo──▶ NGO,   donor mints donation receipt (taxon 0)
    disburse:  NGO   ──XRP + memo──▶ recipient, NGO mints impact receipt (taxon 1)

The receipt cites the payment's validated hash. Receipt metadata is sized
against the NFT URI limit before any value moves: a payment whose receipt
could never be minted is refused up front. If the payment succeeds
but the mint does not, the outcome still carries the payment hash
together with the ``MintError``: the value has moved and the caller
must be able to say so.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from impact_ledger.errors import MintError
from impact_ledger.identity import Counterpart, CounterpartDirectory
from impact_ledger.metadata.codec import MAX_URI_BYTES, fits_uri, serialize
from impact_ledger.metadata.reconcile import synthesize_metrics
from impact_ledger.metadata.schema import (
    DEFAULT_IMPACT_WINDOW_MS,
    METRICS_FIELD,
    ReceiptKind,
)
from impact_ledger.xrpl.minter import ReceiptMinter
from impact_ledger.xrpl.payments import PaymentExecutor
from impact_ledger.xrpl.query import FetchResult, ReceiptQuery

logger = logging.getLogger(__name__)

# Stands in for the payment hash while sizing a receipt.
_HASH_PLACEHOLDER = "0" * 64

_SHORTENED_FIELDS = ("purpose", "recipient", "ngoName")


@dataclass(frozen=True)
class DonationOutcome:
    """Result of a donate or disburse flow.

    Attributes:
        payment_hash: Validated hash of the value transfer.
        receipt_hash: Validated hash of the NFTokenMint, None if the
            mint failed.
        metadata: Receipt metadata that was (or would have been) minted.
        receipt_error: Why the receipt is missing, if it is.
    """

    payment_hash: str
    receipt_hash: str | None
    metadata: dict[str, Any]
    receipt_error: MintError | None = None

    @property
    def complete(self) -> bool:
        return self.receipt_hash is not None


def _now_ms() -> int:
    return int(time.time() * 1000)


def fit_receipt(metadata: dict[str, Any]) -> None:
    """Shrink receipt metadata in place until it fits the NFT URI.

    Fields readers restore exactly go first: synthesized impact metrics
    and a default ``impactWindow``. Then free text is shortened from the
    end, ``purpose`` first (its full text travels in the payment memo),
    then the display names. ``ngoId`` and ``txHash`` are never touched.

    Raises:
        ValueError: If the receipt cannot be made to fit.
    """
    if fits_uri(metadata):
        return
    if METRICS_FIELD in metadata:
        logger.info("receipt too large for URI; omitting %s", METRICS_FIELD)
        del metadata[METRICS_FIELD]
    if not fits_uri(metadata) and metadata.get("impactWindow") == DEFAULT_IMPACT_WINDOW_MS:
        logger.info("receipt too large for URI; omitting default impactWindow")
        del metadata["impactWindow"]

    for field in _SHORTENED_FIELDS:
        value = metadata.get(field)
        if fits_uri(metadata):
            return
        if not isinstance(value, str) or not value:
            continue
        original = value
        while value and not fits_uri(metadata):
            value = value[:-1]
            metadata[field] = value
        logger.info(
            "receipt %s shortened from %d to %d characters to fit the URI",
            field, len(original), len(value),
        )

    if not fits_uri(metadata):
        raise ValueError(
            f"receipt metadata is {len(serialize(metadata))} bytes at minimum; "
            f"NFT URI limit is {MAX_URI_BYTES} bytes"
        )


class DonationService:
    """Donations and disbursements with on-ledger receipts.

    Args:
        payments: Payment executor.
        minter: Receipt minter.
        query: Receipt query layer.
        directory: Counterpart/profile directory.
        clock: Epoch-millisecond clock for receipt timestamps.
    """

    def __init__(
        self,
        payments: PaymentExecutor,
        minter: ReceiptMinter,
        query: ReceiptQuery,
        directory: CounterpartDirectory,
        *,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._payments = payments
        self._minter = minter
        self._query = query
        self._directory = directory
        self._clock = clock

    async def find_counterpart(self, ngo_id: str) -> Counterpart:
        """Verified counterpart by id.

        Raises:
            LookupError: If no verified counterpart has this id.
        """
        for counterpart in await self._directory.get_verified_counterparts():
            if counterpart.id == ngo_id:
                return counterpart
        raise LookupError(f"no verified NGO with id {ngo_id!r}")

    async def donate(
        self, donor_secret: str, ngo_id: str, amount: str, purpose: str
    ) -> DonationOutcome:
        """Send ``amount`` XRP to an NGO and mint the donor's receipt.

        Raises:
            LookupError: If the NGO is unknown or unverified.
            ValueError: On an invalid amount or secret, or a receipt that
                cannot fit the NFT URI. Nothing is sent.
            PaymentError: If the payment failed. No receipt is minted.
        """
        ngo = await self.find_counterpart(ngo_id)
        metadata: dict[str, Any] = {
            "ngoId": ngo.id,
            "ngoName": ngo.name,
            "amount": amount,
            "purpose": purpose,
            "category": ngo.category,
            "txHash": _HASH_PLACEHOLDER,
            "timestamp": self._clock(),
            "impactWindow": DEFAULT_IMPACT_WINDOW_MS,
        }
        fit_receipt(metadata)
        payment_hash = await self._payments.send_value(
            donor_secret, ngo.wallet_address, amount, memo=purpose or None
        )
        metadata["txHash"] = payment_hash
        return await self._record(donor_secret, metadata, ReceiptKind.DONATION, payment_hash)

    async def disburse(
        self,
        ngo_secret: str,
        ngo_id: str,
        recipient_address: str,
        recipient_name: str,
        amount: str,
        purpose: str,
    ) -> DonationOutcome:
        """Pay out funds to a recipient and mint the NGO's impact receipt.

        Raises:
            LookupError: If the NGO is unknown or unverified.
            ValueError: On an invalid address, amount or secret, or a receipt
                that cannot fit the NFT URI. Nothing is sent.
            PaymentError: If the payment failed. No receipt is minted.
        """
        ngo = await self.find_counterpart(ngo_id)
        metadata: dict[str, Any] = {
            "ngoId": ngo.id,
            "ngoName": ngo.name,
            "amount": amount,
            "purpose": purpose,
            "category": ngo.category,
            "recipient": recipient_name,
            "txHash": _HASH_PLACEHOLDER,
            "timestamp": self._clock(),
            "impactWindow": DEFAULT_IMPACT_WINDOW_MS,
        }
        metadata[METRICS_FIELD] = synthesize_metrics(metadata)
        fit_receipt(metadata)
        payment_hash = await self._payments.send_value(
            ngo_secret, recipient_address, amount, memo=purpose or None
        )
        metadata["txHash"] = payment_hash
        return await self._record(ngo_secret, metadata, ReceiptKind.IMPACT, payment_hash)

    async def receipts_for(self, profile_id: str, kind: ReceiptKind | str) -> FetchResult:
        """Receipts owned by a profile's wallet.

        Raises:
            LookupError: If the profile is unknown.
        """
        profile = await self._directory.get_profile(profile_id)
        if profile is None:
            raise LookupError(f"no profile with id {profile_id!r}")
        return await self._query.list_receipts(profile.wallet_address, kind)

    async def _record(
        self,
        owner_secret: str,
        metadata: dict[str, Any],
        kind: ReceiptKind,
        payment_hash: str,
    ) -> DonationOutcome:
        try:
            receipt_hash = await self._minter.mint_receipt(owner_secret, metadata, kind)
        except MintError as exc:
            logger.error(
                "payment %s validated but %s receipt was not minted: %s",
                payment_hash, kind.value, exc,
            )
            return DonationOutcome(
                payment_hash=payment_hash,
                receipt_hash=None,
                metadata=metadata,
                receipt_error=exc,
            )
        return DonationOutcome(
            payment_hash=payment_hash, receipt_hash=receipt_hash, metadata=metadata
        )
