"""
XRPL transaction builders for payments and receipt mints.

Builds unsigned transaction dicts — pure, deterministic, no secrets,
no network calls. Sequence, Fee and SigningPubKey are filled in by
``LedgerClient.autofill`` at submit time; LastLedgerSequence is set here
because every transaction the core submits must expire deterministically.

The builders enforce:
    - Valid classic addresses for Account/Destination
    - Positive XRP amounts (converted to drops)
    - LastLedgerSequence present and positive
    - NFTokenMint flagged transferable, taxon from the receipt kind
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from xrpl.core.addresscodec import is_valid_classic_address
from xrpl.utils import XRPRangeException, xrp_to_drops

from impact_ledger.xrpl.memo import build_text_memo

# NFTokenMint flag: the token may be transferred to other accounts.
TF_TRANSFERABLE = 0x00000008


def validate_address(address: str, *, field: str = "address") -> None:
    """Raise ValueError unless address is a valid classic r-address."""
    if not address or not is_valid_classic_address(address):
        raise ValueError(f"{field} is not a valid XRPL address: {address!r}")


def amount_to_drops(amount: str) -> str:
    """Convert a positive decimal XRP amount string to drops.

    Raises:
        ValueError: If amount is not a positive decimal within XRP range.
    """
    try:
        value = Decimal(amount)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"amount must be a decimal string, got: {amount!r}") from exc
    if not value.is_finite() or value <= 0:
        raise ValueError(f"amount must be positive, got: {amount!r}")
    try:
        return xrp_to_drops(value)
    except XRPRangeException as exc:
        raise ValueError(f"amount is out of range: {amount!r}") from exc


def _check_last_ledger(last_ledger_sequence: int) -> None:
    if last_ledger_sequence < 1:
        raise ValueError(
            f"last_ledger_sequence must be >= 1, got: {last_ledger_sequence}"
        )


def plan_payment(
    account: str,
    destination: str,
    amount_drops: str,
    *,
    last_ledger_sequence: int,
    memo: str | None = None,
) -> dict[str, object]:
    """Build an unsigned XRP Payment.

    Args:
        account: Sender r-address.
        destination: Recipient r-address.
        amount_drops: Amount in drops (from ``amount_to_drops``).
        last_ledger_sequence: Ledger index after which the payment expires.
        memo: Optional plain-text memo.

    Returns:
        Unsigned transaction dict in XRPL JSON format.

    Raises:
        ValueError: On invalid addresses, amount or ledger bound.
    """
    validate_address(account, field="account")
    validate_address(destination, field="destination")
    if not amount_drops.isdigit() or int(amount_drops) <= 0:
        raise ValueError(f"amount_drops must be a positive integer string, got: {amount_drops!r}")
    _check_last_ledger(last_ledger_sequence)

    tx: dict[str, object] = {
        "TransactionType": "Payment",
        "Account": account,
        "Destination": destination,
        "Amount": amount_drops,
        "LastLedgerSequence": last_ledger_sequence,
    }
    if memo:
        tx["Memos"] = [build_text_memo(memo)]
    return tx


def plan_nft_mint(
    account: str,
    uri_hex: str,
    taxon: int,
    *,
    last_ledger_sequence: int,
    flags: int = TF_TRANSFERABLE,
) -> dict[str, object]:
    """Build an unsigned NFTokenMint owned by ``account``.

    Args:
        account: Minting (and owning) r-address.
        uri_hex: Hex-encoded metadata for the URI field.
        taxon: NFTokenTaxon (0 = donation receipt, 1 = impact receipt).
        last_ledger_sequence: Ledger index after which the mint expires.
        flags: NFTokenMint flags. Default: transferable.

    Returns:
        Unsigned transaction dict in XRPL JSON format.

    Raises:
        ValueError: On invalid account, empty URI, negative taxon or
            bad ledger bound.
    """
    validate_address(account, field="account")
    if not uri_hex:
        raise ValueError("uri_hex must be non-empty")
    if taxon < 0:
        raise ValueError(f"taxon must be >= 0, got: {taxon}")
    _check_last_ledger(last_ledger_sequence)

    return {
        "TransactionType": "NFTokenMint",
        "Account": account,
        "URI": uri_hex,
        "NFTokenTaxon": taxon,
        "Flags": flags,
        "LastLedgerSequence": last_ledger_sequence,
    }
