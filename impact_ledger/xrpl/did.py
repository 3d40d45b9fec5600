"""Decentralized identifiers for ledger accounts (``did:xrpl:<address>``)."""

from __future__ import annotations

from impact_ledger.xrpl.tx import validate_address

DID_PREFIX = "did:xrpl:"


def generate_xrpl_did(address: str) -> str:
    """DID naming an XRPL account.

    Raises:
        ValueError: If address is not a valid classic address.
    """
    validate_address(address)
    return f"{DID_PREFIX}{address}"


def address_from_did(did: str) -> str:
    """Inverse of ``generate_xrpl_did``.

    Raises:
        ValueError: If did is not a ``did:xrpl:`` identifier for a valid address.
    """
    if not did.startswith(DID_PREFIX):
        raise ValueError(f"not an XRPL DID: {did!r}")
    address = did[len(DID_PREFIX):]
    validate_address(address)
    return address
