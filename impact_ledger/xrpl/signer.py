"""
Signing for payments and receipt mints.

Everything that touches a wallet seed lives in this module.

Components never hold key material. They pass an autofilled transaction
dict to a signer and get back a signed blob plus the transaction hash.

Concrete implementations:
    - LocalWalletSigner (xrpl-py Wallet derived from a seed)
    - FakeSigner (tests)

``key_id`` is a public identifier (the public key hex) that may appear
in logs. Seeds never do — not even in exception messages.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from xrpl import XRPLException
from xrpl.core.binarycodec import encode
from xrpl.models.transactions.transaction import Transaction
from xrpl.transaction import sign
from xrpl.wallet import Wallet


@dataclass(frozen=True)
class SignResult:
    """A signed transaction ready for submission.

    Attributes:
        signed_tx_blob_hex: Hex-encoded signed transaction blob,
            ready for LedgerClient.submit_and_wait().
        tx_hash: Transaction hash (64 hex chars).
        key_id: Public identifier of the signing key.
    """

    signed_tx_blob_hex: str
    tx_hash: str
    key_id: str


@runtime_checkable
class XRPLSigner(Protocol):
    """Signs autofilled Payment and NFTokenMint dicts for one account."""

    @property
    def account(self) -> str:
        """Classic address that signs, and owns any receipt it mints."""
        ...

    @property
    def key_id(self) -> str:
        """Public key hex; the only key material that may be logged."""
        ...

    def sign(self, tx_dict: dict[str, object]) -> SignResult:
        """Sign an autofilled XRPL transaction dict.

        Raises:
            ValueError: If the transaction dict is malformed.
        """
        ...


class LocalWalletSigner:
    """Signs with an in-process xrpl-py Wallet.

    The account is derived from the seed; a seed that does not belong to
    the intended account is a caller error and is not detected here.
    """

    def __init__(self, wallet: Wallet) -> None:
        self._wallet = wallet

    @classmethod
    def from_seed(cls, seed: str) -> LocalWalletSigner:
        """Derive a signer from a family seed ("s...").

        Raises:
            ValueError: If the seed cannot be decoded. The seed itself is
                never included in the message.
        """
        if not seed:
            raise ValueError("wallet seed must be non-empty")
        try:
            wallet = Wallet.from_seed(seed)
        except (XRPLException, ValueError) as exc:
            raise ValueError(f"invalid wallet seed ({type(exc).__name__})") from None
        return cls(wallet)

    @property
    def account(self) -> str:
        return self._wallet.address

    @property
    def key_id(self) -> str:
        return self._wallet.public_key

    def sign(self, tx_dict: dict[str, object]) -> SignResult:
        try:
            transaction = Transaction.from_xrpl(tx_dict)
        except XRPLException as exc:
            raise ValueError(f"cannot sign malformed transaction: {exc}") from exc
        signed = sign(transaction, self._wallet)
        return SignResult(
            signed_tx_blob_hex=encode(signed.to_xrpl()),
            tx_hash=signed.get_hash(),
            key_id=self.key_id,
        )
