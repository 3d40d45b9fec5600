"""
impact-ledger: donation and impact receipts on the XRP Ledger.

Donors send XRP to NGOs and mint a donation receipt NFT (taxon 0) citing
the payment; NGOs mint impact receipt NFTs (taxon 1) when they disburse
funds. Receipts carry JSON metadata in the NFT URI and are read back
through a reconciler that repairs legacy or malformed payloads.

    connections = ConnectionManager.from_settings()
    payments = PaymentExecutor.from_settings(connections)
    tx_hash = await payments.send_value(seed, ngo_address, "25.5", memo="food")
"""

from impact_ledger.config import LedgerSettings, get_settings
from impact_ledger.donations import DonationOutcome, DonationService
from impact_ledger.errors import (
    FetchError,
    ImpactLedgerError,
    LedgerConnectionError,
    MintError,
    PaymentError,
    RetryExhausted,
)
from impact_ledger.identity import (
    Counterpart,
    CounterpartDirectory,
    InMemoryDirectory,
    Profile,
    Role,
)
from impact_ledger.logs import configure_logging
from impact_ledger.metadata import (
    DecodeWarning,
    ReceiptKind,
    ReconcileResult,
    decode,
    encode,
    normalize_donation,
    normalize_impact,
    reconcile,
)
from impact_ledger.xrpl import (
    ConnectionManager,
    DecodedNFT,
    FetchResult,
    PaymentExecutor,
    ReceiptMinter,
    ReceiptQuery,
    ReconnectPolicy,
)

__version__ = "0.1.0"

__all__ = [
    "ConnectionManager",
    "Counterpart",
    "CounterpartDirectory",
    "DecodeWarning",
    "DecodedNFT",
    "DonationOutcome",
    "DonationService",
    "FetchError",
    "FetchResult",
    "ImpactLedgerError",
    "InMemoryDirectory",
    "LedgerConnectionError",
    "LedgerSettings",
    "MintError",
    "PaymentError",
    "Profile",
    "ReceiptKind",
    "ReceiptMinter",
    "ReceiptQuery",
    "ReconcileResult",
    "ReconnectPolicy",
    "RetryExhausted",
    "Role",
    "__version__",
    "configure_logging",
    "decode",
    "encode",
    "get_settings",
    "normalize_donation",
    "normalize_impact",
    "reconcile",
]
