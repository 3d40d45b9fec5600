"""
XRP Ledger interaction layer.

Public API:

    Pure layer (no I/O):
        - Transaction builders: ``plan_payment``, ``plan_nft_mint``,
          ``amount_to_drops``, ``validate_address``.
        - Memo utilities: ``build_text_memo``, ``read_text_memos``.
        - Error mapping: ``classify_engine_result()`` → ``FailureKind``.

    Impure layer (network I/O):
        - ``ConnectionManager`` — shared, self-healing connection.
        - ``PaymentExecutor.send_value()`` — validated XRP transfers.
        - ``ReceiptMinter.mint_receipt()`` — donation/impact NFT receipts.
        - ``ReceiptQuery.list_receipts()`` — decoded receipts of an account.
        - ``get_balance()``, ``FaucetClient`` — account helpers.

    Protocols (for dependency injection):
        - ``LedgerClient`` — network boundary.
        - ``XRPLSigner`` — secrets boundary.

    Concrete implementations:
        - ``XrplWebsocketClient`` — xrpl-py websocket LedgerClient.
        - ``LocalWalletSigner`` — xrpl-py Wallet signer.
"""

from impact_ledger.xrpl.accounts import get_balance, is_valid_address
from impact_ledger.xrpl.client import LedgerClient, LedgerEvent, SubmitResult
from impact_ledger.xrpl.connection import ConnectionManager, ReconnectPolicy
from impact_ledger.xrpl.did import generate_xrpl_did
from impact_ledger.xrpl.errors import (
    FailureKind,
    LedgerRequestError,
    classify_engine_result,
    describe_engine_result,
)
from impact_ledger.xrpl.faucet import FaucetClient, FaucetError, FundedAccount
from impact_ledger.xrpl.memo import build_text_memo, read_text_memos
from impact_ledger.xrpl.minter import ReceiptMinter
from impact_ledger.xrpl.payments import PaymentExecutor
from impact_ledger.xrpl.query import DecodedNFT, FetchResult, ReceiptQuery
from impact_ledger.xrpl.signer import LocalWalletSigner, SignResult, XRPLSigner
from impact_ledger.xrpl.tx import (
    TF_TRANSFERABLE,
    amount_to_drops,
    plan_nft_mint,
    plan_payment,
    validate_address,
)
from impact_ledger.xrpl.websocket_client import XrplWebsocketClient

__all__ = [
    "ConnectionManager",
    "DecodedNFT",
    "FailureKind",
    "FaucetClient",
    "FaucetError",
    "FetchResult",
    "FundedAccount",
    "LedgerClient",
    "LedgerEvent",
    "LedgerRequestError",
    "LocalWalletSigner",
    "PaymentExecutor",
    "ReceiptMinter",
    "ReceiptQuery",
    "ReconnectPolicy",
    "SignResult",
    "SubmitResult",
    "TF_TRANSFERABLE",
    "XRPLSigner",
    "XrplWebsocketClient",
    "amount_to_drops",
    "build_text_memo",
    "classify_engine_result",
    "describe_engine_result",
    "generate_xrpl_did",
    "get_balance",
    "is_valid_address",
    "plan_nft_mint",
    "plan_payment",
    "read_text_memos",
    "validate_address",
]
