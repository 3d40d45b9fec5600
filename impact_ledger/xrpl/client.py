"""
XRPL client protocol — the network boundary.

Defines the interface the payment, mint and query components depend on,
not a concrete implementation. Everything above this seam is testable
without a network.

Concrete implementations:
    - XrplWebsocketClient (xrpl-py AsyncWebsocketClient)
    - FakeLedgerClient (tests)

The protocol mirrors what the core needs from a ledger library:
    - open() / close() / is_open()
    - on(event, handler) for "error" and "disconnected" notifications
    - request(command, params) → result dict
    - autofill(tx_dict) → tx_dict with Sequence, Fee filled in
    - submit_and_wait(signed_tx_blob_hex) → SubmitResult

``submit_and_wait`` never raises for "expected" XRPL outcomes (rejected,
expired, failed in ledger) — those are captured in the SubmitResult.
Transport failures (closed socket, timeout) do raise.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Callable, Protocol, runtime_checkable

SUCCESS = "tesSUCCESS"


class LedgerEvent(StrEnum):
    """Asynchronous notifications a client can emit."""

    ERROR = "error"
    DISCONNECTED = "disconnected"


# Handlers are plain callables; they must not block. They receive the
# exception that triggered the event, if any.
EventHandler = Callable[[BaseException | None], None]


# =========================================================================
# Result types
# =========================================================================


@dataclass(frozen=True)
class SubmitResult:
    """Outcome of submitting a signed transaction and waiting on it.

    Attributes:
        validated: Whether the transaction is in a validated ledger.
            False covers "rejected before inclusion", "expired" and
            "still pending when we stopped waiting".
        tx_hash: Transaction hash (64 hex chars), if known.
        engine_result: XRPL engine result code ("tesSUCCESS",
            "tecUNFUNDED_PAYMENT", ...). For validated transactions this
            is the final meta.TransactionResult.
        ledger_index: Ledger the transaction was validated in.
        expired: True if LastLedgerSequence passed without inclusion.
        detail: Human-readable detail for diagnostics.
    """

    validated: bool
    tx_hash: str | None = None
    engine_result: str | None = None
    ledger_index: int | None = None
    expired: bool = False
    detail: str | None = None

    @property
    def succeeded(self) -> bool:
        """Validated with tesSUCCESS — the only durable success."""
        return self.validated and self.engine_result == SUCCESS


# =========================================================================
# Protocol
# =========================================================================


@runtime_checkable
class LedgerClient(Protocol):
    """Interface for a single connection to an XRPL node."""

    @property
    def url(self) -> str:
        """Endpoint this client connects to."""
        ...

    async def open(self) -> None:
        """Open the connection. Raises on failure."""
        ...

    async def close(self) -> None:
        """Close the connection. Idempotent."""
        ...

    def is_open(self) -> bool:
        """Whether the connection is currently usable."""
        ...

    def on(self, event: LedgerEvent, handler: EventHandler) -> None:
        """Register a handler for an asynchronous notification."""
        ...

    async def request(
        self, command: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Send a request (``account_nfts``, ``ledger_current``, ...).

        Returns:
            The response ``result`` dict.

        Raises:
            LedgerRequestError: If the node answered with an error.
        """
        ...

    async def autofill(self, tx: dict[str, Any]) -> dict[str, Any]:
        """Fill Sequence, Fee and other network-derived fields."""
        ...

    async def submit_and_wait(self, signed_tx_blob_hex: str) -> SubmitResult:
        """Submit a signed blob and wait for validation or expiry."""
        ...
