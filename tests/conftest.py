"""
Shared fakes for the ledger and signer boundaries.

``FakeLedgerClient`` is a tiny in-memory ledger: a validated
NFTokenMint adds an NFT to the minting account, and ``account_nfts``
lists them (paged when ``page_size`` is set). Failures are scripted by
queueing exceptions or SubmitResults.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from impact_ledger.xrpl.client import EventHandler, LedgerEvent, SubmitResult
from impact_ledger.xrpl.connection import ConnectionManager, ReconnectPolicy
from impact_ledger.xrpl.errors import LedgerRequestError
from impact_ledger.xrpl.signer import SignResult

# Valid classic addresses (xrpl.org documentation accounts).
DONOR = "rHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh"
NGO = "rPT1Sjq2YGrBMTttX4GZHjKu9dyfzbpAYe"
RECIPIENT = "rf1BiGeXwwQoi8Z2ueFYTEXSwuJYfV2Jpn"

SAMPLE_KEY_ID = "ED" + "00" * 32
SAMPLE_SEED = "sEdTestSeedNotReal"


# ---------------------------------------------------------------------------
# Fake signer
# ---------------------------------------------------------------------------


class FakeSigner:
    """XRPLSigner that hashes by call count."""

    def __init__(self, account: str = DONOR, *, should_raise: Exception | None = None) -> None:
        self._account = account
        self._should_raise = should_raise
        self.sign_calls: list[dict[str, Any]] = []

    @property
    def account(self) -> str:
        return self._account

    @property
    def key_id(self) -> str:
        return SAMPLE_KEY_ID

    def sign(self, tx_dict: dict[str, Any]) -> SignResult:
        self.sign_calls.append(tx_dict)
        if self._should_raise is not None:
            raise self._should_raise
        n = len(self.sign_calls)
        return SignResult(
            signed_tx_blob_hex=f"{n:08X}" * 8,
            tx_hash=f"{n:064X}",
            key_id=SAMPLE_KEY_ID,
        )


# ---------------------------------------------------------------------------
# Fake ledger client
# ---------------------------------------------------------------------------


class FakeLedgerClient:
    """LedgerClient backed by in-memory state."""

    def __init__(
        self,
        url: str = "wss://fake.ledger",
        *,
        open_error: Exception | None = None,
        ledger_index: int = 1000,
        page_size: int | None = None,
    ) -> None:
        self._url = url
        self._open_error = open_error
        self._open = False
        self.ledger_index = ledger_index
        self.page_size = page_size
        self.handlers: dict[LedgerEvent, list[EventHandler]] = {e: [] for e in LedgerEvent}
        self.open_calls = 0
        self.close_calls = 0
        self.requests: list[tuple[str, dict[str, Any]]] = []
        self.autofilled: list[dict[str, Any]] = []
        self.submitted: list[str] = []
        # command → queued exceptions raised before answering normally
        self.request_failures: dict[str, list[Exception]] = {}
        # queued SubmitResults or exceptions for submit_and_wait
        self.submit_script: list[SubmitResult | Exception] = []
        # account → list of account_nfts entries
        self.nfts: dict[str, list[dict[str, Any]]] = {}
        self.balances: dict[str, str] = {}

    @property
    def url(self) -> str:
        return self._url

    async def open(self) -> None:
        self.open_calls += 1
        if self._open_error is not None:
            raise self._open_error
        self._open = True

    async def close(self) -> None:
        self.close_calls += 1
        self._open = False

    def is_open(self) -> bool:
        return self._open

    def on(self, event: LedgerEvent, handler: EventHandler) -> None:
        self.handlers[LedgerEvent(event)].append(handler)

    def emit(self, event: LedgerEvent, exc: BaseException | None = None) -> None:
        if event == LedgerEvent.DISCONNECTED:
            self._open = False
        for handler in list(self.handlers[event]):
            handler(exc)

    def drop(self) -> None:
        """Lose the socket without notifying anyone."""
        self._open = False

    async def request(
        self, command: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        params = dict(params or {})
        self.requests.append((command, params))
        queued = self.request_failures.get(command)
        if queued:
            raise queued.pop(0)

        if command == "ledger_current":
            return {"ledger_current_index": self.ledger_index}
        if command == "account_nfts":
            return self._account_nfts(params)
        if command == "account_info":
            account = params["account"]
            if account not in self.balances:
                raise LedgerRequestError(command, "actNotFound", "Account not found.")
            return {"account_data": {"Account": account, "Balance": self.balances[account]}}
        raise AssertionError(f"unexpected request: {command}")

    async def autofill(self, tx: dict[str, Any]) -> dict[str, Any]:
        filled = {**tx, "Sequence": len(self.autofilled) + 1, "Fee": "12"}
        self.autofilled.append(filled)
        return filled

    async def submit_and_wait(self, signed_tx_blob_hex: str) -> SubmitResult:
        self.submitted.append(signed_tx_blob_hex)
        if self.submit_script:
            scripted = self.submit_script.pop(0)
            if isinstance(scripted, Exception):
                raise scripted
            return scripted

        tx = self.autofilled[-1]
        tx_hash = f"{len(self.submitted):064X}"
        if tx["TransactionType"] == "NFTokenMint":
            self._mint(tx)
        return SubmitResult(
            validated=True,
            tx_hash=tx_hash,
            engine_result="tesSUCCESS",
            ledger_index=self.ledger_index + 1,
        )

    # ---------------------------------------------------------------------

    def add_nft(
        self,
        owner: str,
        *,
        uri: str = "",
        taxon: int = 0,
        issuer: str | None = None,
        flags: int = 8,
    ) -> dict[str, Any]:
        entries = self.nfts.setdefault(owner, [])
        serial = len(entries)
        entry = {
            "NFTokenID": f"{taxon:08X}{serial:056X}",
            "Issuer": issuer or owner,
            "NFTokenTaxon": taxon,
            "Flags": flags,
            "nft_serial": serial,
            "URI": uri,
        }
        entries.append(entry)
        return entry

    def _mint(self, tx: dict[str, Any]) -> None:
        self.add_nft(
            tx["Account"],
            uri=tx["URI"],
            taxon=tx["NFTokenTaxon"],
            flags=tx["Flags"],
        )

    def _account_nfts(self, params: dict[str, Any]) -> dict[str, Any]:
        entries = self.nfts.get(params["account"], [])
        if self.page_size is None:
            return {"account": params["account"], "account_nfts": list(entries)}
        start = int(params.get("marker", 0))
        end = start + self.page_size
        result: dict[str, Any] = {
            "account": params["account"],
            "account_nfts": entries[start:end],
        }
        if end < len(entries):
            result["marker"] = str(end)
        return result


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


class RecordingSleep:
    """Awaitable sleep that records delays and yields once."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        await asyncio.sleep(0)


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def ledger() -> FakeLedgerClient:
    return FakeLedgerClient()


@pytest.fixture
def signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def connections(ledger: FakeLedgerClient, sleep: RecordingSleep) -> ConnectionManager:
    return ConnectionManager(
        [ledger.url],
        client_factory=lambda url: ledger,
        policy=ReconnectPolicy(liveness_interval=None),
        sleep=sleep,
    )
