"""
Query layer — an account's NFT receipts, decoded and classified.

    account_nfts (all pages) → decode URI → reconcile by taxon → DecodedNFT

Fetch outcome is explicit: ``FetchResult`` holds either the receipts or
a ``FetchError``, so a caller can tell "this account has no receipts"
from "the ledger could not be reached". Dashboards that prefer an empty
state over an error opt in with ``FetchResult.or_empty()`` (or iterate
``iter_receipts()``), which logs the swallowed failure.

NFTs whose taxon is neither 0 nor 1 are listed by ``fetch_receipts``
with ``kind=None`` and their raw decoded metadata; they never appear in
a donation or impact listing.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

from impact_ledger.config import LedgerSettings, get_settings
from impact_ledger.errors import FetchError, RetryExhausted
from impact_ledger.metadata.codec import decode
from impact_ledger.metadata.reconcile import DecodeWarning, reconcile
from impact_ledger.metadata.schema import ReceiptKind
from impact_ledger.retry import SleepFn, retry_async
from impact_ledger.xrpl.connection import ConnectionManager
from impact_ledger.xrpl.errors import LedgerRequestError, is_retryable

logger = logging.getLogger(__name__)

# account_nfts page size (the server maximum).
PAGE_LIMIT = 400


# =========================================================================
# Result types
# =========================================================================


@dataclass(frozen=True)
class DecodedNFT:
    """An NFT with its metadata decoded and, for receipts, reconciled.

    Attributes:
        nft_id: NFTokenID (64 hex chars).
        issuer: Minting account.
        taxon: NFTokenTaxon.
        kind: Receipt kind for taxon 0/1, None for other taxa.
        flags: NFToken flags.
        serial: Issuer-scoped serial number.
        uri: Raw hex URI as stored on-ledger.
        metadata: Reconciled record (receipts) or raw decoded JSON.
        warnings: Fields the reconciler had to repair.
    """

    nft_id: str
    issuer: str
    taxon: int
    kind: ReceiptKind | None
    flags: int
    serial: int
    uri: str
    metadata: dict[str, Any]
    warnings: tuple[DecodeWarning, ...] = field(default_factory=tuple)

    @classmethod
    def from_account_nft(cls, entry: dict[str, Any]) -> DecodedNFT:
        """Decode one entry of an ``account_nfts`` response."""
        taxon = int(entry.get("NFTokenTaxon", 0))
        uri = str(entry.get("URI") or "")
        kind = ReceiptKind.from_taxon(taxon)
        raw = decode(uri)

        if kind is None:
            metadata, warnings = raw, ()
        else:
            reconciled = reconcile(raw, kind)
            metadata, warnings = reconciled.record, reconciled.warnings

        return cls(
            nft_id=str(entry.get("NFTokenID", "")),
            issuer=str(entry.get("Issuer", "")),
            taxon=taxon,
            kind=kind,
            flags=int(entry.get("Flags", 0)),
            serial=int(entry.get("nft_serial", 0)),
            uri=uri,
            metadata=metadata,
            warnings=tuple(warnings),
        )


@dataclass(frozen=True)
class FetchResult:
    """Receipts of one account, or the reason they could not be fetched."""

    address: str
    receipts: tuple[DecodedNFT, ...] = ()
    error: FetchError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def of_kind(self, kind: ReceiptKind | str) -> FetchResult:
        """Receipts of one kind only. Errors carry through unchanged."""
        kind = ReceiptKind(kind)
        return FetchResult(
            address=self.address,
            receipts=tuple(r for r in self.receipts if r.kind == kind),
            error=self.error,
        )

    def or_empty(self) -> tuple[DecodedNFT, ...]:
        """The receipts, or ``()`` if the fetch failed (logged)."""
        if self.error is not None:
            logger.warning(
                "showing no receipts for %s because the fetch failed: %s",
                self.address,
                self.error,
            )
            return ()
        return self.receipts


# =========================================================================
# Query
# =========================================================================


class ReceiptQuery:
    """Lists and decodes the NFT receipts owned by an account.

    Args:
        connections: Shared connection manager.
        max_attempts: Total fetch attempts.
        retry_delay: Seconds between attempts.
        timeout: Seconds allowed per ``account_nfts`` request.
        sleep: Awaitable sleep. Inject for tests.
    """

    def __init__(
        self,
        connections: ConnectionManager,
        *,
        max_attempts: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 10.0,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._connections = connections
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay
        self._timeout = timeout
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        connections: ConnectionManager,
        settings: LedgerSettings | None = None,
        **kwargs: object,
    ) -> ReceiptQuery:
        settings = settings or get_settings()
        return cls(
            connections,
            max_attempts=settings.fetch_attempts,
            retry_delay=settings.fetch_retry_delay,
            timeout=settings.fetch_timeout,
            **kwargs,  # type: ignore[arg-type]
        )

    async def fetch_receipts(
        self, address: str, kind: ReceiptKind | str | None = None
    ) -> FetchResult:
        """Fetch every NFT owned by ``address``.

        Args:
            address: Owning r-address.
            kind: If given, keep only receipts of this kind.

        Returns:
            FetchResult with decoded NFTs, or with ``error`` set after
            exhausting retries. Never raises for network failures.
        """
        attempts = 0

        async def attempt() -> list[dict[str, Any]]:
            nonlocal attempts
            attempts += 1
            return await self._fetch_all_pages(address)

        try:
            entries = await retry_async(
                attempt,
                max_attempts=self._max_attempts,
                delay=self._retry_delay,
                is_retryable=is_retryable,
                sleep=self._sleep,
                label=f"account_nfts {address}",
            )
        except RetryExhausted as exc:
            return self._failed(address, exc.attempts, exc.last_error)
        except LedgerRequestError as exc:
            if exc.error == "actNotFound":
                # Unfunded account: it exists on no ledger, so owns nothing.
                return FetchResult(address=address)
            return self._failed(address, attempts, exc)
        except Exception as exc:
            return self._failed(address, attempts, exc)

        result = FetchResult(
            address=address,
            receipts=tuple(DecodedNFT.from_account_nft(e) for e in entries),
        )
        logger.debug("fetched %d NFTs for %s", len(result.receipts), address)
        return result.of_kind(kind) if kind is not None else result

    async def list_receipts(
        self, address: str, kind: ReceiptKind | str
    ) -> FetchResult:
        """Donation (taxon 0) or impact (taxon 1) receipts of ``address``."""
        return await self.fetch_receipts(address, ReceiptKind(kind))

    def iter_receipts(
        self, address: str, kind: ReceiptKind | str
    ) -> ReceiptStream:
        """Lazy, restartable view; each iteration re-fetches."""
        return ReceiptStream(self, address, ReceiptKind(kind))

    # -----------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------

    async def _fetch_all_pages(self, address: str) -> list[dict[str, Any]]:
        client = await self._connections.acquire()
        entries: list[dict[str, Any]] = []
        marker: Any = None
        while True:
            params: dict[str, Any] = {
                "account": address,
                "ledger_index": "validated",
                "limit": PAGE_LIMIT,
            }
            if marker is not None:
                params["marker"] = marker
            result = await asyncio.wait_for(
                client.request("account_nfts", params), timeout=self._timeout
            )
            entries.extend(result.get("account_nfts") or [])
            marker = result.get("marker")
            if marker is None:
                return entries

    @staticmethod
    def _failed(address: str, attempts: int, cause: BaseException) -> FetchResult:
        error = FetchError(
            f"could not list NFTs for {address} after {attempts} attempt(s): {cause}",
            address=address,
            attempts=attempts,
            cause=cause,
        )
        logger.error("%s", error)
        return FetchResult(address=address, error=error)


class ReceiptStream:
    """Async-iterable receipts of one kind; every ``async for`` re-fetches.

    Fetch failures degrade to an empty iteration (see FetchResult.or_empty).
    """

    def __init__(self, query: ReceiptQuery, address: str, kind: ReceiptKind) -> None:
        self._query = query
        self._address = address
        self._kind = kind

    async def __aiter__(self) -> AsyncIterator[DecodedNFT]:
        result = await self._query.list_receipts(self._address, self._kind)
        for receipt in result.or_empty():
            yield receipt
