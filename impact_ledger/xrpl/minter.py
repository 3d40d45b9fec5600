"""
Receipt minter — donation and impact records as NFTs.

    metadata → canonical JSON → hex → NFTokenMint(URI, taxon, transferable)

Taxon 0 marks a donation receipt (minted by the donor), taxon 1 an
impact receipt (minted by the NGO when it disburses funds).

Shape problems in the metadata are logged and the mint goes ahead: a
receipt with imperfect metadata is repaired on read, a missing receipt
is lost. Only a payload that cannot fit in the URI field is refused
up front.

Submission follows the same discipline as payments (bounded
LastLedgerSequence, validation wait, fresh transaction per attempt),
additionally retrying malformed-class results.
"""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Any, Callable, Mapping

from impact_ledger.config import LedgerSettings, get_settings
from impact_ledger.errors import MintError, RetryExhausted
from impact_ledger.metadata.codec import MAX_URI_BYTES, encode, serialize
from impact_ledger.metadata.reconcile import shape_errors
from impact_ledger.metadata.schema import ReceiptKind
from impact_ledger.retry import SleepFn, retry_async
from impact_ledger.xrpl.connection import ConnectionManager
from impact_ledger.xrpl.errors import SubmissionFailed, is_retryable
from impact_ledger.xrpl.signer import LocalWalletSigner, XRPLSigner
from impact_ledger.xrpl.submission import submit_once
from impact_ledger.xrpl.tx import plan_nft_mint

logger = logging.getLogger(__name__)

SignerFactory = Callable[[str], XRPLSigner]


class ReceiptMinter:
    """Mints NFT receipts carrying donation/impact metadata.

    Args:
        connections: Shared connection manager.
        signer_factory: Builds a signer from the owner's secret.
        ledger_margin: Ledgers before an unvalidated mint expires.
        max_attempts: Total submission attempts.
        retry_delay: Seconds between attempts.
        sleep: Awaitable sleep. Inject for tests.
    """

    def __init__(
        self,
        connections: ConnectionManager,
        *,
        signer_factory: SignerFactory = LocalWalletSigner.from_seed,
        ledger_margin: int = 10,
        max_attempts: int = 3,
        retry_delay: float = 2.0,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        if ledger_margin < 1:
            raise ValueError(f"ledger_margin must be >= 1, got: {ledger_margin}")
        self._connections = connections
        self._signer_factory = signer_factory
        self._ledger_margin = ledger_margin
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        connections: ConnectionManager,
        settings: LedgerSettings | None = None,
        **kwargs: object,
    ) -> ReceiptMinter:
        settings = settings or get_settings()
        return cls(
            connections,
            ledger_margin=settings.ledger_margin,
            max_attempts=settings.mint_attempts,
            retry_delay=settings.mint_retry_delay,
            **kwargs,  # type: ignore[arg-type]
        )

    async def mint_donation_receipt(
        self, owner_secret: str, metadata: Mapping[str, Any]
    ) -> str:
        """Mint a taxon-0 donation receipt. See ``mint_receipt``."""
        return await self.mint_receipt(owner_secret, metadata, ReceiptKind.DONATION)

    async def mint_impact_receipt(
        self, owner_secret: str, metadata: Mapping[str, Any]
    ) -> str:
        """Mint a taxon-1 impact receipt. See ``mint_receipt``."""
        return await self.mint_receipt(owner_secret, metadata, ReceiptKind.IMPACT)

    async def mint_receipt(
        self,
        owner_secret: str,
        metadata: Mapping[str, Any],
        kind: ReceiptKind | str,
    ) -> str:
        """Mint an NFT receipt owned by the secret's account.

        Args:
            owner_secret: Seed of the minting/owning account.
            metadata: Receipt metadata (see ``impact_ledger.metadata.schema``).
            kind: "donation" (taxon 0) or "impact" (taxon 1).

        Returns:
            Hash of the validated NFTokenMint transaction.

        Raises:
            ValueError: On an unknown kind or invalid seed.
            MintError: If the metadata cannot be encoded, does not fit the
                URI field, or the mint was not validated after retries.
        """
        kind = ReceiptKind(kind)

        problems = shape_errors(dict(metadata), kind)
        if problems:
            logger.warning(
                "%s receipt metadata does not match schema, minting anyway: %s",
                kind.value,
                "; ".join(problems),
            )

        try:
            size = len(serialize(metadata))
            uri_hex = encode(metadata)
        except (TypeError, ValueError) as exc:
            raise MintError(f"metadata is not JSON-serializable: {exc}") from exc
        if size > MAX_URI_BYTES:
            raise MintError(
                f"metadata is {size} bytes; NFT URI limit is {MAX_URI_BYTES} bytes"
            )

        signer = self._signer_factory(owner_secret)
        attempts = 0

        async def attempt() -> str:
            nonlocal attempts
            attempts += 1
            client = await self._connections.acquire()
            return await submit_once(
                client,
                signer,
                lambda last_ledger: plan_nft_mint(
                    signer.account,
                    uri_hex,
                    kind.taxon,
                    last_ledger_sequence=last_ledger,
                ),
                ledger_margin=self._ledger_margin,
            )

        try:
            tx_hash = await retry_async(
                attempt,
                max_attempts=self._max_attempts,
                delay=self._retry_delay,
                is_retryable=partial(is_retryable, retry_malformed=True),
                sleep=self._sleep,
                label=f"{kind.value} receipt mint",
            )
        except RetryExhausted as exc:
            last = exc.last_error
            raise MintError(
                f"{kind.value} receipt mint failed after {exc.attempts} attempt(s): {last}",
                attempts=exc.attempts,
                engine_result=last.result.engine_result
                if isinstance(last, SubmissionFailed)
                else None,
                cause=last,
            ) from last
        except SubmissionFailed as exc:
            raise MintError(
                f"{kind.value} receipt mint rejected: {exc}",
                attempts=attempts,
                engine_result=exc.result.engine_result,
                cause=exc,
            ) from exc
        except ValueError:
            raise
        except Exception as exc:
            raise MintError(
                f"{kind.value} receipt mint failed: {exc}", attempts=attempts, cause=exc
            ) from exc

        logger.info(
            "%s receipt minted for %s: %s (taxon %d, attempt %d)",
            kind.value, signer.account, tx_hash, kind.taxon, attempts,
        )
        return tx_hash
