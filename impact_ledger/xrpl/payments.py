"""
Payment executor — XRP transfers that are either validated or failed.

``send_value`` never returns the hash of an unvalidated transaction.
Each attempt queries the current ledger, bounds the payment at
``current + ledger_margin``, signs locally and waits for validation.
Transient outcomes (not validated, expired, connection trouble) are
retried with a fresh transaction; rejections fail immediately with an
actionable message.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from impact_ledger.config import LedgerSettings, get_settings
from impact_ledger.errors import PaymentError, RetryExhausted
from impact_ledger.retry import SleepFn, retry_async
from impact_ledger.xrpl.connection import ConnectionManager
from impact_ledger.xrpl.errors import SubmissionFailed, is_retryable
from impact_ledger.xrpl.memo import MAX_MEMO_BYTES, validate_memo_size
from impact_ledger.xrpl.signer import LocalWalletSigner, XRPLSigner
from impact_ledger.xrpl.submission import submit_once
from impact_ledger.xrpl.tx import amount_to_drops, plan_payment, validate_address

logger = logging.getLogger(__name__)

SignerFactory = Callable[[str], XRPLSigner]


def _engine_result(exc: BaseException) -> str | None:
    if isinstance(exc, SubmissionFailed):
        return exc.result.engine_result
    return None


class PaymentExecutor:
    """Sends XRP between accounts with retry and confirmation.

    Args:
        connections: Shared connection manager.
        signer_factory: Builds a signer from a sender secret.
        ledger_margin: Ledgers before an unvalidated payment expires.
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
        retry_delay: float = 1.0,
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
    ) -> PaymentExecutor:
        settings = settings or get_settings()
        return cls(
            connections,
            ledger_margin=settings.ledger_margin,
            max_attempts=settings.payment_attempts,
            retry_delay=settings.payment_retry_delay,
            **kwargs,  # type: ignore[arg-type]
        )

    async def send_value(
        self,
        sender_secret: str,
        destination: str,
        amount: str,
        memo: str | None = None,
    ) -> str:
        """Send ``amount`` XRP to ``destination``.

        Args:
            sender_secret: Seed of the sending account.
            destination: Recipient r-address.
            amount: Positive decimal XRP amount ("25.5").
            memo: Optional plain-text memo.

        Returns:
            Hash of the validated payment.

        Raises:
            ValueError: On an invalid destination, amount, memo or seed.
            PaymentError: If the payment was rejected or never validated.
        """
        validate_address(destination, field="destination")
        amount_drops = amount_to_drops(amount)
        if memo and not validate_memo_size(memo):
            raise ValueError(f"memo exceeds {MAX_MEMO_BYTES} bytes")
        signer = self._signer_factory(sender_secret)
        attempts = 0

        async def attempt() -> str:
            nonlocal attempts
            attempts += 1
            client = await self._connections.acquire()
            return await submit_once(
                client,
                signer,
                lambda last_ledger: plan_payment(
                    signer.account,
                    destination,
                    amount_drops,
                    last_ledger_sequence=last_ledger,
                    memo=memo,
                ),
                ledger_margin=self._ledger_margin,
            )

        try:
            tx_hash = await retry_async(
                attempt,
                max_attempts=self._max_attempts,
                delay=self._retry_delay,
                is_retryable=is_retryable,
                sleep=self._sleep,
                label="payment",
            )
        except RetryExhausted as exc:
            raise PaymentError(
                f"payment failed after {exc.attempts} attempt(s): {exc.last_error}",
                attempts=exc.attempts,
                engine_result=_engine_result(exc.last_error),
                cause=exc.last_error,
            ) from exc.last_error
        except SubmissionFailed as exc:
            raise PaymentError(
                f"payment rejected: {exc}",
                attempts=attempts,
                engine_result=exc.result.engine_result,
                cause=exc,
            ) from exc
        except ValueError:
            raise
        except Exception as exc:
            raise PaymentError(
                f"payment failed: {exc}", attempts=attempts, cause=exc
            ) from exc

        logger.info(
            "payment %s validated: %s drops %s -> %s (attempt %d)",
            tx_hash, amount_drops, signer.account, destination, attempts,
        )
        return tx_hash
