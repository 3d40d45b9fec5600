"""
Error taxonomy for impact-ledger.

Every failure the core surfaces to callers is an ``ImpactLedgerError``:

    - ``LedgerConnectionError`` — network unreachable after retries/fallback.
    - ``PaymentError`` — value transfer failed after retries.
    - ``MintError`` — NFT receipt minting failed after retries.
    - ``FetchError`` — NFT listing failed after retries. Carried inside a
      ``FetchResult`` by the query layer, never raised by it.

``RetryExhausted`` is raised by the retry combinator and is translated
into one of the typed errors above by each component.

Malformed metadata is never an error: see ``DecodeWarning`` in
``impact_ledger.metadata.reconcile``.
"""

from __future__ import annotations


class ImpactLedgerError(Exception):
    """Base class for all impact-ledger failures."""


class LedgerConnectionError(ImpactLedgerError):
    """No ledger endpoint could be reached.

    Attributes:
        urls: Endpoints that were tried, in order.
    """

    def __init__(self, message: str, *, urls: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.urls = urls


class _SubmissionError(ImpactLedgerError):
    """Shared shape for payment and mint failures.

    Attributes:
        attempts: Number of submission attempts made.
        engine_result: Last XRPL engine result seen, if any.
        cause: Last underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        attempts: int = 0,
        engine_result: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.engine_result = engine_result
        self.cause = cause


class PaymentError(_SubmissionError):
    """A payment was not validated after exhausting retries."""


class MintError(_SubmissionError):
    """An NFT receipt was not minted after exhausting retries."""


class FetchError(ImpactLedgerError):
    """Listing NFTs for an account failed after exhausting retries.

    Attributes:
        address: Account whose NFTs were requested.
        attempts: Number of fetch attempts made.
        cause: Last underlying exception.
    """

    def __init__(
        self,
        message: str,
        *,
        address: str,
        attempts: int = 0,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.address = address
        self.attempts = attempts
        self.cause = cause


class RetryExhausted(ImpactLedgerError):
    """An operation kept failing until the attempt budget ran out.

    Attributes:
        attempts: Attempts made (== max_attempts unless a non-retryable
            error stopped the loop early).
        last_error: The exception raised by the final attempt.
    """

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"gave up after {attempts} attempt(s): {last_error}")
        self.attempts = attempts
        self.last_error = last_error
