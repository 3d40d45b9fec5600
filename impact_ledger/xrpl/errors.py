"""
XRPL error mapping — translates engine results into retry decisions and
messages a donor or NGO can act on.

Keeps the mapping coarse and conservative: most XRPL result codes map
to a small set of failure kinds by prefix, with a handful of codes
singled out where the prefix alone gives the wrong answer.

XRPL engine result prefixes:
    - tes: success (tesSUCCESS)
    - tec: claimed cost (tecUNFUNDED_PAYMENT, tecNO_DST, ...) — included, failed
    - tef: local failure (tefPAST_SEQ, tefMAX_LEDGER, ...) — not forwarded
    - tem: malformed (temBAD_AMOUNT, ...) — not forwarded
    - tel: local error (telINSUF_FEE_P, ...) — server-specific, transient
    - ter: retry (terQUEUED, terPRE_SEQ, ...) — maybe later

Reference:
    https://xrpl.org/docs/references/protocol/transactions/transaction-results
"""

from __future__ import annotations

import re
from enum import StrEnum

from impact_ledger.errors import ImpactLedgerError
from impact_ledger.xrpl.client import SUCCESS, SubmitResult


class FailureKind(StrEnum):
    """Why a submission did not produce a validated success."""

    TRANSIENT = "TRANSIENT"   # try again with a fresh transaction
    EXPIRED = "EXPIRED"       # LastLedgerSequence passed
    REJECTED = "REJECTED"     # will not succeed as requested
    MALFORMED = "MALFORMED"   # transaction shape rejected
    UNKNOWN = "UNKNOWN"


_PREFIX_MAP: dict[str, FailureKind] = {
    "tem": FailureKind.MALFORMED,
    "tef": FailureKind.TRANSIENT,
    "tec": FailureKind.REJECTED,
    "tel": FailureKind.TRANSIENT,
    "ter": FailureKind.TRANSIENT,
}

# Codes whose prefix would misclassify them.
_CODE_MAP: dict[str, FailureKind] = {
    "tefMAX_LEDGER": FailureKind.EXPIRED,
    "tefBAD_AUTH": FailureKind.REJECTED,
    "tefBAD_AUTH_MASTER": FailureKind.REJECTED,
    "tefMASTER_DISABLED": FailureKind.REJECTED,
}

_MESSAGES: dict[str, str] = {
    "tecUNFUNDED_PAYMENT": "insufficient funds to cover the amount and fee",
    "tecINSUFFICIENT_RESERVE": "insufficient XRP to meet the account reserve",
    "tecINSUF_RESERVE_LINE": "insufficient XRP to meet the account reserve",
    "tecNO_DST": "destination account does not exist",
    "tecNO_DST_INSUF_XRP": (
        "destination account does not exist and the amount is below "
        "the reserve needed to create it"
    ),
    "tecDST_TAG_NEEDED": "destination requires a destination tag",
    "tecNO_PERMISSION": "destination does not accept this payment",
    "tecPATH_DRY": "payment could not be delivered",
    "tecMAX_SEQUENCE_REACHED": "account cannot mint more NFTs",
    "temBAD_AMOUNT": "invalid amount",
    "temDST_IS_SRC": "destination is the sending account",
    "temINVALID": "invalid transaction",
    "temMALFORMED": "malformed transaction",
    "tefBAD_AUTH": "secret does not match the sending account",
    "tefBAD_AUTH_MASTER": "secret does not match the sending account",
    "tefMASTER_DISABLED": "account master key is disabled",
    "tefMAX_LEDGER": "transaction expired before it was validated",
    "tefPAST_SEQ": "account sequence changed; transaction was stale",
    "telINSUF_FEE_P": "network fee is temporarily too high",
    "terQUEUED": "transaction queued by the network",
    "terPRE_SEQ": "an earlier transaction from this account is still pending",
}

# Request errors meaning "node not ready", not "bad request".
TRANSIENT_REQUEST_ERRORS = frozenset(
    {"tooBusy", "noNetwork", "noCurrent", "noClosed", "slowDown"}
)

_ENGINE_CODE_RE = re.compile(r"\b(te[cfmlrs][A-Z_]+)\b")


class LedgerRequestError(ImpactLedgerError):
    """A node answered a request with an error status.

    Attributes:
        command: Request command (e.g. "account_nfts").
        error: XRPL error token (e.g. "actNotFound").
    """

    def __init__(self, command: str, error: str, message: str | None = None) -> None:
        detail = f"{command} failed: {error}"
        if message:
            detail = f"{detail} ({message})"
        super().__init__(detail)
        self.command = command
        self.error = error


class SubmissionFailed(ImpactLedgerError):
    """A single submission attempt ended without a validated success.

    Raised inside retry loops; the retry predicate decides from ``kind``
    whether another attempt is worthwhile.
    """

    def __init__(self, result: SubmitResult, kind: FailureKind) -> None:
        super().__init__(describe_submit_result(result))
        self.result = result
        self.kind = kind


# =========================================================================
# Classification
# =========================================================================


def classify_engine_result(engine_result: str | None) -> FailureKind:
    """Map an XRPL engine result code to a FailureKind.

    Args:
        engine_result: XRPL engine result string (e.g. "temBAD_FEE").
            None means the engine never responded.

    Returns:
        FailureKind. UNKNOWN for unrecognized codes, None, and
        tesSUCCESS (callers check success before classifying).
    """
    if engine_result is None or engine_result == SUCCESS:
        return FailureKind.UNKNOWN
    if engine_result in _CODE_MAP:
        return _CODE_MAP[engine_result]
    for prefix, kind in _PREFIX_MAP.items():
        if engine_result.startswith(prefix):
            return kind
    return FailureKind.UNKNOWN


def classify_submit_result(result: SubmitResult) -> FailureKind | None:
    """Classify a submit outcome. None means validated success."""
    if result.succeeded:
        return None
    if result.expired:
        return FailureKind.EXPIRED
    if result.validated:
        # Included in a ledger but failed (tec*): fee was claimed.
        return classify_engine_result(result.engine_result)
    if result.engine_result in (None, SUCCESS):
        # Provisionally applied but never seen validated.
        return FailureKind.TRANSIENT
    return classify_engine_result(result.engine_result)


def describe_engine_result(engine_result: str | None) -> str:
    """Actionable message for an engine result code."""
    if engine_result is None:
        return "no response from the ledger"
    return _MESSAGES.get(engine_result, engine_result)


def describe_submit_result(result: SubmitResult) -> str:
    """One-line explanation of why a submission did not succeed."""
    if result.expired:
        return describe_engine_result("tefMAX_LEDGER")
    if not result.validated and result.engine_result in (None, SUCCESS):
        return "transaction was not validated"
    message = describe_engine_result(result.engine_result)
    if result.engine_result and message != result.engine_result:
        message = f"{message} ({result.engine_result})"
    return message


def engine_code_from_text(text: str) -> str | None:
    """Extract the first engine result code mentioned in a message."""
    match = _ENGINE_CODE_RE.search(text)
    return match.group(1) if match else None


def is_retryable(exc: BaseException, *, retry_malformed: bool = False) -> bool:
    """Retry predicate for submission loops.

    Transport failures and transient/expired submissions are retried.
    Rejections are not. Malformed submissions are retried only when
    ``retry_malformed`` is set (minting, where a fresh autofill can fix
    a bad Sequence/Fee).
    """
    if isinstance(exc, SubmissionFailed):
        if exc.kind in (FailureKind.TRANSIENT, FailureKind.EXPIRED, FailureKind.UNKNOWN):
            return True
        return retry_malformed and exc.kind == FailureKind.MALFORMED
    if isinstance(exc, LedgerRequestError):
        return exc.error in TRANSIENT_REQUEST_ERRORS
    if isinstance(exc, (ValueError, TypeError)):
        return False
    return True
