"""
Tests for XRPL engine result classification and retry decisions.

Test plan:
- Prefix mapping: tem → MALFORMED, tec → REJECTED, tef/tel/ter → TRANSIENT
- Code overrides: tefMAX_LEDGER → EXPIRED, bad auth → REJECTED
- Submit results: success → None, expired, provisional-but-unvalidated
- Messages: actionable text for common codes, code appended
- engine_code_from_text: extracts codes from xrpl-py messages
- is_retryable: transient/expired retried, rejected not, malformed only
  when enabled, request errors by token, ValueError never
"""

from __future__ import annotations

import pytest

from impact_ledger.xrpl.client import SubmitResult
from impact_ledger.xrpl.errors import (
    FailureKind,
    LedgerRequestError,
    SubmissionFailed,
    classify_engine_result,
    classify_submit_result,
    describe_engine_result,
    describe_submit_result,
    engine_code_from_text,
    is_retryable,
)


class TestClassifyEngineResult:
    @pytest.mark.parametrize(
        ("code", "kind"),
        [
            ("temBAD_AMOUNT", FailureKind.MALFORMED),
            ("temMALFORMED", FailureKind.MALFORMED),
            ("tecUNFUNDED_PAYMENT", FailureKind.REJECTED),
            ("tecNO_DST", FailureKind.REJECTED),
            ("tefPAST_SEQ", FailureKind.TRANSIENT),
            ("telINSUF_FEE_P", FailureKind.TRANSIENT),
            ("terQUEUED", FailureKind.TRANSIENT),
            ("tefMAX_LEDGER", FailureKind.EXPIRED),
            ("tefBAD_AUTH", FailureKind.REJECTED),
            ("tefMASTER_DISABLED", FailureKind.REJECTED),
            ("xyzSOMETHING", FailureKind.UNKNOWN),
            (None, FailureKind.UNKNOWN),
        ],
    )
    def test_mapping(self, code: str | None, kind: FailureKind) -> None:
        assert classify_engine_result(code) == kind


class TestClassifySubmitResult:
    def test_success(self) -> None:
        result = SubmitResult(validated=True, engine_result="tesSUCCESS")
        assert result.succeeded
        assert classify_submit_result(result) is None

    def test_expired(self) -> None:
        result = SubmitResult(validated=False, expired=True)
        assert classify_submit_result(result) == FailureKind.EXPIRED

    def test_applied_but_not_validated(self) -> None:
        result = SubmitResult(validated=False, engine_result="tesSUCCESS")
        assert not result.succeeded
        assert classify_submit_result(result) == FailureKind.TRANSIENT

    def test_validated_failure(self) -> None:
        result = SubmitResult(validated=True, engine_result="tecUNFUNDED_PAYMENT")
        assert classify_submit_result(result) == FailureKind.REJECTED

    def test_rejected_before_inclusion(self) -> None:
        result = SubmitResult(validated=False, engine_result="temBAD_AMOUNT")
        assert classify_submit_result(result) == FailureKind.MALFORMED


class TestDescribe:
    def test_insufficient_funds(self) -> None:
        assert "insufficient funds" in describe_engine_result("tecUNFUNDED_PAYMENT")

    def test_unknown_code_echoed(self) -> None:
        assert describe_engine_result("tecFOO") == "tecFOO"

    def test_no_response(self) -> None:
        assert describe_engine_result(None) == "no response from the ledger"

    def test_submit_result_appends_code(self) -> None:
        result = SubmitResult(validated=True, engine_result="tecNO_DST")
        assert describe_submit_result(result) == (
            "destination account does not exist (tecNO_DST)"
        )

    def test_submit_result_expired(self) -> None:
        message = describe_submit_result(SubmitResult(validated=False, expired=True))
        assert "expired" in message


class TestEngineCodeFromText:
    def test_extracts(self) -> None:
        text = "Transaction failed: tecUNFUNDED_PAYMENT, insufficient XRP"
        assert engine_code_from_text(text) == "tecUNFUNDED_PAYMENT"

    def test_none(self) -> None:
        assert engine_code_from_text("The latest ledger sequence is greater") is None


class TestIsRetryable:
    @staticmethod
    def _failed(kind: FailureKind) -> SubmissionFailed:
        return SubmissionFailed(SubmitResult(validated=False), kind)

    @pytest.mark.parametrize(
        "kind", [FailureKind.TRANSIENT, FailureKind.EXPIRED, FailureKind.UNKNOWN]
    )
    def test_transient_kinds(self, kind: FailureKind) -> None:
        assert is_retryable(self._failed(kind))

    def test_rejected(self) -> None:
        assert not is_retryable(self._failed(FailureKind.REJECTED))
        assert not is_retryable(self._failed(FailureKind.REJECTED), retry_malformed=True)

    def test_malformed_opt_in(self) -> None:
        assert not is_retryable(self._failed(FailureKind.MALFORMED))
        assert is_retryable(self._failed(FailureKind.MALFORMED), retry_malformed=True)

    def test_request_errors(self) -> None:
        assert is_retryable(LedgerRequestError("account_nfts", "tooBusy"))
        assert not is_retryable(LedgerRequestError("account_nfts", "actNotFound"))

    def test_transport_errors(self) -> None:
        assert is_retryable(ConnectionResetError())
        assert is_retryable(TimeoutError())

    def test_caller_errors(self) -> None:
        assert not is_retryable(ValueError("bad"))
        assert not is_retryable(TypeError("bad"))

    def test_request_error_message(self) -> None:
        exc = LedgerRequestError("account_nfts", "actNotFound", "Account not found.")
        assert str(exc) == "account_nfts failed: actNotFound (Account not found.)"
        assert exc.error == "actNotFound"
