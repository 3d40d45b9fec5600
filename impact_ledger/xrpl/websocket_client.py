"""
XRPL websocket client — real network implementation of LedgerClient.

Wraps xrpl-py's ``AsyncWebsocketClient`` and translates its responses and
exceptions into the shapes the core expects:

    - ``request()`` returns the ``result`` dict or raises
      ``LedgerRequestError``.
    - ``submit_and_wait()`` returns a ``SubmitResult``; xrpl-py's
      ``XRPLReliableSubmissionException`` becomes an unvalidated result
      (expired if LastLedgerSequence passed).
    - Transport failures are re-raised after notifying listeners:
      ``disconnected`` if the socket is no longer open, ``error`` otherwise.

xrpl-py does not publish connection events itself, so they are derived
from failures observed on this client.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from xrpl.asyncio.clients import AsyncWebsocketClient
from xrpl.asyncio.transaction import (
    XRPLReliableSubmissionException,
    autofill,
    submit_and_wait,
)
from xrpl.models.requests import Request
from xrpl.models.transactions.transaction import Transaction

from impact_ledger.xrpl.client import EventHandler, LedgerEvent, SubmitResult
from impact_ledger.xrpl.errors import LedgerRequestError, engine_code_from_text

logger = logging.getLogger(__name__)


class XrplWebsocketClient:
    """LedgerClient over a single xrpl-py websocket connection.

    Args:
        url: Websocket endpoint (e.g. "wss://s.altnet.rippletest.net:51233").
        connect_timeout: Seconds to wait for the socket to open.
    """

    def __init__(self, url: str, *, connect_timeout: float = 10.0) -> None:
        self._url = url
        self._connect_timeout = connect_timeout
        self._client = AsyncWebsocketClient(url)
        self._handlers: dict[LedgerEvent, list[EventHandler]] = {
            event: [] for event in LedgerEvent
        }

    @property
    def url(self) -> str:
        return self._url

    async def open(self) -> None:
        await asyncio.wait_for(self._client.open(), timeout=self._connect_timeout)

    async def close(self) -> None:
        if self._client.is_open():
            await self._client.close()

    def is_open(self) -> bool:
        return self._client.is_open()

    def on(self, event: LedgerEvent, handler: EventHandler) -> None:
        self._handlers[LedgerEvent(event)].append(handler)

    # -----------------------------------------------------------------
    # LedgerClient protocol methods
    # -----------------------------------------------------------------

    async def request(
        self, command: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        req = Request.from_dict({"method": command, **(params or {})})
        try:
            response = await self._client.request(req)
        except Exception as exc:
            self._notify_failure(exc)
            raise

        result: dict[str, Any] = dict(response.result)
        if not response.is_successful():
            raise LedgerRequestError(
                command,
                str(result.get("error", "unknown")),
                result.get("error_message"),
            )
        return result

    async def autofill(self, tx: dict[str, Any]) -> dict[str, Any]:
        transaction = Transaction.from_xrpl(tx)
        try:
            filled = await autofill(transaction, self._client)
        except Exception as exc:
            self._notify_failure(exc)
            raise
        return filled.to_xrpl()

    async def submit_and_wait(self, signed_tx_blob_hex: str) -> SubmitResult:
        try:
            response = await submit_and_wait(signed_tx_blob_hex, self._client)
        except XRPLReliableSubmissionException as exc:
            return _failed_submission(str(exc))
        except Exception as exc:
            self._notify_failure(exc)
            raise
        return _parse_validated_response(response.result)

    # -----------------------------------------------------------------
    # Events
    # -----------------------------------------------------------------

    def _notify_failure(self, exc: BaseException) -> None:
        event = LedgerEvent.ERROR if self.is_open() else LedgerEvent.DISCONNECTED
        logger.debug("%s on %s: %s", event.value, self._url, exc)
        for handler in list(self._handlers[event]):
            handler(exc)


# =====================================================================
# Response parsing (pure functions, no I/O)
# =====================================================================


def _failed_submission(message: str) -> SubmitResult:
    """SubmitResult for an XRPLReliableSubmissionException message."""
    return SubmitResult(
        validated=False,
        engine_result=engine_code_from_text(message),
        expired="LastLedgerSequence" in message,
        detail=message,
    )


def _parse_validated_response(result: dict[str, Any]) -> SubmitResult:
    """Parse the tx result returned by xrpl-py's submit_and_wait."""
    engine_result = None
    meta = result.get("meta")
    if isinstance(meta, dict):
        engine_result = meta.get("TransactionResult")

    tx_hash = result.get("hash")
    if tx_hash is None and isinstance(result.get("tx_json"), dict):
        tx_hash = result["tx_json"].get("hash")

    validated = bool(result.get("validated", False))
    ledger_index = result.get("ledger_index")
    return SubmitResult(
        validated=validated,
        tx_hash=tx_hash,
        engine_result=engine_result,
        ledger_index=ledger_index if validated else None,
    )
