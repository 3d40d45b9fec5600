"""
Plain-text payment memos.

A donation payment carries its purpose as a human-readable memo so that
any explorer shows it next to the transfer:

    {"Memo": {"MemoData":   hex(utf8(text)),
              "MemoFormat": hex("text/plain")}}

Hex is uppercase, matching what rippled returns. Memos are limited to
1 KB per transaction by the ledger; we check the decoded text against
that before building a transaction.
"""

from __future__ import annotations

from typing import Any

MEMO_FORMAT = "text/plain"

MEMO_FORMAT_HEX = MEMO_FORMAT.encode("utf-8").hex().upper()

# Ledger limit on the serialized Memos field, in bytes.
MAX_MEMO_BYTES = 1024


def encode_text(text: str) -> str:
    """Hex-encode text for a MemoData/MemoFormat field."""
    return text.encode("utf-8").hex().upper()


def validate_memo_size(text: str) -> bool:
    """True if the memo text fits within MAX_MEMO_BYTES."""
    return len(text.encode("utf-8")) <= MAX_MEMO_BYTES


def build_text_memo(text: str) -> dict[str, Any]:
    """Build one Memos entry holding plain text.

    Raises:
        ValueError: If text is empty or exceeds MAX_MEMO_BYTES.
    """
    if not text:
        raise ValueError("memo text must be non-empty")
    if not validate_memo_size(text):
        raise ValueError(f"memo text exceeds {MAX_MEMO_BYTES} bytes")
    return {
        "Memo": {
            "MemoData": encode_text(text),
            "MemoFormat": MEMO_FORMAT_HEX,
        }
    }


def read_text_memos(tx: dict[str, Any]) -> list[str]:
    """Decode the plain-text memos of a transaction dict.

    Memos with another MemoFormat, or undecodable data, are skipped.
    """
    texts: list[str] = []
    for entry in tx.get("Memos") or []:
        memo = entry.get("Memo", {}) if isinstance(entry, dict) else {}
        if memo.get("MemoFormat", "").upper() != MEMO_FORMAT_HEX:
            continue
        try:
            texts.append(bytes.fromhex(memo.get("MemoData", "")).decode("utf-8"))
        except (ValueError, UnicodeDecodeError):
            continue
    return texts
