"""
Metadata codec — the NFT URI field as a hex-encoded JSON object.

Encoding:
    URI = upper(hex(utf8(canonical_json(metadata))))

    Canonical JSON (sorted keys, no whitespace, non-ASCII kept as UTF-8)
    makes the encoding deterministic: the same metadata always produces
    the same URI.

Decoding is total: anything that is not hex-encoded UTF-8 JSON *object*
decodes to ``{}``. Readers never see an exception from a bad URI.

Size:
    The XRPL caps NFTokenMint URI at 256 bytes (decoded). ``fits_uri()``
    checks a payload against that cap before submission.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping

logger = logging.getLogger(__name__)

# Maximum decoded URI length accepted by NFTokenMint.
MAX_URI_BYTES = 256


def canonical_json(obj: Any) -> str:
    """Serialize to canonical JSON: sorted keys, no whitespace, UTF-8."""
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def serialize(metadata: Mapping[str, Any]) -> bytes:
    """Canonical JSON bytes of a metadata payload."""
    return canonical_json(dict(metadata)).encode("utf-8")


def encode(metadata: Mapping[str, Any]) -> str:
    """Encode metadata for the NFT URI field (uppercase hex)."""
    return serialize(metadata).hex().upper()


def fits_uri(metadata: Mapping[str, Any]) -> bool:
    """True if the serialized payload fits in an NFTokenMint URI."""
    return len(serialize(metadata)) <= MAX_URI_BYTES


def decode(raw_field: str | None) -> dict[str, Any]:
    """Decode an NFT URI field into a metadata dict.

    Args:
        raw_field: Hex string from the NFT's ``URI`` field. May be None
            or empty for NFTs minted without a URI.

    Returns:
        The decoded JSON object, or ``{}`` if the field is empty, not
        hex, not UTF-8, not JSON, or not a JSON object.
    """
    if not raw_field:
        return {}

    try:
        text = bytes.fromhex(raw_field).decode("utf-8")
    except (ValueError, UnicodeDecodeError) as exc:
        logger.warning("NFT URI is not hex-encoded UTF-8: %s", exc)
        return {}

    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning("NFT URI does not contain JSON: %s", exc)
        return {}

    if not isinstance(value, dict):
        logger.warning(
            "NFT URI JSON is a %s, expected an object", type(value).__name__
        )
        return {}
    return value
