"""
Receipt metadata schemas (JSON Schema, draft 2020-12).

Two receipt kinds share one field vocabulary; the impact kind adds a
recipient and a per-category breakdown of how the funds were spent:

    {
      "ngoId":        "rN7n...",           // counterpart organization id
      "ngoName":      "Acme Relief",
      "amount":       "25.5",              // XRP, decimal string
      "purpose":      "food",
      "category":     "food",
      "recipient":    "Field Operations Team",   // impact only (optional on donations)
      "txHash":       "E3FE6EA3...",       // payment that funded this record
      "timestamp":    1700000000000,       // epoch ms
      "impactWindow": 31104000000,         // ms the record counts toward impact
      "impactMetrics": [                   // impact only
        {"category": "food", "amount": "25.5", "percentage": 100,
         "description": "Funds allocated to Field Operations Team"}
      ]
    }

Each property schema carries its own ``default``. Two non-standard
keywords drive reconciliation (validators ignore them):

    - ``x-coerce``: how a wrong-typed value may be salvaged
      ("decimal-string" or "integer") before falling back to the default.
    - ``x-default``: a default that must be computed at repair time
      ("now" or "synthesized-metrics").

Taxon mapping: donation receipts are minted with NFTokenTaxon 0,
impact receipts with NFTokenTaxon 1.
"""

from __future__ import annotations

import copy
from enum import StrEnum
from typing import Any

# "12 months" as the original dashboards computed it: 12 x 30 days.
DEFAULT_IMPACT_WINDOW_MS = 12 * 30 * 24 * 60 * 60 * 1000

METRICS_FIELD = "impactMetrics"


class ReceiptKind(StrEnum):
    """Category of an NFT receipt."""

    DONATION = "donation"
    IMPACT = "impact"

    @property
    def taxon(self) -> int:
        """NFTokenTaxon used when minting this kind."""
        return _TAXON_BY_KIND[self]

    @classmethod
    def from_taxon(cls, taxon: int) -> ReceiptKind | None:
        """Receipt kind for an NFTokenTaxon, or None for foreign taxa."""
        for kind, value in _TAXON_BY_KIND.items():
            if value == taxon:
                return kind
        return None


_TAXON_BY_KIND: dict[ReceiptKind, int] = {
    ReceiptKind.DONATION: 0,
    ReceiptKind.IMPACT: 1,
}


# =========================================================================
# Property schemas
# =========================================================================

_DECIMAL_PATTERN = r"^[0-9]+(\.[0-9]+)?$"

_AMOUNT: dict[str, Any] = {
    "type": "string",
    "pattern": _DECIMAL_PATTERN,
    "default": "0",
    "x-coerce": "decimal-string",
}

_MILLIS: dict[str, Any] = {
    "type": "integer",
    "minimum": 0,
    "x-coerce": "integer",
}

METRIC_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["category", "amount", "percentage", "description"],
    "properties": {
        "category": {"type": "string", "default": "unknown"},
        "amount": _AMOUNT,
        "percentage": {"type": "number", "minimum": 0, "maximum": 100, "default": 0},
        "description": {"type": "string", "default": ""},
    },
}

_COMMON_PROPERTIES: dict[str, dict[str, Any]] = {
    "ngoId": {"type": "string", "default": ""},
    "ngoName": {"type": "string", "default": "Unknown"},
    "amount": _AMOUNT,
    "purpose": {"type": "string", "default": ""},
    "category": {"type": "string", "default": "unknown"},
    "recipient": {"type": "string", "default": "Unknown"},
    "txHash": {"type": "string", "default": ""},
    "timestamp": {**_MILLIS, "x-default": "now"},
    "impactWindow": {**_MILLIS, "default": DEFAULT_IMPACT_WINDOW_MS},
}

DONATION_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "Donation receipt metadata",
    "type": "object",
    "required": [
        "ngoId",
        "ngoName",
        "amount",
        "purpose",
        "category",
        "txHash",
        "timestamp",
        "impactWindow",
    ],
    "properties": _COMMON_PROPERTIES,
}

IMPACT_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "Impact receipt metadata",
    "type": "object",
    "required": [
        "ngoId",
        "ngoName",
        "amount",
        "purpose",
        "category",
        "recipient",
        "txHash",
        "timestamp",
        "impactWindow",
        METRICS_FIELD,
    ],
    "properties": {
        **_COMMON_PROPERTIES,
        METRICS_FIELD: {
            "type": "array",
            "minItems": 1,
            "items": METRIC_SCHEMA,
            "x-default": "synthesized-metrics",
        },
    },
}

_SCHEMAS: dict[ReceiptKind, dict[str, Any]] = {
    ReceiptKind.DONATION: DONATION_SCHEMA,
    ReceiptKind.IMPACT: IMPACT_SCHEMA,
}


def schema_for(kind: ReceiptKind | str) -> dict[str, Any]:
    """Return a copy of the metadata schema for a receipt kind.

    Raises:
        ValueError: If kind is not a known receipt kind.
    """
    return copy.deepcopy(_SCHEMAS[ReceiptKind(kind)])
