"""
Receipt metadata: schema, URI codec and read-path reconciliation.

Pure layer — no I/O. See ``schema`` for the payload format, ``codec`` for
the on-ledger encoding and ``reconcile`` for repair of legacy payloads.
"""

from impact_ledger.metadata.codec import (
    MAX_URI_BYTES,
    canonical_json,
    decode,
    encode,
    fits_uri,
    serialize,
)
from impact_ledger.metadata.reconcile import (
    DecodeWarning,
    ReconcileResult,
    ReconcileStatus,
    normalize_donation,
    normalize_impact,
    reconcile,
    shape_errors,
    synthesize_metrics,
)
from impact_ledger.metadata.schema import (
    DEFAULT_IMPACT_WINDOW_MS,
    DONATION_SCHEMA,
    IMPACT_SCHEMA,
    ReceiptKind,
    schema_for,
)

__all__ = [
    "DEFAULT_IMPACT_WINDOW_MS",
    "DONATION_SCHEMA",
    "DecodeWarning",
    "IMPACT_SCHEMA",
    "MAX_URI_BYTES",
    "ReceiptKind",
    "ReconcileResult",
    "ReconcileStatus",
    "canonical_json",
    "decode",
    "encode",
    "fits_uri",
    "normalize_donation",
    "normalize_impact",
    "reconcile",
    "schema_for",
    "serialize",
    "shape_errors",
    "synthesize_metrics",
]
