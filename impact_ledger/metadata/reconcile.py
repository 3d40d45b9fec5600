"""
Metadata reconciler — schema-with-defaults repair for receipt metadata.

Receipts are immutable on-ledger, so old or malformed payloads can never
be fixed at the source. Instead every read goes through ``reconcile()``,
which walks the receipt schema property by property:

    1. Value present and valid against its property schema → kept.
    2. Value present but invalid, and the property declares ``x-coerce``
       → salvaged if possible (e.g. ``10`` → ``"10"`` for amounts).
    3. Otherwise → replaced by the property default (static ``default``
       or computed ``x-default``), and a ``DecodeWarning`` is recorded.

Unknown keys are preserved untouched. Optional properties (those not in
the schema's ``required`` list) are only repaired when present.

The result is tagged: ``VALID`` when nothing had to change, ``REPAIRED``
with the list of warnings otherwise. Warnings are logged, never raised.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import StrEnum
from functools import lru_cache
from typing import Any, Callable, Mapping

from jsonschema import Draft202012Validator  # type: ignore[import-untyped]

from impact_ledger.metadata.schema import (
    METRIC_SCHEMA,
    METRICS_FIELD,
    ReceiptKind,
    schema_for,
)

logger = logging.getLogger(__name__)

_MISSING = object()


class ReconcileStatus(StrEnum):
    """Outcome tag of a reconciliation."""

    VALID = "valid"
    REPAIRED = "repaired"


@dataclass(frozen=True)
class DecodeWarning:
    """A non-fatal diagnostic: one field had to be coerced or defaulted.

    Attributes:
        field: Dotted path of the repaired field ("amount",
            "impactMetrics.0.percentage"), or "$" for the whole payload.
        reason: "missing", "invalid", "coerced" or "not an object".
        original_type: Python type name of the value that was replaced.
    """

    field: str
    reason: str
    original_type: str | None = None

    def __str__(self) -> str:
        if self.original_type is None:
            return f"{self.field} ({self.reason})"
        return f"{self.field} ({self.reason}, was {self.original_type})"


@dataclass(frozen=True)
class ReconcileResult:
    """A fully populated metadata record plus what it took to get there."""

    kind: ReceiptKind
    status: ReconcileStatus
    record: dict[str, Any]
    warnings: tuple[DecodeWarning, ...] = field(default_factory=tuple)

    @property
    def is_valid(self) -> bool:
        return self.status == ReconcileStatus.VALID


# =========================================================================
# Helpers
# =========================================================================


def _now_ms() -> int:
    return int(time.time() * 1000)


@lru_cache(maxsize=None)
def _document_validator(kind: ReceiptKind) -> Draft202012Validator:
    return Draft202012Validator(schema_for(kind))


def _is_valid(value: Any, subschema: Mapping[str, Any]) -> bool:
    return Draft202012Validator(dict(subschema)).is_valid(value)


def _format_decimal(value: int | float) -> str:
    if isinstance(value, int):
        return str(value)
    if value != value or value in (float("inf"), float("-inf")):
        raise ValueError("not a finite number")
    if value.is_integer():
        return str(int(value))
    return format(Decimal(repr(value)), "f")


def _coerce(value: Any, how: str | None) -> Any:
    """Salvage a wrong-typed value, or return _MISSING."""
    if isinstance(value, bool) or how is None:
        return _MISSING
    try:
        if how == "decimal-string":
            if isinstance(value, (int, float)) and value >= 0:
                return _format_decimal(value)
            if isinstance(value, str):
                parsed = Decimal(value.strip())
                if parsed.is_finite() and parsed >= 0:
                    return format(parsed.normalize(), "f")
        elif how == "integer":
            if isinstance(value, float) and value.is_integer() and value >= 0:
                return int(value)
            if isinstance(value, str) and value.strip().isdigit():
                return int(value.strip())
    except (ValueError, InvalidOperation):
        return _MISSING
    return _MISSING


def _default_for(
    subschema: Mapping[str, Any],
    record: Mapping[str, Any],
    now_ms: Callable[[], int],
) -> Any:
    computed = subschema.get("x-default")
    if computed == "now":
        return now_ms()
    if computed == "synthesized-metrics":
        return synthesize_metrics(record)
    return subschema.get("default")


def synthesize_metrics(record: Mapping[str, Any]) -> list[dict[str, Any]]:
    """One metric entry attributing the whole amount to the category."""
    return [
        {
            "category": record.get("category", "unknown"),
            "amount": record.get("amount", "0"),
            "percentage": 100,
            "description": f"Funds allocated to {record.get('recipient', 'Unknown')}",
        }
    ]


def _repair_properties(
    source: Mapping[str, Any],
    target: dict[str, Any],
    properties: Mapping[str, Mapping[str, Any]],
    required: set[str],
    *,
    prefix: str,
    now_ms: Callable[[], int],
    warnings: list[DecodeWarning],
    skip: frozenset[str] = frozenset(),
) -> None:
    for name, subschema in properties.items():
        if name in skip:
            continue
        value = source.get(name, _MISSING)
        path = f"{prefix}{name}"

        if value is _MISSING:
            if name not in required:
                continue
            target[name] = _default_for(subschema, target, now_ms)
            warnings.append(DecodeWarning(path, "missing"))
            continue

        if _is_valid(value, subschema):
            continue

        original_type = type(value).__name__
        coerced = _coerce(value, subschema.get("x-coerce"))
        if coerced is not _MISSING and _is_valid(coerced, subschema):
            target[name] = coerced
            warnings.append(DecodeWarning(path, "coerced", original_type))
        else:
            target[name] = _default_for(subschema, target, now_ms)
            warnings.append(DecodeWarning(path, "invalid", original_type))


def _repair_metrics(
    value: Any,
    record: Mapping[str, Any],
    *,
    now_ms: Callable[[], int],
    warnings: list[DecodeWarning],
) -> list[dict[str, Any]]:
    if value is _MISSING:
        warnings.append(DecodeWarning(METRICS_FIELD, "missing"))
        return synthesize_metrics(record)
    if not isinstance(value, list) or not value:
        warnings.append(
            DecodeWarning(METRICS_FIELD, "invalid", type(value).__name__)
        )
        return synthesize_metrics(record)

    properties = METRIC_SCHEMA["properties"]
    required = set(METRIC_SCHEMA["required"])
    repaired: list[dict[str, Any]] = []
    for index, item in enumerate(value):
        if not isinstance(item, dict):
            warnings.append(
                DecodeWarning(
                    f"{METRICS_FIELD}.{index}", "not an object", type(item).__name__
                )
            )
            continue
        entry = dict(item)
        _repair_properties(
            item,
            entry,
            properties,
            required,
            prefix=f"{METRICS_FIELD}.{index}.",
            now_ms=now_ms,
            warnings=warnings,
        )
        repaired.append(entry)

    if not repaired:
        return synthesize_metrics(record)
    return repaired


# =========================================================================
# Public API
# =========================================================================


def reconcile(
    raw: Any,
    kind: ReceiptKind | str,
    *,
    now_ms: Callable[[], int] | None = None,
) -> ReconcileResult:
    """Normalize a decoded metadata payload into a complete record.

    Args:
        raw: Decoded metadata (normally the output of ``codec.decode``).
            Any value is accepted; non-dicts are treated as ``{}``.
        kind: Receipt kind whose schema the record must satisfy.
        now_ms: Clock for the ``timestamp`` default (epoch ms). Inject
            for deterministic tests.

    Returns:
        ReconcileResult whose ``record`` has every schema field defined.
    """
    kind = ReceiptKind(kind)
    now_ms = now_ms or _now_ms
    warnings: list[DecodeWarning] = []

    if isinstance(raw, Mapping):
        source: Mapping[str, Any] = raw
    else:
        warnings.append(DecodeWarning("$", "not an object", type(raw).__name__))
        source = {}

    schema = schema_for(kind)
    properties = schema["properties"]
    record: dict[str, Any] = dict(source)

    _repair_properties(
        source,
        record,
        properties,
        set(schema["required"]),
        prefix="",
        now_ms=now_ms,
        warnings=warnings,
        skip=frozenset({METRICS_FIELD}),
    )
    if METRICS_FIELD in properties:
        record[METRICS_FIELD] = _repair_metrics(
            source.get(METRICS_FIELD, _MISSING),
            record,
            now_ms=now_ms,
            warnings=warnings,
        )

    if warnings:
        logger.warning(
            "%s metadata repaired; defaulted fields: %s",
            kind.value,
            ", ".join(str(w) for w in warnings),
        )
        return ReconcileResult(
            kind=kind,
            status=ReconcileStatus.REPAIRED,
            record=record,
            warnings=tuple(warnings),
        )
    return ReconcileResult(kind=kind, status=ReconcileStatus.VALID, record=record)


def normalize_impact(
    raw: Any, *, now_ms: Callable[[], int] | None = None
) -> dict[str, Any]:
    """Fully populated impact record. Never raises."""
    return reconcile(raw, ReceiptKind.IMPACT, now_ms=now_ms).record


def normalize_donation(
    raw: Any, *, now_ms: Callable[[], int] | None = None
) -> dict[str, Any]:
    """Fully populated donation record. Never raises."""
    return reconcile(raw, ReceiptKind.DONATION, now_ms=now_ms).record


def shape_errors(metadata: Any, kind: ReceiptKind | str) -> list[str]:
    """List schema violations of a payload, as "path: message" strings.

    Used on the write path, where problems are reported but not repaired.
    """
    validator = _document_validator(ReceiptKind(kind))
    errors = sorted(
        validator.iter_errors(metadata), key=lambda e: [str(p) for p in e.path]
    )
    messages: list[str] = []
    for error in errors:
        path = ".".join(str(p) for p in error.path) or "$"
        messages.append(f"{path}: {error.message}")
    return messages
