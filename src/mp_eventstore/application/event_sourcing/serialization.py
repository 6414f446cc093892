"""Application event sourcing – JSON object encoding shared by the stores."""

from __future__ import annotations

import json
from typing import Any

from mp_eventstore.kernel.errors import ValidationError


def dumps_object(value: Any, field: str) -> str:
    """Encode *value* as compact JSON text, requiring a JSON object.

    Raises :class:`ValidationError` for non-dicts and values that are not
    JSON-serialisable (sets, datetimes, NaN, …).
    """
    if not isinstance(value, dict):
        raise ValidationError(
            f"{field} must be a JSON object, got {type(value).__name__}",
            errors=[{"field": field, "reason": "not_an_object"}],
        )
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise ValidationError(
            f"{field} is not JSON-serialisable: {exc}",
            errors=[{"field": field, "reason": "not_json"}],
        ) from exc


def loads_object(raw: str | bytes | None) -> dict[str, Any]:
    """Decode JSON text that must hold an object.

    Raises :class:`ValueError` when the text is not valid JSON or not an object.
    """
    if raw is None:
        raise ValueError("missing JSON document")
    value = json.loads(raw)
    if not isinstance(value, dict):
        raise ValueError(f"expected a JSON object, got {type(value).__name__}")
    return value


__all__ = ["dumps_object", "loads_object"]
