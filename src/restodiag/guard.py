"""Input guard: coerce raw survey payloads into clean :class:`SurveyRecord` objects.

Survey exports arrive as loosely typed mappings (form posts, CSV rows, JSON
documents). Every numeric field is coerced to a finite float; fields used as
denominators downstream are never allowed to be zero.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Mapping, Optional, Tuple

import pandas as pd

from .models import CATEGORICAL_FIELDS, NUMERIC_FIELDS, SurveyRecord


logger = logging.getLogger("restodiag.guard")

DENOMINATOR_FIELDS: Tuple[str, ...] = ("seats", "store_area", "total_customers")

_TRUTHY = {"1", "true", "yes", "y", "是", "有"}


def to_number(value: Any) -> float:
    """Return ``value`` as a finite float, or 0.0 when it cannot be read as one."""
    if value is None or isinstance(value, bool):
        return float(value) if isinstance(value, bool) else 0.0
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return 0.0
    try:
        number = float(pd.to_numeric(value, errors="coerce"))
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def safe_div(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Divide, returning ``default`` for a zero denominator or a non-finite quotient."""
    if not denominator:
        return default
    result = numerator / denominator
    if not math.isfinite(result):
        return default
    return result


def _to_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return to_number(value) > 0


def _is_missing(raw: Mapping[str, Any], name: str) -> bool:
    if name not in raw:
        return True
    value = raw[name]
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def guard_record(raw: Optional[Mapping[str, Any]]) -> SurveyRecord:
    """Build a :class:`SurveyRecord` from an untrusted mapping.

    Missing or unreadable numbers become 0; ``seats``, ``store_area`` and
    ``total_customers`` become 1 when missing or zero. Categorical labels fall
    back to their ``OTHER``/``UNKNOWN`` member. Never raises on bad data.
    """
    raw = raw or {}
    values: dict[str, Any] = {}
    defaulted: set[str] = set()

    for name in NUMERIC_FIELDS:
        number = to_number(raw.get(name))
        if _is_missing(raw, name) or (number == 0.0 and not _looks_like_zero(raw.get(name))):
            defaulted.add(name)
        if name in DENOMINATOR_FIELDS and number == 0.0:
            number = 1.0
            defaulted.add(name)
        values[name] = number

    negatives = [name for name in NUMERIC_FIELDS if values[name] < 0]
    if negatives:
        logger.warning("Negative survey values kept as-is: %s", ", ".join(sorted(negatives)))

    month = int(to_number(raw.get("survey_month")))
    values["survey_month"] = month if 1 <= month <= 12 else 0
    values["has_manager"] = _to_flag(raw.get("has_manager"))

    for name, enum_cls in CATEGORICAL_FIELDS.items():
        member = enum_cls.parse(raw.get(name))
        if member is enum_cls.fallback() and raw.get(name) not in (member, member.value, member.label):
            defaulted.add(name)
        values[name] = member

    store_name = raw.get("store_name")
    values["store_name"] = "" if _is_missing(raw, "store_name") else str(store_name)

    if defaulted:
        logger.debug("Defaulted survey fields: %s", ", ".join(sorted(defaulted)))
    return SurveyRecord(defaulted_fields=frozenset(defaulted), **values)


def _looks_like_zero(value: Any) -> bool:
    """True when the raw value is an explicit zero rather than unreadable input."""
    if isinstance(value, bool):
        return not value
    if pd.api.types.is_number(value):
        return bool(value == 0)
    if isinstance(value, str):
        try:
            return float(value.strip().replace(",", "")) == 0.0
        except ValueError:
            return False
    return False


def default_record() -> SurveyRecord:
    """The single default record used when no survey data is available."""
    return guard_record({})
