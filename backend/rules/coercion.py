"""Value coercion for rule operators.

Answers arrive as whatever the questionnaire stored: numbers, numeric
strings, ISO dates, lists of selected options. Operators never compare raw
values directly; they coerce both sides here first and treat a failed
coercion as "not comparable" (the operator returns False).

Nothing in this module raises.
"""

from __future__ import annotations

import calendar
import math
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any

from utils.date_parser import parse_flexible_date, to_naive_utc

from .models import EvaluationContext

RELATIVE_DATE_TYPE = "relative"


def to_number(value: Any) -> float | None:
    """Coerce a value to a finite float, or None when it is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def to_date(value: Any) -> datetime | None:
    """Coerce a value to a naive UTC datetime, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        return parse_flexible_date(value)
    return None


def is_relative_date(value: Any) -> bool:
    return isinstance(value, dict) and "type" in value


def _offset(literal: dict[str, Any], key: str) -> int | None:
    raw = literal.get(key, 0)
    if raw is None:
        return 0
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    return None


def add_months(value: datetime, months: int) -> datetime:
    """Shift by calendar months, clamping to the last day of the target month."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def resolve_relative_date(
    literal: dict[str, Any], context: EvaluationContext
) -> datetime | None:
    """Resolve ``{"type": "relative", "days": -90, "from": "now"}``.

    ``from`` names the base: ``"now"`` (default) or a field looked up in the
    answers and then the metadata. ``"now"`` is taken at the start of the
    day, so date-only answers compare by calendar day. Offsets apply days,
    then months, then years.
    """
    if literal.get("type") != RELATIVE_DATE_TYPE:
        return None

    days = _offset(literal, "days")
    months = _offset(literal, "months")
    years = _offset(literal, "years")
    if days is None or months is None or years is None:
        return None

    source = literal.get("from")
    if source in (None, "now"):
        base = start_of_day(context.now)
    elif isinstance(source, str):
        base = to_date(context.lookup(source))
    else:
        base = None
    if base is None:
        return None

    try:
        result = base + timedelta(days=days)
        result = add_months(result, months)
        result = add_months(result, years * 12)
    except (OverflowError, ValueError):
        return None
    return result


def resolve_date_literal(value: Any, context: EvaluationContext) -> datetime | None:
    """Coerce a rule literal to a date, honouring relative date specs."""
    if is_relative_date(value):
        return resolve_relative_date(value, context)
    return to_date(value)


def fold_text(value: Any) -> str | None:
    """Case-folded string for case-insensitive matching; None for non-strings."""
    if isinstance(value, str):
        return value.casefold()
    return None
