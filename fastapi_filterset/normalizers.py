"""Normalization rules applied to raw filter values before a builder sees them.

A normalizer takes one raw value (usually a string from the query string) and
returns the value the builder works with. Normalizers raise ``ValueError`` or
``TypeError`` on malformed input; the registry turns those into
``ValidationError`` tagged with the filter name.
"""

from datetime import date, datetime
from typing import Any, Callable, List, Optional, Tuple

from dateutil.parser import parse

Normalizer = Callable[[Any], Any]

_TRUE_VALUES = {"true", "1", "t", "yes", "y", "on"}
_FALSE_VALUES = {"false", "0", "f", "no", "n", "off"}


def is_blank(value: Any) -> bool:
    """
    Check whether a raw value means "no filter".

    None, empty or whitespace-only strings, and collections holding only
    blank items are blank. ``False`` and ``0`` are real values.

    Args:
        value: Raw filter value

    Returns:
        bool: True if the value should be treated as absent
    """
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, frozenset)):
        return all(is_blank(item) for item in value)
    return False


def as_list(value: Any) -> List[Any]:
    """
    Normalize a scalar or a collection to a list of non-blank items.

    Strings are never split; a single id arrives as ``"3"`` and several as
    ``["3", "4"]``.

    Args:
        value: Scalar or collection

    Returns:
        List[Any]: Non-blank items in their original order
    """
    if isinstance(value, (list, tuple, set, frozenset)):
        items = list(value)
    else:
        items = [value]
    return [
        item.strip() if isinstance(item, str) else item for item in items if not is_blank(item)
    ]


def to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError("expected an integer")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        raise ValueError("expected an integer") from None


def to_float(value: Any) -> float:
    try:
        return float(str(value).strip())
    except ValueError:
        raise ValueError("expected a number") from None


def to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError("expected a boolean")


def to_datetime(value: Any) -> datetime:
    """
    Parse a date/time value.

    ISO 8601 is tried first, then dateutil's lenient parser (``"2024-01-15"``,
    ``"Jan 15 2024"``, ``"01/15/2024"``).
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    try:
        return parse(text)
    except (ValueError, OverflowError):
        raise ValueError("expected a date or datetime") from None


def to_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return to_datetime(value).date()


def one_of(*choices: str) -> Normalizer:
    """Accept only the given string values (compared case-insensitively)."""
    allowed = {choice.lower(): choice for choice in choices}

    def _normalize(value: Any) -> str:
        text = str(value).strip().lower()
        if text not in allowed:
            raise ValueError(f"expected one of: {', '.join(choices)}")
        return allowed[text]

    return _normalize


def interval(bound: Normalizer, separator: str = ",") -> Normalizer:
    """
    Parse ``"start,end"`` into a ``(start, end)`` tuple for a semi-open interval.

    Either side may be empty (``"2024-01-01,"``), meaning unbounded on that side.

    Example:
        registry.register("created_between", within(Student.created_at),
                          normalizer=interval(to_datetime))
    """

    def _normalize(value: Any) -> Tuple[Optional[Any], Optional[Any]]:
        parts = str(value).split(separator)
        if len(parts) != 2:
            raise ValueError(f"expected 'start{separator}end'")
        start, end = (None if is_blank(part) else bound(part) for part in parts)
        if start is None and end is None:
            raise ValueError("at least one of start or end is required")
        if start is not None and end is not None and end < start:
            raise ValueError("end must not be before start")
        return start, end

    return _normalize
