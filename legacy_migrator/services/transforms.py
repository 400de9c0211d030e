"""Built-in value transforms for declarative field mappings.

Each transform takes a single source value and returns the target value.
None passes through untouched. A value that cannot be converted raises
ValueError, which the field mapper reports as a mapping failure for that
record.
"""

import re
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

from dateutil import parser as date_parser

Transform = Callable[[Any], Any]

TRUE_STRINGS = {"true", "t", "yes", "y", "1", "on"}
FALSE_STRINGS = {"false", "f", "no", "n", "0", "off"}


def direct(value: Any) -> Any:
    return value


def strip(value: Any) -> Any:
    if value is None:
        return None
    return str(value).strip()


def blank_to_none(value: Any) -> Any:
    """Turn empty or whitespace-only strings into None."""
    if isinstance(value, str) and not value.strip():
        return None
    return value


def lowercase(value: Any) -> Any:
    if value is None:
        return None
    return str(value).lower()


def uppercase(value: Any) -> Any:
    if value is None:
        return None
    return str(value).upper()


def truncate(max_length: int = 255) -> Transform:
    """Build a transform that cuts strings to max_length characters."""
    def _truncate(value: Any) -> Any:
        if value is None:
            return None
        return str(value)[:max_length]
    return _truncate


def to_int(value: Any) -> Optional[int]:
    value = blank_to_none(value)
    if value is None:
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"{value!r} is not a whole number")
        return int(value)
    return int(str(value).strip())


def to_float(value: Any) -> Optional[float]:
    value = blank_to_none(value)
    if value is None:
        return None
    return float(value)


def to_decimal(value: Any) -> Optional[Decimal]:
    value = blank_to_none(value)
    if value is None:
        return None
    return Decimal(str(value).strip())


def to_bool(value: Any) -> Optional[bool]:
    value = blank_to_none(value)
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)

    text = str(value).strip().lower()
    if text in TRUE_STRINGS:
        return True
    if text in FALSE_STRINGS:
        return False
    raise ValueError(f"Cannot interpret {value!r} as a boolean")


def to_datetime(value: Any) -> Optional[datetime]:
    """Parse legacy timestamps: ISO strings, loose date strings or Unix seconds."""
    value = blank_to_none(value)
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, timezone.utc)
    return date_parser.parse(str(value))


def to_date(value: Any) -> Optional[date]:
    parsed = to_datetime(value)
    return parsed.date() if parsed is not None else None


def clean_phone(value: Any) -> Optional[str]:
    """Strip phone number formatting."""
    digits = re.sub(r"[^\d+]", "", str(value)) if value is not None else ""
    if not digits:
        return None
    # More than ten bare digits carry a country code
    if len(digits) > 10 and digits[0] != "+":
        return "+" + digits
    return digits


BUILTIN_TRANSFORMS: Dict[str, Transform] = {
    "direct": direct,
    "strip": strip,
    "blank_to_none": blank_to_none,
    "lowercase": lowercase,
    "uppercase": uppercase,
    "truncate": truncate(),
    "to_int": to_int,
    "to_float": to_float,
    "to_decimal": to_decimal,
    "to_bool": to_bool,
    "to_date": to_date,
    "to_datetime": to_datetime,
    "clean_phone": clean_phone,
}


def get_transform(name: str, **config: Any) -> Transform:
    """
    Look up a built-in transform by name.

    Args:
        name: Transform name, e.g. "to_int"
        **config: Options for configurable transforms (truncate: max_length)

    Raises:
        KeyError: If no transform has that name
    """
    if name == "truncate" and config:
        return truncate(int(config.get("max_length", 255)))
    return BUILTIN_TRANSFORMS[name]
