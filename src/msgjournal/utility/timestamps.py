"""
Timestamp conversions for journal storage, filtering and display.

Three representations are in play:
- Python ``datetime`` values, always timezone-aware and in UTC once accepted.
- The storage form, ``YYYY-MM-DD HH:MM:SS.ffffff`` in UTC. It is fixed width,
  so SQLite text comparison orders it chronologically.
- The display form, ``YYYY-MM-DD HH:MM:SS[.ffffff] +0000 UTC``, which does not
  depend on locale and can be pasted back into a ``--since`` filter.
"""
from datetime import datetime, timezone
from typing import Union

# Year is formatted separately: %Y is not zero-padded below 1000 on every platform
STORAGE_FORMAT = "%m-%d %H:%M:%S.%f"
DISPLAY_FORMAT = "%m-%d %H:%M:%S"

# Display forms accepted back as filter input, most specific first
_DISPLAY_FORMATS = (
    "%Y-%m-%d %H:%M:%S.%f %z %Z",
    "%Y-%m-%d %H:%M:%S %z %Z",
    "%Y-%m-%d %H:%M:%S.%f %z",
    "%Y-%m-%d %H:%M:%S %z",
)


def ensure_utc(value: datetime) -> datetime:
    """Return value as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    try:
        return value.astimezone(timezone.utc)
    except OverflowError as e:
        raise ValueError(f"Timestamp out of range in UTC: {value.isoformat()}") from e


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """
    Parse a caller-supplied timestamp.

    Accepts datetimes, ISO 8601 strings (a trailing ``Z`` is allowed) and the
    journal's own display form.

    Raises:
        ValueError: If the value cannot be interpreted as a timestamp
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if not isinstance(value, str):
        raise ValueError(f"Unsupported timestamp type: {type(value).__name__}")

    text = value.strip()
    if not text:
        raise ValueError("Timestamp is empty")

    for fmt in _DISPLAY_FORMATS:
        try:
            return ensure_utc(datetime.strptime(text, fmt))
        except ValueError:
            continue

    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return ensure_utc(datetime.fromisoformat(text))
    except ValueError as e:
        raise ValueError(f"Invalid timestamp '{value}'") from e


def to_storage(value: Union[str, datetime]) -> str:
    """Convert a timestamp to the fixed-width storage form."""
    value = parse_timestamp(value)
    return f"{value.year:04d}-{value.strftime(STORAGE_FORMAT)}"


def format_display(value: datetime) -> str:
    """
    Format a timestamp for display.

    Fractional seconds are shown only when present, with trailing zeros
    removed.

    Example:
        >>> format_display(datetime(2000, 1, 1, tzinfo=timezone.utc))
        '2000-01-01 00:00:00 +0000 UTC'
    """
    value = ensure_utc(value)
    text = f"{value.year:04d}-{value.strftime(DISPLAY_FORMAT)}"
    if value.microsecond:
        text += "." + f"{value.microsecond:06d}".rstrip("0")
    return f"{text} +0000 UTC"
