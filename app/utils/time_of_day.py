"""
Time-of-day helpers for showtime scheduling.

Every time value that reaches the scheduler (request bodies, ORM ``Time``
columns, driver objects, ISO timestamps) goes through ``normalize`` first and
comes out as a canonical ``HH:MM:SS`` string. Arithmetic and comparisons are
done on that canonical form only.

Clock values are taken literally: a timestamp such as
``1970-01-01T10:30:00.000Z`` means 10:30:00, no timezone shift is applied.
"""
import re
from collections import OrderedDict
from collections.abc import Mapping
from datetime import datetime, time
from typing import Any, Hashable, Optional

SECONDS_PER_DAY = 24 * 60 * 60

_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2})(?:\.\d+)?)?$")
_TIMESTAMP_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}[T ]"
    r"(\d{1,2}):(\d{2})(?::(\d{2})(?:\.\d+)?)?"
    r"(?:Z|[+-]\d{2}(?::?\d{2})?)?$"
)

_MISSING = object()


class TimeFormatCache:
    """Bounded LRU cache of ``normalize`` results, owned by whoever creates it."""

    def __init__(self, maxsize: int = 1000):
        if maxsize < 1:
            raise ValueError("maxsize must be positive")
        self.maxsize = maxsize
        self._entries: "OrderedDict[Hashable, Optional[str]]" = OrderedDict()

    def get(self, key: Hashable, default: Any = None) -> Any:
        if key not in self._entries:
            return default
        self._entries.move_to_end(key)
        return self._entries[key]

    def put(self, key: Hashable, value: Optional[str]) -> None:
        self._entries[key] = value
        self._entries.move_to_end(key)
        while len(self._entries) > self.maxsize:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def _format(hours: int, minutes: int, seconds: int) -> Optional[str]:
    if not (0 <= hours < 24 and 0 <= minutes < 60 and 0 <= seconds < 60):
        return None
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def _whole_number(part: Any) -> Optional[int]:
    # Only ints and digit strings; 10.9 or True would otherwise coerce silently
    if isinstance(part, bool):
        return None
    if isinstance(part, int):
        return part
    if isinstance(part, str) and part.strip().isdigit():
        return int(part)
    return None


def _from_mapping(value: Mapping) -> Optional[str]:
    # Driver objects use {hours, minutes, seconds}; request bodies may use the singular form
    parts = (
        value.get("hours", value.get("hour")),
        value.get("minutes", value.get("minute", 0)),
        value.get("seconds", value.get("second", 0)),
    )
    if parts[0] is None:
        return None
    hours, minutes, seconds = (_whole_number(part) for part in parts)
    if hours is None or minutes is None or seconds is None:
        return None
    return _format(hours, minutes, seconds)


def _from_string(value: str) -> Optional[str]:
    text = value.strip()
    match = _CLOCK_RE.match(text) or _TIMESTAMP_RE.match(text)
    if not match:
        return None
    hours, minutes, seconds = match.groups()
    return _format(int(hours), int(minutes), int(seconds or 0))


def _cache_key(value: Any) -> Optional[Hashable]:
    if isinstance(value, str):
        return ("str", value)
    if isinstance(value, Mapping):
        try:
            return ("map", tuple(sorted((str(k), repr(v)) for k, v in value.items())))
        except TypeError:
            return None
    return None


def _normalize(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _format(value.hour, value.minute, value.second)
    if isinstance(value, time):
        return _format(value.hour, value.minute, value.second)
    if isinstance(value, Mapping):
        return _from_mapping(value)
    if isinstance(value, str):
        return _from_string(value)
    return None


def normalize(value: Any, cache: Optional[TimeFormatCache] = None) -> Optional[str]:
    """
    Return ``value`` as a canonical ``HH:MM:SS`` string, or None if it cannot be read.

    Accepted inputs:
      - ``datetime.time`` / ``datetime.datetime`` (seconds precision, tzinfo ignored)
      - a mapping with ``hours``/``minutes``/``seconds`` (or ``hour``/``minute``/``second``)
      - ``"H:MM"``, ``"HH:MM:SS"`` or ``"HH:MM:SS.ffffff"``
      - a calendar timestamp string such as ``"2024-01-05T10:30:00Z"``
    """
    key = _cache_key(value) if cache is not None else None
    if key is not None:
        cached = cache.get(key, _MISSING)
        if cached is not _MISSING:
            return cached

    result = _normalize(value)

    if key is not None:
        cache.put(key, result)
    return result


def to_seconds_since_midnight(value: Any) -> int:
    canonical = normalize(value)
    if canonical is None:
        raise ValueError(f"Invalid time of day: {value!r}")
    hours, minutes, seconds = (int(part) for part in canonical.split(":"))
    return hours * 3600 + minutes * 60 + seconds


def to_minutes_since_midnight(value: Any) -> int:
    return to_seconds_since_midnight(value) // 60


def from_seconds_since_midnight(seconds: int) -> str:
    """Inverse of ``to_seconds_since_midnight``; wraps past midnight."""
    seconds %= SECONDS_PER_DAY
    return _format(seconds // 3600, (seconds % 3600) // 60, seconds % 60)


def add_minutes(value: Any, minutes: int) -> Optional[str]:
    """
    Add a non-negative number of minutes to a time of day.

    The result wraps past 23:59:59 to 00:00:00. A showtime cannot span two
    dates, so callers that care must check for the wrap themselves
    (see ``crosses_midnight``).
    """
    if minutes < 0:
        raise ValueError("minutes must be non-negative")
    canonical = normalize(value)
    if canonical is None:
        return None
    return from_seconds_since_midnight(to_seconds_since_midnight(canonical) + minutes * 60)


def crosses_midnight(value: Any, minutes: int) -> bool:
    return to_seconds_since_midnight(value) + minutes * 60 >= SECONDS_PER_DAY


def compare(a: Any, b: Any) -> int:
    """Return -1, 0 or 1 comparing two time-of-day values."""
    left, right = normalize(a), normalize(b)
    if left is None or right is None:
        raise ValueError(f"Cannot compare {a!r} and {b!r}")
    # Zero-padded HH:MM:SS sorts lexicographically
    return (left > right) - (left < right)


def to_time(value: Any) -> time:
    """Canonical value as a ``datetime.time`` for ORM ``Time`` columns."""
    canonical = normalize(value)
    if canonical is None:
        raise ValueError(f"Invalid time of day: {value!r}")
    return time.fromisoformat(canonical)
