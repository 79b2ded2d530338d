import re
import logging
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Union

log = logging.getLogger(__name__)

DurationLike = Union[timedelta, int, float, str, None]

NS_PER_SECOND = 1_000_000_000
NS_PER_MICROSECOND = 1_000

_UNITS_NS = {
    "h": 3600 * NS_PER_SECOND,
    "m": 60 * NS_PER_SECOND,
    "s": NS_PER_SECOND,
    "ms": 1_000_000,
    "us": 1_000,
    "ns": 1,
}
_NUMBER = r"(\d+(?:\.\d*)?|\.\d+)"
_BARE_RE = re.compile(r"[+-]?" + _NUMBER)
_PART_RE = re.compile(_NUMBER + r"(ms|us|ns|h|m|s)")


def _div_toward_zero(value: int, divisor: int) -> int:
    quotient = abs(value) // divisor
    return quotient if value >= 0 else -quotient


def parse_nanoseconds(value: str) -> int:
    """
    Parses a duration string such as '45s', '2500ms' or '1m30s' into whole nanoseconds.
    A bare number is taken as seconds. Fractions below a nanosecond are dropped.

    :param value: The duration string.
    :return: The duration in nanoseconds.
    :raises ValueError: If the string is not a valid duration.
    """
    text = value.strip()
    if not text:
        raise ValueError("empty duration")
    if _BARE_RE.fullmatch(text):
        return int(Decimal(text) * NS_PER_SECOND)

    sign = 1
    if text[0] in "+-":
        sign = -1 if text[0] == "-" else 1
        text = text[1:]

    total, pos = 0, 0
    for match in _PART_RE.finditer(text):
        if match.start() != pos:
            break
        total += int(Decimal(match.group(1)) * _UNITS_NS[match.group(2)])
        pos = match.end()
    if pos == 0 or pos != len(text):
        raise ValueError(f"invalid duration '{value}'")
    return sign * total


def parse_duration(value: str) -> timedelta:
    """Parses a duration string into a timedelta, truncated to whole microseconds."""
    return timedelta(microseconds=_div_toward_zero(parse_nanoseconds(value), NS_PER_MICROSECOND))


def _to_nanoseconds(value: Union[int, float, str]) -> int:
    if isinstance(value, str):
        return parse_nanoseconds(value)
    if isinstance(value, (int, float)):
        return int(Decimal(value) * NS_PER_SECOND)
    raise TypeError(f"unsupported duration type {type(value).__name__}")


def convert_duration(value: DurationLike) -> timedelta:
    """Converts a configured duration to a timedelta, logging and using zero on bad input."""
    if value is None:
        return timedelta(0)
    if isinstance(value, timedelta):
        return value
    try:
        return timedelta(microseconds=_div_toward_zero(_to_nanoseconds(value), NS_PER_MICROSECOND))
    except (ValueError, TypeError, OverflowError, InvalidOperation) as e:
        log.warning(f"Error converting duration {value!r}, using 0: {e}")
        return timedelta(0)


def whole_seconds(value: DurationLike) -> int:
    """Returns the duration in whole seconds, truncated toward zero."""
    if value is None:
        return 0
    if isinstance(value, timedelta):
        return _div_toward_zero(value // timedelta(microseconds=1), 1_000_000)
    try:
        if isinstance(value, (int, float)):
            return int(value)
        return _div_toward_zero(_to_nanoseconds(value), NS_PER_SECOND)
    except (ValueError, TypeError, OverflowError, InvalidOperation) as e:
        log.warning(f"Error converting duration {value!r}, using 0: {e}")
        return 0
