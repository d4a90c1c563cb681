"""Lenient number parsing for values submitted through HTML forms."""

from __future__ import annotations

import re

_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


def parse_int_prefix(text: str, default: int = 0) -> int:
    """Return the integer spelled by the leading digits of ``text``.

    Parameters
    ----------
    text:
        Raw form value. Leading whitespace and an optional sign are accepted;
        anything after the digits is ignored, so ``"12abc"`` gives ``12``.
    default:
        Returned when ``text`` does not start with a number.

    Returns
    -------
    int
        The parsed value, clamped to the signed 64-bit range.
    """

    match = _INT_PREFIX.match(text or "")
    if not match:
        return default
    value = int(match.group(1))
    return max(INT64_MIN, min(INT64_MAX, value))


def parse_float_prefix(text: str, default: float = 0.0) -> float:
    """Return the float spelled by the leading characters of ``text``."""

    match = _FLOAT_PREFIX.match(text or "")
    if not match:
        return default
    return float(match.group(1))


def parse_identifier(text: str | None) -> int | None:
    """Parse a record identifier strictly; ``None`` when absent or malformed."""

    if text is None:
        return None
    try:
        value = int(text.strip())
    except ValueError:
        return None
    if not INT64_MIN <= value <= INT64_MAX:
        return None
    return value
