"""Percent-decoding and ``application/x-www-form-urlencoded`` body parsing."""

from __future__ import annotations

from typing import List, Tuple, Union

MAX_FORM_FIELDS = 10

_HEX_DIGITS = frozenset(b"0123456789abcdefABCDEF")
_PERCENT = ord("%")
_PLUS = ord("+")
_SPACE = ord(" ")

FormPairs = List[Tuple[str, str]]


def decode(text: str) -> str:
    """Decode ``+`` and ``%XX`` escapes in ``text``.

    A ``%`` that is not followed by two hex digits (including one at the end
    of the input) is copied through as-is and scanning resumes at the very
    next character, so ``"100%"`` stays ``"100%"`` and ``"%zz"`` stays
    ``"%zz"``. Decoded bytes are read as UTF-8; undecodable sequences become
    U+FFFD instead of raising.
    """

    raw = text.encode("utf-8")
    size = len(raw)
    out = bytearray()
    index = 0
    while index < size:
        byte = raw[index]
        if (
            byte == _PERCENT
            and index + 2 < size
            and raw[index + 1] in _HEX_DIGITS
            and raw[index + 2] in _HEX_DIGITS
        ):
            out.append(int(raw[index + 1:index + 3], 16))
            index += 3
        elif byte == _PLUS:
            out.append(_SPACE)
            index += 1
        else:
            out.append(byte)
            index += 1
    return out.decode("utf-8", errors="replace")


def parse(body: Union[str, bytes], limit: int = MAX_FORM_FIELDS) -> FormPairs:
    """Split a urlencoded body into ordered ``(name, value)`` pairs.

    Each ``&``-separated segment is split on its first ``=`` and both halves
    are decoded independently. Empty segments and segments without ``=`` are
    skipped. Only the first ``limit`` pairs are kept; duplicate names are all
    retained in body order.
    """

    if isinstance(body, (bytes, bytearray)):
        body = bytes(body).decode("utf-8", errors="replace")

    pairs: FormPairs = []
    for segment in body.split("&"):
        if len(pairs) >= limit:
            break
        if not segment:
            continue
        name, separator, value = segment.partition("=")
        if not separator:
            continue
        pairs.append((decode(name), decode(value)))
    return pairs
