"""Strict number parsing, URI encoding and small byte-order helpers."""

from __future__ import annotations

import math
import os
import re
import sys

_C_SPACE = " \t\n\v\f\r"

_U64_MAX = (1 << 64) - 1
_I64_MAX = (1 << 63) - 1
_I64_MIN = -(1 << 63)
_U32_MAX = (1 << 32) - 1
_I32_MAX = (1 << 31) - 1
_I32_MIN = -(1 << 31)

_VPERROR_BUFSIZE = 1024

_INT_RE = re.compile(r"[ \t\n\v\f\r]*([+-]?)([0-9]+)")
_HEX_FLOAT_RE = re.compile(
    r"[ \t\n\v\f\r]*([+-]?0[xX](?:[0-9a-fA-F]+\.?[0-9a-fA-F]*|\.[0-9a-fA-F]+)"
    r"(?:[pP][+-]?[0-9]+)?)"
)
_DEC_FLOAT_RE = re.compile(
    r"[ \t\n\v\f\r]*([+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?"
    r"|[iI][nN][fF](?:[iI][nN][iI][tT][yY])?|[nN][aA][nN]))"
)

_UNRESERVED = frozenset(
    b"abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789-._~"
)
_URI_TABLE = tuple(
    chr(byte) if byte in _UNRESERVED else f"%{byte:02X}" for byte in range(256)
)


def _as_text(text: str | bytes) -> str:
    if isinstance(text, (bytes, bytearray)):
        return bytes(text).decode("latin-1")
    return text


def _check_terminator(text: str, rest: str) -> None:
    if rest and rest[0] not in _C_SPACE:
        raise ValueError(f"trailing garbage in number: {text!r}")


def _parse_integer(text: str) -> tuple[bool, int]:
    """Split ``text`` into sign and magnitude the way a base-10 strtol would."""
    match = _INT_RE.match(text)
    if match is None:
        raise ValueError(f"not a number: {text!r}")
    _check_terminator(text, text[match.end():])
    return match.group(1) == "-", int(match.group(2))


def _parse_unsigned(text: str | bytes, width: int) -> int:
    text = _as_text(text)
    negative, magnitude = _parse_integer(text)
    limit = (1 << width) - 1
    if magnitude > limit:
        raise ValueError(f"number out of range: {text!r}")
    value = (-magnitude) & limit if negative else magnitude
    # A value that looks negative when read as signed is rejected if a minus
    # sign appears anywhere in the input.
    if value >= 1 << (width - 1) and "-" in text:
        raise ValueError(f"negative number: {text!r}")
    return value


def _parse_signed(text: str | bytes, low: int, high: int) -> int:
    text = _as_text(text)
    negative, magnitude = _parse_integer(text)
    value = -magnitude if negative else magnitude
    if not low <= value <= high:
        raise ValueError(f"number out of range: {text!r}")
    return value


def safe_strtoull(text: str | bytes) -> int:
    """Parse an unsigned 64-bit decimal number; raise ValueError on failure."""
    return _parse_unsigned(text, 64)


def safe_strtoul(text: str | bytes) -> int:
    """Parse an unsigned 32-bit decimal number; raise ValueError on failure."""
    return _parse_unsigned(text, 32)


def safe_strtoll(text: str | bytes) -> int:
    """Parse a signed 64-bit decimal number; raise ValueError on failure."""
    return _parse_signed(text, _I64_MIN, _I64_MAX)


def safe_strtol(text: str | bytes) -> int:
    """Parse a signed 32-bit decimal number; raise ValueError on failure."""
    return _parse_signed(text, _I32_MIN, _I32_MAX)


def safe_strtod(text: str | bytes) -> float:
    """Parse a floating point number; raise ValueError on failure or overflow."""
    text = _as_text(text)
    match = _HEX_FLOAT_RE.match(text)
    if match is not None:
        literal = match.group(1)
        if not re.search(r"[pP]", literal):
            literal += "p0"
        value = float.fromhex(literal)
        digits = literal
    else:
        match = _DEC_FLOAT_RE.match(text)
        if match is None:
            raise ValueError(f"not a number: {text!r}")
        digits = match.group(1)
        value = float(digits)
    _check_terminator(text, text[match.end():])

    lowered = digits.lower()
    if math.isinf(value) and "inf" not in lowered:
        raise ValueError(f"number out of range: {text!r}")
    if value == 0.0:
        mantissa = re.split(r"[eEpP]", lowered.split("x")[-1])[0]
        if any(ch not in "0.+-" for ch in mantissa):
            raise ValueError(f"number out of range: {text!r}")
    return value


def uriencode(src: str | bytes, limit: int | None = None) -> str:
    """Percent-encode every byte except ASCII letters, digits and ``-._~``.

    ``limit`` bounds the size of the encoded result including a terminator;
    ValueError is raised when the output may not fit.
    """
    data = src.encode("utf-8") if isinstance(src, str) else bytes(src)
    parts: list[str] = []
    written = 0
    for byte in data:
        if limit is not None and written + 4 >= limit:
            raise ValueError("encoded string does not fit in the given limit")
        piece = _URI_TABLE[byte]
        parts.append(piece)
        written += len(piece)
    return "".join(parts)


def vperror(fmt: str, *args: object) -> str:
    """Print a formatted message followed by the current OS error to stderr.

    The error is taken from the OSError being handled, if any. Returns the
    line written.
    """
    current = sys.exc_info()[1]
    code = current.errno if isinstance(current, OSError) and current.errno else 0
    message = (fmt % args if args else fmt)[: _VPERROR_BUFSIZE - 1]
    reason = os.strerror(code)
    line = f"{message}: {reason}\n" if message else f"{reason}\n"
    sys.stderr.write(line)
    sys.stderr.flush()
    return line


def _swap64(value: int) -> int:
    if not 0 <= value <= _U64_MAX:
        raise ValueError(f"value does not fit in 64 bits: {value}")
    if sys.byteorder == "little":
        return int.from_bytes(value.to_bytes(8, "little"), "big")
    return value


def htonll(value: int) -> int:
    """Convert a 64-bit value from host to network byte order."""
    return _swap64(value)


def ntohll(value: int) -> int:
    """Convert a 64-bit value from network to host byte order."""
    return _swap64(value)