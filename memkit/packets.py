"""Builders for binary protocol request packets and a response header checker."""

from __future__ import annotations

import struct

from memkit.protocol import (
    DataType,
    Command,
    Magic,
    ProtocolError,
    RequestHeader,
    ResponseHeader,
    Status,
)

DEFAULT_OPAQUE = 0xDEADBEEF

_FLUSH_EXTRAS = struct.Struct(">I")
_SET_EXTRAS = struct.Struct(">II")
_TOUCH_EXTRAS = struct.Struct(">I")
_INCR_EXTRAS = struct.Struct(">QQI")

_QUIET_NEVER_ANSWER_SUCCESS = frozenset(
    {
        Command.ADDQ,
        Command.APPENDQ,
        Command.DECREMENTQ,
        Command.DELETEQ,
        Command.FLUSHQ,
        Command.INCREMENTQ,
        Command.PREPENDQ,
        Command.QUITQ,
        Command.REPLACEQ,
        Command.SETQ,
    }
)

_STORE_COMMANDS = frozenset(
    {Command.ADD, Command.REPLACE, Command.SET, Command.APPEND, Command.PREPEND}
)
_EMPTY_COMMANDS = frozenset(
    {Command.FLUSH, Command.NOOP, Command.QUIT, Command.DELETE}
)
_ARITH_COMMANDS = frozenset({Command.DECREMENT, Command.INCREMENT})
_GET_COMMANDS = frozenset({Command.GET, Command.GETQ, Command.GAT, Command.GATQ})
_GETK_COMMANDS = frozenset(
    {Command.GETK, Command.GETKQ, Command.GATK, Command.GATKQ}
)
_KEYED_ERROR_COMMANDS = frozenset({Command.GETK, Command.GATK})


def _as_bytes(data: str | bytes | None) -> bytes:
    if data is None:
        return b""
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def _pack_extras(layout: struct.Struct, *values: int) -> bytes:
    try:
        return layout.pack(*values)
    except struct.error as err:
        raise ProtocolError(f"extras field out of range: {err}") from None


def ext_command(
    cmd: int,
    ext: bytes | None = b"",
    key: str | bytes | None = b"",
    value: str | bytes | None = b"",
) -> bytes:
    """Build a request with the given extras, key and value."""
    ext_bytes = _as_bytes(ext)
    key_bytes = _as_bytes(key)
    value_bytes = _as_bytes(value)
    header = RequestHeader(
        opcode=cmd,
        keylen=len(key_bytes),
        extlen=len(ext_bytes),
        bodylen=len(ext_bytes) + len(key_bytes) + len(value_bytes),
        opaque=DEFAULT_OPAQUE,
    )
    return header.pack() + ext_bytes + key_bytes + value_bytes


def raw_command(
    cmd: int, key: str | bytes | None = b"", value: str | bytes | None = b""
) -> bytes:
    """Build a request without extras."""
    return ext_command(cmd, b"", key, value)


def storage_command(
    cmd: int,
    key: str | bytes,
    value: str | bytes | None = b"",
    flags: int = 0,
    exptime: int = 0,
) -> bytes:
    """Build a set/add/replace style request carrying flags and expiration."""
    return ext_command(cmd, _pack_extras(_SET_EXTRAS, flags, exptime), key, value)


def flush_command(cmd: int, exptime: int = 0, use_extra: bool = True) -> bytes:
    """Build a flush request; the expiration extras are sent only if asked for."""
    ext = _pack_extras(_FLUSH_EXTRAS, exptime) if use_extra else b""
    return ext_command(cmd, ext)


def touch_command(cmd: int, key: str | bytes, exptime: int) -> bytes:
    """Build a touch or get-and-touch request."""
    return ext_command(cmd, _pack_extras(_TOUCH_EXTRAS, exptime), key)


def arithmetic_command(
    cmd: int,
    key: str | bytes,
    delta: int,
    initial: int = 0,
    exptime: int = 0,
) -> bytes:
    """Build an increment or decrement request."""
    ext = _pack_extras(_INCR_EXTRAS, delta, initial, exptime)
    return ext_command(cmd, ext, key)


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise ProtocolError(message)


def validate_response_header(
    header: ResponseHeader, cmd: int, status: int
) -> ResponseHeader:
    """Check that ``header`` is a well-formed answer to ``cmd`` with ``status``.

    Raises ProtocolError on the first mismatch; returns the header otherwise.
    """
    _require(header.magic == Magic.RESPONSE, f"bad magic 0x{header.magic:02x}")
    _require(
        header.opcode == cmd,
        f"opcode 0x{header.opcode:02x} does not answer 0x{cmd:02x}",
    )
    _require(header.datatype == DataType.RAW_BYTES, "unexpected data type")
    _require(
        header.status == status,
        f"status 0x{header.status:02x}, expected 0x{status:02x}",
    )
    _require(header.opaque == DEFAULT_OPAQUE, "opaque value not echoed")

    if status == Status.SUCCESS:
        _require(
            cmd not in _QUIET_NEVER_ANSWER_SUCCESS,
            "quiet command should not answer on success",
        )
        if cmd in _STORE_COMMANDS:
            _require(header.keylen == 0, "store response carries a key")
            _require(header.extlen == 0, "store response carries extras")
            _require(header.bodylen == 0, "store response carries a body")
            _require(header.cas != 0, "store response lacks a CAS")
        elif cmd in _EMPTY_COMMANDS:
            _require(header.keylen == 0, "response carries a key")
            _require(header.extlen == 0, "response carries extras")
            _require(header.bodylen == 0, "response carries a body")
            _require(header.cas == 0, "response carries a CAS")
        elif cmd in _ARITH_COMMANDS:
            _require(header.keylen == 0, "arithmetic response carries a key")
            _require(header.extlen == 0, "arithmetic response carries extras")
            _require(header.bodylen == 8, "arithmetic response body is not 8 bytes")
            _require(header.cas != 0, "arithmetic response lacks a CAS")
        elif cmd == Command.STAT:
            _require(header.extlen == 0, "stat response carries extras")
            _require(header.cas == 0, "stat response carries a CAS")
        elif cmd == Command.VERSION:
            _require(header.keylen == 0, "version response carries a key")
            _require(header.extlen == 0, "version response carries extras")
            _require(header.bodylen != 0, "version response is empty")
            _require(header.cas == 0, "version response carries a CAS")
        elif cmd in _GET_COMMANDS:
            _require(header.keylen == 0, "get response carries a key")
            _require(header.extlen == 4, "get response lacks flags")
            _require(header.cas != 0, "get response lacks a CAS")
        elif cmd in _GETK_COMMANDS:
            _require(header.keylen != 0, "getk response lacks the key")
            _require(header.extlen == 4, "getk response lacks flags")
            _require(header.cas != 0, "getk response lacks a CAS")
    else:
        _require(header.cas == 0, "error response carries a CAS")
        _require(header.extlen == 0, "error response carries extras")
        if cmd not in _KEYED_ERROR_COMMANDS:
            _require(header.keylen == 0, "error response carries a key")
    return header