"""Binary protocol constants and the fixed 24-byte packet headers."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum

HEADER_SIZE = 24

_HEADER = struct.Struct(">BBHBBHIIQ")


class ProtocolError(ValueError):
    """Raised when a packet header cannot be encoded or decoded."""


class Magic(IntEnum):
    """Legal values of a packet's magic byte."""

    REQUEST = 0x80
    RESPONSE = 0x81


class DataType(IntEnum):
    """Data types of a packet body."""

    RAW_BYTES = 0x00


class Status(IntEnum):
    """Response status codes."""

    SUCCESS = 0x00
    KEY_ENOENT = 0x01
    KEY_EEXISTS = 0x02
    E2BIG = 0x03
    EINVAL = 0x04
    NOT_STORED = 0x05
    DELTA_BADVAL = 0x06
    AUTH_ERROR = 0x20
    AUTH_CONTINUE = 0x21
    UNKNOWN_COMMAND = 0x81
    ENOMEM = 0x82


class Command(IntEnum):
    """Command opcodes."""

    GET = 0x00
    SET = 0x01
    ADD = 0x02
    REPLACE = 0x03
    DELETE = 0x04
    INCREMENT = 0x05
    DECREMENT = 0x06
    QUIT = 0x07
    FLUSH = 0x08
    GETQ = 0x09
    NOOP = 0x0A
    VERSION = 0x0B
    GETK = 0x0C
    GETKQ = 0x0D
    APPEND = 0x0E
    PREPEND = 0x0F
    STAT = 0x10
    SETQ = 0x11
    ADDQ = 0x12
    REPLACEQ = 0x13
    DELETEQ = 0x14
    INCREMENTQ = 0x15
    DECREMENTQ = 0x16
    QUITQ = 0x17
    FLUSHQ = 0x18
    APPENDQ = 0x19
    PREPENDQ = 0x1A
    TOUCH = 0x1C
    GAT = 0x1D
    GATQ = 0x1E
    GATK = 0x23
    GATKQ = 0x24

    SASL_LIST_MECHS = 0x20
    SASL_AUTH = 0x21
    SASL_STEP = 0x22

    # Range operations: defined for other implementations, not served here.
    RGET = 0x30
    RSET = 0x31
    RSETQ = 0x32
    RAPPEND = 0x33
    RAPPENDQ = 0x34
    RPREPEND = 0x35
    RPREPENDQ = 0x36
    RDELETE = 0x37
    RDELETEQ = 0x38
    RINCR = 0x39
    RINCRQ = 0x3A
    RDECR = 0x3B
    RDECRQ = 0x3C


# Sizes of the "extras" section of the fixed-layout bodies.
GET_RESPONSE_EXTRAS_LEN = 4  # flags
FLUSH_EXTRAS_LEN = 4  # expiration (optional)
SET_EXTRAS_LEN = 8  # flags, expiration
INCR_EXTRAS_LEN = 20  # delta, initial, expiration
INCR_RESPONSE_BODY_LEN = 8  # value
TOUCH_EXTRAS_LEN = 4  # expiration
GAT_EXTRAS_LEN = 4  # expiration
RANGEOP_EXTRAS_LEN = 8  # size, reserved, flags, max_results

_QUIET_COMMANDS = frozenset(
    {
        Command.GETQ,
        Command.GETKQ,
        Command.SETQ,
        Command.ADDQ,
        Command.REPLACEQ,
        Command.DELETEQ,
        Command.INCREMENTQ,
        Command.DECREMENTQ,
        Command.QUITQ,
        Command.FLUSHQ,
        Command.APPENDQ,
        Command.PREPENDQ,
        Command.GATQ,
        Command.GATKQ,
        Command.RSETQ,
        Command.RAPPENDQ,
        Command.RPREPENDQ,
        Command.RDELETEQ,
        Command.RINCRQ,
        Command.RDECRQ,
    }
)


def is_quiet(cmd: int) -> bool:
    """True if ``cmd`` is the quiet variant of a command."""
    return cmd in _QUIET_COMMANDS


def _pack(values: tuple[int, ...]) -> bytes:
    try:
        return _HEADER.pack(*values)
    except struct.error as err:
        raise ProtocolError(f"header field out of range: {err}") from None


def _unpack(data: bytes, expected: Magic) -> tuple[int, ...]:
    raw = bytes(data)
    if len(raw) < HEADER_SIZE:
        raise ProtocolError(
            f"header needs {HEADER_SIZE} bytes, got {len(raw)}"
        )
    values = _HEADER.unpack_from(raw)
    if values[0] != expected:
        raise ProtocolError(
            f"bad magic 0x{values[0]:02x}, expected 0x{int(expected):02x}"
        )
    return values


@dataclass
class RequestHeader:
    """Header of a request packet; multibyte fields travel big-endian."""

    opcode: int = Command.GET
    keylen: int = 0
    extlen: int = 0
    datatype: int = DataType.RAW_BYTES
    reserved: int = 0
    bodylen: int = 0
    opaque: int = 0
    cas: int = 0
    magic: int = Magic.REQUEST

    def pack(self) -> bytes:
        """Encode the header as its 24 wire bytes."""
        return _pack(
            (
                self.magic,
                self.opcode,
                self.keylen,
                self.extlen,
                self.datatype,
                self.reserved,
                self.bodylen,
                self.opaque,
                self.cas,
            )
        )

    @classmethod
    def unpack(cls, data: bytes) -> RequestHeader:
        """Decode the first 24 bytes of ``data`` as a request header."""
        magic, opcode, keylen, extlen, datatype, reserved, bodylen, opaque, cas = (
            _unpack(data, Magic.REQUEST)
        )
        return cls(
            opcode=opcode,
            keylen=keylen,
            extlen=extlen,
            datatype=datatype,
            reserved=reserved,
            bodylen=bodylen,
            opaque=opaque,
            cas=cas,
            magic=magic,
        )


@dataclass
class ResponseHeader:
    """Header of a response packet; multibyte fields travel big-endian."""

    opcode: int = Command.GET
    keylen: int = 0
    extlen: int = 0
    datatype: int = DataType.RAW_BYTES
    status: int = Status.SUCCESS
    bodylen: int = 0
    opaque: int = 0
    cas: int = 0
    magic: int = Magic.RESPONSE

    def pack(self) -> bytes:
        """Encode the header as its 24 wire bytes."""
        return _pack(
            (
                self.magic,
                self.opcode,
                self.keylen,
                self.extlen,
                self.datatype,
                self.status,
                self.bodylen,
                self.opaque,
                self.cas,
            )
        )

    @classmethod
    def unpack(cls, data: bytes) -> ResponseHeader:
        """Decode the first 24 bytes of ``data`` as a response header."""
        magic, opcode, keylen, extlen, datatype, status, bodylen, opaque, cas = (
            _unpack(data, Magic.RESPONSE)
        )
        return cls(
            opcode=opcode,
            keylen=keylen,
            extlen=extlen,
            datatype=datatype,
            status=status,
            bodylen=bodylen,
            opaque=opaque,
            cas=cas,
            magic=magic,
        )