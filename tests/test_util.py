import errno
import math
import os
import sys
import urllib.parse

import pytest

from memkit.util import (
    htonll,
    ntohll,
    safe_strtod,
    safe_strtol,
    safe_strtoll,
    safe_strtoul,
    safe_strtoull,
    uriencode,
    vperror,
)


@pytest.mark.parametrize("text", ["123", "+123"])
def test_strtoul_accepts(text):
    assert safe_strtoul(text) == 123


def test_strtoul_extreme():
    assert safe_strtoul("4294967295") == 4294967295


@pytest.mark.parametrize("text", ["", "123BOGUS", " issue221", "-1"])
def test_strtoul_rejects(text):
    with pytest.raises(ValueError):
        safe_strtoul(text)


@pytest.mark.parametrize("text", ["123", "+123"])
def test_strtoull_accepts(text):
    assert safe_strtoull(text) == 123


def test_strtoull_extreme():
    assert safe_strtoull("18446744073709551615") == 18446744073709551615


@pytest.mark.parametrize(
    "text",
    [
        "",
        "123BOGUS",
        "92837498237498237498029383",
        " issue221",
        "18446744073709551616",
        "-1",
    ],
)
def test_strtoull_rejects(text):
    with pytest.raises(ValueError):
        safe_strtoull(text)


@pytest.mark.parametrize("text,expected", [("123", 123), ("+123", 123), ("-123", -123)])
def test_strtoll_accepts(text, expected):
    assert safe_strtoll(text) == expected


def test_strtoll_extremes():
    assert safe_strtoll("9223372036854775807") == 9223372036854775807


@pytest.mark.parametrize(
    "text",
    [
        "",
        "123BOGUS",
        "92837498237498237498029383",
        " issue221",
        "18446744073709551615",
        "-9223372036854775809",
    ],
)
def test_strtoll_rejects(text):
    with pytest.raises(ValueError):
        safe_strtoll(text)


def test_strtoll_space_terminates():
    assert safe_strtoll(" 123 foo") == 123


@pytest.mark.parametrize("text,expected", [("123", 123), ("+123", 123), ("-123", -123)])
def test_strtol_accepts(text, expected):
    assert safe_strtol(text) == expected


def test_strtol_extreme():
    assert safe_strtol("2147483647") == 2147483647


@pytest.mark.parametrize(
    "text", ["", "123BOGUS", "92837498237498237498029383", " issue221"]
)
def test_strtol_rejects(text):
    with pytest.raises(ValueError):
        safe_strtol(text)


def test_strtol_space_terminates():
    assert safe_strtol(" 123 foo") == 123


def test_strtol_accepts_bytes():
    assert safe_strtol(b"123") == 123


def test_strtod_values():
    assert safe_strtod("1.5") == 1.5
    assert safe_strtod(" 2.5 rest") == 2.5
    assert math.isinf(safe_strtod("inf"))


@pytest.mark.parametrize("text", ["", "1e", "abc", "1.5x", "1e999"])
def test_strtod_rejects(text):
    with pytest.raises(ValueError):
        safe_strtod(text)


def test_uriencode_space():
    assert uriencode("a b") == "a%20b"


def test_uriencode_keeps_unreserved():
    text = "Az09-._~"
    assert uriencode(text) == text


def test_uriencode_round_trip():
    raw = bytes(range(256))
    assert urllib.parse.unquote_to_bytes(uriencode(raw)) == raw


def test_uriencode_limit_too_small():
    with pytest.raises(ValueError):
        uriencode("abc", 4)


def test_uriencode_within_limit():
    assert uriencode("abc", 8) == "abc"


def test_vperror_reports_current_error(capsys):
    try:
        raise OSError(errno.EIO, os.strerror(errno.EIO))
    except OSError:
        vperror("Old McDonald had a farm.  %s", "EI EIO")
    err = capsys.readouterr().err
    assert err == f"Old McDonald had a farm.  EI EIO: {os.strerror(errno.EIO)}\n"


def test_byte_order_round_trip():
    value = 0xDEADBEEFDEADCAFE
    assert ntohll(htonll(value)) == value


def test_htonll_gives_network_order():
    value = 0xDEADBEEFDEADCAFE
    assert htonll(value).to_bytes(8, sys.byteorder) == value.to_bytes(8, "big")


def test_htonll_rejects_out_of_range():
    with pytest.raises(ValueError):
        htonll(1 << 64)