import pytest

from lanbeacon.errors import DecodeError
from lanbeacon.wire.codec import (
    decode,
    decode_at,
    decode_port,
    encode,
    encode_port,
    has_prefix,
)


@pytest.mark.parametrize(
    "text",
    ["", "svc.test", "hello world", "Beacon at 12:00 on host", "ünïcødé ✓", "a" * 1000],
)
def test_decode_inverts_encode(text: str) -> None:
    assert decode(encode(text)) == text


def test_encode_is_length_prefixed_utf8() -> None:
    assert encode("ab") == b"\x00\x02ab"
    assert encode("é") == b"\x00\x02\xc3\xa9"
    assert encode("") == b"\x00\x00"


def test_encode_rejects_oversized_text() -> None:
    with pytest.raises(ValueError):
        encode("x" * 0x10000)


def test_decode_ignores_trailing_bytes() -> None:
    assert decode(encode("abc") + b"trailing") == "abc"


def test_decode_at_returns_next_offset() -> None:
    data = encode("one") + encode("two")
    first, offset = decode_at(data)
    second, end = decode_at(data, offset)
    assert (first, second) == ("one", "two")
    assert end == len(data)


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"\x00",
        b"\x00\x05abc",
        b"\x00\x02\xff\xfe",
    ],
)
def test_decode_rejects_malformed_input(data: bytes) -> None:
    with pytest.raises(DecodeError):
        decode(data)


def test_decode_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        decode(b"\x00\x09")


def test_has_prefix_matches_own_type() -> None:
    prefix = encode("svc.test")
    assert has_prefix(prefix, prefix)
    assert has_prefix(prefix + b"\x12\x34anything", prefix)


@pytest.mark.parametrize(
    "first, second",
    [("svc.a", "svc.b"), ("svc", "svc.test"), ("svc.test", "svc"), ("x", "")],
)
def test_has_prefix_rejects_other_types(first: str, second: str) -> None:
    assert not has_prefix(encode(first) + b"payload", encode(second))


def test_has_prefix_rejects_short_message() -> None:
    assert not has_prefix(b"\x00", encode("svc"))


def test_port_is_big_endian() -> None:
    assert encode_port(0x1234) == b"\x12\x34"
    assert decode_port(b"\x12\x34") == 0x1234
    assert decode_port(b"xx\xff\xff", 2) == 65535


@pytest.mark.parametrize("port", [-1, 65536])
def test_encode_port_rejects_out_of_range(port: int) -> None:
    with pytest.raises(ValueError):
        encode_port(port)


def test_decode_port_rejects_short_input() -> None:
    with pytest.raises(DecodeError):
        decode_port(b"\x01")
    with pytest.raises(DecodeError):
        decode_port(b"\x01\x02", 1)
