import pytest

from lanbeacon.errors import DecodeError
from lanbeacon.wire.codec import encode, encode_port
from lanbeacon.wire.messages import (
    ReplyMessage,
    build_query,
    build_reply,
    is_query,
    parse_reply,
)


def test_query_is_the_encoded_service_type() -> None:
    assert build_query("svc.test") == encode("svc.test")


def test_reply_layout() -> None:
    reply = build_reply("svc.test", 4242, "hello")
    assert reply == encode("svc.test") + b"\x10\x92" + encode("hello")


def test_parse_reply_extracts_port_and_payload() -> None:
    reply = build_reply("svc.test", 4242, "hello")
    assert parse_reply(reply, "svc.test") == ReplyMessage(port=4242, payload="hello")


def test_parse_reply_for_other_service_type_is_none() -> None:
    reply = build_reply("svc.b", 1, "nope")
    assert parse_reply(reply, "svc.a") is None


def test_parse_reply_without_port_raises() -> None:
    with pytest.raises(DecodeError):
        parse_reply(build_query("svc.test"), "svc.test")


def test_parse_reply_with_truncated_payload_raises() -> None:
    datagram = encode("svc.test") + encode_port(80) + b"\x00\x10short"
    with pytest.raises(DecodeError):
        parse_reply(datagram, "svc.test")


def test_is_query() -> None:
    assert is_query(build_query("svc.a"), "svc.a")
    assert not is_query(build_query("svc.a"), "svc.b")
    assert not is_query(b"", "svc.a")
