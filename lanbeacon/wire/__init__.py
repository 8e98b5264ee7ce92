"""Wire format of lanbeacon discovery datagrams."""

from lanbeacon.wire.codec import (
    decode,
    decode_port,
    encode,
    encode_port,
    has_prefix,
)
from lanbeacon.wire.messages import (
    ReplyMessage,
    build_query,
    build_reply,
    is_query,
    parse_reply,
)

__all__ = [
    "ReplyMessage",
    "build_query",
    "build_reply",
    "decode",
    "decode_port",
    "encode",
    "encode_port",
    "has_prefix",
    "is_query",
    "parse_reply",
]
