"""Query and reply datagrams.

    query = encode(service_type)
    reply = encode(service_type) + port + encode(payload)
"""

import dataclasses
from typing import Optional

from lanbeacon.wire.codec import (
    PORT_SIZE,
    decode_at,
    decode_port,
    encode,
    encode_port,
    has_prefix,
)


@dataclasses.dataclass(frozen=True)
class ReplyMessage:
    """A decoded reply. |port| is the advertiser-declared service port."""

    port: int
    payload: str


def build_query(service_type: str) -> bytes:
    return encode(service_type)


def build_reply(service_type: str, port: int, payload: str) -> bytes:
    return encode(service_type) + encode_port(port) + encode(payload)


def is_query(datagram: bytes, service_type: str) -> bool:
    """True if |datagram| is addressed to |service_type|.

    Only the prefix is checked; trailing bytes are ignored.
    """
    return has_prefix(datagram, encode(service_type))


def parse_reply(datagram: bytes, service_type: str) -> Optional[ReplyMessage]:
    """Decodes a reply for |service_type|.

    Returns:
        The reply, or None if |datagram| belongs to another service type.

    Raises:
        DecodeError: If the datagram has the right prefix but a missing
            port or malformed payload.
    """
    prefix = encode(service_type)
    if not has_prefix(datagram, prefix):
        return None

    port = decode_port(datagram, len(prefix))
    payload, _ = decode_at(datagram, len(prefix) + PORT_SIZE)
    return ReplyMessage(port=port, payload=payload)
