"""Byte-level encoding of discovery strings and ports.

Strings are sent as a 2-byte big-endian length followed by their UTF-8
bytes, so an encoded service type can never be a byte-prefix of a different
encoded service type. Ports are 2-byte big-endian unsigned integers.
"""

import struct

from lanbeacon.errors import DecodeError

_LENGTH_FORMAT = "!H"
_LENGTH_SIZE = struct.calcsize(_LENGTH_FORMAT)

PORT_SIZE = _LENGTH_SIZE
MAX_ENCODED_LENGTH = 0xFFFF


def encode(text: str) -> bytes:
    """Encodes |text| as length-prefixed UTF-8.

    Raises:
        ValueError: If the UTF-8 form is longer than 65535 bytes.
    """
    body = text.encode("utf-8")
    if len(body) > MAX_ENCODED_LENGTH:
        raise ValueError(
            f"Encoded string is {len(body)} bytes, limit is {MAX_ENCODED_LENGTH}."
        )
    return struct.pack(_LENGTH_FORMAT, len(body)) + body


def decode_at(data: bytes, offset: int = 0) -> tuple[str, int]:
    """Decodes one length-prefixed string starting at |offset|.

    Returns:
        The decoded string and the offset just past it.

    Raises:
        DecodeError: On truncated input or invalid UTF-8.
    """
    if len(data) - offset < _LENGTH_SIZE:
        raise DecodeError(
            f"Need {_LENGTH_SIZE} length bytes at offset {offset}, "
            f"have {max(len(data) - offset, 0)}."
        )
    (length,) = struct.unpack_from(_LENGTH_FORMAT, data, offset)
    start = offset + _LENGTH_SIZE
    end = start + length
    if end > len(data):
        raise DecodeError(
            f"String declares {length} bytes but only {len(data) - start} remain."
        )
    try:
        text = bytes(data[start:end]).decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"String is not valid UTF-8: {e}") from e
    return text, end


def decode(data: bytes) -> str:
    """Inverse of `encode`. Bytes after the encoded string are ignored.

    Raises:
        DecodeError: On truncated input or invalid UTF-8.
    """
    text, _ = decode_at(data)
    return text


def has_prefix(message: bytes, prefix: bytes) -> bool:
    """Byte-wise check that |message| starts with |prefix|."""
    if len(message) < len(prefix):
        return False
    return message[: len(prefix)] == prefix


def encode_port(port: int) -> bytes:
    """Encodes |port| in network byte order.

    Raises:
        ValueError: If |port| is outside 0..65535.
    """
    if not 0 <= port <= 0xFFFF:
        raise ValueError(f"Port {port} is outside 0..65535.")
    return struct.pack("!H", port)


def decode_port(data: bytes, offset: int = 0) -> int:
    """Reads a network-order port at |offset|.

    Raises:
        DecodeError: If fewer than two bytes remain.
    """
    if len(data) - offset < PORT_SIZE:
        raise DecodeError(
            f"Need {PORT_SIZE} port bytes at offset {offset}, "
            f"have {max(len(data) - offset, 0)}."
        )
    (port,) = struct.unpack_from("!H", data, offset)
    return int(port)
