"""Split one transport message into length-prefixed packets.

Message layout (big-endian)::

    count:u16 | (length:u16 | packet[length]) * count
"""

from __future__ import annotations

import struct
from collections.abc import Iterable, Iterator

from .errors import ErrorKind, FrameError

_COUNT = struct.Struct(">H")
_LENGTH = struct.Struct(">H")


def _boundaries(view: memoryview) -> list[tuple[int, int]]:
    size = len(view)
    if size < _COUNT.size:
        raise FrameError(
            ErrorKind.INVALID_PACKET_COUNT,
            f"message of {size} bytes has no packet count",
        )
    (count,) = _COUNT.unpack_from(view, 0)
    cursor = _COUNT.size
    bounds: list[tuple[int, int]] = []
    for index in range(count):
        if cursor + _LENGTH.size > size:
            raise FrameError(
                ErrorKind.TRUNCATED_MESSAGE,
                f"length prefix of packet {index} of {count} past end of {size} byte message",
            )
        (length,) = _LENGTH.unpack_from(view, cursor)
        cursor += _LENGTH.size
        if cursor + length > size:
            raise FrameError(
                ErrorKind.TRUNCATED_MESSAGE,
                f"packet {index} of {count} declares {length} bytes, {size - cursor} left",
            )
        bounds.append((cursor, cursor + length))
        cursor += length
    if cursor != size:
        raise FrameError(
            ErrorKind.TRAILING_BYTES,
            f"{size - cursor} bytes after {count} packets",
        )
    return bounds


def frame(message: bytes) -> Iterator[bytes]:
    """Validate ``message`` and return a one-pass iterator over its packets.

    The whole message is checked before anything is yielded, so a bad
    message raises :class:`FrameError` here and produces no packets.
    """

    view = memoryview(message).toreadonly()
    bounds = _boundaries(view)

    def _packets() -> Iterator[bytes]:
        for start, end in bounds:
            yield view[start:end].tobytes()

    return _packets()


def encode_frame(packets: Iterable[bytes]) -> bytes:
    chunks = list(packets)
    parts = [_COUNT.pack(len(chunks))]
    for chunk in chunks:
        parts.append(_LENGTH.pack(len(chunk)))
        parts.append(bytes(chunk))
    return b"".join(parts)


__all__ = ["encode_frame", "frame"]
