"""Unit tests for splitting transport messages into packets."""

from __future__ import annotations

import struct

import pytest

pytest.importorskip("pydantic")

from smartstream import ErrorKind, FrameError, encode_frame, frame


def test_frame_yields_packets_in_order() -> None:
    message = encode_frame([b"abc", b"", b"\x00\x01"])

    assert list(frame(message)) == [b"abc", b"", b"\x00\x01"]


def test_zero_count_yields_nothing() -> None:
    assert list(frame(b"\x00\x00")) == []


def test_declared_count_beyond_buffer_raises_before_yielding() -> None:
    message = struct.pack(">H", 3) + encode_frame([b"first", b"second"])[2:]

    with pytest.raises(FrameError) as excinfo:
        frame(message)
    assert excinfo.value.kind is ErrorKind.TRUNCATED_MESSAGE


def test_packet_length_past_end_is_truncated() -> None:
    message = struct.pack(">HH", 1, 10) + b"short"

    with pytest.raises(FrameError) as excinfo:
        frame(message)
    assert excinfo.value.kind is ErrorKind.TRUNCATED_MESSAGE


@pytest.mark.parametrize("message", [b"", b"\x01"])
def test_missing_count_is_invalid(message: bytes) -> None:
    with pytest.raises(FrameError) as excinfo:
        frame(message)
    assert excinfo.value.kind is ErrorKind.INVALID_PACKET_COUNT


def test_trailing_bytes_are_rejected() -> None:
    with pytest.raises(FrameError) as excinfo:
        frame(encode_frame([b"abc"]) + b"\xff")
    assert excinfo.value.kind is ErrorKind.TRAILING_BYTES


def test_frame_is_single_pass_and_leaves_input_untouched() -> None:
    buffer = bytearray(encode_frame([b"one", b"two"]))
    snapshot = bytes(buffer)

    packets = frame(buffer)
    assert next(packets) == b"one"
    assert list(packets) == [b"two"]
    assert list(packets) == []
    assert bytes(buffer) == snapshot
