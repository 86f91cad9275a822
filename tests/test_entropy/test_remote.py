"""Tests for RemoteSensorSource (mocked gRPC) and its wire-format helpers."""

from __future__ import annotations

import sys
from collections.abc import Iterator
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from conftest import make_config

from qcrypto_engine.entropy.remote import (
    RemoteSensorSource,
    _decode_varint,
    _encode_varint,
    decode_sample_response,
    encode_sample_request,
)
from qcrypto_engine.exceptions import SourceFailureError


def _encode_response(data: bytes) -> bytes:
    """Encode a response with field 1 = length-delimited bytes."""
    return b"\x0a" + _encode_varint(len(data)) + data


@pytest.fixture
def fake_grpc() -> Iterator[MagicMock]:
    """Install a stand-in ``grpc`` module whose channel returns a mock method."""
    module = MagicMock()
    with patch.dict(sys.modules, {"grpc": module}):
        yield module


def _make_source(fake_grpc: MagicMock, **overrides: Any) -> tuple[RemoteSensorSource, MagicMock]:
    source = RemoteSensorSource(make_config(**overrides))
    method = fake_grpc.insecure_channel.return_value.unary_unary.return_value
    return source, method


class TestWireFormatHelpers:
    """Tests for the generic protobuf wire-format helpers."""

    def test_zero_request_is_empty(self) -> None:
        assert encode_sample_request(0) == b""

    def test_small_request(self) -> None:
        assert encode_sample_request(100) == b"\x08\x64"

    def test_multibyte_varint(self) -> None:
        assert encode_sample_request(300) == b"\x08\xac\x02"

    def test_varint_decode(self) -> None:
        assert _decode_varint(b"\xac\x02", 0) == (300, 2)

    def test_truncated_varint(self) -> None:
        with pytest.raises(SourceFailureError, match="Truncated"):
            _decode_varint(b"\x80", 0)

    def test_decode_payload(self) -> None:
        assert decode_sample_response(_encode_response(b"\x01\x02\x03")) == b"\x01\x02\x03"

    def test_skips_other_fields(self) -> None:
        """A leading varint field 2 and fixed64 field 3 are skipped."""
        data = b"\x10\x05" + b"\x19" + bytes(8) + _encode_response(b"ok")
        assert decode_sample_response(data) == b"ok"

    def test_missing_field(self) -> None:
        with pytest.raises(SourceFailureError, match="field 1"):
            decode_sample_response(b"\x10\x05")


class TestRemoteSensorSource:
    """Tests for the gRPC-backed source with a mocked channel."""

    def test_unpack_mode(self, fake_grpc: MagicMock) -> None:
        source, method = _make_source(fake_grpc)
        method.return_value = _encode_response(b"\x01\x80")
        bits = source.sample(16)
        assert bits.tolist() == [1, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 1]
        method.assert_called_once_with(b"\x08\x02", timeout=5.0)

    def test_lsb_mode_requests_one_byte_per_bit(self, fake_grpc: MagicMock) -> None:
        source, method = _make_source(fake_grpc, remote_bit_mode="lsb")
        method.return_value = _encode_response(bytes([10, 11, 12, 13]))
        assert source.sample(4).tolist() == [0, 1, 0, 1]
        method.assert_called_once_with(b"\x08\x04", timeout=5.0)

    def test_retries_then_succeeds(self, fake_grpc: MagicMock) -> None:
        source, method = _make_source(fake_grpc, remote_retry_count=2)
        method.side_effect = [RuntimeError("unavailable"), _encode_response(b"\xff")]
        assert source.sample(8).tolist() == [1] * 8
        assert method.call_count == 2

    def test_exhausted_retries(self, fake_grpc: MagicMock) -> None:
        source, method = _make_source(fake_grpc, remote_retry_count=1)
        method.side_effect = RuntimeError("unavailable")
        with pytest.raises(SourceFailureError, match="after 2 attempts"):
            source.sample(8)
        assert source.health_check()["failed_calls"] == 1

    def test_short_payload(self, fake_grpc: MagicMock) -> None:
        source, method = _make_source(fake_grpc)
        method.return_value = _encode_response(b"\x00")
        with pytest.raises(SourceFailureError, match="needed 2"):
            source.sample(16)

    def test_close_idempotent(self, fake_grpc: MagicMock) -> None:
        source, _ = _make_source(fake_grpc)
        source.close()
        source.close()
        fake_grpc.insecure_channel.return_value.close.assert_called_once()
        assert not source.is_available
        with pytest.raises(SourceFailureError, match="closed"):
            source.sample(8)

    def test_missing_grpc(self) -> None:
        with patch.dict(sys.modules, {"grpc": None}):
            with pytest.raises(ImportError, match="qcrypto-engine\\[grpc\\]"):
                RemoteSensorSource(make_config())
