"""Remote sensor source over gRPC.

Fetches raw sensor bytes from a capture server (a host with the camera or
microphone attached) over a unary gRPC call. The source is
**protocol-agnostic**: it uses a configurable method path and generic
protobuf wire-format helpers instead of generated stubs, so it can talk to
any server whose request encodes the byte count as field 1 (varint) and
whose response carries the payload as field 1 (length-delimited bytes).

Two bit modes are supported:

- ``unpack``: the server already returns noise bytes; every bit is used.
- ``lsb``: the server returns raw samples (pixel or PCM bytes); only the
  least significant bit of each sample is used.

Retries are local to one ``sample()`` call. Repeated failures are reported
as :class:`~qcrypto_engine.exceptions.SourceFailureError` and counted by the
collector's circuit breaker.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from qcrypto_engine.conditioning.bits import bytes_to_bits, lsb_bits
from qcrypto_engine.entropy.base import EntropySource
from qcrypto_engine.entropy.registry import register_entropy_source
from qcrypto_engine.exceptions import SourceFailureError

if TYPE_CHECKING:
    import numpy as np

    from qcrypto_engine.config import EngineConfig

logger = logging.getLogger("qcrypto_engine")


# ---------------------------------------------------------------------------
# Generic protobuf wire-format helpers
# ---------------------------------------------------------------------------


def _encode_varint(value: int) -> bytes:
    """Encode an unsigned integer as a protobuf varint (LEB128)."""
    parts: list[int] = []
    while value > 0x7F:
        parts.append((value & 0x7F) | 0x80)
        value >>= 7
    parts.append(value & 0x7F)
    return bytes(parts)


def _decode_varint(data: bytes, offset: int) -> tuple[int, int]:
    """Decode a varint at *offset*.

    Returns:
        Tuple of (decoded_value, new_offset).

    Raises:
        SourceFailureError: If the data ends inside the varint.
    """
    result = 0
    shift = 0
    while True:
        if offset >= len(data):
            raise SourceFailureError("Truncated varint in gRPC response")
        b = data[offset]
        result |= (b & 0x7F) << shift
        offset += 1
        if not (b & 0x80):
            return result, offset
        shift += 7


def encode_sample_request(n: int) -> bytes:
    """Encode a request message with field 1 = varint *n*.

    Proto3 omits a zero-valued field, so ``n == 0`` encodes to ``b""``.
    """
    if n == 0:
        return b""
    # Tag: field 1, wire type 0 (varint) = 0x08
    return b"\x08" + _encode_varint(n)


def decode_sample_response(data: bytes) -> bytes:
    """Return the payload of field 1 (length-delimited) from a response.

    Other fields are skipped.

    Raises:
        SourceFailureError: If field 1 is missing or the wire format is
            invalid.
    """
    offset = 0
    while offset < len(data):
        tag, offset = _decode_varint(data, offset)
        field_number = tag >> 3
        wire_type = tag & 0x07
        if wire_type == 0:
            _, offset = _decode_varint(data, offset)
        elif wire_type == 2:
            length, offset = _decode_varint(data, offset)
            payload = data[offset : offset + length]
            offset += length
            if field_number == 1:
                return payload
        elif wire_type == 5:
            offset += 4
        elif wire_type == 1:
            offset += 8
        else:
            break
    raise SourceFailureError("Failed to decode gRPC response: field 1 (bytes) not found")


def _identity(data: bytes) -> bytes:
    return data


# ---------------------------------------------------------------------------
# Source implementation
# ---------------------------------------------------------------------------


@register_entropy_source("remote_grpc")
class RemoteSensorSource(EntropySource):
    """Sensor bytes fetched from a remote capture server over gRPC.

    Args:
        config: Engine configuration with the ``remote_*`` fields.

    Raises:
        ImportError: If ``grpcio`` is not installed.
    """

    def __init__(self, config: EngineConfig) -> None:
        try:
            import grpc
        except ImportError as exc:
            raise ImportError(
                "grpcio is required for RemoteSensorSource. "
                "Install it with: pip install 'qcrypto-engine[grpc]'"
            ) from exc

        self._address = config.remote_server_address
        self._method_path = config.remote_method_path
        self._timeout_s = config.remote_timeout_ms / 1000.0
        self._retry_count = config.remote_retry_count
        self._bit_mode = config.remote_bit_mode
        self._closed = False
        self._failed_calls = 0

        self._channel = grpc.insecure_channel(
            self._address,
            options=[
                ("grpc.keepalive_time_ms", 30_000),
                ("grpc.keepalive_timeout_ms", 10_000),
            ],
        )
        self._method = self._channel.unary_unary(
            self._method_path,
            request_serializer=_identity,
            response_deserializer=_identity,
        )

    @property
    def name(self) -> str:
        return "remote_grpc"

    @property
    def is_available(self) -> bool:
        return not self._closed

    def _bytes_needed(self, num_bits: int) -> int:
        if self._bit_mode == "lsb":
            return num_bits
        return (num_bits + 7) // 8

    def sample(self, num_bits: int) -> np.ndarray:
        """Fetch enough raw bytes for *num_bits* bits and convert them.

        Raises:
            SourceFailureError: If the source is closed, every attempt
                failed, or the server returned too few bytes.
        """
        if self._closed:
            raise SourceFailureError("RemoteSensorSource is closed")

        n_bytes = self._bytes_needed(num_bits)
        request = encode_sample_request(n_bytes)
        last_error: Exception | None = None
        for attempt in range(1 + self._retry_count):
            try:
                payload = decode_sample_response(self._method(request, timeout=self._timeout_s))
                break
            except Exception as exc:
                last_error = exc
                logger.warning(
                    "Remote sample attempt %d/%d failed: %s",
                    attempt + 1,
                    1 + self._retry_count,
                    exc,
                )
        else:
            self._failed_calls += 1
            raise SourceFailureError(
                f"Remote sample failed after {1 + self._retry_count} attempts: {last_error}"
            ) from last_error

        if len(payload) < n_bytes:
            self._failed_calls += 1
            raise SourceFailureError(
                f"Remote server returned {len(payload)} bytes, needed {n_bytes}"
            )

        bits = lsb_bits(payload) if self._bit_mode == "lsb" else bytes_to_bits(payload)
        return bits[:num_bits]

    def close(self) -> None:
        """Close the gRPC channel (idempotent)."""
        if self._closed:
            return
        self._closed = True
        self._channel.close()

    def health_check(self) -> dict[str, Any]:
        return {
            "source": self.name,
            "healthy": self.is_available,
            "address": self._address,
            "method_path": self._method_path,
            "bit_mode": self._bit_mode,
            "failed_calls": self._failed_calls,
        }
