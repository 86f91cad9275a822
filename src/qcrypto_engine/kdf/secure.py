"""Scoped holder for sensitive byte buffers.

``SecureBytes`` copies secret material into a private ``bytearray`` and
zeroes it on every exit path of a ``with`` block (normal return, early
return, exception) and again when the object is garbage collected.

Wiping is best effort: immutable ``bytes`` objects the material was copied
from, and any copies the caller makes, are outside its reach.
"""

from __future__ import annotations

from typing import Any


class SecureBytes:
    """Zero-on-exit wrapper around a private ``bytearray``.

    Args:
        data: Secret material to copy in.
    """

    __slots__ = ("_buf", "_wiped")

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._buf = bytearray(data)
        self._wiped = False

    def __enter__(self) -> SecureBytes:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.wipe()

    def __del__(self) -> None:
        self.wipe()

    def __len__(self) -> int:
        return len(self._buf)

    def __bytes__(self) -> bytes:
        return bytes(self._buf)

    def __repr__(self) -> str:
        state = "wiped" if self._wiped else f"{len(self._buf)} bytes"
        return f"SecureBytes(<{state}>)"

    @property
    def wiped(self) -> bool:
        return self._wiped

    def view(self) -> memoryview:
        """Zero-copy read access to the buffer.

        Raises:
            ValueError: If the buffer has already been wiped.
        """
        if self._wiped:
            raise ValueError("SecureBytes has been wiped")
        return memoryview(self._buf)

    def wipe(self) -> None:
        """Overwrite the buffer with zeros in place. Idempotent."""
        buf = getattr(self, "_buf", None)
        if buf is None:
            return
        buf[:] = bytes(len(buf))
        self._wiped = True
