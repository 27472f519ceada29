"""Bounds-checked byte cursor with ECMA-335 integer decoding.

The cursor walks an immutable byte buffer with three explicit positions
(``begin`` <= ``current`` <= ``limit``).  Every repositioning is validated
before it is committed, so a failed read, seek or truncate never moves the
cursor.  Fixed-width integers are little-endian on the wire; compressed
integers follow ECMA-335 II.23.2 "Blobs and signatures".
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Dict, Optional, Union

from .errors import EndOfStreamError, InvalidEncodingError, OutOfRangeError

BytesLike = Union[bytes, bytearray, memoryview]

# (mask, expected leading bits, width in bytes, payload mask)
_COMPRESSED_TIERS = (
    (0x80, 0x00, 1, 0x7F),
    (0xC0, 0x80, 2, 0x3FFF),
    (0xE0, 0xC0, 4, 0x1FFFFFFF),
)

# Significant bits left after the sign flag is shifted out, per encoded width.
_SIGNED_WIDTH_BITS: Dict[int, int] = {1: 6, 2: 13, 4: 28}

_UINT32_MASK = 0xFFFFFFFF


def compressed_width(first_byte: int) -> int:
    """Return the encoded width (1, 2 or 4) selected by a leading byte."""
    for mask, expected, width, _ in _COMPRESSED_TIERS:
        if first_byte & mask == expected:
            return width
    raise InvalidEncodingError(f"invalid compressed integer lead byte 0x{first_byte:02X}")


def _payload_mask(width: int) -> int:
    for _, _, tier_width, payload in _COMPRESSED_TIERS:
        if tier_width == width:
            return payload
    raise ValueError(f"no compressed tier of width {width}")


def _sign_extension(width: int) -> int:
    """Bits above the significant width of a signed tier, as a uint32 mask."""
    bits = _SIGNED_WIDTH_BITS[width]
    return _UINT32_MASK & ~((1 << bits) - 1)


def _byteswap(value: int, size: int) -> int:
    return int.from_bytes(value.to_bytes(size, "big"), "little")


class BinaryCursor:
    """Forward/random-access reader over a borrowed or owned byte buffer."""

    def __init__(
        self,
        content: BytesLike,
        *,
        begin: int = 0,
        limit: Optional[int] = None,
        host_byteorder: str = sys.byteorder,
    ) -> None:
        view = memoryview(content)
        if view.format != "B" or view.ndim != 1:
            view = view.cast("B")
        self._content = view.toreadonly()
        size = len(self._content)
        if limit is None:
            limit = size
        if not 0 <= begin <= limit <= size:
            raise OutOfRangeError(f"invalid cursor bounds begin={begin} limit={limit} size={size}")
        if host_byteorder not in ("little", "big"):
            raise ValueError(f"unknown byte order {host_byteorder!r}")
        self._begin = begin
        self._current = begin
        self._limit = limit
        self.host_byteorder = host_byteorder

    @classmethod
    def from_file(cls, path: Union[str, Path], **kwargs) -> "BinaryCursor":
        """Read ``path`` into memory; the cursor owns the resulting buffer."""
        return cls(Path(path).read_bytes(), **kwargs)

    @classmethod
    def from_bytes(cls, data: BytesLike, **kwargs) -> "BinaryCursor":
        """Borrow ``data``; the caller must keep it alive and unmodified."""
        return cls(data, **kwargs)

    def __repr__(self) -> str:
        return (
            f"BinaryCursor(begin={self._begin}, current={self._current}, "
            f"limit={self._limit}, size={len(self._content)})"
        )

    # ------------------------------------------------------------------
    # Position bookkeeping
    # ------------------------------------------------------------------
    @property
    def begin(self) -> int:
        return self._begin

    @property
    def current(self) -> int:
        return self._current

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def position(self) -> int:
        """Offset of ``current`` relative to ``begin``."""
        return self._current - self._begin

    @property
    def remaining(self) -> int:
        return self._limit - self._current

    def has_next(self) -> bool:
        return self._current < self._limit

    def seek_from_current(self, offset: int) -> None:
        self._seek(self._current + offset)

    def seek_from_origin(self, offset: int) -> None:
        self._seek(self._begin + offset)

    def _seek(self, target: int) -> None:
        if target < self._begin or target > self._limit:
            raise OutOfRangeError(
                f"seek target {target} outside [{self._begin}, {self._limit}]"
            )
        self._current = target

    def truncate(self, length: int) -> None:
        """Narrow the readable range to ``length`` bytes from ``current``."""
        if length < 0 or self._current + length > self._limit:
            raise OutOfRangeError(
                f"cannot truncate to {length} bytes; {self.remaining} remain"
            )
        self._limit = self._current + length

    # ------------------------------------------------------------------
    # Raw reads
    # ------------------------------------------------------------------
    def peek(self) -> int:
        if self._current >= self._limit:
            raise EndOfStreamError(f"peek at end of stream (offset {self._current})")
        return self._content[self._current]

    def read_bytes(self, count: int) -> bytes:
        if count < 0:
            raise ValueError("byte count must be non-negative")
        if count > self.remaining:
            raise EndOfStreamError(
                f"need {count} bytes at offset {self._current}, {self.remaining} remain"
            )
        start = self._current
        self._current += count
        return bytes(self._content[start : self._current])

    def read_byte(self) -> int:
        return self.read_bytes(1)[0]

    def _read_fixed(self, size: int) -> int:
        raw = self.read_bytes(size)
        # Interpret as a native load would, then swap on big-endian hosts.
        value = int.from_bytes(raw, self.host_byteorder)
        if self.host_byteorder == "big":
            value = _byteswap(value, size)
        return value

    def read_uint16(self) -> int:
        return self._read_fixed(2)

    def read_uint32(self) -> int:
        return self._read_fixed(4)

    def read_uint64(self) -> int:
        return self._read_fixed(8)

    # ------------------------------------------------------------------
    # Compressed integers (ECMA-335 II.23.2)
    # ------------------------------------------------------------------
    def read_compressed_uint32(self) -> int:
        width = compressed_width(self.peek())
        raw = self.read_bytes(width)
        return int.from_bytes(raw, "big") & _payload_mask(width)

    def read_compressed_int32(self) -> int:
        """Read a compressed signed integer.

        The encoder rotates the sign into bit 0 before applying the unsigned
        encoding, so the sign is restored by shifting right and filling every
        bit above the tier's significant width.  Only call this when the
        value is known to be signed; most compressed values are not.
        """
        width = compressed_width(self.peek())
        raw = self.read_compressed_uint32()
        value = raw >> 1
        if raw & 0x1:
            value |= _sign_extension(width)
            value -= 1 << 32
        return value
