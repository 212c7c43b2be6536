"""Little-endian binary serialization with Bitcoin-style variable-length integers."""

from __future__ import annotations

HASH256_SIZE = 32
HASH160_SIZE = 20

_VARINT_UINT16 = 0xFD
_VARINT_UINT32 = 0xFE
_VARINT_UINT64 = 0xFF


class DeserializationError(ValueError):
    """Raised when a buffer does not hold the data being read."""


def _as_bytes(value: bytes | bytearray | memoryview | str) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


class Serializer:
    """Accumulates little-endian encoded values into a byte buffer."""

    def __init__(self) -> None:
        self._data = bytearray()

    def _write_uint(self, value: int, size: int) -> None:
        self._data += int(value).to_bytes(size, "little", signed=False)

    def _write_int(self, value: int, size: int) -> None:
        self._data += int(value).to_bytes(size, "little", signed=True)

    def write_uint8(self, value: int) -> None:
        self._write_uint(value, 1)

    def write_uint16(self, value: int) -> None:
        self._write_uint(value, 2)

    def write_uint32(self, value: int) -> None:
        self._write_uint(value, 4)

    def write_uint64(self, value: int) -> None:
        self._write_uint(value, 8)

    def write_int32(self, value: int) -> None:
        self._write_int(value, 4)

    def write_int64(self, value: int) -> None:
        self._write_int(value, 8)

    def write_bool(self, value: bool) -> None:
        self.write_uint8(1 if value else 0)

    def write_varint(self, value: int) -> None:
        """Write an unsigned integer in the compact VarInt format."""
        if value < 0:
            raise ValueError("VarInt value must be non-negative")
        if value < _VARINT_UINT16:
            self.write_uint8(value)
        elif value <= 0xFFFF:
            self.write_uint8(_VARINT_UINT16)
            self.write_uint16(value)
        elif value <= 0xFFFFFFFF:
            self.write_uint8(_VARINT_UINT32)
            self.write_uint32(value)
        else:
            self.write_uint8(_VARINT_UINT64)
            self.write_uint64(value)

    def write_compact_size(self, size: int) -> None:
        self.write_varint(size)

    def write_bytes(self, data: bytes | bytearray | memoryview) -> None:
        """Append raw bytes without a length prefix."""
        self._data += bytes(data)

    def write_string(self, value: str | bytes) -> None:
        """Write a length-prefixed string (UTF-8 for ``str``)."""
        raw = _as_bytes(value)
        self.write_compact_size(len(raw))
        self._data += raw

    def _write_fixed(self, value: bytes, size: int, name: str) -> None:
        raw = bytes(value)
        if len(raw) != size:
            raise ValueError(f"{name} must be exactly {size} bytes, got {len(raw)}")
        self._data += raw

    def write_hash256(self, value: bytes) -> None:
        self._write_fixed(value, HASH256_SIZE, "Hash256")

    def write_hash160(self, value: bytes) -> None:
        self._write_fixed(value, HASH160_SIZE, "Hash160")

    def getvalue(self) -> bytes:
        """Return the bytes written so far."""
        return bytes(self._data)

    def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)


class Deserializer:
    """Reads little-endian encoded values from a byte buffer."""

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._data = bytes(data)
        self._pos = 0

    def _take(self, size: int) -> bytes:
        if size < 0 or self._pos + size > len(self._data):
            raise DeserializationError("Deserializer: not enough data")
        chunk = self._data[self._pos:self._pos + size]
        self._pos += size
        return chunk

    def available(self) -> bool:
        return self._pos < len(self._data)

    def remaining(self) -> int:
        return len(self._data) - self._pos

    def position(self) -> int:
        return self._pos

    def skip(self, count: int) -> None:
        self._take(count)

    def reset(self) -> None:
        self._pos = 0

    def read_uint8(self) -> int:
        return self._take(1)[0]

    def read_uint16(self) -> int:
        return int.from_bytes(self._take(2), "little")

    def read_uint32(self) -> int:
        return int.from_bytes(self._take(4), "little")

    def read_uint64(self) -> int:
        return int.from_bytes(self._take(8), "little")

    def read_int32(self) -> int:
        return int.from_bytes(self._take(4), "little", signed=True)

    def read_int64(self) -> int:
        return int.from_bytes(self._take(8), "little", signed=True)

    def read_bool(self) -> bool:
        return self.read_uint8() != 0

    def read_varint(self) -> int:
        first = self.read_uint8()
        if first < _VARINT_UINT16:
            return first
        if first == _VARINT_UINT16:
            return self.read_uint16()
        if first == _VARINT_UINT32:
            return self.read_uint32()
        return self.read_uint64()

    def read_compact_size(self) -> int:
        return self.read_varint()

    def read_bytes(self, length: int) -> bytes:
        return self._take(length)

    def read_string(self, length: int) -> str:
        """Read ``length`` bytes and decode them as UTF-8."""
        raw = self._take(length)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DeserializationError(f"invalid UTF-8 string: {exc}") from exc

    def read_hash256(self) -> bytes:
        return self._take(HASH256_SIZE)

    def read_hash160(self) -> bytes:
        return self._take(HASH160_SIZE)

    def read_remaining(self) -> bytes:
        rest = self._data[self._pos:]
        self._pos = len(self._data)
        return rest