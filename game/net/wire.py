"""
Ordered field stream for replication snapshots.

Writers and readers must touch fields in exactly the same order; there are no
tags or lengths per field, so a mismatched order silently corrupts the read.
That is a caller contract and is not checked at runtime.

All values are big-endian. Strings are utf-8 with a uint16 length prefix.
"""

from __future__ import annotations

import struct

_I32 = struct.Struct(">i")
_F64 = struct.Struct(">d")
_U16 = struct.Struct(">H")
_BOOL = struct.Struct(">?")


class WireWriter:
    def __init__(self):
        self._buf = bytearray()

    def write_int(self, value: int) -> None:
        self._buf += _I32.pack(int(value))

    def write_float(self, value: float) -> None:
        self._buf += _F64.pack(float(value))

    def write_bool(self, value: bool) -> None:
        self._buf += _BOOL.pack(bool(value))

    def write_str(self, value: str) -> None:
        raw = str(value).encode("utf-8")
        self._buf += _U16.pack(len(raw))
        self._buf += raw

    def getvalue(self) -> bytes:
        return bytes(self._buf)


class WireReader:
    def __init__(self, data: bytes):
        self._data = memoryview(data)
        self._pos = 0

    def _take(self, fmt: struct.Struct):
        (value,) = fmt.unpack_from(self._data, self._pos)
        self._pos += fmt.size
        return value

    def read_int(self) -> int:
        return int(self._take(_I32))

    def read_float(self) -> float:
        return float(self._take(_F64))

    def read_bool(self) -> bool:
        return bool(self._take(_BOOL))

    def read_str(self) -> str:
        n = self._take(_U16)
        raw = bytes(self._data[self._pos : self._pos + n])
        self._pos += n
        return raw.decode("utf-8")

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos
