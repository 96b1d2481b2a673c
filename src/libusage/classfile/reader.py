from __future__ import annotations

import struct

from .errors import ClassFileError, MalformedClassFile

_U2 = struct.Struct(">H")
_U4 = struct.Struct(">I")
_S4 = struct.Struct(">i")


class ByteReader:
    """
    Big-endian cursor over an immutable byte buffer.

    Every read is bounds checked; running past the end raises ``error``
    (``MalformedClassFile`` unless the caller asks for another kind).
    """

    def __init__(self, data: bytes, offset: int = 0, error: type[ClassFileError] = MalformedClassFile):
        self.data = data
        self.offset = offset
        self.error = error

    def __len__(self) -> int:
        return len(self.data)

    @property
    def remaining(self) -> int:
        return len(self.data) - self.offset

    def _need(self, n: int) -> int:
        if n < 0:
            raise self.error(f"negative length {n} at offset {self.offset}")
        start = self.offset
        if start + n > len(self.data):
            raise self.error(
                f"need {n} bytes at offset {start}, only {len(self.data) - start} left"
            )
        self.offset = start + n
        return start

    def u1(self) -> int:
        return self.data[self._need(1)]

    def s1(self) -> int:
        v = self.u1()
        return v - 0x100 if v & 0x80 else v

    def u2(self) -> int:
        return _U2.unpack_from(self.data, self._need(2))[0]

    def u4(self) -> int:
        return _U4.unpack_from(self.data, self._need(4))[0]

    def s4(self) -> int:
        return _S4.unpack_from(self.data, self._need(4))[0]

    def read(self, n: int) -> bytes:
        start = self._need(n)
        return bytes(self.data[start : start + n])

    def skip(self, n: int) -> None:
        self._need(n)
