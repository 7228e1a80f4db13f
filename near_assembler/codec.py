"""Binary encodings used on the NEAR wire: base58 text and Borsh structures."""

from __future__ import annotations

import struct
from typing import Callable, Iterable, TypeVar

T = TypeVar("T")

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_BASE58_INDEX = {char: index for index, char in enumerate(BASE58_ALPHABET)}

U64_MAX = 2**64 - 1
U128_MAX = 2**128 - 1


class CodecError(ValueError):
    """Raised when a value cannot be encoded or decoded."""


def base58_encode(data: bytes) -> str:
    """Encode bytes using the Bitcoin base58 alphabet."""

    leading_zeros = len(data) - len(data.lstrip(b"\x00"))
    number = int.from_bytes(data, "big")
    digits: list[str] = []
    while number:
        number, remainder = divmod(number, 58)
        digits.append(BASE58_ALPHABET[remainder])
    return "1" * leading_zeros + "".join(reversed(digits))


def base58_decode(text: str) -> bytes:
    """Decode base58 text, rejecting characters outside the alphabet."""

    number = 0
    for char in text:
        try:
            number = number * 58 + _BASE58_INDEX[char]
        except KeyError:
            raise CodecError(f"invalid base58 character {char!r}") from None
    leading_ones = len(text) - len(text.lstrip("1"))
    body = number.to_bytes((number.bit_length() + 7) // 8, "big") if number else b""
    return b"\x00" * leading_ones + body


class BorshWriter:
    """Accumulates Borsh-encoded fields into a byte buffer."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    def u8(self, value: int) -> "BorshWriter":
        if not 0 <= value <= 0xFF:
            raise CodecError(f"u8 out of range: {value}")
        self._buffer.append(value)
        return self

    def u32(self, value: int) -> "BorshWriter":
        if not 0 <= value <= 0xFFFFFFFF:
            raise CodecError(f"u32 out of range: {value}")
        self._buffer += struct.pack("<I", value)
        return self

    def u64(self, value: int) -> "BorshWriter":
        if not 0 <= value <= U64_MAX:
            raise CodecError(f"u64 out of range: {value}")
        self._buffer += struct.pack("<Q", value)
        return self

    def u128(self, value: int) -> "BorshWriter":
        if not 0 <= value <= U128_MAX:
            raise CodecError(f"u128 out of range: {value}")
        self._buffer += value.to_bytes(16, "little")
        return self

    def fixed(self, data: bytes, length: int) -> "BorshWriter":
        if len(data) != length:
            raise CodecError(f"expected {length} bytes, got {len(data)}")
        self._buffer += data
        return self

    def blob(self, data: bytes) -> "BorshWriter":
        self.u32(len(data))
        self._buffer += data
        return self

    def string(self, value: str) -> "BorshWriter":
        return self.blob(value.encode("utf-8"))

    def option(self, value: T | None, write: Callable[[T], object]) -> "BorshWriter":
        if value is None:
            return self.u8(0)
        self.u8(1)
        write(value)
        return self

    def vec(self, items: Iterable[T], write: Callable[[T], object]) -> "BorshWriter":
        items = list(items)
        self.u32(len(items))
        for item in items:
            write(item)
        return self

    def getvalue(self) -> bytes:
        return bytes(self._buffer)
