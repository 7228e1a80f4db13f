"""Just enough of the WebAssembly binary format to list a module's exports."""

from __future__ import annotations

from .codec import CodecError

WASM_MAGIC = b"\x00asm"
EXPORT_SECTION_ID = 7
EXPORT_KIND_FUNC = 0


class _Reader:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.offset = 0

    @property
    def exhausted(self) -> bool:
        return self.offset >= len(self.data)

    def take(self, count: int) -> bytes:
        end = self.offset + count
        if count < 0 or end > len(self.data):
            raise CodecError(f"wasm module truncated at byte {self.offset}")
        chunk = self.data[self.offset:end]
        self.offset = end
        return chunk

    def byte(self) -> int:
        return self.take(1)[0]

    def leb128(self) -> int:
        """Unsigned LEB128, at most 32 bits as the format allows."""

        result = 0
        for shift in range(0, 35, 7):
            value = self.byte()
            result |= (value & 0x7F) << shift
            if not value & 0x80:
                return result
        raise CodecError(f"wasm integer too long at byte {self.offset}")

    def name(self) -> str:
        raw = self.take(self.leb128())
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise CodecError(f"wasm export name is not UTF-8: {exc}") from exc


def exported_functions(code: bytes) -> list[str]:
    """Names of the functions ``code`` exports, in declaration order."""

    reader = _Reader(bytes(code))
    if reader.take(4) != WASM_MAGIC:
        raise CodecError("contract code is not a wasm module")
    reader.take(4)  # version

    names: list[str] = []
    while not reader.exhausted:
        section_id = reader.byte()
        body = _Reader(reader.take(reader.leb128()))
        if section_id != EXPORT_SECTION_ID:
            continue
        for _ in range(body.leb128()):
            name = body.name()
            kind = body.byte()
            body.leb128()  # index
            if kind == EXPORT_KIND_FUNC:
                names.append(name)
    return names
