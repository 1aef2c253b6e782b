"""Big-endian NBT reader/writer used for .litematic files.

Values map onto plain Python types where the mapping is unambiguous
(int -> TAG_Int, float -> TAG_Double, str, bytes, dict). Tags that would
otherwise lose their type on a read/write cycle come back as the typed
wrappers below, so a loaded file can be written back unchanged.
"""

from __future__ import annotations

import gzip
import struct
import zlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


TAG_END = 0
TAG_BYTE = 1
TAG_SHORT = 2
TAG_INT = 3
TAG_LONG = 4
TAG_FLOAT = 5
TAG_DOUBLE = 6
TAG_BYTE_ARRAY = 7
TAG_STRING = 8
TAG_LIST = 9
TAG_COMPOUND = 10
TAG_INT_ARRAY = 11
TAG_LONG_ARRAY = 12

GZIP_MAGIC = b"\x1f\x8b"


class NBTError(Exception):
    pass


class Byte(int):
    pass


class Short(int):
    pass


class Long(int):
    pass


class Float(float):
    pass


class IntArray(list):
    pass


class LongArray(list):
    pass


@dataclass
class NbtList:
    inner_tag: int
    items: list[Any] = field(default_factory=list)


@dataclass
class _Buf:
    b: bytes
    o: int = 0

    def read(self, n: int) -> bytes:
        if self.o + n > len(self.b):
            raise NBTError("unexpected EOF while reading NBT")
        out = self.b[self.o : self.o + n]
        self.o += n
        return out

    def read_u8(self) -> int:
        return self.read(1)[0]

    def read_i8(self) -> int:
        return struct.unpack(">b", self.read(1))[0]

    def read_i16(self) -> int:
        return struct.unpack(">h", self.read(2))[0]

    def read_i32(self) -> int:
        return struct.unpack(">i", self.read(4))[0]

    def read_i64(self) -> int:
        return struct.unpack(">q", self.read(8))[0]

    def read_f32(self) -> float:
        return struct.unpack(">f", self.read(4))[0]

    def read_f64(self) -> float:
        return struct.unpack(">d", self.read(8))[0]

    def read_string(self) -> str:
        ln = struct.unpack(">H", self.read(2))[0]
        try:
            return self.read(ln).decode("utf-8", errors="strict")
        except UnicodeDecodeError as exc:
            raise NBTError(f"invalid UTF-8 in NBT string: {exc}") from exc


def _read_payload(buf: _Buf, tag: int) -> Any:
    if tag == TAG_BYTE:
        return Byte(buf.read_i8())
    if tag == TAG_SHORT:
        return Short(buf.read_i16())
    if tag == TAG_INT:
        return buf.read_i32()
    if tag == TAG_LONG:
        return Long(buf.read_i64())
    if tag == TAG_FLOAT:
        return Float(buf.read_f32())
    if tag == TAG_DOUBLE:
        return buf.read_f64()
    if tag == TAG_BYTE_ARRAY:
        ln = buf.read_i32()
        if ln < 0:
            raise NBTError("negative byte array length")
        return buf.read(ln)
    if tag == TAG_STRING:
        return buf.read_string()
    if tag == TAG_LIST:
        inner = buf.read_u8()
        ln = buf.read_i32()
        if ln < 0:
            raise NBTError("negative list length")
        return NbtList(inner_tag=inner, items=[_read_payload(buf, inner) for _ in range(ln)])
    if tag == TAG_COMPOUND:
        out: dict[str, Any] = {}
        while True:
            t = buf.read_u8()
            if t == TAG_END:
                return out
            name = buf.read_string()
            out[name] = _read_payload(buf, t)
    if tag == TAG_INT_ARRAY:
        ln = buf.read_i32()
        if ln < 0:
            raise NBTError("negative int array length")
        return IntArray(buf.read_i32() for _ in range(ln))
    if tag == TAG_LONG_ARRAY:
        ln = buf.read_i32()
        if ln < 0:
            raise NBTError("negative long array length")
        return LongArray(buf.read_i64() for _ in range(ln))
    raise NBTError(f"unsupported NBT tag: {tag}")


def loads(raw: bytes) -> dict[str, Any]:
    if raw[:2] == GZIP_MAGIC:
        try:
            raw = gzip.decompress(raw)
        except (OSError, EOFError, zlib.error) as exc:
            raise NBTError(f"corrupt gzip stream: {exc}") from exc
    buf = _Buf(raw)
    root_tag = buf.read_u8()
    if root_tag != TAG_COMPOUND:
        raise NBTError(f"unexpected root tag: {root_tag} (expected compound)")
    _ = buf.read_string()  # root name, usually empty
    payload = _read_payload(buf, TAG_COMPOUND)
    if not isinstance(payload, dict):
        raise NBTError("root compound parse failed")
    return payload


def read_nbt(path: Path) -> dict[str, Any]:
    return loads(path.read_bytes())


def _enc_string(s: str) -> bytes:
    b = s.encode("utf-8", errors="strict")
    if len(b) > 65535:
        raise NBTError("NBT string too long")
    return struct.pack(">H", len(b)) + b


def _tag_type(value: Any) -> int:
    # Wrapper checks must come before the int/float/list fallbacks.
    if isinstance(value, bool):
        return TAG_BYTE
    if isinstance(value, Byte):
        return TAG_BYTE
    if isinstance(value, Short):
        return TAG_SHORT
    if isinstance(value, Long):
        return TAG_LONG
    if isinstance(value, int):
        return TAG_INT
    if isinstance(value, Float):
        return TAG_FLOAT
    if isinstance(value, float):
        return TAG_DOUBLE
    if isinstance(value, str):
        return TAG_STRING
    if isinstance(value, (bytes, bytearray)):
        return TAG_BYTE_ARRAY
    if isinstance(value, IntArray):
        return TAG_INT_ARRAY
    if isinstance(value, LongArray):
        return TAG_LONG_ARRAY
    if isinstance(value, (NbtList, list)):
        return TAG_LIST
    if isinstance(value, dict):
        return TAG_COMPOUND
    raise NBTError(f"unsupported Python type for NBT write: {type(value)}")


def _write_payload(value: Any) -> tuple[int, bytes]:
    tag = _tag_type(value)
    if tag == TAG_BYTE:
        return tag, struct.pack(">b", int(value))
    if tag == TAG_SHORT:
        return tag, struct.pack(">h", int(value))
    if tag == TAG_INT:
        return tag, struct.pack(">i", int(value))
    if tag == TAG_LONG:
        return tag, struct.pack(">q", int(value))
    if tag == TAG_FLOAT:
        return tag, struct.pack(">f", float(value))
    if tag == TAG_DOUBLE:
        return tag, struct.pack(">d", float(value))
    if tag == TAG_STRING:
        return tag, _enc_string(value)
    if tag == TAG_BYTE_ARRAY:
        return tag, struct.pack(">i", len(value)) + bytes(value)
    if tag == TAG_INT_ARRAY:
        return tag, struct.pack(">i", len(value)) + b"".join(struct.pack(">i", int(v)) for v in value)
    if tag == TAG_LONG_ARRAY:
        return tag, struct.pack(">i", len(value)) + b"".join(struct.pack(">q", int(v)) for v in value)
    if tag == TAG_COMPOUND:
        pieces: list[bytes] = []
        for k, v in value.items():
            t, p = _write_payload(v)
            pieces.append(bytes([t]) + _enc_string(k) + p)
        pieces.append(bytes([TAG_END]))
        return tag, b"".join(pieces)
    if isinstance(value, NbtList):
        inner = value.inner_tag
        items = value.items
    else:
        items = value
        inner = _tag_type(items[0]) if items else TAG_END
    payloads = []
    for item in items:
        t, p = _write_payload(item)
        if t != inner:
            raise NBTError("NBT list item type mismatch")
        payloads.append(p)
    return TAG_LIST, bytes([inner]) + struct.pack(">i", len(items)) + b"".join(payloads)


def dumps(root: dict[str, Any]) -> bytes:
    tag, payload = _write_payload(root)
    if tag != TAG_COMPOUND:
        raise NBTError("root NBT payload must be compound")
    raw = bytes([TAG_COMPOUND]) + _enc_string("") + payload
    # mtime=0 keeps output byte-identical for identical input.
    return gzip.compress(raw, mtime=0)
