"""String encoding for both chunk revisions.

Lua 5.1 writes ``size_t size`` followed by ``size`` bytes.  Those bytes are
kept as they are, so a value read from a 5.1 chunk normally ends with the
C terminator written by the reference dumper; the loader never checks it.
Lua 5.3 writes ``size + 1`` in a single byte when it is
below ``0xFF`` and otherwise the escape byte ``0xFF`` followed by a
``size_t``; no terminator is stored.  In both revisions a size of zero marks
an absent string (``None``), which is distinct from the empty string.
"""

from __future__ import annotations

from .byteops import ByteReader, ByteWriter, Primitives
from .exceptions import ValueOutOfRange
from .types import ChunkHeader, LuaString, Revision

LONG_STRING_ESCAPE = 0xFF


def is_long_string(value: LuaString) -> bool:
    """Return ``True`` when Lua 5.3 stores ``value`` in the escaped long form."""

    return value is not None and len(value) + 1 >= LONG_STRING_ESCAPE


def decode_string(
    reader: ByteReader,
    header: ChunkHeader,
    prims: Primitives | None = None,
    *,
    field: str = "string",
) -> LuaString:
    prims = prims or Primitives.from_header(header)
    if header.revision is Revision.LUA51:
        return _decode_string_51(reader, prims, field)
    return _decode_string_53(reader, prims, field)


def encode_string(
    writer: ByteWriter,
    header: ChunkHeader,
    value: LuaString,
    prims: Primitives | None = None,
    *,
    field: str = "string",
) -> None:
    prims = prims or Primitives.from_header(header)
    if header.revision is Revision.LUA51:
        _encode_string_51(writer, prims, value, field)
    else:
        _encode_string_53(writer, prims, value, field)


def _decode_string_51(reader: ByteReader, prims: Primitives, field: str) -> LuaString:
    size = prims.read_size(reader, f"{field}.size")
    if size == 0:
        return None
    return reader.read_bytes(size, field)


def _encode_string_51(writer: ByteWriter, prims: Primitives, value: LuaString, field: str) -> None:
    if value is None:
        prims.write_size(writer, 0, f"{field}.size")
        return
    if not value:
        raise ValueOutOfRange(
            "Lua 5.1 strings include their terminator; the empty string is b'\\x00'",
            field=field,
            actual=value,
        )
    prims.write_size(writer, len(value), f"{field}.size")
    writer.write_bytes(bytes(value))


def _decode_string_53(reader: ByteReader, prims: Primitives, field: str) -> LuaString:
    size = reader.read_byte(f"{field}.size")
    if size == LONG_STRING_ESCAPE:
        size = prims.read_size(reader, f"{field}.size")
    if size == 0:
        return None
    return reader.read_bytes(size - 1, field)


def _encode_string_53(writer: ByteWriter, prims: Primitives, value: LuaString, field: str) -> None:
    if value is None:
        writer.write_byte(0, f"{field}.size")
        return
    if is_long_string(value):
        writer.write_byte(LONG_STRING_ESCAPE, f"{field}.size")
        prims.write_size(writer, len(value) + 1, f"{field}.size")
    else:
        writer.write_byte(len(value) + 1, f"{field}.size")
    writer.write_bytes(bytes(value))


__all__ = ["LONG_STRING_ESCAPE", "is_long_string", "decode_string", "encode_string"]
