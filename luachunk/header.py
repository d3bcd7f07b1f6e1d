"""Chunk header codec.

Lua 5.1 header::

    "\\x1bLua" 0x51 format endian sizeof(int) sizeof(size_t)
    sizeof(Instruction) sizeof(lua_Number) integral

Lua 5.3 header::

    "\\x1bLua" 0x53 format LUAC_DATA sizeof(int) sizeof(size_t)
    sizeof(Instruction) sizeof(lua_Integer) sizeof(lua_Number)
    LUAC_INT LUAC_NUM

Lua 5.3 has no endianness byte; the byte order is discovered from the
``LUAC_INT`` / ``LUAC_NUM`` sentinels.
"""

from __future__ import annotations

import logging

from .byteops import (
    ByteReader,
    ByteWriter,
    Endian,
    check_width,
    pack_float,
    pack_int,
    unpack_float,
    unpack_int,
)
from .exceptions import (
    BadEndiannessSentinel,
    BadNumberSentinel,
    BadSentinelData,
    BadSignature,
    UnsupportedEndianness,
    UnsupportedFormat,
    UnsupportedVersion,
)
from .types import ChunkHeader, Revision

LOGGER = logging.getLogger(__name__)

SIGNATURE = b"\x1bLua"
LUAJIT_SIGNATURE = b"\x1bLJ"
OFFICIAL_FORMAT = 0
LUAC_DATA = b"\x19\x93\r\n\x1a\n"
LUAC_INT = 0x5678
LUAC_NUM = 370.5
SENTINEL_NUMBER_TOLERANCE = 1e-6

_ENDIAN_BYTES = {0: "big", 1: "little"}


def _read_revision(reader: ByteReader) -> Revision:
    offset = reader.offset
    version = reader.read_byte("version")
    try:
        return Revision(version)
    except ValueError:
        raise UnsupportedVersion(
            "unsupported chunk version",
            field="version",
            expected=[f"0x{rev.value:02x}" for rev in Revision],
            actual=f"0x{version:02x}",
            offset=offset,
        ) from None


def _read_width(reader: ByteReader, field: str) -> int:
    return check_width(reader.read_byte(field), field=field)


def decode_header(reader: ByteReader) -> ChunkHeader:
    """Read and validate a chunk header, discovering its machine description."""

    prefix = reader.read_bytes(3, "signature")
    if prefix == LUAJIT_SIGNATURE:
        raise UnsupportedFormat("LuaJIT bytecode is not supported", field="signature", actual=prefix, offset=0)
    signature = prefix + reader.read_bytes(1, "signature")
    if signature != SIGNATURE:
        raise BadSignature("not a Lua binary chunk", field="signature", expected=SIGNATURE, actual=signature, offset=0)

    revision = _read_revision(reader)

    offset = reader.offset
    fmt = reader.read_byte("format")
    if fmt != OFFICIAL_FORMAT:
        raise UnsupportedFormat("unofficial chunk format", field="format", expected=OFFICIAL_FORMAT, actual=fmt, offset=offset)

    if revision is Revision.LUA51:
        header = _decode_header_51(reader)
    else:
        header = _decode_header_53(reader)
    LOGGER.debug(
        "chunk header: revision=%s byte_order=%s widths(int=%d size=%d instruction=%d integer=%d number=%d)",
        header.revision.name,
        header.byte_order,
        header.int_width,
        header.size_width,
        header.instruction_width,
        header.integer_width,
        header.number_width,
    )
    return header


def _decode_header_51(reader: ByteReader) -> ChunkHeader:
    offset = reader.offset
    endian_byte = reader.read_byte("endianness")
    if endian_byte not in _ENDIAN_BYTES:
        raise UnsupportedEndianness(
            "unsupported endianness flag", field="endianness", expected=(0, 1), actual=endian_byte, offset=offset
        )
    int_width = _read_width(reader, "int_width")
    size_width = _read_width(reader, "size_width")
    instruction_width = _read_width(reader, "instruction_width")
    number_width = _read_width(reader, "number_width")
    offset = reader.offset
    integral = reader.read_byte("integral_numbers")
    if integral not in (0, 1):
        raise UnsupportedFormat(
            "unsupported integral-numbers flag", field="integral_numbers", expected=(0, 1), actual=integral, offset=offset
        )
    return ChunkHeader(
        revision=Revision.LUA51,
        byte_order=_ENDIAN_BYTES[endian_byte],
        int_width=int_width,
        size_width=size_width,
        instruction_width=instruction_width,
        integer_width=8,
        number_width=number_width,
        integral_numbers=integral == 1,
    )


def _decode_header_53(reader: ByteReader) -> ChunkHeader:
    offset = reader.offset
    data = reader.read_bytes(len(LUAC_DATA), "luac_data")
    if data != LUAC_DATA:
        raise BadSentinelData("corrupted chunk", field="luac_data", expected=LUAC_DATA, actual=data, offset=offset)

    int_width = _read_width(reader, "int_width")
    size_width = _read_width(reader, "size_width")
    instruction_width = _read_width(reader, "instruction_width")
    integer_width = _read_width(reader, "integer_width")
    number_width = _read_width(reader, "number_width")

    offset = reader.offset
    raw_int = reader.read_bytes(integer_width, "luac_int")
    raw_num = reader.read_bytes(number_width, "luac_num")
    byte_order = detect_byte_order(raw_int, raw_num, offset=offset)

    return ChunkHeader(
        revision=Revision.LUA53,
        byte_order=byte_order,
        int_width=int_width,
        size_width=size_width,
        instruction_width=instruction_width,
        integer_width=integer_width,
        number_width=number_width,
    )


def detect_byte_order(raw_int: bytes, raw_num: bytes, *, offset: int | None = None) -> Endian:
    """Return the byte order under which the sentinels decode to LUAC_INT / LUAC_NUM."""

    byte_order: Endian = "big"
    value = unpack_int(raw_int, byte_order)
    if value != LUAC_INT:
        byte_order = "little"
        value = unpack_int(raw_int, byte_order)
        if value != LUAC_INT:
            raise BadEndiannessSentinel(
                "endianness mismatch", field="luac_int", expected=LUAC_INT, actual=raw_int, offset=offset
            )
    number = unpack_float(raw_num, byte_order)
    if not abs(number - LUAC_NUM) < SENTINEL_NUMBER_TOLERANCE:
        raise BadNumberSentinel(
            "float format mismatch",
            field="luac_num",
            expected=LUAC_NUM,
            actual=number,
            offset=None if offset is None else offset + len(raw_int),
        )
    return byte_order


def validate_header(header: ChunkHeader) -> None:
    """Raise when ``header`` cannot be written."""

    if header.byte_order not in ("big", "little"):
        raise UnsupportedEndianness(
            "unsupported byte order", field="byte_order", expected=("big", "little"), actual=header.byte_order
        )
    check_width(header.int_width, field="int_width")
    check_width(header.size_width, field="size_width")
    check_width(header.instruction_width, field="instruction_width")
    check_width(header.number_width, field="number_width")
    if header.revision is Revision.LUA53:
        check_width(header.integer_width, field="integer_width")


def encode_header(writer: ByteWriter, header: ChunkHeader) -> None:
    validate_header(header)
    writer.write_bytes(SIGNATURE)
    writer.write_byte(header.revision.value, "version")
    writer.write_byte(OFFICIAL_FORMAT, "format")
    if header.revision is Revision.LUA51:
        writer.write_byte(1 if header.byte_order == "little" else 0, "endianness")
        writer.write_byte(header.int_width, "int_width")
        writer.write_byte(header.size_width, "size_width")
        writer.write_byte(header.instruction_width, "instruction_width")
        writer.write_byte(header.number_width, "number_width")
        writer.write_byte(1 if header.integral_numbers else 0, "integral_numbers")
        return

    writer.write_bytes(LUAC_DATA)
    writer.write_byte(header.int_width, "int_width")
    writer.write_byte(header.size_width, "size_width")
    writer.write_byte(header.instruction_width, "instruction_width")
    writer.write_byte(header.integer_width, "integer_width")
    writer.write_byte(header.number_width, "number_width")
    writer.write_bytes(pack_int(LUAC_INT, header.integer_width, header.byte_order, field="luac_int"))
    writer.write_bytes(pack_float(LUAC_NUM, header.number_width, header.byte_order, field="luac_num"))


__all__ = [
    "SIGNATURE",
    "LUAJIT_SIGNATURE",
    "OFFICIAL_FORMAT",
    "LUAC_DATA",
    "LUAC_INT",
    "LUAC_NUM",
    "SENTINEL_NUMBER_TOLERANCE",
    "decode_header",
    "detect_byte_order",
    "validate_header",
    "encode_header",
]
