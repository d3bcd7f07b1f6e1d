"""Constant pool entries: a type tag byte followed by its payload."""

from __future__ import annotations

import math

from .byteops import ByteReader, ByteWriter, Primitives, pack_int, unpack_int
from .exceptions import UnknownConstantTag, UnsupportedConstant
from .strings import decode_string, encode_string, is_long_string
from .types import Boolean, ChunkHeader, Constant, Integer, Nil, Number, Revision, String

TAG_NIL = 0x00
TAG_BOOLEAN = 0x01
TAG_NUMBER = 0x03
TAG_STRING = 0x04
TAG_INTEGER = 0x13
TAG_LONG_STRING = 0x14


def decode_constant(reader: ByteReader, header: ChunkHeader, prims: Primitives) -> Constant:
    offset = reader.offset
    tag = reader.read_byte("constant.tag")
    if tag == TAG_NIL:
        return Nil()
    if tag == TAG_BOOLEAN:
        return Boolean(reader.read_byte("constant.boolean") != 0)
    if tag == TAG_NUMBER:
        if header.revision is Revision.LUA51 and header.integral_numbers:
            # integral builds store lua_Number as a plain integer
            return Integer(_read_integral_number(reader, prims))
        return Number(prims.read_number(reader, "constant.number"))
    if tag == TAG_INTEGER and header.revision is Revision.LUA53:
        return Integer(prims.read_integer(reader, "constant.integer"))
    if tag in (TAG_STRING, TAG_LONG_STRING):
        return String(decode_string(reader, header, prims, field="constant.string"))
    raise UnknownConstantTag(tag, offset=offset)


def encode_constant(writer: ByteWriter, header: ChunkHeader, prims: Primitives, constant: Constant) -> None:
    if isinstance(constant, Nil):
        writer.write_byte(TAG_NIL)
    elif isinstance(constant, Boolean):
        writer.write_byte(TAG_BOOLEAN)
        writer.write_byte(1 if constant.value else 0, "constant.boolean")
    elif isinstance(constant, Number):
        _encode_number(writer, header, prims, constant.value)
    elif isinstance(constant, Integer):
        _encode_integer(writer, header, prims, constant.value)
    elif isinstance(constant, String):
        writer.write_byte(string_tag(header, constant.value))
        encode_string(writer, header, constant.value, prims, field="constant.string")
    else:
        raise UnsupportedConstant("not a constant", field="constant", actual=type(constant).__name__)


def string_tag(header: ChunkHeader, value: bytes | None) -> int:
    """Tag byte used for a string constant of ``value``'s length."""

    if header.revision is Revision.LUA53 and is_long_string(value):
        return TAG_LONG_STRING
    return TAG_STRING


def _read_integral_number(reader: ByteReader, prims: Primitives) -> int:
    raw = reader.read_bytes(prims.number_width, "constant.number")
    return unpack_int(raw, prims.byte_order)


def _encode_number(writer: ByteWriter, header: ChunkHeader, prims: Primitives, value: float) -> None:
    if header.revision is Revision.LUA51 and header.integral_numbers:
        if not (math.isfinite(value) and float(value).is_integer()):
            raise UnsupportedConstant(
                "integral-number chunks cannot store fractional numbers", field="constant.number", actual=value
            )
        _write_integral_number(writer, prims, int(value))
        return
    writer.write_byte(TAG_NUMBER)
    prims.write_number(writer, value, "constant.number")


def _encode_integer(writer: ByteWriter, header: ChunkHeader, prims: Primitives, value: int) -> None:
    if header.revision is Revision.LUA53:
        writer.write_byte(TAG_INTEGER)
        prims.write_integer(writer, value, "constant.integer")
    elif header.integral_numbers:
        _write_integral_number(writer, prims, value)
    else:
        raise UnsupportedConstant(
            "Lua 5.1 chunks without integral numbers have no integer constants",
            field="constant.integer",
            actual=value,
        )


def _write_integral_number(writer: ByteWriter, prims: Primitives, value: int) -> None:
    writer.write_byte(TAG_NUMBER)
    writer.write_bytes(pack_int(value, prims.number_width, prims.byte_order, field="constant.number"))


__all__ = [
    "TAG_NIL",
    "TAG_BOOLEAN",
    "TAG_NUMBER",
    "TAG_STRING",
    "TAG_INTEGER",
    "TAG_LONG_STRING",
    "decode_constant",
    "encode_constant",
    "string_tag",
]
