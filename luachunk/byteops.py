"""Fixed-width primitives and byte stream helpers for binary chunks.

The header of a chunk describes the machine that produced it: the byte order
and the width (4 or 8 bytes) of ``int``, ``size_t``, ``Instruction``,
``lua_Integer`` and ``lua_Number``.  :class:`Primitives` captures that
description once the header is known and every later field is read or
written through it.
"""

from __future__ import annotations

import struct
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING, BinaryIO, Literal, Optional

from .exceptions import LengthOverflow, UnexpectedEndOfInput, UnsupportedWidth, ValueOutOfRange

if TYPE_CHECKING:  # pragma: no cover - used only for type checkers
    from .types import ChunkHeader

Endian = Literal["little", "big"]

SUPPORTED_WIDTHS = (4, 8)

# Upper bound for a single read call so a corrupted length cannot make the
# underlying stream allocate a huge buffer before hitting end of input.
_READ_BLOCK = 1 << 20

_FLOAT_CODES = {4: "f", 8: "d"}


def _struct_prefix(endian: Endian) -> str:
    return ">" if endian == "big" else "<"


def check_width(width: int, *, field: str) -> int:
    if width not in SUPPORTED_WIDTHS:
        raise UnsupportedWidth("unsupported width", field=field, expected=SUPPORTED_WIDTHS, actual=width)
    return width


def unpack_uint(raw: bytes, endian: Endian) -> int:
    """Return the unsigned integer stored in ``raw``."""

    return int.from_bytes(raw, endian, signed=False)


def unpack_int(raw: bytes, endian: Endian) -> int:
    """Return the two's complement integer stored in ``raw``."""

    return int.from_bytes(raw, endian, signed=True)


def unpack_float(raw: bytes, endian: Endian) -> float:
    """Return the IEEE-754 value stored in ``raw`` (4 or 8 bytes), widened to a float."""

    code = _FLOAT_CODES[len(raw)]
    return struct.unpack(_struct_prefix(endian) + code, raw)[0]


def _check_integer(value: int, field: str) -> None:
    if not isinstance(value, int):
        raise ValueOutOfRange("value is not an integer", field=field, actual=value)


def pack_uint(value: int, width: int, endian: Endian, *, field: str = "uint") -> bytes:
    _check_integer(value, field)
    if not 0 <= value < (1 << (8 * width)):
        raise ValueOutOfRange(
            f"value does not fit an unsigned {width}-byte field", field=field, actual=value
        )
    return value.to_bytes(width, endian, signed=False)


def pack_int(value: int, width: int, endian: Endian, *, field: str = "int") -> bytes:
    _check_integer(value, field)
    bound = 1 << (8 * width - 1)
    if not -bound <= value < bound:
        raise ValueOutOfRange(
            f"value does not fit a signed {width}-byte field", field=field, actual=value
        )
    return value.to_bytes(width, endian, signed=True)


def pack_float(value: float, width: int, endian: Endian, *, field: str = "number") -> bytes:
    try:
        return struct.pack(_struct_prefix(endian) + _FLOAT_CODES[width], float(value))
    except OverflowError as exc:
        raise ValueOutOfRange(
            f"value does not fit a {width}-byte float", field=field, actual=value
        ) from exc


class ByteReader:
    """Exact-length reader over a binary stream.

    Every read either returns the requested number of bytes or raises
    :class:`UnexpectedEndOfInput`; short reads are never padded.
    """

    __slots__ = ("_source", "offset")

    def __init__(self, source: BinaryIO) -> None:
        self._source = source
        self.offset = 0

    def read_bytes(self, size: int, field: str = "bytes") -> bytes:
        if size < 0 or size > sys.maxsize:
            raise LengthOverflow("length outside addressable range", field=field, actual=size, offset=self.offset)
        parts = []
        remaining = size
        while remaining:
            part = self._source.read(min(remaining, _READ_BLOCK))
            if not part:
                raise UnexpectedEndOfInput(
                    "unexpected end of input",
                    field=field,
                    expected=size,
                    actual=size - remaining,
                    offset=self.offset,
                )
            parts.append(part)
            remaining -= len(part)
        self.offset += size
        return b"".join(parts)

    def read_byte(self, field: str = "byte") -> int:
        return self.read_bytes(1, field)[0]


class ByteWriter:
    """Sequential writer that tracks how many bytes went to the sink."""

    __slots__ = ("_sink", "offset")

    def __init__(self, sink: BinaryIO) -> None:
        self._sink = sink
        self.offset = 0

    def write_bytes(self, data: bytes) -> None:
        self._sink.write(data)
        self.offset += len(data)

    def write_byte(self, value: int, field: str = "byte") -> None:
        self.write_bytes(pack_uint(value, 1, "little", field=field))


@dataclass(frozen=True)
class Primitives:
    """Width and byte order configuration for one chunk."""

    byte_order: Endian = "little"
    int_width: int = 4
    size_width: int = 8
    instruction_width: int = 4
    integer_width: int = 8
    number_width: int = 8

    @classmethod
    def from_header(cls, header: "ChunkHeader") -> "Primitives":
        return cls(
            byte_order=header.byte_order,
            int_width=header.int_width,
            size_width=header.size_width,
            instruction_width=header.instruction_width,
            integer_width=header.integer_width,
            number_width=header.number_width,
        )

    # -- decoding ---------------------------------------------------------

    def read_int(self, reader: ByteReader, field: str = "int") -> int:
        return unpack_int(reader.read_bytes(self.int_width, field), self.byte_order)

    def read_count(self, reader: ByteReader, field: str = "count") -> int:
        offset = reader.offset
        count = unpack_uint(reader.read_bytes(self.int_width, field), self.byte_order)
        _check_length(count, field, offset)
        return count

    def read_size(self, reader: ByteReader, field: str = "size") -> int:
        offset = reader.offset
        size = unpack_uint(reader.read_bytes(self.size_width, field), self.byte_order)
        _check_length(size, field, offset)
        return size

    def read_instruction(self, reader: ByteReader, field: str = "instruction") -> int:
        return unpack_uint(reader.read_bytes(self.instruction_width, field), self.byte_order)

    def read_integer(self, reader: ByteReader, field: str = "integer") -> int:
        return unpack_int(reader.read_bytes(self.integer_width, field), self.byte_order)

    def read_number(self, reader: ByteReader, field: str = "number") -> float:
        return unpack_float(reader.read_bytes(self.number_width, field), self.byte_order)

    # -- encoding ---------------------------------------------------------

    def write_int(self, writer: ByteWriter, value: int, field: str = "int") -> None:
        writer.write_bytes(pack_int(value, self.int_width, self.byte_order, field=field))

    def write_count(self, writer: ByteWriter, value: int, field: str = "count") -> None:
        writer.write_bytes(pack_uint(value, self.int_width, self.byte_order, field=field))

    def write_size(self, writer: ByteWriter, value: int, field: str = "size") -> None:
        writer.write_bytes(pack_uint(value, self.size_width, self.byte_order, field=field))

    def write_instruction(self, writer: ByteWriter, value: int, field: str = "instruction") -> None:
        writer.write_bytes(pack_uint(value, self.instruction_width, self.byte_order, field=field))

    def write_integer(self, writer: ByteWriter, value: int, field: str = "integer") -> None:
        writer.write_bytes(pack_int(value, self.integer_width, self.byte_order, field=field))

    def write_number(self, writer: ByteWriter, value: float, field: str = "number") -> None:
        writer.write_bytes(pack_float(value, self.number_width, self.byte_order, field=field))


def _check_length(value: int, field: str, offset: Optional[int]) -> None:
    if value > sys.maxsize:
        raise LengthOverflow("length does not fit the host size type", field=field, actual=value, offset=offset)


__all__ = [
    "Endian",
    "SUPPORTED_WIDTHS",
    "check_width",
    "unpack_uint",
    "unpack_int",
    "unpack_float",
    "pack_uint",
    "pack_int",
    "pack_float",
    "ByteReader",
    "ByteWriter",
    "Primitives",
]
