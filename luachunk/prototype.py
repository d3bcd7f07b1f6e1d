"""Recursive function prototype codec.

Field order, Lua 5.1::

    source line_defined last_line_defined nups num_params is_vararg
    max_stack_size code constants protos lineinfo localvars upvalue_names

Field order, Lua 5.3::

    source line_defined last_line_defined num_params is_vararg
    max_stack_size code constants upvalues protos lineinfo localvars
    upvalue_names

Every list is preceded by an ``int`` count.  The nesting depth of child
prototypes is capped at :data:`MAX_PROTOTYPE_DEPTH` in both directions.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Tuple, TypeVar

from .byteops import ByteReader, ByteWriter, Primitives
from .constants import decode_constant, encode_constant
from .exceptions import NestingTooDeep
from .strings import decode_string, encode_string
from .types import (
    ChunkHeader,
    DebugInfo,
    FromOuterStack,
    FromOuterUpvalue,
    LocalVar,
    Prototype,
    Revision,
    Upvalue,
)

LOGGER = logging.getLogger(__name__)

# Matches LUAI_MAXCCALLS, the reference parser's nesting limit.
MAX_PROTOTYPE_DEPTH = 200

T = TypeVar("T")


def _read_list(reader: ByteReader, prims: Primitives, field: str, read_item: Callable[[], T]) -> Tuple[T, ...]:
    count = prims.read_count(reader, f"{field}.count")
    items: List[T] = []
    for _ in range(count):
        items.append(read_item())
    return tuple(items)


def _check_depth(depth: int, offset: int | None = None) -> None:
    if depth > MAX_PROTOTYPE_DEPTH:
        raise NestingTooDeep(
            "prototype nesting too deep", field="protos", expected=MAX_PROTOTYPE_DEPTH, actual=depth, offset=offset
        )


# ---------------------------------------------------------------------------
# Decoding


def decode_prototype(
    reader: ByteReader,
    header: ChunkHeader,
    prims: Primitives | None = None,
    *,
    depth: int = 0,
) -> Prototype:
    """Read one prototype and, recursively, all of its children."""

    _check_depth(depth, reader.offset)
    prims = prims or Primitives.from_header(header)
    lua51 = header.revision is Revision.LUA51

    source = decode_string(reader, header, prims, field="source")
    line_defined = prims.read_int(reader, "line_defined")
    last_line_defined = prims.read_int(reader, "last_line_defined")
    nups = reader.read_byte("nups") if lua51 else 0
    num_params = reader.read_byte("num_params")
    is_vararg = reader.read_byte("is_vararg")
    max_stack_size = reader.read_byte("max_stack_size")

    code = _read_list(reader, prims, "code", lambda: prims.read_instruction(reader))
    constants = _read_list(reader, prims, "constants", lambda: decode_constant(reader, header, prims))
    upvalues: Tuple[Upvalue, ...] = ()
    if not lua51:
        upvalues = _read_list(reader, prims, "upvalues", lambda: _decode_upvalue(reader))

    child_count = prims.read_count(reader, "protos.count")
    protos = []
    for _ in range(child_count):
        protos.append(decode_prototype(reader, header, prims, depth=depth + 1))

    debug = _decode_debug(reader, header, prims)
    LOGGER.debug(
        "prototype depth=%d: %d instructions, %d constants, %d children",
        depth,
        len(code),
        len(constants),
        len(protos),
    )
    return Prototype(
        source=source,
        line_defined=line_defined,
        last_line_defined=last_line_defined,
        num_params=num_params,
        is_vararg=is_vararg,
        max_stack_size=max_stack_size,
        code=code,
        constants=constants,
        upvalues=upvalues,
        nups=nups,
        protos=protos,
        debug=debug,
    )


def _decode_upvalue(reader: ByteReader) -> Upvalue:
    instack = reader.read_byte("upvalue.instack")
    index = reader.read_byte("upvalue.index")
    if instack:
        return FromOuterStack(index)
    return FromOuterUpvalue(index)


def _decode_localvar(reader: ByteReader, header: ChunkHeader, prims: Primitives) -> LocalVar:
    name = decode_string(reader, header, prims, field="localvar.name")
    start_pc = prims.read_int(reader, "localvar.start_pc")
    end_pc = prims.read_int(reader, "localvar.end_pc")
    return LocalVar(name=name, start_pc=start_pc, end_pc=end_pc)


def _decode_debug(reader: ByteReader, header: ChunkHeader, prims: Primitives) -> DebugInfo:
    lineinfo = _read_list(reader, prims, "lineinfo", lambda: prims.read_int(reader, "lineinfo"))
    localvars = _read_list(reader, prims, "localvars", lambda: _decode_localvar(reader, header, prims))
    upvalue_names = _read_list(
        reader,
        prims,
        "upvalue_names",
        lambda: decode_string(reader, header, prims, field="upvalue_name"),
    )
    return DebugInfo(lineinfo=lineinfo, localvars=localvars, upvalue_names=upvalue_names)


# ---------------------------------------------------------------------------
# Encoding


def encode_prototype(
    writer: ByteWriter,
    header: ChunkHeader,
    proto: Prototype,
    prims: Primitives | None = None,
    *,
    depth: int = 0,
) -> None:
    """Write ``proto`` and its children in the layout of ``header.revision``."""

    _check_depth(depth)
    prims = prims or Primitives.from_header(header)
    lua51 = header.revision is Revision.LUA51

    encode_string(writer, header, proto.source, prims, field="source")
    prims.write_int(writer, proto.line_defined, "line_defined")
    prims.write_int(writer, proto.last_line_defined, "last_line_defined")
    if lua51:
        writer.write_byte(proto.nups, "nups")
    writer.write_byte(proto.num_params, "num_params")
    writer.write_byte(proto.is_vararg, "is_vararg")
    writer.write_byte(proto.max_stack_size, "max_stack_size")

    prims.write_count(writer, len(proto.code), "code.count")
    for instruction in proto.code:
        prims.write_instruction(writer, instruction)

    prims.write_count(writer, len(proto.constants), "constants.count")
    for constant in proto.constants:
        encode_constant(writer, header, prims, constant)

    if not lua51:
        prims.write_count(writer, len(proto.upvalues), "upvalues.count")
        for upvalue in proto.upvalues:
            writer.write_byte(1 if isinstance(upvalue, FromOuterStack) else 0, "upvalue.instack")
            writer.write_byte(upvalue.index, "upvalue.index")

    prims.write_count(writer, len(proto.protos), "protos.count")
    for child in proto.protos:
        encode_prototype(writer, header, child, prims, depth=depth + 1)

    _encode_debug(writer, header, prims, proto.debug)


def _encode_debug(writer: ByteWriter, header: ChunkHeader, prims: Primitives, debug: DebugInfo) -> None:
    prims.write_count(writer, len(debug.lineinfo), "lineinfo.count")
    for line in debug.lineinfo:
        prims.write_int(writer, line, "lineinfo")

    prims.write_count(writer, len(debug.localvars), "localvars.count")
    for var in debug.localvars:
        encode_string(writer, header, var.name, prims, field="localvar.name")
        prims.write_int(writer, var.start_pc, "localvar.start_pc")
        prims.write_int(writer, var.end_pc, "localvar.end_pc")

    prims.write_count(writer, len(debug.upvalue_names), "upvalue_names.count")
    for name in debug.upvalue_names:
        encode_string(writer, header, name, prims, field="upvalue_name")


__all__ = ["MAX_PROTOTYPE_DEPTH", "decode_prototype", "encode_prototype"]
