"""Decode and encode Lua 5.1 and Lua 5.3 binary chunks.

>>> from luachunk import loads, dumps
>>> chunk = loads(data)
>>> dumps(chunk) == data
True
"""

from __future__ import annotations

from .byteops import ByteReader, ByteWriter, Primitives
from .chunk import decode_chunk, dumps, encode_chunk, loads
from .constants import decode_constant, encode_constant
from .exceptions import (
    BadEndiannessSentinel,
    BadNumberSentinel,
    BadSentinelData,
    BadSignature,
    ChunkError,
    LengthOverflow,
    NestingTooDeep,
    UnexpectedEndOfInput,
    UnknownConstantTag,
    UnsupportedConstant,
    UnsupportedEndianness,
    UnsupportedFormat,
    UnsupportedVersion,
    UnsupportedWidth,
    ValueOutOfRange,
)
from .header import decode_header, detect_byte_order, encode_header, validate_header
from .prototype import MAX_PROTOTYPE_DEPTH, decode_prototype, encode_prototype
from .strings import decode_string, encode_string
from .types import (
    Boolean,
    Chunk,
    ChunkHeader,
    Constant,
    DebugInfo,
    FromOuterStack,
    FromOuterUpvalue,
    Integer,
    LocalVar,
    LuaString,
    Nil,
    Number,
    Prototype,
    Revision,
    String,
    Upvalue,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # chunk facade
    "decode_chunk",
    "encode_chunk",
    "loads",
    "dumps",
    # data model
    "Revision",
    "ChunkHeader",
    "Chunk",
    "Prototype",
    "DebugInfo",
    "LocalVar",
    "LuaString",
    "Constant",
    "Nil",
    "Boolean",
    "Number",
    "Integer",
    "String",
    "Upvalue",
    "FromOuterUpvalue",
    "FromOuterStack",
    # lower level codecs
    "ByteReader",
    "ByteWriter",
    "Primitives",
    "decode_header",
    "encode_header",
    "detect_byte_order",
    "validate_header",
    "decode_string",
    "encode_string",
    "decode_constant",
    "encode_constant",
    "decode_prototype",
    "encode_prototype",
    "MAX_PROTOTYPE_DEPTH",
    # errors
    "ChunkError",
    "BadSignature",
    "UnsupportedFormat",
    "UnsupportedVersion",
    "UnsupportedWidth",
    "UnsupportedEndianness",
    "BadSentinelData",
    "BadEndiannessSentinel",
    "BadNumberSentinel",
    "UnknownConstantTag",
    "UnexpectedEndOfInput",
    "LengthOverflow",
    "NestingTooDeep",
    "ValueOutOfRange",
    "UnsupportedConstant",
]
