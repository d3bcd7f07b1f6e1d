"""Value types describing a decoded Lua binary chunk.

Every type is a frozen dataclass.  Sequence fields are normalised to tuples
on construction so that a tree built by hand compares equal to the same tree
produced by :func:`luachunk.chunk.decode_chunk`.

Strings are opaque ``bytes``.  ``None`` marks a string that is absent from
the chunk (stripped source names, for instance), which the wire format keeps
distinct from the empty string.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterable, Optional, Tuple, Union

from .byteops import Endian
from .exceptions import UnsupportedVersion

LuaString = Optional[bytes]


class Revision(enum.IntEnum):
    """Supported binary chunk revisions, valued by their version byte."""

    LUA51 = 0x51
    LUA53 = 0x53


def _freeze(obj: object, name: str, values: Iterable[object]) -> None:
    object.__setattr__(obj, name, tuple(values))


# ---------------------------------------------------------------------------
# Constants


@dataclass(frozen=True)
class Nil:
    """The ``nil`` constant."""


@dataclass(frozen=True)
class Boolean:
    value: bool


@dataclass(frozen=True)
class Number:
    """A floating point constant (``lua_Number``)."""

    value: float


@dataclass(frozen=True)
class Integer:
    """An integer constant (``lua_Integer`` in 5.3, integral-number builds of 5.1)."""

    value: int


@dataclass(frozen=True)
class String:
    """A string constant.

    The wire format distinguishes short and long strings in Lua 5.3; both
    decode to this single variant and the encoder picks the tag from the
    length.
    """

    value: LuaString


Constant = Union[Nil, Boolean, Number, Integer, String]


# ---------------------------------------------------------------------------
# Upvalues and debug information


@dataclass(frozen=True)
class FromOuterUpvalue:
    """Upvalue captured from the enclosing function's own upvalues."""

    index: int


@dataclass(frozen=True)
class FromOuterStack:
    """Upvalue captured from a register of the enclosing function."""

    index: int


Upvalue = Union[FromOuterUpvalue, FromOuterStack]


@dataclass(frozen=True)
class LocalVar:
    name: LuaString
    start_pc: int
    end_pc: int


@dataclass(frozen=True)
class DebugInfo:
    """Optional debug tables.  A stripped function has all three empty."""

    lineinfo: Tuple[int, ...] = ()
    localvars: Tuple[LocalVar, ...] = ()
    upvalue_names: Tuple[LuaString, ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, "lineinfo", self.lineinfo)
        _freeze(self, "localvars", self.localvars)
        _freeze(self, "upvalue_names", self.upvalue_names)

    @property
    def is_empty(self) -> bool:
        return not (self.lineinfo or self.localvars or self.upvalue_names)


# ---------------------------------------------------------------------------
# Prototypes


@dataclass(frozen=True)
class Prototype:
    """A compiled Lua function.

    ``upvalues`` is only serialised by Lua 5.3 chunks and ``nups`` only by
    Lua 5.1 chunks; each revision ignores the other field.  ``is_vararg`` is
    the raw flag byte, which Lua 5.1 uses as a small bit set.
    """

    source: LuaString = None
    line_defined: int = 0
    last_line_defined: int = 0
    num_params: int = 0
    is_vararg: int = 0
    max_stack_size: int = 2
    code: Tuple[int, ...] = ()
    constants: Tuple[Constant, ...] = ()
    upvalues: Tuple[Upvalue, ...] = ()
    nups: int = 0
    protos: Tuple["Prototype", ...] = ()
    debug: DebugInfo = field(default_factory=DebugInfo)

    def __post_init__(self) -> None:
        _freeze(self, "code", self.code)
        _freeze(self, "constants", self.constants)
        _freeze(self, "upvalues", self.upvalues)
        _freeze(self, "protos", self.protos)

    def walk(self) -> Iterable["Prototype"]:
        """Yield this prototype and all descendants, depth first, pre-order."""

        stack = [self]
        while stack:
            proto = stack.pop()
            yield proto
            stack.extend(reversed(proto.protos))

    def upvalue_count(self, revision: Revision) -> int:
        """Number of upvalues as the given revision records it."""

        if revision is Revision.LUA51:
            return self.nups
        return len(self.upvalues)


# ---------------------------------------------------------------------------
# Header and chunk


@dataclass(frozen=True)
class ChunkHeader:
    """Machine description carried by the chunk header.

    ``integer_width`` only exists on the wire for Lua 5.3 and
    ``integral_numbers`` only for Lua 5.1.  Fields the revision does not
    carry are reset to their defaults (8 and ``False``), so a header compares
    equal to its decoded form.
    """

    revision: Revision
    byte_order: Endian = "little"
    int_width: int = 4
    size_width: int = 8
    instruction_width: int = 4
    integer_width: int = 8
    number_width: int = 8
    integral_numbers: bool = False

    def __post_init__(self) -> None:
        try:
            revision = Revision(self.revision)
        except ValueError:
            raise UnsupportedVersion(
                "unsupported chunk version",
                field="version",
                expected=[rev.value for rev in Revision],
                actual=self.revision,
            ) from None
        object.__setattr__(self, "revision", revision)
        if revision is Revision.LUA51:
            object.__setattr__(self, "integer_width", 8)
        else:
            object.__setattr__(self, "integral_numbers", False)

    @classmethod
    def native(cls, revision: Revision) -> "ChunkHeader":
        """Header produced by a stock 64-bit little-endian build of ``revision``."""

        return cls(revision=Revision(revision))


@dataclass(frozen=True)
class Chunk:
    """A complete binary chunk: header plus the main function.

    ``closure_upvalues`` holds the Lua 5.3 byte that precedes the main
    function when it differs from ``len(root.upvalues)``; ``None`` means the
    canonical value.  It is normalised to ``None`` when it equals that count
    and for Lua 5.1 chunks, which have no such byte.
    """

    header: ChunkHeader
    root: Prototype
    closure_upvalues: Optional[int] = None

    def __post_init__(self) -> None:
        if self.header.revision is Revision.LUA51 or self.closure_upvalues == len(self.root.upvalues):
            object.__setattr__(self, "closure_upvalues", None)

    @property
    def revision(self) -> Revision:
        return self.header.revision


__all__ = [
    "LuaString",
    "Revision",
    "Nil",
    "Boolean",
    "Number",
    "Integer",
    "String",
    "Constant",
    "FromOuterUpvalue",
    "FromOuterStack",
    "Upvalue",
    "LocalVar",
    "DebugInfo",
    "Prototype",
    "ChunkHeader",
    "Chunk",
]
