"""Exception hierarchy for the binary chunk codec."""

from __future__ import annotations

from typing import Any, Optional


class ChunkError(Exception):
    """Base class for every error raised while decoding or encoding a chunk.

    ``field`` names the wire field being processed, ``expected``/``actual``
    describe the mismatch and ``offset`` is the stream position (when known).
    All of them are optional and only rendered when present.
    """

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        expected: Any = None,
        actual: Any = None,
        offset: Optional[int] = None,
    ) -> None:
        self.message = message
        self.field = field
        self.expected = expected
        self.actual = actual
        self.offset = offset
        super().__init__(self._render())

    def _render(self) -> str:
        parts = [self.message]
        if self.field is not None:
            parts.append(f"field={self.field}")
        if self.expected is not None:
            parts.append(f"expected={self.expected!r}")
        if self.actual is not None:
            parts.append(f"actual={self.actual!r}")
        if self.offset is not None:
            parts.append(f"offset={self.offset}")
        return parts[0] if len(parts) == 1 else f"{parts[0]} ({', '.join(parts[1:])})"


class BadSignature(ChunkError):
    """The stream does not start with the Lua binary chunk signature."""


class UnsupportedFormat(ChunkError):
    """Non-official format byte, or a LuaJIT bytecode dump."""


class UnsupportedVersion(ChunkError):
    """Version byte is neither Lua 5.1 nor Lua 5.3."""


class UnsupportedWidth(ChunkError):
    """A width descriptor is not 4 or 8."""


class UnsupportedEndianness(ChunkError):
    """Explicit endianness byte (Lua 5.1) is not 0 or 1."""


class BadSentinelData(ChunkError):
    """The Lua 5.3 LUAC_DATA bytes are corrupted."""


class BadEndiannessSentinel(ChunkError):
    """The sentinel integer matches neither byte order."""


class BadNumberSentinel(ChunkError):
    """The sentinel float does not match the expected value."""


class UnknownConstantTag(ChunkError):
    """A constant carries a type tag this revision does not define."""

    def __init__(self, tag: int, **kwargs: Any) -> None:
        self.tag = tag
        kwargs.setdefault("field", "constant.tag")
        super().__init__(f"unknown constant tag 0x{tag:02x}", **kwargs)


class UnexpectedEndOfInput(ChunkError):
    """The byte source ended in the middle of a field."""


class LengthOverflow(ChunkError):
    """A decoded length or count does not fit the host's size type."""


class NestingTooDeep(ChunkError):
    """Prototype nesting exceeds the supported depth."""


class ValueOutOfRange(ChunkError):
    """A value cannot be represented at the width declared by the header."""


class UnsupportedConstant(ChunkError):
    """A constant has no representation in the target revision."""


__all__ = [
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
