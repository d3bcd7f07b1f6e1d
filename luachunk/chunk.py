"""Public entry points: decode and encode complete binary chunks."""

from __future__ import annotations

import io
import logging
from typing import BinaryIO, Union

from .byteops import ByteReader, ByteWriter, Primitives
from .header import decode_header, encode_header
from .prototype import decode_prototype, encode_prototype
from .types import Chunk, Revision

LOGGER = logging.getLogger(__name__)

ByteSource = Union[BinaryIO, bytes, bytearray, memoryview]


def _as_stream(source: ByteSource) -> BinaryIO:
    if isinstance(source, (bytes, bytearray, memoryview)):
        return io.BytesIO(bytes(source))
    if not hasattr(source, "read"):
        raise TypeError(f"expected a readable binary stream or bytes, got {type(source).__name__}")
    return source


def decode_chunk(source: ByteSource) -> Chunk:
    """Decode one chunk from ``source``.

    Exactly the bytes belonging to the chunk are consumed; anything after it
    is left in the stream.
    """

    reader = ByteReader(_as_stream(source))
    header = decode_header(reader)
    prims = Primitives.from_header(header)

    closure_upvalues = None
    if header.revision is Revision.LUA53:
        closure_upvalues = reader.read_byte("closure_upvalues")

    root = decode_prototype(reader, header, prims)
    LOGGER.debug(
        "decoded %s chunk: %d bytes, %d prototypes",
        header.revision.name,
        reader.offset,
        sum(1 for _ in root.walk()),
    )
    return Chunk(header=header, root=root, closure_upvalues=closure_upvalues)


def encode_chunk(sink: BinaryIO, chunk: Chunk) -> None:
    """Write the canonical encoding of ``chunk`` to ``sink``.

    A failure part way through leaves ``sink`` partially written; use
    :func:`dumps` when the output must be all or nothing.
    """

    writer = ByteWriter(sink)
    header = chunk.header
    encode_header(writer, header)
    prims = Primitives.from_header(header)
    if header.revision is Revision.LUA53:
        closure_upvalues = chunk.closure_upvalues
        if closure_upvalues is None:
            closure_upvalues = len(chunk.root.upvalues)
        writer.write_byte(closure_upvalues, "closure_upvalues")
    encode_prototype(writer, header, chunk.root, prims)
    LOGGER.debug("encoded %s chunk: %d bytes", header.revision.name, writer.offset)


def loads(data: bytes | bytearray | memoryview) -> Chunk:
    """Decode a chunk held in memory."""

    return decode_chunk(data)


def dumps(chunk: Chunk) -> bytes:
    """Encode ``chunk`` into a new ``bytes`` object."""

    buffer = io.BytesIO()
    encode_chunk(buffer, chunk)
    return buffer.getvalue()


__all__ = ["ByteSource", "decode_chunk", "encode_chunk", "loads", "dumps"]
