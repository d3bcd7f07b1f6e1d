import io
import threading

import pytest

from luachunk import (
    Chunk,
    ChunkHeader,
    FromOuterStack,
    Prototype,
    Revision,
    UnexpectedEndOfInput,
    decode_chunk,
    dumps,
    encode_chunk,
    loads,
)

NATIVE_53_HEADER_SIZE = 33
NATIVE_51_HEADER_SIZE = 12


def test_round_trip(sample_chunk: Chunk) -> None:
    data = dumps(sample_chunk)
    decoded = loads(data)
    assert decoded == sample_chunk
    assert dumps(decoded) == data


def test_encode_chunk_matches_dumps(sample_chunk: Chunk) -> None:
    sink = io.BytesIO()
    encode_chunk(sink, sample_chunk)
    assert sink.getvalue() == dumps(sample_chunk)


def test_minimal_lua53_chunk_layout() -> None:
    chunk = Chunk(header=ChunkHeader.native(Revision.LUA53), root=Prototype())
    data = dumps(chunk)
    assert len(data) == NATIVE_53_HEADER_SIZE + 1 + 40
    assert data[NATIVE_53_HEADER_SIZE] == 0


def test_minimal_lua51_chunk_layout() -> None:
    chunk = Chunk(header=ChunkHeader.native(Revision.LUA51), root=Prototype())
    data = dumps(chunk)
    assert len(data) == NATIVE_51_HEADER_SIZE + 44
    assert data[:5] == b"\x1bLua\x51"


def test_closure_upvalue_byte_defaults_to_root_upvalues() -> None:
    root = Prototype(upvalues=(FromOuterStack(0),))
    data = dumps(Chunk(header=ChunkHeader.native(Revision.LUA53), root=root))
    assert data[NATIVE_53_HEADER_SIZE] == 1
    assert loads(data).closure_upvalues is None


def test_closure_upvalue_byte_is_preserved_when_different() -> None:
    chunk = Chunk(header=ChunkHeader.native(Revision.LUA53), root=Prototype(), closure_upvalues=5)
    data = dumps(chunk)
    assert data[NATIVE_53_HEADER_SIZE] == 5
    assert loads(data) == chunk


def test_trailing_data_is_left_in_the_stream(sample_chunk: Chunk) -> None:
    stream = io.BytesIO(dumps(sample_chunk) + b"TRAILER")
    assert decode_chunk(stream) == sample_chunk
    assert stream.read() == b"TRAILER"


def test_bytes_like_sources(sample_chunk: Chunk) -> None:
    data = dumps(sample_chunk)
    assert decode_chunk(bytearray(data)) == sample_chunk
    assert decode_chunk(memoryview(data)) == sample_chunk


def test_non_readable_source_is_a_type_error() -> None:
    with pytest.raises(TypeError):
        decode_chunk(42)


@pytest.mark.parametrize("cut", [0, 3, 10, 33, 40, -1])
def test_truncated_chunk(sample_chunk: Chunk, cut: int) -> None:
    data = dumps(sample_chunk)
    with pytest.raises(UnexpectedEndOfInput):
        loads(data[:cut])


def test_independent_decodes_in_threads(sample_root) -> None:
    payloads = [
        dumps(Chunk(header=ChunkHeader(revision=rev, byte_order=order), root=sample_root(rev)))
        for rev in Revision
        for order in ("little", "big")
    ]
    results = [None] * len(payloads)

    def worker(index: int) -> None:
        for _ in range(20):
            results[index] = loads(payloads[index])

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(len(payloads))]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert [dumps(chunk) for chunk in results] == payloads


def test_closure_upvalue_byte_equal_to_root_upvalues_is_canonical() -> None:
    root = Prototype(upvalues=(FromOuterStack(0),))
    chunk = Chunk(header=ChunkHeader.native(Revision.LUA53), root=root, closure_upvalues=1)
    assert chunk.closure_upvalues is None
    assert loads(dumps(chunk)) == chunk


def test_lua51_chunk_has_no_closure_upvalue_byte() -> None:
    chunk = Chunk(header=ChunkHeader.native(Revision.LUA51), root=Prototype(), closure_upvalues=3)
    assert chunk.closure_upvalues is None
    assert loads(dumps(chunk)) == chunk


def test_fields_absent_from_the_revision_are_reset() -> None:
    lua51 = ChunkHeader(revision=Revision.LUA51, integer_width=4)
    assert lua51.integer_width == 8
    lua53 = ChunkHeader(revision=Revision.LUA53, integral_numbers=True)
    assert lua53.integral_numbers is False

    for header in (lua51, lua53):
        chunk = Chunk(header=header, root=Prototype())
        assert loads(dumps(chunk)) == chunk
