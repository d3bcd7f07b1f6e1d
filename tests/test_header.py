import io
import struct

import pytest

from luachunk.byteops import ByteReader, ByteWriter
from luachunk.exceptions import (
    BadEndiannessSentinel,
    BadNumberSentinel,
    BadSentinelData,
    BadSignature,
    UnsupportedEndianness,
    UnsupportedFormat,
    UnsupportedVersion,
    UnsupportedWidth,
)
from luachunk.header import (
    LUAC_DATA,
    LUAC_INT,
    LUAC_NUM,
    decode_header,
    detect_byte_order,
    encode_header,
)
from luachunk.types import ChunkHeader, Revision

NATIVE_53 = (
    b"\x1bLua\x53\x00"
    + LUAC_DATA
    + bytes([4, 8, 4, 8, 8])
    + struct.pack("<q", LUAC_INT)
    + struct.pack("<d", LUAC_NUM)
)
NATIVE_51 = b"\x1bLua\x51\x00\x01\x04\x08\x04\x08\x00"


def _decode(data: bytes) -> ChunkHeader:
    return decode_header(ByteReader(io.BytesIO(data)))


def _encode(header: ChunkHeader) -> bytes:
    sink = io.BytesIO()
    encode_header(ByteWriter(sink), header)
    return sink.getvalue()


def test_native_headers_decode() -> None:
    assert _decode(NATIVE_53) == ChunkHeader.native(Revision.LUA53)
    assert _decode(NATIVE_51) == ChunkHeader.native(Revision.LUA51)


def test_native_headers_encode() -> None:
    assert _encode(ChunkHeader.native(Revision.LUA53)) == NATIVE_53
    assert _encode(ChunkHeader.native(Revision.LUA51)) == NATIVE_51


def test_lua53_big_endian_is_detected_from_sentinels() -> None:
    data = (
        b"\x1bLua\x53\x00"
        + LUAC_DATA
        + bytes([4, 8, 4, 8, 8])
        + struct.pack(">q", LUAC_INT)
        + struct.pack(">d", LUAC_NUM)
    )
    header = _decode(data)
    assert header.byte_order == "big"
    assert _encode(header) == data


def test_lua51_endianness_byte() -> None:
    header = _decode(b"\x1bLua\x51\x00\x00\x04\x04\x04\x08\x01")
    assert header.byte_order == "big"
    assert header.size_width == 4
    assert header.integral_numbers is True


def test_mixed_widths_header() -> None:
    header = ChunkHeader(revision=Revision.LUA53, int_width=4, integer_width=8, number_width=4)
    data = _encode(header)
    assert data[-12:] == struct.pack("<q", LUAC_INT) + struct.pack("<f", LUAC_NUM)
    assert _decode(data) == header


@pytest.mark.parametrize(
    "header",
    [
        ChunkHeader(revision=Revision.LUA53, byte_order="big", size_width=4, instruction_width=8),
        ChunkHeader(revision=Revision.LUA53, integer_width=4, number_width=4),
        ChunkHeader(revision=Revision.LUA51, byte_order="big", int_width=8, integral_numbers=True),
    ],
)
def test_detection_is_idempotent(header: ChunkHeader) -> None:
    first = _decode(_encode(header))
    second = _decode(_encode(first))
    assert first == second == header


def test_luajit_is_rejected_before_reading_further() -> None:
    stream = io.BytesIO(b"\x1bLJ\x02\x00garbage")
    with pytest.raises(UnsupportedFormat):
        decode_header(ByteReader(stream))
    assert stream.tell() == 3


@pytest.mark.parametrize("data", [b"\x1bLub\x53", b"Lua\x1b\x53", b"\x00\x00\x00\x00"])
def test_bad_signature(data: bytes) -> None:
    with pytest.raises(BadSignature):
        _decode(data)


@pytest.mark.parametrize("version", [0x50, 0x52, 0x54])
def test_unsupported_version(version: int) -> None:
    data = bytearray(NATIVE_53)
    data[4] = version
    with pytest.raises(UnsupportedVersion) as excinfo:
        _decode(bytes(data))
    assert excinfo.value.offset == 4


def test_unofficial_format() -> None:
    data = bytearray(NATIVE_53)
    data[5] = 1
    with pytest.raises(UnsupportedFormat):
        _decode(bytes(data))


def test_corrupted_luac_data() -> None:
    data = bytearray(NATIVE_53)
    data[8] = ord("\n")
    with pytest.raises(BadSentinelData):
        _decode(bytes(data))


def test_unsupported_width_in_header() -> None:
    data = bytearray(NATIVE_53)
    data[12] = 2
    with pytest.raises(UnsupportedWidth) as excinfo:
        _decode(bytes(data))
    assert excinfo.value.field == "int_width"


def test_lua51_unknown_endianness_flag() -> None:
    data = bytearray(NATIVE_51)
    data[6] = 2
    with pytest.raises(UnsupportedEndianness):
        _decode(bytes(data))


def test_corrupted_integer_sentinel() -> None:
    data = NATIVE_53[:-16] + struct.pack("<q", 0x1234) + struct.pack("<d", LUAC_NUM)
    with pytest.raises(BadEndiannessSentinel):
        _decode(data)


def test_corrupted_number_sentinel() -> None:
    data = NATIVE_53[:-8] + struct.pack("<d", 370.0)
    with pytest.raises(BadNumberSentinel):
        _decode(data)


def test_number_sentinel_tolerance() -> None:
    raw_int = struct.pack("<q", LUAC_INT)
    assert detect_byte_order(raw_int, struct.pack("<d", LUAC_NUM + 1e-9)) == "little"
    with pytest.raises(BadNumberSentinel):
        detect_byte_order(raw_int, struct.pack("<d", LUAC_NUM + 1e-3))


def test_number_sentinel_read_in_detected_order() -> None:
    raw_int = struct.pack(">q", LUAC_INT)
    with pytest.raises(BadNumberSentinel):
        detect_byte_order(raw_int, struct.pack("<d", LUAC_NUM))


def test_header_value_rejects_unknown_revision() -> None:
    with pytest.raises(UnsupportedVersion):
        ChunkHeader(revision=0x52)


def test_encode_rejects_unsupported_width() -> None:
    with pytest.raises(UnsupportedWidth):
        _encode(ChunkHeader(revision=Revision.LUA51, size_width=2))


@pytest.mark.parametrize("flag", [2, 0xFF])
def test_lua51_unknown_integral_flag(flag: int) -> None:
    data = bytearray(NATIVE_51)
    data[11] = flag
    with pytest.raises(UnsupportedFormat) as excinfo:
        _decode(bytes(data))
    assert excinfo.value.field == "integral_numbers"
    assert excinfo.value.offset == 11
