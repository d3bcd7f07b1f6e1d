"""Test configuration ensuring the project source tree is importable."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable

import pytest

ROOT = Path(__file__).resolve().parent.parent

root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)
else:
    idx = sys.path.index(root_str)
    if idx != 0:
        sys.path.insert(0, sys.path.pop(idx))

from luachunk import (  # noqa: E402
    Boolean,
    Chunk,
    ChunkHeader,
    DebugInfo,
    FromOuterStack,
    FromOuterUpvalue,
    Integer,
    LocalVar,
    Nil,
    Number,
    Prototype,
    Revision,
    String,
)

LONG_TEXT = b"g" * 300


def build_sample_root(revision: Revision) -> Prototype:
    """Three nested prototypes, each with its own constant pool."""

    lua51 = revision is Revision.LUA51

    def text(value: bytes) -> bytes:
        # Lua 5.1 string payloads carry the C terminator
        return value + b"\x00" if lua51 else value

    grandchild = Prototype(
        source=None,
        line_defined=2,
        last_line_defined=4,
        num_params=0,
        is_vararg=0,
        max_stack_size=2,
        code=(0x00000001, 0x00800026),
        constants=(String(text(b"")), String(None), String(text(LONG_TEXT))),
        upvalues=() if lua51 else (FromOuterUpvalue(1),),
        nups=1 if lua51 else 0,
    )
    child = Prototype(
        source=None,
        line_defined=1,
        last_line_defined=5,
        num_params=1,
        is_vararg=0,
        max_stack_size=3,
        code=(0x0100001E,),
        constants=(String(text(b"child")), Number(-0.5), Boolean(False)),
        upvalues=() if lua51 else (FromOuterUpvalue(0), FromOuterStack(0)),
        nups=2 if lua51 else 0,
        protos=(grandchild,),
        debug=DebugInfo(lineinfo=(3,), upvalue_names=(text(b"up"), text(b"x"))),
    )
    return Prototype(
        source=text(b"@sample.lua"),
        line_defined=0,
        last_line_defined=0,
        num_params=0,
        is_vararg=2 if lua51 else 1,
        max_stack_size=4,
        code=(0x00000001, 0x0080401E),
        constants=(
            String(text(b"print")),
            Number(2.5),
            Boolean(True),
            Nil(),
            Number(10.0) if lua51 else Integer(10),
        ),
        upvalues=() if lua51 else (FromOuterStack(0),),
        protos=(child,),
        debug=DebugInfo(
            lineinfo=(1, 1),
            localvars=(LocalVar(text(b"x"), 0, 2),),
            upvalue_names=() if lua51 else (b"_ENV",),
        ),
    )


@pytest.fixture
def sample_root() -> Callable[[Revision], Prototype]:
    return build_sample_root


@pytest.fixture(params=[Revision.LUA51, Revision.LUA53], ids=["lua51", "lua53"])
def revision(request) -> Revision:
    return request.param


@pytest.fixture(params=["little", "big"])
def byte_order(request) -> str:
    return request.param


@pytest.fixture
def sample_chunk(revision: Revision, byte_order: str) -> Chunk:
    header = ChunkHeader(revision=revision, byte_order=byte_order)
    return Chunk(header=header, root=build_sample_root(revision))
