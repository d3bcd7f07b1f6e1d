"""Command line interface for inspecting and rewriting Lua binary chunks."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .chunk import dumps, loads
from .exceptions import ChunkError
from .logging_config import close_debug_logger, configure_debug_file_logger, setup_logging
from .reference import ReferenceUnavailable, reference_accepts
from .strings import LONG_STRING_ESCAPE, is_long_string
from .types import (
    Boolean,
    Chunk,
    Constant,
    FromOuterStack,
    Integer,
    LuaString,
    Nil,
    Number,
    Prototype,
    Revision,
    String,
)

LOGGER = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# JSON rendering


def _text(value: LuaString) -> Optional[str]:
    if value is None:
        return None
    return value.decode("utf-8", errors="backslashreplace")


def _constant_as_dict(constant: Constant) -> Dict[str, Any]:
    if isinstance(constant, Nil):
        return {"type": "nil"}
    if isinstance(constant, Boolean):
        return {"type": "boolean", "value": bool(constant.value)}
    if isinstance(constant, Number):
        return {"type": "number", "value": constant.value}
    if isinstance(constant, Integer):
        return {"type": "integer", "value": constant.value}
    if isinstance(constant, String):
        return {"type": "string", "value": _text(constant.value)}
    raise TypeError(f"not a constant: {constant!r}")


def prototype_as_dict(proto: Prototype) -> Dict[str, Any]:
    return {
        "source": _text(proto.source),
        "line_defined": proto.line_defined,
        "last_line_defined": proto.last_line_defined,
        "num_params": proto.num_params,
        "is_vararg": proto.is_vararg,
        "max_stack_size": proto.max_stack_size,
        "code": [f"0x{word:08x}" for word in proto.code],
        "constants": [_constant_as_dict(constant) for constant in proto.constants],
        "upvalues": [
            {"instack": isinstance(upvalue, FromOuterStack), "index": upvalue.index}
            for upvalue in proto.upvalues
        ],
        "nups": proto.nups,
        "debug": {
            "lineinfo": list(proto.debug.lineinfo),
            "localvars": [
                {"name": _text(var.name), "start_pc": var.start_pc, "end_pc": var.end_pc}
                for var in proto.debug.localvars
            ],
            "upvalue_names": [_text(name) for name in proto.debug.upvalue_names],
        },
        "protos": [prototype_as_dict(child) for child in proto.protos],
    }


def chunk_as_dict(chunk: Chunk) -> Dict[str, Any]:
    """Return a JSON-serialisable description of ``chunk``."""

    header = dataclasses.asdict(chunk.header)
    header["revision"] = chunk.header.revision.name
    return {
        "header": header,
        "closure_upvalues": chunk.closure_upvalues,
        "prototype_count": sum(1 for _ in chunk.root.walk()),
        "root": prototype_as_dict(chunk.root),
    }


# ---------------------------------------------------------------------------
# File helpers


def _atomic_write_bytes(path: Path, payload: bytes) -> None:
    directory = path.parent if str(path.parent) else Path(".")
    directory.mkdir(parents=True, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(prefix=".tmp-", suffix=".partial", dir=directory)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, path)
    except BaseException:
        try:
            os.unlink(temp_path)
        except FileNotFoundError:
            pass
        raise


def _load(path: Path) -> tuple[bytes, Chunk]:
    data = path.read_bytes()
    LOGGER.debug("read %d bytes from %s", len(data), path)
    return data, loads(data)


# ---------------------------------------------------------------------------
# Sub-commands


def _cmd_inspect(args: argparse.Namespace) -> int:
    _, chunk = _load(args.input)
    text = json.dumps(chunk_as_dict(chunk), indent=2, ensure_ascii=False)
    if args.output:
        args.output.write_text(text + "\n", encoding="utf-8")
    else:
        print(text)
    return 0


# Lua 5.3 compilers tag strings longer than this as long strings while still
# using the one-byte size; the encoder only switches at LONG_STRING_ESCAPE.
_LUAC_MAX_SHORT_STRING = 40


def _has_midsize_strings(chunk: Chunk) -> bool:
    if chunk.revision is not Revision.LUA53:
        return False
    for proto in chunk.root.walk():
        for constant in proto.constants:
            if (
                isinstance(constant, String)
                and constant.value is not None
                and len(constant.value) > _LUAC_MAX_SHORT_STRING
                and not is_long_string(constant.value)
            ):
                return True
    return False


def _cmd_roundtrip(args: argparse.Namespace) -> int:
    data, chunk = _load(args.input)
    encoded = dumps(chunk)
    if encoded == data[: len(encoded)] and len(encoded) <= len(data):
        trailing = len(data) - len(encoded)
        print(f"identical ({len(encoded)} bytes" + (f", {trailing} trailing bytes ignored)" if trailing else ")"))
        return 0
    mismatch = next(
        (index for index, (a, b) in enumerate(zip(data, encoded)) if a != b),
        min(len(data), len(encoded)),
    )
    print(f"different: first mismatch at offset {mismatch} (input {len(data)} bytes, re-encoded {len(encoded)} bytes)")
    if _has_midsize_strings(chunk):
        print(
            f"note: string constants of {_LUAC_MAX_SHORT_STRING + 1}-{LONG_STRING_ESCAPE - 2} bytes are written with the"
            " short string tag; luac 5.3 output tags them as long strings, so this difference is expected"
        )
    return 1


_HEADER_OVERRIDES = (
    "byte_order",
    "int_width",
    "size_width",
    "instruction_width",
    "integer_width",
    "number_width",
)


def _cmd_convert(args: argparse.Namespace) -> int:
    _, chunk = _load(args.input)
    changes = {name: getattr(args, name) for name in _HEADER_OVERRIDES if getattr(args, name) is not None}
    header = dataclasses.replace(chunk.header, **changes)
    payload = dumps(dataclasses.replace(chunk, header=header))
    _atomic_write_bytes(args.output, payload)
    LOGGER.info("wrote %d bytes to %s", len(payload), args.output)
    return 0


def _cmd_verify(args: argparse.Namespace) -> int:
    data, chunk = _load(args.input)
    ok, message = reference_accepts(data, chunk.revision)
    if ok:
        print(f"accepted by reference {chunk.revision.name} loader")
        return 0
    print(f"rejected by reference {chunk.revision.name} loader: {message}")
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="luachunk", description="Inspect and rewrite Lua 5.1/5.3 binary chunks")
    parser.add_argument("--verbose", action="store_true", help="enable debug logging")
    parser.add_argument("--log-file", type=Path, help="write a debug trace of the run to this file")
    sub = parser.add_subparsers(dest="command", required=True)

    inspect = sub.add_parser("inspect", help="decode a chunk and print it as JSON")
    inspect.add_argument("input", type=Path)
    inspect.add_argument("-o", "--output", type=Path, help="write the JSON report here instead of stdout")
    inspect.set_defaults(func=_cmd_inspect)

    roundtrip = sub.add_parser(
        "roundtrip",
        help=(
            "check that decode+encode reproduces the input bytes; Lua 5.3 string constants of "
            "41-253 bytes are re-tagged as short strings and reported as a difference"
        ),
    )
    roundtrip.add_argument("input", type=Path)
    roundtrip.set_defaults(func=_cmd_roundtrip)

    convert = sub.add_parser("convert", help="re-encode a chunk for a different machine description")
    convert.add_argument("input", type=Path)
    convert.add_argument("-o", "--output", type=Path, required=True)
    convert.add_argument("--byte-order", dest="byte_order", choices=("big", "little"))
    for name in ("int", "size", "instruction", "integer", "number"):
        convert.add_argument(f"--{name}-width", dest=f"{name}_width", type=int, choices=(4, 8))
    convert.set_defaults(func=_cmd_convert)

    verify = sub.add_parser("verify", help="ask the reference Lua loader (via lupa) to load the chunk")
    verify.add_argument("input", type=Path)
    verify.set_defaults(func=_cmd_verify)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    trace_logger = None
    if args.log_file:
        trace_logger = configure_debug_file_logger("luachunk", args.log_file)

    try:
        return args.func(args)
    except ChunkError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except ReferenceUnavailable as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        if trace_logger is not None:
            close_debug_logger(trace_logger)


__all__: List[str] = ["build_parser", "chunk_as_dict", "prototype_as_dict", "main"]
