"""Bridge to the reference Lua interpreters through :mod:`lupa`.

``lupa`` bundles several Lua versions as separate extension modules
(``lupa.lua51``, ``lupa.lua53``, ...).  This module uses them to compile
source with the real compiler and to check that the real loader accepts a
binary chunk.  Nothing here executes the loaded code.

``lupa`` is an optional dependency (``pip install luachunk[lua]``); every
helper raises :class:`ReferenceUnavailable` when the matching runtime cannot
be imported.
"""

from __future__ import annotations

import importlib
import logging
from types import ModuleType
from typing import Any, Optional, Tuple, Union

from .types import Revision

LOGGER = logging.getLogger(__name__)

RUNTIME_MODULES = {
    Revision.LUA51: "lupa.lua51",
    Revision.LUA53: "lupa.lua53",
}

_DUMP_SOURCE = {
    Revision.LUA51: """
function(src, name)
  local fn, err = loadstring(src, name)
  if not fn then error(err, 0) end
  return string.dump(fn)
end
""",
    Revision.LUA53: """
function(src, name, strip)
  local fn, err = load(src, name, "t")
  if not fn then error(err, 0) end
  return string.dump(fn, strip)
end
""",
}

_LOAD_SOURCE = {
    Revision.LUA51: """
function(data, name)
  local fn, err = loadstring(data, name)
  if fn then return true, nil end
  return false, err
end
""",
    Revision.LUA53: """
function(data, name)
  local fn, err = load(data, name, "b")
  if fn then return true, nil end
  return false, err
end
""",
}


class ReferenceUnavailable(RuntimeError):
    """Raised when the requested reference interpreter cannot be imported."""


def _runtime_module(revision: Revision) -> ModuleType:
    name = RUNTIME_MODULES[Revision(revision)]
    try:
        return importlib.import_module(name)
    except ImportError as exc:
        raise ReferenceUnavailable(
            f"{name} is not available; install lupa>=2.0 (pip install 'luachunk[lua]')"
        ) from exc


def reference_runtime(revision: Revision) -> Any:
    """Return a fresh ``LuaRuntime`` of ``revision`` that exchanges strings as bytes."""

    module = _runtime_module(revision)
    return module.LuaRuntime(encoding=None, unpack_returned_tuples=True)


def _as_bytes(text: Union[str, bytes]) -> bytes:
    return text.encode("utf-8") if isinstance(text, str) else bytes(text)


def reference_dump(
    source: Union[str, bytes],
    revision: Revision,
    *,
    strip: bool = False,
    chunkname: str = "=(reference)",
) -> bytes:
    """Compile ``source`` with the reference compiler and return ``string.dump`` output."""

    revision = Revision(revision)
    if strip and revision is Revision.LUA51:
        raise ValueError("Lua 5.1 string.dump cannot strip debug information")
    module = _runtime_module(revision)
    runtime = reference_runtime(revision)
    dump = runtime.eval(_DUMP_SOURCE[revision])
    try:
        if revision is Revision.LUA51:
            data = dump(_as_bytes(source), _as_bytes(chunkname))
        else:
            data = dump(_as_bytes(source), _as_bytes(chunkname), strip)
    except module.LuaError as exc:
        raise ValueError(f"reference compiler rejected source: {exc}") from exc
    LOGGER.debug("reference %s dump: %d bytes", revision.name, len(data))
    return bytes(data)


def reference_accepts(
    data: bytes,
    revision: Revision,
    *,
    chunkname: str = "=(chunk)",
) -> Tuple[bool, Optional[str]]:
    """Ask the reference loader to load (not run) ``data``.

    Returns ``(True, None)`` on success or ``(False, message)`` with the
    loader's error message.
    """

    revision = Revision(revision)
    if not data.startswith(b"\x1b"):
        return False, "not a binary chunk"
    runtime = reference_runtime(revision)
    load = runtime.eval(_LOAD_SOURCE[revision])
    ok, err = load(bytes(data), _as_bytes(chunkname))
    if ok:
        return True, None
    message = err.decode("utf-8", errors="replace") if isinstance(err, bytes) else str(err)
    LOGGER.debug("reference %s loader rejected chunk: %s", revision.name, message)
    return False, message


__all__ = [
    "RUNTIME_MODULES",
    "ReferenceUnavailable",
    "reference_runtime",
    "reference_dump",
    "reference_accepts",
]
