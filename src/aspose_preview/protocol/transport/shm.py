"""Shared-memory transport behind a single capability interface.

Each platform family gets one ``RegionReader``:

- Windows: named file mapping opened through ``ctypes`` (kernel32).
- Linux: POSIX shared memory, visible as files under ``/dev/shm``.
- macOS: no named mapping is shared with the producer, so the backing file
  path from the metadata is read instead.

Readers are synchronous; the parser runs them in a worker thread.
"""

from __future__ import annotations

import asyncio
import ctypes
import logging
import platform
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from aspose_preview.protocol.errors import TransportError, TransportUnavailable

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)

SHM_ROOT = Path("/dev/shm")
FILE_MAP_READ = 0x0004

_ALTERNATIVES_HINT = "use stdin or file transport mode instead"


class RegionReader(Protocol):
    """Reads *size* bytes of a shared region identified by name or backing path."""

    strategy: str

    def read_region(self, name: str | None, size: int | None, hint: str | None = None) -> bytes: ...

    def info(self) -> dict[str, Any]: ...


def _warn_size_mismatch(expected: int | None, actual: int) -> None:
    if expected is not None and expected != actual:
        logger.warning("Data size mismatch: expected %d, got %d", expected, actual)


def _read_backing_file(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        msg = f"Failed to read shared memory at {path}: {exc}"
        raise TransportError(msg) from exc


class WindowsNamedRegionReader:
    """Named shared memory via OpenFileMappingW / MapViewOfFile."""

    strategy = "WindowsNamed"

    def __init__(self) -> None:
        self._kernel32: Any = None
        self._init_error: Exception | None = None
        self._initialized = False

    def _load(self) -> bool:
        if self._initialized:
            return self._init_error is None
        self._initialized = True
        try:
            kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)  # type: ignore[attr-defined]
            kernel32.OpenFileMappingW.argtypes = [ctypes.c_uint32, ctypes.c_int, ctypes.c_wchar_p]
            kernel32.OpenFileMappingW.restype = ctypes.c_void_p
            kernel32.MapViewOfFile.argtypes = [
                ctypes.c_void_p,
                ctypes.c_uint32,
                ctypes.c_uint32,
                ctypes.c_uint32,
                ctypes.c_size_t,
            ]
            kernel32.MapViewOfFile.restype = ctypes.c_void_p
            kernel32.UnmapViewOfFile.argtypes = [ctypes.c_void_p]
            kernel32.UnmapViewOfFile.restype = ctypes.c_int
            kernel32.CloseHandle.argtypes = [ctypes.c_void_p]
            kernel32.CloseHandle.restype = ctypes.c_int
        except (AttributeError, OSError) as exc:
            self._init_error = exc
            logger.warning("Windows shared memory not available: %s", exc)
            return False
        self._kernel32 = kernel32
        logger.info("Windows shared memory support initialized")
        return True

    def is_available(self) -> bool:
        return self._load()

    @contextmanager
    def _open_mapping(self, name: str) -> Iterator[int]:
        handle = self._kernel32.OpenFileMappingW(FILE_MAP_READ, False, name)
        if not handle:
            code = ctypes.get_last_error()  # type: ignore[attr-defined]
            msg = f"Failed to open file mapping '{name}': error code {code}"
            raise TransportError(msg)
        try:
            yield handle
        finally:
            self._kernel32.CloseHandle(handle)

    @contextmanager
    def _map_view(self, handle: int, size: int) -> Iterator[int]:
        view = self._kernel32.MapViewOfFile(handle, FILE_MAP_READ, 0, 0, size)
        if not view:
            code = ctypes.get_last_error()  # type: ignore[attr-defined]
            msg = f"Failed to map view of file: error code {code}"
            raise TransportError(msg)
        try:
            yield view
        finally:
            self._kernel32.UnmapViewOfFile(view)

    def read_region(self, name: str | None, size: int | None, hint: str | None = None) -> bytes:
        del hint
        if not self._load():
            msg = (
                f"Windows shared memory support not available ({self._init_error}); "
                f"{_ALTERNATIVES_HINT}"
            )
            raise TransportUnavailable(msg)
        if not name or size is None:
            msg = "mmap transport requires mmapName and dataSize in snapshot metadata"
            raise TransportError(msg)
        if size == 0:
            return b""

        logger.debug("Reading from Windows named shared memory: %s (%d bytes)", name, size)
        with self._open_mapping(name) as handle, self._map_view(handle, size) as view:
            return ctypes.string_at(view, size)

    def info(self) -> dict[str, Any]:
        available = self._load()
        return {
            "platform": "win32",
            "strategy": self.strategy,
            "available": available,
            "error": str(self._init_error) if self._init_error else None,
        }


class PosixShmRegionReader:
    """POSIX shared memory objects exposed as files under ``/dev/shm``."""

    strategy = "LinuxPosix"

    def __init__(self, root: Path = SHM_ROOT) -> None:
        self._root = root

    def _region_path(self, name: str) -> Path:
        segment = name.lstrip("/")
        if not segment or "/" in segment or segment in {".", ".."}:
            msg = f"Invalid shared memory name: {name!r}"
            raise TransportError(msg)
        return self._root / segment

    def read_region(self, name: str | None, size: int | None, hint: str | None = None) -> bytes:
        del hint
        if not name:
            msg = "mmap transport requires mmapName in snapshot metadata"
            raise TransportError(msg)
        path = self._region_path(name)
        logger.debug("Reading from Linux shared memory: %s", path)
        data = _read_backing_file(path)
        _warn_size_mismatch(size, len(data))
        return data

    def info(self) -> dict[str, Any]:
        return {"platform": "linux", "strategy": self.strategy, "available": True, "error": None}


class FileBackedRegionReader:
    """Reads the producer's backing file where no named mapping is shared."""

    strategy = "FileBacked"

    def read_region(self, name: str | None, size: int | None, hint: str | None = None) -> bytes:
        if not hint:
            msg = (
                "macOS mmap requires filePath in metadata. "
                "Please ensure aspose-mcp-server provides filePath for macOS."
            )
            raise TransportError(msg)
        logger.debug("Reading from macOS file-backed mmap: %s (region %s)", hint, name)
        data = _read_backing_file(Path(hint))
        _warn_size_mismatch(size, len(data))
        return data

    def info(self) -> dict[str, Any]:
        return {"platform": "darwin", "strategy": self.strategy, "available": True, "error": None}


class UnsupportedRegionReader:
    """Fails closed on platforms without a shared-memory implementation."""

    strategy = "Unsupported"

    def __init__(self, system: str) -> None:
        self._system = system

    def read_region(self, name: str | None, size: int | None, hint: str | None = None) -> bytes:
        del name, size, hint
        msg = (
            f"Memory-mapped transport is not supported on platform: {self._system}; "
            f"{_ALTERNATIVES_HINT}"
        )
        raise TransportUnavailable(msg)

    def info(self) -> dict[str, Any]:
        return {
            "platform": self._system.lower(),
            "strategy": self.strategy,
            "available": False,
            "error": None,
        }


def select_region_reader(system: str | None = None) -> RegionReader:
    """Return the reader for *system* (defaults to the running platform)."""
    system = system or platform.system()
    match system:
        case "Windows":
            return WindowsNamedRegionReader()
        case "Linux":
            return PosixShmRegionReader()
        case "Darwin":
            return FileBackedRegionReader()
        case _:
            return UnsupportedRegionReader(system)


async def read_from_shared_memory(
    reader: RegionReader,
    name: str | None,
    size: int | None,
    hint: str | None = None,
) -> bytes:
    """Run *reader* in a worker thread so a slow read never stalls the event loop."""
    logger.debug("Reading from mmap: %s, size: %s, strategy: %s", name, size, reader.strategy)
    return await asyncio.to_thread(reader.read_region, name, size, hint)


__all__ = [
    "FILE_MAP_READ",
    "SHM_ROOT",
    "FileBackedRegionReader",
    "PosixShmRegionReader",
    "RegionReader",
    "UnsupportedRegionReader",
    "WindowsNamedRegionReader",
    "read_from_shared_memory",
    "select_region_reader",
]
