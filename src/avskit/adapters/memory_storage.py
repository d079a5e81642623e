"""In-memory storage used by tests and dry runs."""

from __future__ import annotations

import io
import posixpath
from typing import BinaryIO, Dict, List, Set

from avskit.ports.storage import Storage, StoragePath, as_posix


def _normalise(path: StoragePath) -> str:
    return posixpath.normpath("/" + as_posix(path).lstrip("/"))


class _PendingWrite(io.BytesIO):
    """Buffer that lands in the owning storage when closed."""

    def __init__(self, storage: "MemoryStorage", path: str, initial: bytes = b"") -> None:
        super().__init__(initial)
        self.seek(0, io.SEEK_END)
        self._storage = storage
        self._path = path

    def close(self) -> None:
        if not self.closed:
            self._storage._files[self._path] = self.getvalue()
        super().close()


class MemoryStorage(Storage):
    """Dictionary-backed filesystem; every path is absolute and posix-style."""

    def __init__(self, files: Dict[str, bytes] | None = None) -> None:
        self._files: Dict[str, bytes] = {}
        self._dirs: Set[str] = {"/"}
        for path, data in (files or {}).items():
            self.write_bytes(path, data)

    def exists(self, path: StoragePath) -> bool:
        key = _normalise(path)
        return key in self._files or key in self._dirs

    def is_dir(self, path: StoragePath) -> bool:
        return _normalise(path) in self._dirs

    def is_file(self, path: StoragePath) -> bool:
        return _normalise(path) in self._files

    def open_read(self, path: StoragePath) -> BinaryIO:
        key = _normalise(path)
        if key in self._dirs:
            raise IsADirectoryError(key)
        try:
            return io.BytesIO(self._files[key])
        except KeyError:
            raise FileNotFoundError(key) from None

    def open_write(self, path: StoragePath) -> BinaryIO:
        key = _normalise(path)
        if key in self._dirs:
            raise IsADirectoryError(key)
        self.make_dirs(posixpath.dirname(key))
        return _PendingWrite(self, key)

    def open_append(self, path: StoragePath) -> BinaryIO:
        key = _normalise(path)
        if key in self._dirs:
            raise IsADirectoryError(key)
        self.make_dirs(posixpath.dirname(key))
        return _PendingWrite(self, key, self._files.get(key, b""))

    def make_dirs(self, path: StoragePath) -> None:
        key = _normalise(path)
        missing = []
        while key not in self._dirs:
            if key in self._files:
                raise NotADirectoryError(key)
            missing.append(key)
            key = posixpath.dirname(key)
        self._dirs.update(missing)

    def list_dir(self, path: StoragePath) -> List[str]:
        key = _normalise(path)
        if key not in self._dirs:
            if key in self._files:
                raise NotADirectoryError(key)
            raise FileNotFoundError(key)
        names = {
            posixpath.basename(candidate)
            for candidate in self._files.keys() | self._dirs
            if candidate != key and posixpath.dirname(candidate) == key
        }
        return sorted(names)

    def remove(self, path: StoragePath) -> None:
        key = _normalise(path)
        if key in self._files:
            del self._files[key]
            return
        if key not in self._dirs:
            raise FileNotFoundError(key)
        prefix = key.rstrip("/") + "/"
        self._files = {name: data for name, data in self._files.items() if not name.startswith(prefix)}
        self._dirs = {name for name in self._dirs if name != key and not name.startswith(prefix)}


__all__ = ["MemoryStorage"]
