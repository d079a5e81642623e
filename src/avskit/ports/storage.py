"""Port definition for filesystem access."""

from __future__ import annotations

import os
import posixpath
from abc import ABC, abstractmethod
from pathlib import PurePath
from typing import BinaryIO, Iterator, List, Union

StoragePath = Union[str, PurePath]


def as_posix(path: StoragePath) -> str:
    value = os.fspath(path)
    if isinstance(path, PurePath):
        value = path.as_posix()
    return value.replace("\\", "/")


def join(*parts: StoragePath) -> str:
    return posixpath.join(*(as_posix(part) for part in parts))


class Storage(ABC):
    """Abstraction over the filesystem every avskit operation reads and writes through.

    Implementations raise ``FileNotFoundError`` for absent paths and let every
    other ``OSError`` propagate unchanged.
    """

    @abstractmethod
    def exists(self, path: StoragePath) -> bool:
        """Return True when a file or directory exists at ``path``."""

    @abstractmethod
    def is_dir(self, path: StoragePath) -> bool:
        """Return True when ``path`` is a directory."""

    @abstractmethod
    def is_file(self, path: StoragePath) -> bool:
        """Return True when ``path`` is a regular file."""

    @abstractmethod
    def open_read(self, path: StoragePath) -> BinaryIO:
        """Open ``path`` for binary reading; the caller closes the handle."""

    @abstractmethod
    def open_write(self, path: StoragePath) -> BinaryIO:
        """Open ``path`` for binary writing, creating parent directories."""

    @abstractmethod
    def open_append(self, path: StoragePath) -> BinaryIO:
        """Open ``path`` for binary appending, creating it and its parent directories."""

    @abstractmethod
    def make_dirs(self, path: StoragePath) -> None:
        """Create ``path`` and any missing parents."""

    @abstractmethod
    def list_dir(self, path: StoragePath) -> List[str]:
        """Return the sorted entry names directly under ``path``."""

    def is_link(self, path: StoragePath) -> bool:
        """Return True when ``path`` is a symbolic link; walks never descend into linked directories."""

        return False

    def read_bytes(self, path: StoragePath) -> bytes:
        with self.open_read(path) as handle:
            return handle.read()

    def write_bytes(self, path: StoragePath, data: bytes) -> None:
        with self.open_write(path) as handle:
            handle.write(data)

    def walk_files(self, root: StoragePath) -> Iterator[str]:
        """Yield root-relative posix paths of every file below ``root``, depth first.

        Symlinked directories are skipped.
        """

        base = as_posix(root)
        pending = [""]
        while pending:
            relative = pending.pop()
            current = join(base, relative) if relative else base
            children = []
            for name in self.list_dir(current):
                child = posixpath.join(relative, name) if relative else name
                target = join(base, child)
                if self.is_dir(target):
                    if not self.is_link(target):
                        children.append(child)
                else:
                    yield child
            pending.extend(reversed(children))


__all__ = ["Storage", "StoragePath", "as_posix", "join"]
