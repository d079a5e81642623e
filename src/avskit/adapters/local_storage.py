"""Filesystem-backed storage."""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO, List

from avskit.ports.storage import Storage, StoragePath


class LocalStorage(Storage):
    """Storage over the local filesystem, optionally anchored at ``base_dir``.

    Relative paths resolve against ``base_dir`` when one is given and against
    the process working directory otherwise.
    """

    def __init__(self, base_dir: Path | None = None) -> None:
        self._base_dir = base_dir

    @property
    def base_dir(self) -> Path | None:
        return self._base_dir

    def resolve(self, path: StoragePath) -> Path:
        candidate = Path(path)
        if self._base_dir is not None and not candidate.is_absolute():
            return self._base_dir / candidate
        return candidate

    def exists(self, path: StoragePath) -> bool:
        return self.resolve(path).exists()

    def is_dir(self, path: StoragePath) -> bool:
        return self.resolve(path).is_dir()

    def is_file(self, path: StoragePath) -> bool:
        return self.resolve(path).is_file()

    def is_link(self, path: StoragePath) -> bool:
        return self.resolve(path).is_symlink()

    def open_read(self, path: StoragePath) -> BinaryIO:
        return self.resolve(path).open("rb")

    def open_write(self, path: StoragePath) -> BinaryIO:
        target = self.resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        return target.open("wb")

    def open_append(self, path: StoragePath) -> BinaryIO:
        target = self.resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        return target.open("ab")

    def make_dirs(self, path: StoragePath) -> None:
        self.resolve(path).mkdir(parents=True, exist_ok=True)

    def list_dir(self, path: StoragePath) -> List[str]:
        return sorted(entry.name for entry in self.resolve(path).iterdir())


__all__ = ["LocalStorage"]
