"""Checksum registry codec.

A registry (``checksum.txt``) lists one tracked file per line in the layout
written by ``sha256sum``::

    <hex digest>  <relative path>

The digest algorithm is fixed for the whole format. Changing it means bumping
``CHECKSUM_FORMAT_VERSION``; registries written under another algorithm are
rejected by :func:`parse_checksums` because the digest length no longer
matches.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from hashlib import sha256
from typing import Iterable, List, Sequence

from avskit.ports.storage import Storage, StoragePath, as_posix, join

from .errors import ChecksumFormatError, IntegrityError

CHECKSUM_FILENAME = "checksum.txt"
CHECKSUM_ALGORITHM = "sha256"
CHECKSUM_FORMAT_VERSION = 1
DIGEST_LENGTH = 64

_HEX_DIGEST = re.compile(r"^[0-9a-fA-F]+$")
_SEPARATOR = re.compile(r" {2,}")


@dataclass(frozen=True)
class ChecksumEntry:
    path: str
    digest: str

    def to_line(self) -> str:
        return f"{self.digest}  {self.path}"


def compute_digest(data: bytes) -> str:
    return sha256(data).hexdigest()


def _normalise_path(raw: str) -> str:
    path = raw.strip()
    if path.startswith("*"):
        path = path[1:]
    while path.startswith("./"):
        path = path[2:]
    return path


def _escapes_root(path: str) -> bool:
    parts = path.replace("\\", "/").split("/")
    return path.startswith(("/", "\\")) or ".." in parts


def parse_checksums(text: str, *, source: str | None = None) -> List[ChecksumEntry]:
    """Parse registry text; any malformed line rejects the whole registry."""

    entries: List[ChecksumEntry] = []
    for number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        fields = _SEPARATOR.split(line.strip(), maxsplit=1)
        if len(fields) != 2 or not fields[1].strip():
            raise ChecksumFormatError(number, line, "expected '<digest>  <path>'", path=source)
        digest, raw_path = fields
        if not _HEX_DIGEST.match(digest):
            raise ChecksumFormatError(number, line, "digest is not hexadecimal", path=source)
        if len(digest) != DIGEST_LENGTH:
            raise ChecksumFormatError(
                number,
                line,
                f"digest must be {DIGEST_LENGTH} characters ({CHECKSUM_ALGORITHM})",
                path=source,
            )
        path = _normalise_path(raw_path)
        if not path:
            raise ChecksumFormatError(number, line, "empty path", path=source)
        if _escapes_root(path):
            raise ChecksumFormatError(number, line, "path escapes the package root", path=source)
        entries.append(ChecksumEntry(path=path, digest=digest.lower()))
    return entries


def format_checksums(entries: Iterable[ChecksumEntry]) -> str:
    lines = [entry.to_line() for entry in entries]
    return "\n".join(lines) + "\n" if lines else ""


def verify_checksums(storage: Storage, root: StoragePath, entries: Sequence[ChecksumEntry]) -> None:
    """Raise ``IntegrityError`` for the first entry that is missing or altered under ``root``."""

    package_root = as_posix(root)
    for entry in entries:
        target = join(package_root, entry.path)
        try:
            data = storage.read_bytes(target)
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            raise IntegrityError(entry.path, expected=entry.digest, actual=None, package_root=package_root) from None
        actual = compute_digest(data)
        if actual != entry.digest:
            raise IntegrityError(entry.path, expected=entry.digest, actual=actual, package_root=package_root)


def build_checksums(storage: Storage, root: StoragePath, subdir: str = "pkg") -> List[ChecksumEntry]:
    """Digest every file under ``root/subdir``; paths are recorded relative to ``root``."""

    base = join(root, subdir)
    entries = [
        ChecksumEntry(path=f"{subdir}/{relative}", digest=compute_digest(storage.read_bytes(join(base, relative))))
        for relative in storage.walk_files(base)
    ]
    return sorted(entries, key=lambda entry: entry.path)


__all__ = [
    "CHECKSUM_ALGORITHM",
    "CHECKSUM_FILENAME",
    "CHECKSUM_FORMAT_VERSION",
    "ChecksumEntry",
    "build_checksums",
    "compute_digest",
    "format_checksums",
    "parse_checksums",
    "verify_checksums",
]
