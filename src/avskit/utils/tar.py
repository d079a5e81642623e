"""Sequential tar reads and deterministic tar writes."""

from __future__ import annotations

import io
import tarfile
from typing import BinaryIO, Iterable, Iterator, Tuple

from avskit.domain.errors import DecodeError, TarEntryNotFoundError

FILE_MODE = 0o644


def read_tar_entry(name: str, stream: BinaryIO, *, archive: str | None = None) -> bytes:
    """Return the content of the first regular file called ``name`` in ``stream``.

    Headers are scanned sequentially and unrelated entries are skipped, so the
    archive is never extracted. The stream is left open for the caller.
    """

    try:
        with tarfile.open(fileobj=stream, mode="r|") as archive_reader:
            for member in archive_reader:
                if member.name != name or not member.isfile():
                    continue
                extracted = archive_reader.extractfile(member)
                if extracted is None:  # pragma: no cover - isfile() guarantees a payload
                    break
                return extracted.read()
    except tarfile.TarError as exc:
        raise DecodeError(f"unreadable tar archive: {exc}", path=archive, entry=name) from exc
    raise TarEntryNotFoundError(name, archive=archive)


def iter_tar_files(stream: BinaryIO, *, prefix: str = "", archive: str | None = None) -> Iterator[Tuple[str, bytes]]:
    """Yield (name, data) for every regular file whose name starts with ``prefix``."""

    try:
        with tarfile.open(fileobj=stream, mode="r|") as archive_reader:
            for member in archive_reader:
                if not member.isfile() or not member.name.startswith(prefix):
                    continue
                extracted = archive_reader.extractfile(member)
                if extracted is None:  # pragma: no cover
                    continue
                yield member.name, extracted.read()
    except tarfile.TarError as exc:
        raise DecodeError(f"unreadable tar archive: {exc}", path=archive) from exc


def write_tar(stream: BinaryIO, entries: Iterable[Tuple[str, bytes]], *, mtime: int = 0) -> None:
    """Write ``(name, data)`` pairs as regular files into an uncompressed tar stream.

    Ownership and permissions are fixed so archives built from identical input
    are byte-identical.
    """

    with tarfile.open(fileobj=stream, mode="w|", format=tarfile.PAX_FORMAT) as archive_writer:
        for name, data in entries:
            info = tarfile.TarInfo(name=name)
            info.size = len(data)
            info.mtime = mtime
            info.mode = FILE_MODE
            info.uid = info.gid = 0
            info.uname = info.gname = ""
            archive_writer.addfile(info, io.BytesIO(data))


__all__ = ["iter_tar_files", "read_tar_entry", "write_tar"]
