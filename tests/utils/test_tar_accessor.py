from __future__ import annotations

import io
import tarfile
from typing import Callable

import pytest

from avskit.domain.errors import DecodeError, TarEntryNotFoundError
from avskit.utils.tar import iter_tar_files, read_tar_entry, write_tar


def test_read_tar_entry_ignores_entry_order(tar_builder: Callable[..., bytes]) -> None:
    payload = tar_builder({"data/state.json": b"{}", "data/.env": b"A=1", "timestamp": b"42"})

    assert read_tar_entry("timestamp", io.BytesIO(payload)) == b"42"
    assert read_tar_entry("data/state.json", io.BytesIO(payload)) == b"{}"


def test_read_tar_entry_returns_first_match_and_skips_directories() -> None:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as archive:
        folder = tarfile.TarInfo("timestamp")
        folder.type = tarfile.DIRTYPE
        archive.addfile(folder)
        for content in (b"first", b"second"):
            info = tarfile.TarInfo("timestamp")
            info.size = len(content)
            archive.addfile(info, io.BytesIO(content))

    assert read_tar_entry("timestamp", io.BytesIO(buffer.getvalue())) == b"first"


def test_read_tar_entry_not_found(tar_builder: Callable[..., bytes]) -> None:
    stream = io.BytesIO(tar_builder({"data/state.json": b"{}"}))

    with pytest.raises(TarEntryNotFoundError) as excinfo:
        read_tar_entry("timestamp", stream, archive="/b/x-1.tar")

    assert excinfo.value.entry == "timestamp"
    assert excinfo.value.path == "/b/x-1.tar"
    assert not stream.closed


def test_read_tar_entry_rejects_garbage() -> None:
    with pytest.raises(DecodeError):
        read_tar_entry("timestamp", io.BytesIO(b"\x01" * 1024), archive="/b/x-1.tar")


def test_write_tar_is_deterministic() -> None:
    entries = [("timestamp", b"1700000000"), ("data/state.json", b"{}")]
    first, second = io.BytesIO(), io.BytesIO()

    write_tar(first, entries, mtime=1700000000)
    write_tar(second, entries, mtime=1700000000)

    assert first.getvalue() == second.getvalue()
    with tarfile.open(fileobj=io.BytesIO(first.getvalue())) as archive:
        members = archive.getmembers()
    assert [member.name for member in members] == ["timestamp", "data/state.json"]
    assert all(member.mode == 0o644 and member.mtime == 1700000000 for member in members)


def test_iter_tar_files_filters_by_prefix(tar_builder: Callable[..., bytes]) -> None:
    payload = tar_builder({"timestamp": b"1", "data/state.json": b"{}", "data/nested/.env": b"A=1"})

    files = dict(iter_tar_files(io.BytesIO(payload), prefix="data/"))

    assert files == {"data/state.json": b"{}", "data/nested/.env": b"A=1"}
