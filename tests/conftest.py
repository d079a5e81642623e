from __future__ import annotations

import hashlib
import io
import json
import os
import sys
import tarfile
from pathlib import Path
from typing import Callable, Dict

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))
os.environ.setdefault("AVSKIT_HOME", str(ROOT / ".test_place" / "avskit-home"))

from avskit.adapters.memory_storage import MemoryStorage  # noqa: E402
from avskit.settings import RuntimeSettings  # noqa: E402

MANIFEST = """\
version: v0.1.0
name: mock-avs
upgrade: background
profiles:
  - option-returner
"""

PROFILE = """\
name: option-returner
from_profile: option-returner
"""

COMPOSE = """\
services:
  main-service:
    image: mock-avs-option-returner:v0.1.0
"""

STATE = {
    "name": "mock-avs",
    "tag": "default",
    "url": "https://github.com/NethermindEth/mock-avs",
    "version": "v0.1.0",
    "commit": "d5af645fffb93e8263b099082a4f512e1917d0af",
    "profile": "option-returner",
}


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def make_tar(entries: Dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as archive:
        for name, data in entries.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            archive.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


@pytest.fixture()
def tar_builder() -> Callable[[Dict[str, bytes]], bytes]:
    return make_tar


@pytest.fixture()
def memory_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def runtime_settings(tmp_path: Path) -> RuntimeSettings:
    base = tmp_path / "runtime"
    settings = RuntimeSettings(
        home_dir=base,
        data_dir=base / "nodes",
        backup_dir=base / "backups",
        state_dir=base / "state",
        log_dir=base / "logs",
    )
    return settings


@pytest.fixture()
def package_files() -> Dict[str, bytes]:
    """Files of a staged mock-avs package, keyed by root-relative path (registry not included)."""

    return {
        "pkg/manifest.yml": MANIFEST.encode("utf-8"),
        "pkg/option-returner/profile.yml": PROFILE.encode("utf-8"),
        "pkg/option-returner/docker-compose.yml": COMPOSE.encode("utf-8"),
        "README.md": b"# mock-avs\n",
    }


@pytest.fixture()
def make_package(memory_storage: MemoryStorage, package_files: Dict[str, bytes]) -> Callable[..., str]:
    def _make(root: str = "/packages/mock-avs", *, with_checksum: bool = True) -> str:
        for relative, data in package_files.items():
            memory_storage.write_bytes(f"{root}/{relative}", data)
        if with_checksum:
            lines = [
                f"{sha256_hex(data)}  {relative}"
                for relative, data in sorted(package_files.items())
                if relative.startswith("pkg/")
            ]
            memory_storage.write_bytes(f"{root}/checksum.txt", ("\n".join(lines) + "\n").encode("utf-8"))
        return root

    return _make


@pytest.fixture()
def state_payload() -> Dict[str, str]:
    return dict(STATE)


@pytest.fixture()
def make_backup_archive(memory_storage: MemoryStorage, state_payload: Dict[str, str]) -> Callable[..., str]:
    def _make(
        path: str = "/backups/mock-avs-default-1700000000.tar",
        *,
        timestamp: bytes | None = b"1700000000",
        state: bytes | None = None,
        include_state: bool = True,
        extra: Dict[str, bytes] | None = None,
    ) -> str:
        entries: Dict[str, bytes] = dict(extra or {})
        if include_state:
            entries["data/state.json"] = state if state is not None else json.dumps(state_payload).encode("utf-8")
        if timestamp is not None:
            entries["timestamp"] = timestamp
        memory_storage.write_bytes(path, make_tar(entries))
        return path

    return _make
