"""Validation of staged node packages."""

from __future__ import annotations

from typing import Any, Dict, List

import yaml

from avskit.domain.checksum import (
    CHECKSUM_FILENAME,
    ChecksumEntry,
    build_checksums,
    format_checksums,
    parse_checksums,
    verify_checksums,
)
from avskit.domain.errors import AVSKitError, DecodeError, PackageDirNotFoundError, StructuralError
from avskit.ports.storage import Storage, StoragePath, as_posix, join
from avskit.settings import RuntimeSettings
from avskit.utils.telemetry import EventLog

PKG_DIR = "pkg"
MANIFEST_FILENAME = "manifest.yml"
PROFILE_FILENAME = "profile.yml"


class PackageHandler:
    """Checks a package directory: required ``pkg/`` layout plus the optional ``checksum.txt`` registry."""

    def __init__(self, storage: Storage, root: StoragePath, *, settings: RuntimeSettings | None = None) -> None:
        self._storage = storage
        self._root = as_posix(root)
        self._settings = settings

    @property
    def root(self) -> str:
        return self._root

    @property
    def pkg_dir(self) -> str:
        return join(self._root, PKG_DIR)

    @property
    def checksum_path(self) -> str:
        return join(self._root, CHECKSUM_FILENAME)

    def check(self) -> bool:
        """Raise when the package is malformed or its registry does not match the tree.

        Returns True when ``checksum.txt`` was verified and False when the
        package ships without one and passes unverified.
        """

        try:
            self._check_structure()
            entries = self._read_registry()
            if entries is not None:
                verify_checksums(self._storage, self._root, entries)
        except AVSKitError as exc:
            self._record("package.check", status="error", error=exc)
            raise
        self._record("package.check", status="ok", verified=entries is not None)
        return entries is not None

    def checksums(self) -> List[ChecksumEntry] | None:
        """Parsed registry, or None when the package ships without one."""

        return self._read_registry()

    def seal(self) -> List[ChecksumEntry]:
        """Write ``checksum.txt`` covering every file under ``pkg/``."""

        self._check_structure()
        entries = build_checksums(self._storage, self._root, PKG_DIR)
        self._storage.write_bytes(self.checksum_path, format_checksums(entries).encode("utf-8"))
        self._record("package.seal", status="ok", entries=len(entries))
        return entries

    def load_manifest(self) -> Dict[str, Any]:
        self._check_structure()
        path = join(self.pkg_dir, MANIFEST_FILENAME)
        try:
            raw = self._storage.read_bytes(path)
        except FileNotFoundError:
            raise StructuralError(f"manifest '{PKG_DIR}/{MANIFEST_FILENAME}' not found in package {self._root}", path=path) from None
        try:
            manifest = yaml.safe_load(raw.decode("utf-8"))
        except (UnicodeDecodeError, yaml.YAMLError) as exc:
            raise DecodeError(str(exc), path=path) from exc
        if not isinstance(manifest, dict):
            raise DecodeError("manifest must be a mapping", path=path)
        return manifest

    def profiles(self) -> List[str]:
        self._check_structure()
        return [
            name
            for name in self._storage.list_dir(self.pkg_dir)
            if self._storage.is_file(join(self.pkg_dir, name, PROFILE_FILENAME))
        ]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_structure(self) -> None:
        if not self._storage.is_dir(self.pkg_dir):
            raise PackageDirNotFoundError(PKG_DIR, self._root)

    def _read_registry(self) -> List[ChecksumEntry] | None:
        try:
            raw = self._storage.read_bytes(self.checksum_path)
        except FileNotFoundError:
            return None
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(str(exc), path=self.checksum_path) from exc
        return parse_checksums(text, source=self.checksum_path)

    def _record(self, event: str, *, status: str, error: AVSKitError | None = None, **payload: Any) -> None:
        if self._settings is None:
            return
        body: Dict[str, Any] = {"package": self._root, **payload}
        if error is not None:
            body["error"] = error.to_dict()
        log = EventLog(self._storage, self._settings.log_dir)
        try:
            log.record(
                event,
                payload=body,
                level="error" if error is not None else "info",
                status=status,
                component="package",
            )
        except OSError:
            # the event log never replaces the outcome of the operation
            return


def check_package(storage: Storage, root: StoragePath) -> bool:
    return PackageHandler(storage, root).check()


__all__ = ["PackageHandler", "check_package", "PKG_DIR", "MANIFEST_FILENAME"]
