"""Application service for instance backups."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List

from avskit.domain.backup import (
    BACKUP_EXTENSION,
    DATA_PREFIX,
    TIMESTAMP_ENTRY,
    Backup,
    Timestamp,
    backup_file_name,
    backup_from_tar,
    parse_backup_name,
)
from avskit.domain.errors import AVSKitError, DecodeError, InvalidBackupNameError, NotExistError
from avskit.domain.instance import STATE_FILENAME, Instance
from avskit.ports.storage import Storage, StoragePath, as_posix, join
from avskit.settings import RuntimeSettings
from avskit.utils.tar import iter_tar_files, write_tar
from avskit.utils.telemetry import EventLog


@dataclass(frozen=True)
class BackupSummary:
    """Backup identified from its file name alone, without opening the archive."""

    path: str
    instance_id: str
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "instance_id": self.instance_id,
            "timestamp": self.timestamp,
        }


class BackupService:
    """Creates, lists, decodes and restores backups of node instances.

    Instance state lives under ``settings.data_dir/<instance_id>`` and archives
    under ``settings.backup_dir``; every read and write goes through
    ``storage``.
    """

    def __init__(self, storage: Storage, settings: RuntimeSettings) -> None:
        self._storage = storage
        self._settings = settings

    @property
    def backup_dir(self) -> str:
        return as_posix(self._settings.backup_dir)

    def create(self, instance_id: str, *, timestamp: Timestamp | None = None) -> Backup:
        """Archive ``data_dir/<instance_id>``; its ``state.json`` must describe that same instance."""

        instance_dir = as_posix(self._settings.instance_dir(instance_id))
        if not self._storage.is_dir(instance_dir):
            raise NotExistError(instance_dir)
        state_path = join(instance_dir, STATE_FILENAME)
        try:
            raw_state = self._storage.read_bytes(state_path)
        except FileNotFoundError:
            raise NotExistError(state_path) from None
        instance = Instance.from_json(raw_state, source=state_path)
        if instance.id != instance_id:
            raise DecodeError(
                f"state describes instance '{instance.id}', not '{instance_id}'",
                path=state_path,
            )

        moment = timestamp if timestamp is not None else datetime.now(timezone.utc)
        backup = Backup(
            instance_id=instance_id,
            timestamp=moment,
            version=instance.version,
            commit=instance.commit,
            url=instance.url,
        )
        seconds = backup.timestamp
        entries = [(TIMESTAMP_ENTRY, str(seconds).encode("ascii"))]
        for relative in sorted(self._storage.walk_files(instance_dir)):
            entries.append((DATA_PREFIX + relative, self._storage.read_bytes(join(instance_dir, relative))))

        target = join(self.backup_dir, backup_file_name(instance_id, seconds))
        with self._storage.open_write(target) as handle:
            write_tar(handle, entries, mtime=seconds)
        self._record("backup.create", backup=backup, path=target, files=len(entries) - 1)
        return backup

    def list(self) -> List[BackupSummary]:
        if not self._storage.is_dir(self.backup_dir):
            return []
        summaries: List[BackupSummary] = []
        for name in self._storage.list_dir(self.backup_dir):
            if not name.endswith(BACKUP_EXTENSION):
                continue
            try:
                instance_id, timestamp = parse_backup_name(name)
            except InvalidBackupNameError:
                continue
            summaries.append(BackupSummary(path=join(self.backup_dir, name), instance_id=instance_id, timestamp=timestamp))
        summaries.sort(key=lambda item: (item.timestamp, item.instance_id))
        return summaries

    def load(self, path: StoragePath) -> Backup:
        return backup_from_tar(self._storage, path)

    def restore(self, path: StoragePath, target_dir: StoragePath) -> Backup:
        """Decode the archive, then write its ``data/`` files under ``target_dir``."""

        source = as_posix(path)
        destination = as_posix(target_dir)
        try:
            backup = backup_from_tar(self._storage, source)
            files = []
            with self._storage.open_read(source) as handle:
                for name, data in iter_tar_files(handle, prefix=DATA_PREFIX, archive=source):
                    files.append((_restore_path(name, source), data))
            self._storage.make_dirs(destination)
            for relative, data in files:
                self._storage.write_bytes(join(destination, relative), data)
        except AVSKitError as exc:
            self._record("backup.restore", path=source, error=exc)
            raise
        self._record("backup.restore", backup=backup, path=source, target=destination, files=len(files))
        return backup

    def _record(self, event: str, *, backup: Backup | None = None, error: AVSKitError | None = None, **payload: Any) -> None:
        body: Dict[str, Any] = dict(payload)
        if backup is not None:
            body["backup"] = backup.to_dict()
        if error is not None:
            body["error"] = error.to_dict()
        log = EventLog(self._storage, self._settings.log_dir)
        try:
            log.record(
                event,
                payload=body,
                level="error" if error is not None else "info",
                status="error" if error is not None else "ok",
                component="backup",
            )
        except OSError:
            # the event log never replaces the outcome of the operation
            return


def _restore_path(name: str, archive: str) -> str:
    relative = posixpath.normpath(name[len(DATA_PREFIX):])
    if not relative or relative == "." or relative.startswith("/") or relative.split("/", 1)[0] == "..":
        raise DecodeError(f"entry escapes the data directory: {name}", path=archive, entry=name)
    return relative


__all__ = ["BackupService", "BackupSummary"]
