"""Backup identity, archive naming and archive decoding."""

from __future__ import annotations

import calendar
import posixpath
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import cached_property
from hashlib import sha1
from typing import Tuple, Union

from avskit.ports.storage import Storage, StoragePath, as_posix
from avskit.utils.tar import read_tar_entry

from .errors import InvalidBackupNameError, InvalidTimestampError, NotExistError
from .instance import STATE_FILENAME, Instance

BACKUP_EXTENSION = ".tar"
STATE_ENTRY = f"data/{STATE_FILENAME}"
TIMESTAMP_ENTRY = "timestamp"
DATA_PREFIX = "data/"

_BACKUP_NAME = re.compile(r"(?P<instance_id>.*)-(?P<timestamp>[0-9]+)\.tar")
_TIMESTAMP_TEXT = re.compile(r"-?[0-9]+")

# Unix seconds are carried as signed 64-bit integers.
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

Timestamp = Union[datetime, int]


def unix_seconds(value: Timestamp) -> int:
    """Whole Unix seconds for ``value``; naive datetimes are read as UTC."""

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return calendar.timegm(value.utctimetuple())
    return int(value)


def format_timestamp(seconds: int) -> str:
    """ISO-8601 UTC rendering; seconds outside the ``datetime`` range render as ``@<seconds>``."""

    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat()
    except (OverflowError, OSError, ValueError):
        return f"@{seconds}"


@dataclass(frozen=True)
class Backup:
    """In-memory projection of a backup archive.

    ``timestamp`` is whole Unix seconds (UTC), the precision kept in archive
    names and ``timestamp`` entries. A ``datetime`` is accepted on
    construction and converted.
    """

    instance_id: str
    timestamp: int
    version: str
    commit: str
    url: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", unix_seconds(self.timestamp))

    @cached_property
    def id(self) -> str:
        # SHA-1 over "<instance>-<unix>-<version>-<commit>"; url does not take part.
        seed = f"{self.instance_id}-{self.timestamp}-{self.version}-{self.commit}"
        return sha1(seed.encode("utf-8")).hexdigest()

    @property
    def file_name(self) -> str:
        return backup_file_name(self.instance_id, self.timestamp)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "instance_id": self.instance_id,
            "timestamp": self.timestamp,
            "version": self.version,
            "commit": self.commit,
            "url": self.url,
        }


def backup_file_name(instance_id: str, timestamp: Timestamp) -> str:
    return f"{instance_id}-{unix_seconds(timestamp)}{BACKUP_EXTENSION}"


def parse_backup_name(name: StoragePath) -> Tuple[str, int]:
    """Split ``<instance_id>-<unix seconds>.tar`` into its parts.

    The id match is greedy, so the timestamp is the last hyphen-delimited run
    of digits and ids that contain hyphens survive intact. The whole base name
    must match; a trailing newline is not forgiven.
    """

    base = posixpath.basename(as_posix(name))
    match = _BACKUP_NAME.fullmatch(base)
    if match is None:
        raise InvalidBackupNameError(base)
    seconds = int(match.group("timestamp"))
    if seconds > INT64_MAX:
        raise InvalidBackupNameError(base)
    return match.group("instance_id"), seconds


def _load_state(storage: Storage, path: str) -> Instance:
    with storage.open_read(path) as handle:
        raw = read_tar_entry(STATE_ENTRY, handle, archive=path)
    return Instance.from_json(raw, source=path, entry=STATE_ENTRY)


def _load_timestamp(storage: Storage, path: str) -> int:
    with storage.open_read(path) as handle:
        raw = read_tar_entry(TIMESTAMP_ENTRY, handle, archive=path)
    text = raw.decode("utf-8", errors="replace").strip()
    if not _TIMESTAMP_TEXT.fullmatch(text):
        raise InvalidTimestampError(text, path=path)
    seconds = int(text)
    if not INT64_MIN <= seconds <= INT64_MAX:
        raise InvalidTimestampError(text, path=path)
    return seconds


def backup_from_tar(storage: Storage, path: StoragePath) -> Backup:
    """Decode the backup archive at ``path``.

    Existence and the ``.tar`` extension are checked before the archive is
    opened. State and timestamp are each read through their own handle.
    """

    source = as_posix(path)
    if not storage.is_file(source):
        raise NotExistError(source)
    if posixpath.splitext(source)[1] != BACKUP_EXTENSION:
        raise InvalidBackupNameError(source)
    instance = _load_state(storage, source)
    timestamp = _load_timestamp(storage, source)
    return Backup(
        instance_id=instance.id,
        timestamp=timestamp,
        version=instance.version,
        commit=instance.commit,
        url=instance.url,
    )


__all__ = [
    "BACKUP_EXTENSION",
    "Backup",
    "DATA_PREFIX",
    "INT64_MAX",
    "STATE_ENTRY",
    "TIMESTAMP_ENTRY",
    "backup_file_name",
    "backup_from_tar",
    "format_timestamp",
    "parse_backup_name",
    "unix_seconds",
]
