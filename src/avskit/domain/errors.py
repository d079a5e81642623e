"""Error taxonomy shared by the package and backup codecs.

Every failure raised by avskit is an :class:`AVSKitError` subclass tagged
with one :class:`ErrorKind`. Callers that only need the category can switch
on ``exc.kind``; callers that need diagnostics read the structured fields or
``exc.to_dict()``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar


class ErrorKind(str, Enum):
    STRUCTURAL = "structural"
    FORMAT = "format"
    INTEGRITY = "integrity"
    NOT_EXIST = "not_exist"
    DECODE = "decode"


class AVSKitError(RuntimeError):
    """Base class for all avskit failures."""

    kind: ClassVar[ErrorKind]

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = path

    def context(self) -> dict[str, Any]:
        return {"path": self.path}

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"kind": self.kind.value, "error": type(self).__name__, "message": self.message}
        payload.update({key: value for key, value in self.context().items() if value is not None})
        return payload


class StructuralError(AVSKitError):
    """A required directory or archive entry is missing."""

    kind = ErrorKind.STRUCTURAL


class PackageDirNotFoundError(StructuralError):
    def __init__(self, relative_path: str, package_root: str) -> None:
        super().__init__(
            f"required directory '{relative_path}' not found in package {package_root}",
            path=package_root,
        )
        self.relative_path = relative_path
        self.package_root = package_root

    def context(self) -> dict[str, Any]:
        return {"relative_path": self.relative_path, "package_root": self.package_root}


class TarEntryNotFoundError(StructuralError):
    def __init__(self, entry: str, *, archive: str | None = None) -> None:
        where = f" in {archive}" if archive else ""
        super().__init__(f"tar entry '{entry}' not found{where}", path=archive)
        self.entry = entry

    def context(self) -> dict[str, Any]:
        return {"path": self.path, "entry": self.entry}


class FormatError(AVSKitError, ValueError):
    """Malformed name, registry line, timestamp or extension."""

    kind = ErrorKind.FORMAT


class InvalidBackupNameError(FormatError):
    def __init__(self, name: str) -> None:
        super().__init__(f"invalid backup name: {name}", path=name)


class ChecksumFormatError(FormatError):
    def __init__(self, line_number: int, line: str, reason: str, *, path: str | None = None) -> None:
        super().__init__(f"malformed checksum line {line_number}: {reason}", path=path)
        self.line_number = line_number
        self.line = line
        self.reason = reason

    def context(self) -> dict[str, Any]:
        return {"path": self.path, "line_number": self.line_number, "line": self.line}


class InvalidTimestampError(FormatError):
    def __init__(self, raw: str, *, path: str | None = None) -> None:
        super().__init__(f"invalid backup timestamp {raw!r}", path=path)
        self.raw = raw

    def context(self) -> dict[str, Any]:
        return {"path": self.path, "raw": self.raw}


class IntegrityError(AVSKitError):
    """A registered file is missing or its content digest differs."""

    kind = ErrorKind.INTEGRITY

    def __init__(self, path: str, *, expected: str, actual: str | None, package_root: str | None = None) -> None:
        if actual is None:
            message = f"invalid checksum: {path} is listed in the checksum registry but missing"
        else:
            message = f"invalid checksum: {path} expected {expected}, got {actual}"
        super().__init__(message, path=path)
        self.expected = expected
        self.actual = actual
        self.package_root = package_root

    @property
    def missing(self) -> bool:
        return self.actual is None

    def context(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "package_root": self.package_root,
            "expected": self.expected,
            "actual": self.actual,
        }


class NotExistError(AVSKitError, FileNotFoundError):
    """The source path does not exist."""

    kind = ErrorKind.NOT_EXIST

    def __init__(self, path: str) -> None:
        super().__init__(f"file does not exist: {path}", path=path)

    def __str__(self) -> str:
        return self.message


class DecodeError(AVSKitError, ValueError):
    """Embedded metadata could not be decoded."""

    kind = ErrorKind.DECODE

    def __init__(self, detail: str, *, path: str | None = None, entry: str | None = None) -> None:
        where = f" ({entry})" if entry else ""
        super().__init__(f"cannot decode {path or 'input'}{where}: {detail}", path=path)
        self.detail = detail
        self.entry = entry

    def context(self) -> dict[str, Any]:
        return {"path": self.path, "entry": self.entry, "detail": self.detail}


__all__ = [
    "AVSKitError",
    "ChecksumFormatError",
    "DecodeError",
    "ErrorKind",
    "FormatError",
    "IntegrityError",
    "InvalidBackupNameError",
    "InvalidTimestampError",
    "NotExistError",
    "PackageDirNotFoundError",
    "StructuralError",
    "TarEntryNotFoundError",
]
