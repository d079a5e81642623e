from __future__ import annotations

import pytest

from avskit.domain.errors import (
    AVSKitError,
    ChecksumFormatError,
    DecodeError,
    ErrorKind,
    FormatError,
    IntegrityError,
    InvalidBackupNameError,
    InvalidTimestampError,
    NotExistError,
    PackageDirNotFoundError,
    StructuralError,
    TarEntryNotFoundError,
)


@pytest.mark.parametrize(
    "error, kind",
    [
        (PackageDirNotFoundError("pkg", "/p"), ErrorKind.STRUCTURAL),
        (TarEntryNotFoundError("timestamp", archive="/b/x-1.tar"), ErrorKind.STRUCTURAL),
        (InvalidBackupNameError("x.tar"), ErrorKind.FORMAT),
        (ChecksumFormatError(3, "bad", "expected"), ErrorKind.FORMAT),
        (InvalidTimestampError("abc"), ErrorKind.FORMAT),
        (IntegrityError("pkg/a", expected="0" * 64, actual=None), ErrorKind.INTEGRITY),
        (NotExistError("/nowhere"), ErrorKind.NOT_EXIST),
        (DecodeError("boom", path="/b/x-1.tar", entry="data/state.json"), ErrorKind.DECODE),
    ],
)
def test_every_error_carries_a_kind(error: AVSKitError, kind: ErrorKind) -> None:
    assert isinstance(error, AVSKitError)
    assert error.kind is kind
    assert error.to_dict()["kind"] == kind.value


def test_package_dir_error_context() -> None:
    error = PackageDirNotFoundError("pkg", "/packages/mock-avs")

    assert isinstance(error, StructuralError)
    assert error.to_dict() == {
        "kind": "structural",
        "error": "PackageDirNotFoundError",
        "message": "required directory 'pkg' not found in package /packages/mock-avs",
        "relative_path": "pkg",
        "package_root": "/packages/mock-avs",
    }


def test_integrity_error_reports_digests() -> None:
    error = IntegrityError("pkg/manifest.yml", expected="a" * 64, actual="b" * 64, package_root="/p")

    payload = error.to_dict()

    assert payload["expected"] == "a" * 64
    assert payload["actual"] == "b" * 64
    assert "pkg/manifest.yml" in payload["message"]


def test_error_builtin_bases() -> None:
    assert isinstance(NotExistError("/x"), FileNotFoundError)
    assert str(NotExistError("/x")) == "file does not exist: /x"
    assert isinstance(InvalidBackupNameError("x"), ValueError)
    assert isinstance(DecodeError("x"), ValueError)
    assert isinstance(ChecksumFormatError(1, "l", "r"), FormatError)
