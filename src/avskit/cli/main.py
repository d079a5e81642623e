#!/usr/bin/env python3
"""Entry point for the avskit CLI."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from textwrap import dedent

from avskit import __version__
from avskit.adapters.local_storage import LocalStorage
from avskit.app.backup import BackupService
from avskit.app.package import PackageHandler
from avskit.domain.backup import format_timestamp
from avskit.domain.errors import AVSKitError
from avskit.settings import SETTINGS

HELP_OVERVIEW = dedent(
    """
    Integrity and archival gate for AVS node packages.

    Packages:
      - avskit package check PATH   - verify pkg/ layout and checksum.txt
      - avskit package seal PATH    - (re)write checksum.txt from pkg/

    Backups:
      - avskit backup create ID     - snapshot an instance into a tar archive
      - avskit backup list          - list archives by name
      - avskit backup inspect FILE  - decode the metadata stored in an archive
      - avskit backup restore FILE TARGET
    """
)


def _storage() -> LocalStorage:
    return LocalStorage()


def _resolve(path_arg: str) -> Path:
    return Path(path_arg).expanduser().resolve()


def _emit(payload: object, *, as_json: bool, text: str) -> None:
    if as_json:
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        print(text)


def _package_check_cmd(args: argparse.Namespace) -> int:
    root = _resolve(args.path)
    handler = PackageHandler(_storage(), root, settings=SETTINGS)
    verified = handler.check()
    payload = {"package": str(root), "status": "ok", "verified": verified}
    suffix = "" if verified else " (no checksum.txt, integrity not verified)"
    _emit(payload, as_json=args.json, text=f"Package {root} is valid{suffix}")
    return 0


def _package_seal_cmd(args: argparse.Namespace) -> int:
    root = _resolve(args.path)
    entries = PackageHandler(_storage(), root, settings=SETTINGS).seal()
    payload = {"package": str(root), "entries": len(entries)}
    _emit(payload, as_json=args.json, text=f"Wrote {len(entries)} entries to {root / 'checksum.txt'}")
    return 0


def _backup_create_cmd(args: argparse.Namespace) -> int:
    backup = BackupService(_storage(), SETTINGS).create(args.instance_id)
    path = SETTINGS.backup_dir / backup.file_name
    _emit({"path": str(path), **backup.to_dict()}, as_json=args.json, text=f"Backup {backup.id} written to {path}")
    return 0


def _backup_list_cmd(args: argparse.Namespace) -> int:
    summaries = BackupService(_storage(), SETTINGS).list()
    if args.json:
        print(json.dumps([summary.to_dict() for summary in summaries], ensure_ascii=False, indent=2))
        return 0
    if not summaries:
        print("No backups found")
    for summary in summaries:
        print(f"- {summary.instance_id} @ {format_timestamp(summary.timestamp)} :: {summary.path}")
    return 0


def _backup_inspect_cmd(args: argparse.Namespace) -> int:
    backup = BackupService(_storage(), SETTINGS).load(_resolve(args.file))
    if args.json:
        print(json.dumps(backup.to_dict(), ensure_ascii=False, indent=2))
        return 0
    print(f"id:        {backup.id}")
    print(f"instance:  {backup.instance_id}")
    print(f"timestamp: {format_timestamp(backup.timestamp)}")
    print(f"version:   {backup.version}")
    print(f"commit:    {backup.commit}")
    print(f"url:       {backup.url}")
    return 0


def _backup_restore_cmd(args: argparse.Namespace) -> int:
    target = _resolve(args.target)
    backup = BackupService(_storage(), SETTINGS).restore(_resolve(args.file), target)
    _emit({"target": str(target), **backup.to_dict()}, as_json=args.json, text=f"Restored {backup.instance_id} into {target}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="avskit",
        description=HELP_OVERVIEW,
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"avskit {__version__}")

    sub = parser.add_subparsers(dest="command", required=True)

    package_cmd = sub.add_parser("package", help="Validate staged node packages")
    package_sub = package_cmd.add_subparsers(dest="package_command", required=True)

    package_check = package_sub.add_parser("check", help="Verify package layout and checksum registry")
    package_check.add_argument("path", help="Package root directory")
    package_check.add_argument("--json", action="store_true", help="Emit machine-readable JSON")
    package_check.set_defaults(func=_package_check_cmd)

    package_seal = package_sub.add_parser("seal", help="Write checksum.txt for every file under pkg/")
    package_seal.add_argument("path", help="Package root directory")
    package_seal.add_argument("--json", action="store_true", help="Emit machine-readable JSON")
    package_seal.set_defaults(func=_package_seal_cmd)

    backup_cmd = sub.add_parser("backup", help="Instance backups")
    backup_sub = backup_cmd.add_subparsers(dest="backup_command", required=True)

    backup_create = backup_sub.add_parser("create", help="Snapshot an instance into a tar archive")
    backup_create.add_argument("instance_id")
    backup_create.add_argument("--json", action="store_true", help="Emit machine-readable JSON")
    backup_create.set_defaults(func=_backup_create_cmd)

    backup_list = backup_sub.add_parser("list", help="List backup archives")
    backup_list.add_argument("--json", action="store_true", help="Emit machine-readable JSON")
    backup_list.set_defaults(func=_backup_list_cmd)

    backup_inspect = backup_sub.add_parser("inspect", help="Decode the metadata of a backup archive")
    backup_inspect.add_argument("file")
    backup_inspect.add_argument("--json", action="store_true", help="Emit machine-readable JSON")
    backup_inspect.set_defaults(func=_backup_inspect_cmd)

    backup_restore = backup_sub.add_parser("restore", help="Write the archived instance files into a directory")
    backup_restore.add_argument("file")
    backup_restore.add_argument("target")
    backup_restore.add_argument("--json", action="store_true", help="Emit machine-readable JSON")
    backup_restore.set_defaults(func=_backup_restore_cmd)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    try:
        return args.func(args)
    except AVSKitError as exc:
        if getattr(args, "json", False):
            print(json.dumps({"status": "error", **exc.to_dict()}, ensure_ascii=False, indent=2))
        else:
            print(f"error: {exc.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
