from __future__ import annotations

import json
from pathlib import Path
from typing import Dict

import pytest

from avskit.cli import main as cli_main
from avskit.settings import RuntimeSettings


@pytest.fixture(autouse=True)
def cli_settings(runtime_settings: RuntimeSettings, monkeypatch: pytest.MonkeyPatch) -> RuntimeSettings:
    monkeypatch.setattr(cli_main, "SETTINGS", runtime_settings)
    monkeypatch.setenv("AVSKIT_TELEMETRY", "0")
    return runtime_settings


@pytest.fixture()
def package_root(tmp_path: Path, package_files: Dict[str, bytes]) -> Path:
    root = tmp_path / "mock-avs"
    for relative, data in package_files.items():
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
    return root


def test_package_check_without_registry(package_root: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli_main.main(["package", "check", str(package_root)])

    assert exit_code == 0
    assert "integrity not verified" in capsys.readouterr().out


def test_package_seal_then_check_json(package_root: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli_main.main(["package", "seal", str(package_root), "--json"]) == 0
    sealed = json.loads(capsys.readouterr().out)
    assert sealed["entries"] == 3

    assert cli_main.main(["package", "check", str(package_root), "--json"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert Path(payload["package"]) == package_root.resolve()
    assert payload["status"] == "ok"
    assert payload["verified"] is True


def test_package_check_reports_missing_pkg(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    root = tmp_path / "empty"
    root.mkdir()

    exit_code = cli_main.main(["package", "check", str(root)])

    assert exit_code == 1
    assert "required directory 'pkg'" in capsys.readouterr().err


def test_package_check_reports_tampering_as_json(package_root: Path, capsys: pytest.CaptureFixture[str]) -> None:
    cli_main.main(["package", "seal", str(package_root)])
    capsys.readouterr()
    (package_root / "pkg" / "manifest.yml").write_text("name: evil\n", encoding="utf-8")

    exit_code = cli_main.main(["package", "check", str(package_root), "--json"])

    payload = json.loads(capsys.readouterr().out)
    assert exit_code == 1
    assert payload["status"] == "error"
    assert payload["kind"] == "integrity"
    assert payload["path"] == "pkg/manifest.yml"


def test_package_check_json_reports_unverified(package_root: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli_main.main(["package", "check", str(package_root), "--json"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["status"] == "ok"
    assert payload["verified"] is False
