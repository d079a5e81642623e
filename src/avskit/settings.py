"""Runtime settings for avskit."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from avskit import __version__

HOME_ENV = "AVSKIT_HOME"


@dataclass(frozen=True)
class RuntimeSettings:
    home_dir: Path
    data_dir: Path
    backup_dir: Path
    state_dir: Path
    log_dir: Path
    cli_version: str = __version__

    def instance_dir(self, instance_id: str) -> Path:
        return self.data_dir / instance_id


def _default_home_dir() -> Path:
    override = os.environ.get(HOME_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".avskit"


def load_settings() -> RuntimeSettings:
    base = _default_home_dir()
    return RuntimeSettings(
        home_dir=base,
        data_dir=base / "nodes",
        backup_dir=base / "backups",
        state_dir=base / "state",
        log_dir=base / "logs",
    )


SETTINGS = load_settings()
