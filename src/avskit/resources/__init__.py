"""Packaged resources for avskit.

Schemas and the monitoring assets handed to the monitoring collaborator are
bundled with the distribution and read through ``importlib.resources``, so
they are available without touching the host filesystem.
"""

from __future__ import annotations

import json
from functools import lru_cache
from importlib import resources
from typing import Any, Dict, Iterator, Tuple

import yaml

__all__ = ["load_schema", "monitoring_config", "iter_dashboards"]

_ROOT = resources.files(__name__)


@lru_cache(maxsize=None)
def load_schema(name: str) -> Dict[str, Any]:
    """Return a bundled JSON schema by file name."""

    entry = _ROOT / "schemas" / name
    with entry.open("r", encoding="utf-8") as handle:
        return json.load(handle)


@lru_cache(maxsize=None)
def monitoring_config(name: str) -> Dict[str, Any]:
    """Return a parsed monitoring config file (``prom.yml``, ``dashboards.yml``)."""

    raw = (_ROOT / "monitoring" / "config" / name).read_text("utf-8")
    return yaml.safe_load(raw) or {}


@lru_cache(maxsize=1)
def _dashboards() -> Tuple[Tuple[str, bytes], ...]:
    directory = _ROOT / "monitoring" / "dashboards"
    payloads = [(entry.name, entry.read_bytes()) for entry in directory.iterdir() if entry.name.endswith(".json")]
    payloads.sort(key=lambda item: item[0])
    return tuple(payloads)


def iter_dashboards() -> Iterator[Tuple[str, bytes]]:
    """Yield ``(file name, content)`` for every bundled dashboard."""

    yield from _dashboards()
