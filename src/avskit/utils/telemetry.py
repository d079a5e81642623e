"""Structured JSONL event log (opt-out with ``AVSKIT_TELEMETRY=0``).

Events are appended through the same :class:`~avskit.ports.storage.Storage`
the emitting service works on, so an in-memory service keeps its log in
memory as well.
"""

from __future__ import annotations

import json
import os
import time
from functools import lru_cache
from typing import Any, Iterator

import jsonschema

from avskit.ports.storage import Storage, StoragePath, join
from avskit.resources import load_schema

LEVELS = {"info", "warn", "error"}
LOG_FILENAME = "telemetry.jsonl"

_DISABLE_VALUES = {"0", "false", "no", "off"}


def telemetry_enabled() -> bool:
    value = os.getenv("AVSKIT_TELEMETRY", "1").lower()
    return value not in _DISABLE_VALUES


class EventLog:
    """Append-only ``telemetry.jsonl`` under ``log_dir``."""

    def __init__(self, storage: Storage, log_dir: StoragePath) -> None:
        self._storage = storage
        self._path = join(log_dir, LOG_FILENAME)

    @property
    def path(self) -> str:
        return self._path

    def record(
        self,
        event: str,
        *,
        payload: dict[str, Any] | None = None,
        level: str = "info",
        status: str | None = None,
        component: str | None = None,
        correlation_id: str | None = None,
        duration_ms: float | None = None,
    ) -> dict[str, Any] | None:
        """Validate and append one event; returns the record, or None when telemetry is off."""

        if not telemetry_enabled():
            return None
        record: dict[str, Any] = {
            "ts": time.time(),
            "event": event,
            "payload": payload or {},
            "level": level,
        }
        if status:
            record["status"] = status
        if component:
            record["component"] = component
        if correlation_id:
            record["correlationId"] = correlation_id
        if duration_ms is not None:
            record["durationMs"] = duration_ms
        _validate_record(record)
        _validator().validate(record)
        line = json.dumps(record, ensure_ascii=False) + "\n"
        with self._storage.open_append(self._path) as handle:
            handle.write(line.encode("utf-8"))
        return record

    def events(self) -> Iterator[dict[str, Any]]:
        """Yield logged records in order, skipping lines that are not valid JSON."""

        try:
            raw = self._storage.read_bytes(self._path)
        except FileNotFoundError:
            return
        for line in raw.decode("utf-8", errors="replace").splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError:
                continue


def _validate_record(record: dict[str, Any]) -> None:
    if not isinstance(record.get("event"), str) or not record["event"].strip():
        raise ValueError("Telemetry event must have non-empty string 'event'")
    if not isinstance(record.get("payload"), dict):
        raise ValueError("Telemetry payload must be a dict")
    level = record.get("level", "info")
    if level not in LEVELS:
        raise ValueError(f"Telemetry level '{level}' is not supported")
    if "durationMs" in record and record["durationMs"] is not None:
        if not isinstance(record["durationMs"], (int, float)) or record["durationMs"] < 0:
            raise ValueError("Telemetry durationMs must be a non-negative number")


@lru_cache(maxsize=1)
def _validator() -> jsonschema.Draft202012Validator:
    return jsonschema.Draft202012Validator(load_schema("telemetry.schema.json"))


__all__ = ["EventLog", "LOG_FILENAME", "telemetry_enabled"]
