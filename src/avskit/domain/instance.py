"""Value object for the persisted state of a deployed node instance."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, List

from jsonschema import Draft202012Validator
from jsonschema.exceptions import best_match

from avskit.resources import load_schema

from .errors import DecodeError

STATE_FILENAME = "state.json"
_SCHEMA_RESOURCE = "instance_state.schema.json"


@lru_cache(maxsize=1)
def _validator() -> Draft202012Validator:
    return Draft202012Validator(load_schema(_SCHEMA_RESOURCE))


def instance_id_for(name: str, tag: str) -> str:
    return f"{name}-{tag}"


@dataclass(frozen=True)
class Instance:
    """State written when a package is provisioned and read whenever a backup is taken."""

    name: str
    tag: str
    url: str
    version: str
    commit: str
    profile: str = ""
    monitoring_targets: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def id(self) -> str:
        return instance_id_for(self.name, self.tag)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "tag": self.tag,
            "url": self.url,
            "version": self.version,
            "commit": self.commit,
            "profile": self.profile,
            "monitoring_targets": list(self.monitoring_targets),
        }

    def to_json(self) -> bytes:
        return (json.dumps(self.to_dict(), ensure_ascii=False, indent=2) + "\n").encode("utf-8")

    @classmethod
    def from_dict(cls, data: Dict[str, Any], *, source: str | None = None, entry: str = STATE_FILENAME) -> "Instance":
        first = best_match(_validator().iter_errors(data))
        if first is not None:
            location = ".".join(str(item) for item in first.absolute_path) or "<root>"
            raise DecodeError(f"{location}: {first.message}", path=source, entry=entry)
        return cls(
            name=data["name"],
            tag=data["tag"],
            url=data["url"],
            version=data["version"],
            commit=data["commit"],
            profile=data.get("profile", ""),
            monitoring_targets=list(data.get("monitoring_targets", [])),
        )

    @classmethod
    def from_json(cls, raw: bytes, *, source: str | None = None, entry: str = STATE_FILENAME) -> "Instance":
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise DecodeError(str(exc), path=source, entry=entry) from exc
        if not isinstance(data, dict):
            raise DecodeError("state must be a JSON object", path=source, entry=entry)
        return cls.from_dict(data, source=source, entry=entry)


__all__ = ["Instance", "STATE_FILENAME", "instance_id_for"]
