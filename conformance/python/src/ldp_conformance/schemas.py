from __future__ import annotations

import json
from dataclasses import dataclass
from importlib import resources
from typing import Any

from jsonschema import Draft202012Validator

_SCHEMA_PACKAGE = "ldp_conformance._schemas"


def _to_uri(name: str) -> str:
    return f"ldp-conformance://schemas/{name}"


@dataclass(frozen=True)
class SchemaRegistry:
    store: dict[str, dict[str, Any]]

    @classmethod
    def load(cls) -> "SchemaRegistry":
        store: dict[str, dict[str, Any]] = {}
        for entry in resources.files(_SCHEMA_PACKAGE).iterdir():
            if not entry.name.endswith(".schema.json"):
                continue
            store[_to_uri(entry.name)] = json.loads(entry.read_text(encoding="utf-8"))
        return cls(store=store)

    def schema_uri(self, name: str) -> str:
        if not name.endswith(".schema.json"):
            raise ValueError(f"Expected a '*.schema.json' name: {name}")
        return _to_uri(name)

    def load_schema(self, name: str) -> dict[str, Any]:
        schema = self.store.get(self.schema_uri(name))
        if schema is None:
            raise KeyError(f"Schema not found: {name}")
        return schema

    def validate(self, instance: Any, *, schema: str) -> list[str]:
        validator = Draft202012Validator(self.load_schema(schema))
        errors = sorted(validator.iter_errors(instance), key=lambda e: [str(p) for p in getattr(e, "absolute_path", [])])

        def _json_path(err: object) -> str:
            path = getattr(err, "absolute_path", None)
            if not path:
                return "$"
            out = "$"
            for part in path:
                if isinstance(part, int):
                    out += f"[{part}]"
                else:
                    out += f".{part}"
            return out

        return [f"{_json_path(e)}: {e.message}" for e in errors]


_registry: SchemaRegistry | None = None


def registry() -> SchemaRegistry:
    global _registry
    if _registry is None:
        _registry = SchemaRegistry.load()
    return _registry
