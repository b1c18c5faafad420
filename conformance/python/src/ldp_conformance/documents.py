from __future__ import annotations

import json
from pathlib import Path
from typing import IO, Any, Mapping, Sequence

from ruamel.yaml import YAML

YAML_SUFFIXES = {".yaml", ".yml"}


def _to_builtin(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(k): _to_builtin(v) for k, v in value.items()}
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [_to_builtin(v) for v in value]
    return value


def load_yaml_stream(stream: IO[str] | str) -> Any:
    yaml = YAML(typ="safe")
    return _to_builtin(yaml.load(stream))


def load_document(path: Path) -> Any:
    """Read a YAML or JSON document, picking the parser from the file suffix."""

    path = Path(path)
    with path.open("r", encoding="utf-8") as file:
        if path.suffix.lower() in YAML_SUFFIXES:
            return load_yaml_stream(file)
        return json.load(file)


def deep_merge(base: dict[str, Any], overrides: Sequence[Mapping[str, Any]]) -> dict[str, Any]:
    result: dict[str, Any] = dict(base)
    for override in overrides:
        for key, value in override.items():
            existing = result.get(key)
            if isinstance(value, Mapping) and isinstance(existing, dict):
                result[key] = deep_merge(existing, [value])
            else:
                result[key] = value
    return result
