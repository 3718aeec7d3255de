"""Optional YAML configuration file providing defaults for the CLI."""

from __future__ import annotations

import json
from dataclasses import replace
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Dict

import jsonschema
import yaml

from markport.domain.context import ServeOptions
from markport.domain.errors import ConfigError


@lru_cache(maxsize=1)
def _config_validator() -> jsonschema.Draft202012Validator:
    schema_resource = resources.files("markport.resources") / "config.schema.json"
    schema = json.loads(schema_resource.read_text(encoding="utf-8"))
    return jsonschema.Draft202012Validator(schema)


def load_config(path: Path) -> Dict[str, Any]:
    """Read and validate ``path``; a missing file yields an empty mapping."""

    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"cannot read config {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"config {path} must be a mapping")
    errors = sorted(_config_validator().iter_errors(data), key=lambda err: list(err.path))
    if errors:
        details = "; ".join(
            f"{'.'.join(str(part) for part in err.path) or '<root>'}: {err.message}" for err in errors
        )
        raise ConfigError(f"invalid config {path}: {details}")
    return data


def apply_config(options: ServeOptions, data: Dict[str, Any]) -> ServeOptions:
    known = {key: data[key] for key in ("host", "port", "open", "watch", "heartbeat_interval") if key in data}
    if "heartbeat_interval" in known:
        known["heartbeat_interval"] = float(known["heartbeat_interval"])
    return replace(options, **known)
