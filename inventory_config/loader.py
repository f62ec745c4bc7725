"""
Configuration loader (``inventory_config.loader``).

Loads YAML files and parses them into ``IngestionConfig``. Parsing is strict:
unknown keys and ill-typed values raise ``ConfigurationError`` instead of
falling back to silent defaults.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown key / bad value  -> ``ConfigurationError``.
"""

from __future__ import annotations

from dataclasses import fields, replace
from pathlib import Path
from typing import Any

import yaml

from inventory_config.schema import IngestionConfig, NumericPolicy
from inventory_kernel.exceptions import ConfigurationError

_KNOWN_KEYS = frozenset(f.name for f in fields(IngestionConfig))


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Returns an empty dict for an empty file.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(str(path), "top-level YAML value must be a mapping")
    return data


def _parse_numeric_policy(value: Any) -> NumericPolicy:
    try:
        return NumericPolicy(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(p.value for p in NumericPolicy)
        raise ConfigurationError("numeric_policy", f"{value!r} is not one of: {allowed}") from None


def _parse_synonyms(value: Any) -> dict[str, tuple[str, ...]]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigurationError("header_synonyms", "must be a mapping of field -> list of labels")
    parsed: dict[str, tuple[str, ...]] = {}
    for field_name, labels in value.items():
        if isinstance(labels, str):
            labels = [labels]
        if not isinstance(labels, (list, tuple)) or not all(isinstance(x, str) for x in labels):
            raise ConfigurationError("header_synonyms", f"labels for {field_name!r} must be strings")
        parsed[str(field_name)] = tuple(labels)
    return parsed


def _parse_optional_positive(key: str, value: Any, cast: type) -> Any:
    if value is None:
        return None
    try:
        parsed = cast(value)
    except (TypeError, ValueError):
        raise ConfigurationError(key, f"{value!r} is not a number") from None
    if parsed <= 0:
        raise ConfigurationError(key, "must be positive")
    return parsed


def _parse_bool(key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ConfigurationError(key, f"{value!r} is not a boolean")
    return value


def _parse_text(key: str, value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise ConfigurationError(key, "must be a non-empty string")
    return value


def parse_ingestion_config(
    data: dict[str, Any],
    base: IngestionConfig | None = None,
) -> IngestionConfig:
    """
    Parse a raw dict into an IngestionConfig, overlaying ``base``.

    Keys absent from ``data`` keep the value from ``base`` (or the dataclass
    default). ``header_synonyms`` entries are merged per field.
    """
    unknown = sorted(set(data) - _KNOWN_KEYS)
    if unknown:
        raise ConfigurationError(unknown[0], "unknown configuration key")

    config = base or IngestionConfig()
    updates: dict[str, Any] = {}

    if "numeric_policy" in data:
        updates["numeric_policy"] = _parse_numeric_policy(data["numeric_policy"])
    if "header_synonyms" in data:
        merged = dict(config.header_synonyms)
        for field_name, labels in _parse_synonyms(data["header_synonyms"]).items():
            merged[field_name] = tuple(dict.fromkeys(merged.get(field_name, ()) + labels))
        updates["header_synonyms"] = merged
    if "serialize_upserts" in data:
        updates["serialize_upserts"] = _parse_bool("serialize_upserts", data["serialize_upserts"])
    if "delete_after_processing" in data:
        updates["delete_after_processing"] = _parse_bool(
            "delete_after_processing", data["delete_after_processing"]
        )
    if "max_file_bytes" in data:
        updates["max_file_bytes"] = _parse_optional_positive("max_file_bytes", data["max_file_bytes"], int)
    if "timeout_seconds" in data:
        updates["timeout_seconds"] = _parse_optional_positive("timeout_seconds", data["timeout_seconds"], float)
    if "encoding" in data:
        updates["encoding"] = _parse_text("encoding", data["encoding"])
    if "delimiter" in data:
        delimiter = _parse_text("delimiter", data["delimiter"])
        if len(delimiter) != 1:
            raise ConfigurationError("delimiter", "must be a single character")
        updates["delimiter"] = delimiter
    if "database_url" in data:
        updates["database_url"] = _parse_text("database_url", data["database_url"])

    return replace(config, **updates)


def load_config_file(path: Path, base: IngestionConfig | None = None) -> IngestionConfig:
    """Load ``path`` and overlay it on ``base``."""
    return parse_ingestion_config(load_yaml_file(path), base)
