"""
inventory_config -- single public entrypoint for ingestion configuration.

``get_active_config()`` is the only way runtime code obtains settings. It
reads the packaged ``defaults.yaml``, overlays an optional YAML file (argument
or ``INVENTORY_INGESTION_CONFIG``), then the ``INVENTORY_DATABASE_URL``
environment variable.
"""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path
from typing import Mapping

from inventory_config.loader import load_config_file, load_yaml_file, parse_ingestion_config
from inventory_config.schema import DEFAULT_MAX_FILE_BYTES, IngestionConfig, NumericPolicy

_logger = logging.getLogger("inventory.config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

CONFIG_ENV_VAR = "INVENTORY_INGESTION_CONFIG"
DATABASE_URL_ENV_VAR = "INVENTORY_DATABASE_URL"


def get_active_config(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> IngestionConfig:
    """Resolve the effective IngestionConfig."""
    env = os.environ if environ is None else environ

    config = load_config_file(DEFAULTS_PATH)
    override = path or env.get(CONFIG_ENV_VAR)
    if override:
        config = load_config_file(Path(override), base=config)
    db_url = env.get(DATABASE_URL_ENV_VAR)
    if db_url:
        config = replace(config, database_url=db_url)

    _logger.info(
        "config_loaded",
        extra={
            "override": str(override) if override else None,
            "numeric_policy": config.numeric_policy.value,
            "serialize_upserts": config.serialize_upserts,
        },
    )
    return config


__all__ = [
    "CONFIG_ENV_VAR",
    "DATABASE_URL_ENV_VAR",
    "DEFAULT_MAX_FILE_BYTES",
    "DEFAULTS_PATH",
    "IngestionConfig",
    "NumericPolicy",
    "get_active_config",
    "load_config_file",
    "load_yaml_file",
    "parse_ingestion_config",
]
