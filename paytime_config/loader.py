"""
Configuration Loader (``paytime_config.loader``).

Responsibility
--------------
Loads a configuration override file (JSON or YAML) and turns it into a
validated ``ReconciliationConfig`` through ``build_config``.  Also provides
``config_checksum`` for configuration identity and change detection.

Failure modes
-------------
* Missing file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Malformed JSON  -> ``json.JSONDecodeError`` propagates.
* Top level not a mapping  -> ``ConfigValidationError``.
* Invalid values  -> ``ConfigValidationError`` listing every violation.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from paytime_config.schema import ReconciliationConfig
from paytime_config.validator import build_config
from paytime_kernel.exceptions import ConfigValidationError
from paytime_kernel.logging_config import get_logger

logger = get_logger("config.loader")


def load_override_file(path: Path) -> dict[str, Any]:
    """
    Load a JSON or YAML override file into a dict.

    ``.json`` files are parsed as JSON; everything else as YAML (YAML is a
    superset of JSON, so either works there).
    """
    with open(path, encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigValidationError(
            [f"Configuration file {path} must contain a mapping, got {type(data).__name__}"]
        )
    return data


def load_config_file(path: Path | str) -> ReconciliationConfig:
    """Load, merge with defaults, validate and freeze."""
    path = Path(path)
    overrides = load_override_file(path)
    config = build_config(overrides)
    logger.info(
        "config_loaded",
        extra={
            "path": str(path),
            "override_keys": sorted(overrides),
            "checksum": config_checksum(config),
        },
    )
    return config


def config_checksum(config: ReconciliationConfig) -> str:
    """Deterministic SHA-256 of the canonical JSON form of ``config``."""
    canonical = json.dumps(config.to_dict(), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
