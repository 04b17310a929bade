"""
Reconciliation configuration.

Public entry points:
    build_config(overrides)       -> ReconciliationConfig (raises ConfigValidationError)
    merge_with_defaults(overrides) / validate(data)
    load_config_file(path)        -> ReconciliationConfig from JSON or YAML
    default_config()              -> ReconciliationConfig with every default
"""

from paytime_config.loader import config_checksum, load_config_file
from paytime_config.schema import FIELD_SPECS, ReconciliationConfig, default_config_dict
from paytime_config.validator import (
    ConfigValidationResult,
    build_config,
    merge_with_defaults,
    validate,
)


def default_config() -> ReconciliationConfig:
    """Configuration with every documented default."""
    return build_config()


__all__ = [
    "FIELD_SPECS",
    "ConfigValidationResult",
    "ReconciliationConfig",
    "build_config",
    "config_checksum",
    "default_config",
    "default_config_dict",
    "load_config_file",
    "merge_with_defaults",
    "validate",
]
