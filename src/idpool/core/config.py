"""Config loading utilities for idpool."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from idpool.core.models import PoolConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "idpool.yaml"


def load_config_file(path: Path) -> dict[str, Any]:
    """Load a YAML config file as a dict.

    Returns empty dict if the file doesn't exist.
    """
    if not path.exists():
        logger.debug("No config found at %s; using defaults", path)
        return {}

    logger.info("Loading config from %s", path)
    with path.open() as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        logger.warning("%s did not contain a mapping; using empty dict", path.name)
        return {}

    return data


def make_pool_config(raw: dict[str, Any], **overrides: Any) -> PoolConfig:
    """Build a PoolConfig from the ``pool`` section of a config mapping.

    Durations are given in seconds.  Keyword *overrides* whose value is not
    None take precedence over the file; everything else falls back to the
    defaults defined in :class:`PoolConfig`.
    """
    section = raw.get("pool", {})
    if not isinstance(section, dict):
        logger.warning("'pool' key is not a mapping; ignoring")
        section = {}

    merged = {**section, **{k: v for k, v in overrides.items() if v is not None}}

    # Filter to only the fields PoolConfig actually declares so that
    # unknown keys don't cause a validation error.
    valid_fields = PoolConfig.model_fields
    filtered = {k: v for k, v in merged.items() if k in valid_fields}

    if dropped := set(merged) - set(filtered):
        logger.warning("Ignoring unknown pool config keys: %s", sorted(dropped))

    return PoolConfig(**filtered)


def load_pool_config(path: Path, **overrides: Any) -> PoolConfig:
    return make_pool_config(load_config_file(path), **overrides)
