# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/rackhd_machine/config/loader.py

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from pydantic import ValidationError

from rackhd_machine.errors import ConfigError
from .models import DriverConfig

log = logging.getLogger("rackhd_machine")

# Environment variable -> DriverConfig field
ENV_VARS: dict[str, str] = {
    "RACKHD_ENDPOINT": "endpoint",
    "RACKHD_TRANSPORT": "transport",
    "RACKHD_NODE_ID": "node_id",
    "RACKHD_SKU_ID": "sku_id",
    "RACKHD_SKU_NAME": "sku_name",
    "RACKHD_WORKFLOW_NAME": "workflow_name",
    "RACKHD_WORKFLOW_TIMEOUT": "workflow_timeout",
    "RACKHD_WORKFLOW_POLL": "workflow_poll",
    "RACKHD_SSH_USER": "ssh_user",
    "RACKHD_SSH_PASSWORD": "ssh_password",
    "RACKHD_SSH_PORT": "ssh_port",
    "RACKHD_SSH_KEY": "ssh_key_path",
    "RACKHD_SSH_ATTEMPTS": "ssh_attempts",
    "RACKHD_SSH_TIMEOUT": "ssh_timeout",
    "RACKHD_PROBE_MODE": "probe_mode",
    "RACKHD_POWER_STRATEGY": "power_strategy",
}


def _merge(base: dict, override: Mapping[str, Any]) -> dict:
    """
    Merge *override* into *base* (mutates base).
    Only overwrites when the override value is non-empty.
    """
    for key, value in override.items():
        if value not in (None, ""):
            base[key] = value
    return base


def _load_yaml(path: Path) -> dict:
    """Load a YAML file, expanding ${ENV_VAR} references."""
    raw = path.read_text()
    expanded = os.path.expandvars(raw)
    data = yaml.safe_load(expanded) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")
    return data


def env_overrides(environ: Optional[Mapping[str, str]] = None) -> dict[str, str]:
    environ = os.environ if environ is None else environ
    return {field: environ[var] for var, field in ENV_VARS.items() if environ.get(var)}


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        msg = err.get("msg", "")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts)


def load_config(
    path: str | Path | None = None,
    *,
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> DriverConfig:
    """
    Build a validated DriverConfig.

    Precedence, lowest first:
      1. model defaults
      2. YAML file at *path* (``${ENV_VAR}`` placeholders expanded)
      3. ``RACKHD_*`` environment variables
      4. *overrides* (typically CLI options)

    Empty values never override a lower layer.
    """
    data: dict[str, Any] = {}

    if path is not None:
        path = Path(path)
        if not path.is_file():
            raise ConfigError(f"Config file does not exist: {path}")
        log.debug("Loading config from %s", path)
        _merge(data, _load_yaml(path))

    _merge(data, env_overrides(environ))

    if overrides:
        _merge(data, overrides)

    try:
        return DriverConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {_format_validation_error(e)}") from e
