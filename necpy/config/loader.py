"""Configuration loader with sane defaults.

YAML is preferred but JSON is accepted.  Missing keys are filled from
``DEFAULTS`` so a provider can boot from a near-empty file; the endpoint may
also come from the ``NECPY_RPC_URL`` environment variable, which wins over
the file.  The endpoint is not validated here: a missing URL only fails
when the first call is made.
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

log = logging.getLogger(__name__)

RPC_URL_ENV = "NECPY_RPC_URL"

DEFAULTS: Dict[str, Any] = {
    "rpc_url": None,
    "timeout_seconds": 10.0,
    "native_decimals": 18,
    "token_decimals": 18,
    "identifier_fields": [],
    "log_level": "INFO",
}


def _load_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        log.warning("[config] config file not found: %s; using defaults", path)
        return {}
    if path.suffix.lower() in {".yaml", ".yml"}:
        return yaml.safe_load(path.read_text()) or {}
    return json.loads(path.read_text())


def _merge_dict(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge_dict(out[k], v)
        else:
            out[k] = v
    return out


def load_provider_config(
    path: Optional[str | Path] = None,
    *,
    env: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    """Load a configuration file, merge it with defaults and apply env overrides."""

    raw = _load_file(Path(path)) if path else {}
    if not isinstance(raw, dict):
        raise ValueError(f"config root must be a mapping, got {type(raw).__name__}")
    config = _merge_dict(DEFAULTS, raw)

    environ = os.environ if env is None else env
    if environ.get(RPC_URL_ENV):
        config["rpc_url"] = environ[RPC_URL_ENV]

    for key in ("native_decimals", "token_decimals"):
        config[key] = int(config[key])
        if config[key] < 0:
            raise ValueError(f"{key} must be non-negative")
    if not isinstance(config["identifier_fields"], list):
        raise ValueError("identifier_fields must be a list of field names")
    return config


__all__ = ["load_provider_config", "DEFAULTS", "RPC_URL_ENV"]
