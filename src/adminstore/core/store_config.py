# src/adminstore/core/store_config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from adminstore.core.constants import DEFAULT_RATE_WINDOW

Json = Dict[str, Any]


def _as_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


def _as_bool(v: Any, default: bool) -> bool:
    if v is None:
        return bool(default)
    if isinstance(v, bool):
        return v
    s = str(v).strip().lower()
    if s in {"1", "true", "yes", "y", "on"}:
        return True
    if s in {"0", "false", "no", "n", "off"}:
        return False
    return bool(default)


@dataclass(frozen=True)
class StoreConfig:
    owner: str
    mode: str  # "dev" | "testnet" | "prod"

    # Empty string keeps the store in memory only.
    db_path: str

    height_interval_ms: int
    genesis_ms: int
    rate_window: int

    api_host: str
    api_port: int

    allow_unsigned_calls: bool
    metrics_enabled: bool

    log_level: str


_ALLOWED_MODES = {"dev", "testnet", "prod"}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def validate_store_config(cfg: StoreConfig) -> None:
    """Fail-fast validation for operator config."""

    if not isinstance(cfg.owner, str) or not cfg.owner.strip():
        raise ValueError("owner must be a non-empty string")

    mode = str(cfg.mode or "").strip().lower()
    if mode not in _ALLOWED_MODES:
        raise ValueError(f"mode must be one of {_ALLOWED_MODES}; got: {cfg.mode!r}")

    if int(cfg.api_port) <= 0 or int(cfg.api_port) > 65535:
        raise ValueError(f"api_port must be 1..65535; got: {cfg.api_port}")

    if int(cfg.height_interval_ms) < 250:
        raise ValueError(f"height_interval_ms must be >= 250; got: {cfg.height_interval_ms}")

    if int(cfg.genesis_ms) < 0:
        raise ValueError(f"genesis_ms must be >= 0; got: {cfg.genesis_ms}")

    if int(cfg.rate_window) < 1:
        raise ValueError(f"rate_window must be >= 1; got: {cfg.rate_window}")

    if mode == "prod" and cfg.allow_unsigned_calls:
        raise ValueError("allow_unsigned_calls is not permitted in prod mode")

    if str(cfg.log_level or "").strip().upper() not in _LOG_LEVELS:
        raise ValueError(f"log_level must be one of {_LOG_LEVELS}; got: {cfg.log_level!r}")


def default_store_config() -> StoreConfig:
    return StoreConfig(
        owner="",
        mode="prod",
        db_path="./data/adminstore.db",
        height_interval_ms=600_000,
        genesis_ms=0,
        rate_window=DEFAULT_RATE_WINDOW,
        api_host="127.0.0.1",
        api_port=8080,
        allow_unsigned_calls=False,
        metrics_enabled=False,
        log_level="INFO",
    )


def _merge(base: StoreConfig, raw: Json) -> StoreConfig:
    return StoreConfig(
        owner=_as_str(raw.get("owner"), base.owner),
        mode=_as_str(raw.get("mode"), base.mode).strip().lower(),
        db_path=base.db_path if raw.get("db_path") is None else str(raw.get("db_path")),
        height_interval_ms=_as_int(raw.get("height_interval_ms"), base.height_interval_ms),
        genesis_ms=_as_int(raw.get("genesis_ms"), base.genesis_ms),
        rate_window=_as_int(raw.get("rate_window"), base.rate_window),
        api_host=_as_str(raw.get("api_host"), base.api_host),
        api_port=_as_int(raw.get("api_port"), base.api_port),
        allow_unsigned_calls=_as_bool(raw.get("allow_unsigned_calls"), base.allow_unsigned_calls),
        metrics_enabled=_as_bool(raw.get("metrics_enabled"), base.metrics_enabled),
        log_level=_as_str(raw.get("log_level"), base.log_level).strip().upper(),
    )


def read_store_config_file(path: str) -> Json:
    p = Path(path)
    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in {".yaml", ".yml"}:
        raw = yaml.safe_load(text)
    else:
        raw = json.loads(text)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError("store config must be a mapping")
    return raw


_ENV_KEYS = {
    "owner": "ADMINSTORE_OWNER",
    "mode": "ADMINSTORE_MODE",
    "db_path": "ADMINSTORE_DB_PATH",
    "height_interval_ms": "ADMINSTORE_HEIGHT_INTERVAL_MS",
    "genesis_ms": "ADMINSTORE_GENESIS_MS",
    "rate_window": "ADMINSTORE_RATE_WINDOW",
    "api_host": "ADMINSTORE_API_HOST",
    "api_port": "ADMINSTORE_API_PORT",
    "allow_unsigned_calls": "ADMINSTORE_ALLOW_UNSIGNED_CALLS",
    "metrics_enabled": "ADMINSTORE_METRICS_ENABLED",
    "log_level": "ADMINSTORE_LOG_LEVEL",
}


def _env_overrides() -> Json:
    out: Json = {}
    for field_name, env_name in _ENV_KEYS.items():
        v = os.environ.get(env_name)
        if v is not None:
            out[field_name] = v
    return out


def load_store_config(*, config_path: Optional[str] = None, **overrides: Any) -> StoreConfig:
    """Defaults, then config file, then ADMINSTORE_* env, then keyword overrides."""
    cfg = default_store_config()

    p = config_path or os.environ.get("ADMINSTORE_CONFIG_PATH")
    if p:
        cfg = _merge(cfg, read_store_config_file(p))

    cfg = _merge(cfg, _env_overrides())
    if overrides:
        cfg = replace(cfg, **overrides)

    validate_store_config(cfg)
    return cfg
