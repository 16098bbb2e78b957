from __future__ import annotations

import json
import os
import warnings
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_PATH = Path("~/.config/incidentledger/config.json").expanduser()

LEDGER_BACKENDS = {"sqlite", "http", "memory"}

CONFIG_ENV_OVERRIDES = {
    "ledger_backend": "INCIDENTLEDGER_LEDGER_BACKEND",
    "ledger_path": "INCIDENTLEDGER_LEDGER_PATH",
    "ledger_url": "INCIDENTLEDGER_LEDGER_URL",
    "ledger_timeout_s": "INCIDENTLEDGER_LEDGER_TIMEOUT_S",
    "index_key": "INCIDENTLEDGER_INDEX_KEY",
    "record_key_prefix": "INCIDENTLEDGER_RECORD_KEY_PREFIX",
    "sync_fanout": "INCIDENTLEDGER_SYNC_FANOUT",
    "identity": "INCIDENTLEDGER_IDENTITY",
    "gateway_host": "INCIDENTLEDGER_GATEWAY_HOST",
    "gateway_port": "INCIDENTLEDGER_GATEWAY_PORT",
}

_INT_KEYS = {"sync_fanout", "gateway_port"}
_FLOAT_KEYS = {"ledger_timeout_s"}


def get_config_path(path: Path | None = None) -> Path:
    candidate = path or Path(os.getenv("INCIDENTLEDGER_CONFIG", DEFAULT_CONFIG_PATH))
    return candidate.expanduser()


def read_config_file(path: Path | None = None) -> dict[str, Any]:
    config_path = get_config_path(path)
    if not config_path.exists():
        return {}
    raw = config_path.read_text()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError("invalid config json") from exc
    if not isinstance(data, dict):
        raise ValueError("config must be an object")
    return data


def write_config_file(data: dict[str, Any], path: Path | None = None) -> Path:
    config_path = get_config_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(data, ensure_ascii=False, indent=2) + "\n")
    return config_path


def get_env_overrides() -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, env_var in CONFIG_ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value is not None:
            overrides[key] = value
    return overrides


@dataclass
class IncidentLedgerConfig:
    ledger_backend: str = "sqlite"
    ledger_path: str = "~/.incidentledger/ledger.sqlite"
    ledger_url: str | None = None
    ledger_timeout_s: float = 5.0
    index_key: str = "spaceweather_keys"
    record_key_prefix: str = "spaceweather_"
    sync_fanout: int = 8
    # Submitter identity used for the "mine" tab and new records.
    identity: str = ""
    gateway_host: str = "127.0.0.1"
    gateway_port: int = 7341

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _parse_int(value: object, default: int, *, key: str) -> int:
    if value is None:
        return default
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid int for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default


def _parse_float(value: object, default: float, *, key: str) -> float:
    if value is None:
        return default
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid float for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default


def _coerce_backend(value: object, default: str) -> str:
    text = str(value or "").strip().lower()
    if text in LEDGER_BACKENDS:
        return text
    warnings.warn(f"Invalid ledger_backend: {value!r}", RuntimeWarning, stacklevel=2)
    return default


def load_config(path: Path | None = None) -> IncidentLedgerConfig:
    cfg = IncidentLedgerConfig()
    config_path = get_config_path(path)
    if config_path.exists():
        try:
            data = read_config_file(config_path)
        except ValueError:
            warnings.warn(f"Ignoring invalid config at {config_path}", RuntimeWarning, stacklevel=2)
            data = {}
        cfg = _apply_dict(cfg, data)
    cfg = _apply_dict(cfg, get_env_overrides())
    return cfg


def _apply_dict(cfg: IncidentLedgerConfig, data: dict[str, Any]) -> IncidentLedgerConfig:
    for key, value in data.items():
        if not hasattr(cfg, key):
            continue
        if key in _INT_KEYS:
            setattr(cfg, key, _parse_int(value, getattr(cfg, key), key=key))
            continue
        if key in _FLOAT_KEYS:
            setattr(cfg, key, _parse_float(value, getattr(cfg, key), key=key))
            continue
        if key == "ledger_backend":
            cfg.ledger_backend = _coerce_backend(value, cfg.ledger_backend)
            continue
        setattr(cfg, key, value if value is None else str(value))
    return cfg
