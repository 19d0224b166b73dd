from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import yaml

DEFAULT_CONFIG_PATH = Path("ordershop.config.yaml")

# Many databases cap the number of bind parameters in an IN list at 1000
DEFAULT_MAX_IN_CLAUSE_PARAMS = 1000

BASE_CONFIG: Dict[str, Any] = {
    "storage": {
        "sqlite_path": "ordershop.db",
    },
    "fetch": {
        "batch_size": 100,
        "max_in_clause_params": DEFAULT_MAX_IN_CLAUSE_PARAMS,
        "default_limit": 100,
    },
    "logging": {
        "level": "INFO",
    },
}


@dataclass(frozen=True)
class FetchSettings:
    """
    Tunables for the fetch strategies.

    batch_size applies to batched collection loading only. Recommended range
    is 100-1000; larger values mean fewer child queries and wider IN lists,
    with the same memory footprint.
    """
    batch_size: int = 100
    max_in_clause_params: int = DEFAULT_MAX_IN_CLAUSE_PARAMS
    default_limit: int = 100


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Path | None = None) -> Dict[str, Any]:
    """
    Load runtime configuration from YAML, layered over the built-in defaults.

    Args:
        path: Optional path to the config file. Defaults to ordershop.config.yaml

    Returns:
        Configuration dictionary with every default section present

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If the file is not a YAML mapping
    """
    cfg_path = path or DEFAULT_CONFIG_PATH
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}
    if not isinstance(config, dict):
        raise ValueError("Config must be a dictionary")
    return _merge(BASE_CONFIG, config)


def load_config_or_defaults(path: Path | None = None) -> Dict[str, Any]:
    """Like load_config, but a missing default config file yields the defaults."""
    if path is None and not DEFAULT_CONFIG_PATH.exists():
        return deepcopy(BASE_CONFIG)
    return load_config(path)


def get_fetch_settings(config: Dict[str, Any] | None = None) -> FetchSettings:
    """
    Build validated FetchSettings from a config dictionary.

    Raises:
        ValueError: If a value is not a positive integer or batch_size
            exceeds max_in_clause_params
    """
    fetch_cfg = _merge(BASE_CONFIG["fetch"], (config or {}).get("fetch") or {})
    for field_name in ("batch_size", "max_in_clause_params", "default_limit"):
        value = fetch_cfg.get(field_name)
        if not isinstance(value, int) or isinstance(value, bool) or value < 1:
            raise ValueError(f"fetch.{field_name} must be a positive integer, got {value!r}")

    if fetch_cfg["batch_size"] > fetch_cfg["max_in_clause_params"]:
        raise ValueError(
            f"fetch.batch_size ({fetch_cfg['batch_size']}) exceeds "
            f"fetch.max_in_clause_params ({fetch_cfg['max_in_clause_params']})"
        )
    if fetch_cfg["default_limit"] > fetch_cfg["max_in_clause_params"]:
        raise ValueError(
            f"fetch.default_limit ({fetch_cfg['default_limit']}) exceeds "
            f"fetch.max_in_clause_params ({fetch_cfg['max_in_clause_params']})"
        )

    return FetchSettings(
        batch_size=fetch_cfg["batch_size"],
        max_in_clause_params=fetch_cfg["max_in_clause_params"],
        default_limit=fetch_cfg["default_limit"],
    )


def get_sqlite_path(config: Dict[str, Any]) -> str:
    return config.get("storage", {}).get("sqlite_path", BASE_CONFIG["storage"]["sqlite_path"])
