from copy import deepcopy
from pathlib import Path
from typing import Any, Dict

import yaml

DEFAULT_CONFIG_PATH = Path("querydeck.config.yaml")

ALLOWED_SEARCH_BACKENDS = ("sqlite", "http")

BASE_DEFAULTS: Dict[str, Any] = {
    "database": {
        "sqlite_path": "querydeck.db",
    },
    "search": {
        "backend": "sqlite",
        "max_hits": None,
        "http": {
            "url": None,
            "index": "items",
            "api_key": None,
            "timeout_seconds": 5,
            "max_hits": 1000,
        },
    },
    "pagination": {
        "default_page_size": 20,
        "max_page_size": 100,
    },
    "sorting": {
        "elide_redundant_tiebreak": True,
    },
    "logging": {
        "level": "INFO",
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge override into a copy of base; nested dicts merge, everything else replaces."""
    merged = deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _positive_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"Config '{name}' must be a positive integer, got {value!r}")
    return value


def validate_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate a merged config.
    
    Args:
        config: Config dict already merged over BASE_DEFAULTS
        
    Returns:
        The same dict
        
    Raises:
        ValueError: If any value is out of range or inconsistent
    """
    search = config["search"]
    backend = search.get("backend")
    if backend not in ALLOWED_SEARCH_BACKENDS:
        raise ValueError(f"Config 'search.backend' must be one of {ALLOWED_SEARCH_BACKENDS}, got {backend!r}")
    if backend == "http" and not (search.get("http") or {}).get("url"):
        raise ValueError("Config 'search.http.url' is required when search.backend is 'http'")
    if search.get("max_hits") is not None:
        _positive_int(search["max_hits"], "search.max_hits")

    pagination = config["pagination"]
    default_size = _positive_int(pagination.get("default_page_size"), "pagination.default_page_size")
    max_size = pagination.get("max_page_size")
    if max_size is not None:
        _positive_int(max_size, "pagination.max_page_size")
        if default_size > max_size:
            raise ValueError("Config 'pagination.default_page_size' must not exceed 'pagination.max_page_size'")

    if not isinstance(config["sorting"].get("elide_redundant_tiebreak"), bool):
        raise ValueError("Config 'sorting.elide_redundant_tiebreak' must be true or false")

    if not config["database"].get("sqlite_path"):
        raise ValueError("Config 'database.sqlite_path' is required")
    return config


def load_config(path: Path | None = None) -> Dict[str, Any]:
    """
    Load configuration from YAML and merge it over built-in defaults.
    
    Args:
        path: Optional config path. Defaults to querydeck.config.yaml; if that
            default file does not exist, built-in defaults are used.
        
    Returns:
        Validated config dictionary
        
    Raises:
        FileNotFoundError: If an explicitly given path doesn't exist
        ValueError: If the file is not a mapping or fails validation
    """
    cfg_path = path or DEFAULT_CONFIG_PATH
    if not cfg_path.exists():
        if path is not None:
            raise FileNotFoundError(f"Config file not found: {cfg_path}")
        return validate_config(deepcopy(BASE_DEFAULTS))
    with cfg_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError("Config must be a dictionary")
    return validate_config(_deep_merge(BASE_DEFAULTS, raw))
