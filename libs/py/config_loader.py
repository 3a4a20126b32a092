import os
from typing import Any, Dict, List

import yaml

CONFIG_DIR = os.getenv("CONFIG_DIR", "config")


def load_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def load_dashboard_config(config_dir: str | None = None) -> Dict[str, Any]:
    path = os.path.join(config_dir or CONFIG_DIR, "dashboard.yaml")
    return load_yaml(path)


def get_factors(cfg: Dict[str, Any]) -> List[Dict[str, Any]]:
    return cfg.get("factors", []) or []


def get_factor_keys(cfg: Dict[str, Any]) -> List[str]:
    return [f["key"] for f in get_factors(cfg) if f.get("key")]


def get_combined_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    return cfg.get("combined", {}) or {}


def get_default_days(cfg: Dict[str, Any], endpoint: str, fallback: int) -> int:
    return int(((cfg.get("defaults", {}) or {}).get("days", {}) or {}).get(endpoint, fallback))
