"""YAML configuration with environment variable overrides.

Lookup order for the file: ``$SCREENLAB_CONFIG``, then ``config/config.yaml``,
then the checked-in ``config/config.example.yaml``.  The merged result is
cached for the life of the process; pass ``reload=True`` to re-read it.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

# src/app/config.py -> repository root
_PROJECT_ROOT = Path(__file__).resolve().parents[2]

_CONFIG_PATH = _PROJECT_ROOT / "config" / "config.yaml"
_CONFIG_EXAMPLE_PATH = _PROJECT_ROOT / "config" / "config.example.yaml"
_CONFIG_ENV_VAR = "SCREENLAB_CONFIG"

# ENV_VAR -> (dotted config path, type)
_ENV_OVERRIDES: dict[str, tuple[str, type]] = {
    "POLYGON_API_KEY": ("polygon.api_key", str),
    "SCREENLAB_POLYGON_BASE_URL": ("polygon.base_url", str),
    "SCREENLAB_MAX_LIMIT": ("screener.max_limit", int),
    "SCREENLAB_TECHNICAL_LIMIT": ("screener.technical_enrichment_limit", int),
    "SCREENLAB_SAVED_PATH": ("saved_screens.path", str),
    "SCREENLAB_SERVER_HOST": ("server.host", str),
    "SCREENLAB_SERVER_PORT": ("server.port", int),
    "SCREENLAB_LOG_LEVEL": ("log_level", str),
}

_instance: dict[str, Any] | None = None


def project_root() -> Path:
    """Return the repository root used to resolve relative config paths."""
    return _PROJECT_ROOT


def config_path() -> Path | None:
    """Return the config file that :func:`load_config` reads, if any exists."""
    override = os.environ.get(_CONFIG_ENV_VAR)
    if override:
        return Path(override)
    for path in (_CONFIG_PATH, _CONFIG_EXAMPLE_PATH):
        if path.exists():
            return path
    return None


def _set_nested(data: dict[str, Any], dotted_key: str, value: Any) -> None:
    *parents, leaf = dotted_key.split(".")
    current = data
    for key in parents:
        current = current.setdefault(key, {})
    current[leaf] = value


def _cast(env_var: str, value: str, target_type: type) -> Any:
    if target_type is bool:
        return value.lower() in ("1", "true", "yes", "on")
    try:
        return target_type(value)
    except ValueError:
        raise ValueError(
            f"{env_var}={value!r} is not a valid {target_type.__name__}"
        ) from None


def _load_yaml(path: Path | None) -> dict[str, Any]:
    if path is None:
        return {}
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping at the top level")
    return data


def _apply_env_overrides(cfg: dict[str, Any]) -> None:
    for env_var, (dotted_key, target_type) in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value is not None:
            _set_nested(cfg, dotted_key, _cast(env_var, value, target_type))


def load_config(*, reload: bool = False) -> dict[str, Any]:
    """Return the merged configuration, loading it on first use.

    Raises:
        FileNotFoundError: If ``SCREENLAB_CONFIG`` names a missing file.
        ValueError: If the file is not a mapping or an override has the
            wrong type.
    """
    global _instance
    if _instance is None or reload:
        cfg = _load_yaml(config_path())
        _apply_env_overrides(cfg)
        _instance = cfg
    return _instance


def get_config(section: str | None = None) -> dict[str, Any]:
    """Get the full config or one top-level section (e.g. ``"screener"``).

    Raises:
        KeyError: If the requested section does not exist.
    """
    cfg = load_config()
    if section is None:
        return cfg
    if section not in cfg:
        raise KeyError(f"Config section '{section}' not found")
    return cfg[section]


def get_section(section: str) -> dict[str, Any]:
    """Like :func:`get_config` but returns an empty dict for missing sections."""
    try:
        return get_config(section) or {}
    except KeyError:
        return {}
