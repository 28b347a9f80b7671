"""Load LoomConfig and SiteConfig from ``site.yaml``.

Project settings live under an optional ``loom:`` section of ``site.yaml``
and are merged with CLI kwargs (CLI overrides file).  Site settings are the
top-level keys and are re-read on every build.
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from loom._errors import ConfigError
from loom.config import LoomConfig, SiteConfig

DEFAULT_CONFIG_FILE = "site.yaml"

_SITE_KEYS = frozenset(f.name for f in fields(SiteConfig))
_PROJECT_KEYS = frozenset(f.name for f in fields(LoomConfig)) - {"root"}


def load_config(root: Path, **overrides: object) -> LoomConfig:
    """Load LoomConfig for *root*, merging the ``loom:`` section of site.yaml.

    Overrides take precedence.  ``None`` overrides are dropped so that
    unset CLI flags never mask values from the file.
    """
    config_name = str(overrides.get("config_file") or DEFAULT_CONFIG_FILE)
    file_config = _read_project_section(root / config_name)
    merged = {**file_config, **{k: v for k, v in overrides.items() if v is not None}}
    if "output" in merged and not isinstance(merged["output"], Path):
        merged["output"] = Path(str(merged["output"]))
    return LoomConfig(root=root, **merged)


def load_site_config(path: Path) -> SiteConfig:
    """Parse ``site.yaml`` into a SiteConfig.

    Raises:
        ConfigError: If the file is missing, unreadable, or not a YAML mapping.

    """
    data = _load_yaml(path)
    values = {k: "" if v is None else str(v) for k, v in data.items() if k in _SITE_KEYS}
    return SiteConfig(**values)


def _read_project_section(path: Path) -> dict[str, object]:
    """Return the ``loom:`` section of site.yaml, or an empty dict."""
    if not path.is_file():
        return {}
    section = _load_yaml(path).get("loom")
    if section is None:
        return {}
    if not isinstance(section, dict):
        msg = f"'loom' section in {path} must be a mapping"
        raise ConfigError(msg)
    unknown = set(section) - _PROJECT_KEYS
    if unknown:
        msg = f"Unknown keys in 'loom' section of {path}: {', '.join(sorted(unknown))}"
        raise ConfigError(msg)
    return dict(section)


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Could not read config file at {path}: {exc}"
        raise ConfigError(msg) from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        msg = f"Could not parse config file {path}: {exc}"
        raise ConfigError(msg) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"Config file {path} must contain a mapping"
        raise ConfigError(msg)
    return data
