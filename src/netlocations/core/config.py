"""Configuration helpers for the network location registry."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Any, Mapping

import yaml

from netlocations.common.retry import DEFAULT_HOST, DEFAULT_PORT, RetryPolicy
from netlocations.core.vault import DEFAULT_KEY_FILE

PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_LOCAL_CONFIG = PROJECT_ROOT / "config" / "local.yml"
DEFAULT_CONFIG_DIR = Path("/data/commautil")


@dataclass(slots=True)
class ConfigPaths:
    """Paths used by the application."""

    config_dir: Path
    store: Path
    credentials_dir: Path
    key_file: Path


def default_paths(config_dir: Path = DEFAULT_CONFIG_DIR) -> ConfigPaths:
    return ConfigPaths(
        config_dir=config_dir,
        store=config_dir / "network_locations.json",
        credentials_dir=config_dir / "credentials",
        key_file=DEFAULT_KEY_FILE,
    )


@dataclass(slots=True)
class Settings:
    """Values loaded from local.yml or defaults."""

    paths: ConfigPaths = field(default_factory=default_paths)
    probe_timeout: float = 5.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    source: Path | None = None


class SettingsError(ValueError):
    """Raised when local.yml cannot be parsed or validated."""


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = data.get(name)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise SettingsError(f"local.yml: section '{name}' must be a mapping.")
    return value


def _path(section: Mapping[str, Any], key: str, default: Path, context: str) -> Path:
    value = section.get(key)
    if value is None or value == "":
        return default
    if not isinstance(value, str):
        raise SettingsError(f"{context}: field '{key}' must be a string path.")
    return Path(value).expanduser()


def _number(section: Mapping[str, Any], key: str, default: float, context: str, minimum: float = 0) -> float:
    value = section.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SettingsError(f"{context}: field '{key}' must be a number.")
    if value < minimum:
        raise SettingsError(f"{context}: field '{key}' must be at least {minimum}.")
    return value


def _positive_int(section: Mapping[str, Any], key: str, default: int, context: str) -> int:
    value = _number(section, key, default, context, minimum=1)
    if not isinstance(value, int):
        raise SettingsError(f"{context}: field '{key}' must be an integer.")
    return value


def _parse_paths(section: Mapping[str, Any]) -> ConfigPaths:
    context = "local.yml paths"
    config_dir = _path(section, "config_dir", DEFAULT_CONFIG_DIR, context)
    defaults = default_paths(config_dir)
    return ConfigPaths(
        config_dir=config_dir,
        store=_path(section, "store", defaults.store, context),
        credentials_dir=_path(section, "credentials_dir", defaults.credentials_dir, context),
        key_file=_path(section, "key_file", defaults.key_file, context),
    )


def _parse_retry(section: Mapping[str, Any]) -> RetryPolicy:
    context = "local.yml retry"
    host = section.get("host", DEFAULT_HOST)
    if not isinstance(host, str) or not host:
        raise SettingsError(f"{context}: field 'host' must be a non-empty string.")
    port = _positive_int(section, "port", DEFAULT_PORT, context)
    if port > 65535:
        raise SettingsError(f"{context}: port must be between 1 and 65535.")
    defaults = RetryPolicy()
    return RetryPolicy(
        host=host,
        port=port,
        timeout=_number(section, "timeout", defaults.timeout, context),
        retries=_positive_int(section, "retries", defaults.retries, context),
        delay=_number(section, "delay", defaults.delay, context),
        connectivity_retries=_positive_int(
            section, "connectivity_retries", defaults.connectivity_retries, context
        ),
        connectivity_delay=_number(section, "connectivity_delay", defaults.connectivity_delay, context),
    )


def load_settings(config_path: str | Path | None = None, logger: logging.Logger | None = None) -> Settings:
    """Load local.yml if it exists; missing sections fall back to defaults."""

    logger = logger or logging.getLogger(__name__)
    config_file = Path(config_path) if config_path else DEFAULT_LOCAL_CONFIG
    if not config_file.is_absolute():
        config_file = PROJECT_ROOT / config_file

    if not config_file.exists():
        logger.debug("local config not found at %s; using defaults", config_file)
        return Settings()

    try:
        with config_file.open("r", encoding="utf-8") as handle:
            raw_data = yaml.safe_load(handle) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise SettingsError(f"Unable to read local config file: {config_file}") from exc

    if not isinstance(raw_data, Mapping):
        raise SettingsError("Top-level local.yml structure must be a mapping.")

    probe = _section(raw_data, "probe")
    settings = Settings(
        paths=_parse_paths(_section(raw_data, "paths")),
        probe_timeout=_number(probe, "timeout", 5.0, "local.yml probe", minimum=0.1),
        retry=_parse_retry(_section(raw_data, "retry")),
        source=config_file,
    )
    logger.debug(
        "local config loaded from %s store=%s credentials_dir=%s",
        config_file,
        settings.paths.store,
        settings.paths.credentials_dir,
    )
    return settings
