"""Configuration management with XDG paths and precedence resolution.

This module builds the :class:`~playfetch.models.ClientConfig` used by the
engine and the CLI:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.playfetch/`` on macOS and Windows. See :func:`get_config_dir`.
* **Config file** -- an optional JSON object whose keys are
  :class:`~playfetch.models.ClientConfig` fields. Read from
  ``$PLAYFETCH_CONFIG`` or ``<config_dir>/config.json``.
* **Environment** -- ``GOOGLE_LOGIN``, ``GOOGLE_PASSWORD``, ``ANDROID_ID``,
  ``USE_CACHE``, ``DEBUG``, and ``PLAYFETCH_SCHEMA``.
* **Precedence resolution** -- :func:`resolve_config` layers explicit
  overrides over the environment, the config file, and model defaults.
"""

from __future__ import annotations

import json
import os
import platform
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from playfetch.exceptions import ConfigError
from playfetch.models import ClientConfig

_APP_NAME = "playfetch"
_CONFIG_FILENAME = "config.json"

# Environment variable -> ClientConfig field.
_ENV_FIELDS = {
    "GOOGLE_LOGIN": "username",
    "GOOGLE_PASSWORD": "password",
    "ANDROID_ID": "device_id",
    "PLAYFETCH_SCHEMA": "schema_path",
}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_config_dir() -> Path:
    """Return the configuration directory without creating it.

    On Linux/BSD: ``$XDG_CONFIG_HOME/playfetch/`` (default ``~/.config/playfetch/``).
    On macOS/Windows: ``~/.playfetch/``.
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_CONFIG_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".config"
        return base / _APP_NAME
    return Path.home() / f".{_APP_NAME}"


def config_file_path(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Return the config file location, honouring ``$PLAYFETCH_CONFIG``."""
    env = os.environ if environ is None else environ
    override = env.get("PLAYFETCH_CONFIG")
    if override:
        return Path(override).expanduser()
    return get_config_dir() / _CONFIG_FILENAME


def load_config_file(path: Path) -> dict[str, Any]:
    """Load the JSON config file at *path*.

    Returns:
        The parsed object, or an empty dict if the file does not exist.

    Raises:
        ConfigError: If the file is not valid JSON or not a JSON object.
    """
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        raise ConfigError(f"Invalid config file at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config file at {path}: expected a JSON object")
    return data


def _env_settings(env: Mapping[str, str]) -> dict[str, Any]:
    settings: dict[str, Any] = {}
    for var, field in _ENV_FIELDS.items():
        value = env.get(var)
        if value:
            settings[field] = value
    # Anything other than "0" leaves the cache on.
    if "USE_CACHE" in env:
        settings["use_cache"] = env["USE_CACHE"] != "0"
    if "DEBUG" in env:
        settings["debug"] = env["DEBUG"] == "1"
    return settings


# --- Precedence resolution ---


def resolve_config(
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ClientConfig:
    """Resolve the effective client configuration.

    Precedence (high to low):
        1. ``overrides`` (CLI flags); ``None`` values are ignored
        2. Environment variables
        3. Config file (``$PLAYFETCH_CONFIG`` or ``<config_dir>/config.json``)
        4. Defaults

    Args:
        overrides: Field values that win over every other source.
        environ: Environment to read instead of :data:`os.environ`.

    Returns:
        The validated :class:`~playfetch.models.ClientConfig`.

    Raises:
        ConfigError: If the config file is unreadable or a value fails
            validation.
    """
    env = os.environ if environ is None else environ
    path = config_file_path(env)

    merged: dict[str, Any] = {}
    merged.update(load_config_file(path))
    merged.update(_env_settings(env))
    if overrides:
        merged.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return ClientConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def require_credentials(config: ClientConfig) -> None:
    """Raise :class:`ConfigError` naming any credential that is not set."""
    missing = config.missing_credentials()
    if missing:
        hints = {"username": "GOOGLE_LOGIN", "password": "GOOGLE_PASSWORD", "device_id": "ANDROID_ID"}
        names = ", ".join(f"{name} (${hints[name]})" for name in missing)
        raise ConfigError(f"Missing credentials: {names}")
