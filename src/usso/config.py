"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles the persistent state used by the ``usso`` CLI:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.usso/`` on macOS and Windows. See :func:`get_config_dir`.
* **Config file** -- a single :class:`~usso.models.UssoConfig` JSON file
  storing the default server, HTTP timeout, TLS verification, and token
  file. Managed via :func:`load_config`, :func:`save_config` and
  :func:`set_config_value`.
* **Precedence resolution** -- :func:`resolve_config` layers environment
  variables (``USSO_SERVER``, ``USSO_TOKEN_FILE``) over the config file.
* **Token files** -- :func:`load_token` / :func:`save_token` read and
  write an :class:`~usso.models.SSOData` as JSON with ``0o600``
  permissions. The library never calls these; the CLI does so only when
  the user names a file.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`).
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from usso.exceptions import ConfigError
from usso.models import SSOData, UssoConfig

_APP_NAME = "usso"
_CONFIG_FILENAME = "config.json"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/usso/`` (default ``~/.config/usso/``).
    On macOS/Windows: ``~/.usso/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_CONFIG_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".config"
        path = base / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


def config_path() -> Path:
    """Path to the config file."""
    return get_config_dir() / _CONFIG_FILENAME


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created next to *path* so that ``os.replace`` is
    an atomic rename on POSIX. When *mode* is given it is applied to the
    temp file before any content is written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Config file ---


def load_config() -> UssoConfig:
    """Load the configuration file.

    Returns:
        The deserialised :class:`~usso.models.UssoConfig`, or a default
        instance when the file does not exist.

    Raises:
        ConfigError: If the file cannot be read, contains invalid JSON, or
            fails validation.
    """
    path = config_path()
    if not path.is_file():
        return UssoConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return UssoConfig.model_validate(data)
    except OSError as exc:
        raise ConfigError(f"Cannot read config {path}: {exc}") from exc
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_config(config: UssoConfig) -> None:
    """Persist the configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(config_path(), json.dumps(data, indent=2) + "\n")


def set_config_value(key: str, value: str) -> UssoConfig:
    """Set a single config key from its string form and save the result.

    Args:
        key: A :class:`~usso.models.UssoConfig` field name.
        value: The new value; pydantic coerces it to the field's type.
            An empty string resets optional fields to ``None``.

    Returns:
        The updated configuration.

    Raises:
        ConfigError: If *key* is unknown or *value* does not validate.
    """
    if key not in UssoConfig.model_fields:
        known = ", ".join(UssoConfig.model_fields)
        raise ConfigError(f"Unknown config key '{key}' (expected one of: {known})")

    data = load_config().model_dump()
    data[key] = value if value != "" else None
    try:
        config = UssoConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid value for '{key}': {value!r}") from exc
    save_config(config)
    return config


# --- Precedence resolution ---


def resolve_config(
    cli_server: Optional[str] = None,
    cli_token_file: Optional[str] = None,
) -> UssoConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_server``, ``cli_token_file``)
        2. Environment variables (``USSO_SERVER``, ``USSO_TOKEN_FILE``)
        3. User config (``~/.config/usso/config.json``)
        4. Defaults
    """
    config = load_config()

    server = cli_server or os.environ.get("USSO_SERVER")
    if server:
        config.server = server

    token_file = cli_token_file or os.environ.get("USSO_TOKEN_FILE")
    if token_file:
        config.token_file = token_file

    return config


# --- Token files ---


def save_token(token: SSOData, path: Path) -> None:
    """Write *token* to *path* as JSON, readable only by the owner."""
    data = token.model_dump(mode="json")
    _atomic_write(path, json.dumps(data, indent=2) + "\n", mode=0o600)


def load_token(path: Path) -> SSOData:
    """Read a token previously written by :func:`save_token`.

    Raises:
        ConfigError: If the file is missing, unreadable, or not a valid token.
    """
    if not path.is_file():
        raise ConfigError(f"Token file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return SSOData.model_validate(data)
    except OSError as exc:
        raise ConfigError(f"Cannot read token file {path}: {exc}") from exc
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid token file {path}: {exc}") from exc
