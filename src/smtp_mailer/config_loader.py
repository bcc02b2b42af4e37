# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""SMTP relay configuration loader.

Settings are read fresh on every call, never cached. Each setting is looked
up in this order:

1. primary environment variable (``MAILER_SMTP_*``)
2. fallback environment variable (``SMTP_*``)
3. ``[smtp]`` section of an optional INI file
4. built-in default

Environment variables:
  MAILER_SMTP_HOST / SMTP_HOST - Relay hostname (required)
  MAILER_SMTP_PORT / SMTP_PORT - Relay port (default: 587)
  MAILER_SMTP_SECURE / SMTP_SECURE - Implicit TLS (default: false)
  MAILER_SMTP_USER / SMTP_USER - Login username (required)
  MAILER_SMTP_PASS / SMTP_PASS - Login password (required)
  MAILER_SMTP_FROM / SMTP_FROM - Sender address (default: username)
  MAILER_CONFIG - Path to an INI file with an [smtp] section

Example:
    Config file format (mailer.ini)::

        [smtp]
        host = smtp.example.com
        port = 465
        secure = true
        user = mailer@example.com
        password = secret
        from = noreply@example.com
"""

from __future__ import annotations

import configparser
import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import ValidationError

from .errors import SmtpConfigurationError
from .logger import get_logger
from .models import SmtpAuth, SmtpConfig

DEFAULT_PORT = 587
DEFAULT_SECURE = False
CONFIG_PATH_ENV = "MAILER_CONFIG"

# setting -> (primary env key, fallback env key, ini option)
SETTINGS: dict[str, tuple[str, str, str]] = {
    "host": ("MAILER_SMTP_HOST", "SMTP_HOST", "host"),
    "port": ("MAILER_SMTP_PORT", "SMTP_PORT", "port"),
    "secure": ("MAILER_SMTP_SECURE", "SMTP_SECURE", "secure"),
    "user": ("MAILER_SMTP_USER", "SMTP_USER", "user"),
    "password": ("MAILER_SMTP_PASS", "SMTP_PASS", "password"),
    "from": ("MAILER_SMTP_FROM", "SMTP_FROM", "from"),
}

REQUIRED = ("host", "user", "password")

logger = get_logger("SmtpConfigLoader")


def parse_bool(value: str | None, default: bool) -> bool:
    """Interpret a boolean-as-string; unknown values yield ``default``."""
    if value is None:
        return default
    normalized = str(value).strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def parse_port(value: str | None, default: int = DEFAULT_PORT) -> int:
    """Parse a port number, falling back to ``default`` when unset or invalid."""
    if value is None or not str(value).strip():
        return default
    try:
        port = int(str(value).strip())
    except ValueError:
        logger.warning("Ignoring invalid SMTP port %r, using %d", value, default)
        return default
    if not 0 < port < 65536:
        logger.warning("Ignoring out of range SMTP port %r, using %d", value, default)
        return default
    return port


def _read_ini(config_path: str | os.PathLike[str] | None) -> Mapping[str, str]:
    """Read the ``[smtp]`` section verbatim; ``%`` in values is not interpolated.

    Raises:
        SmtpConfigurationError: If the file cannot be parsed. The message
            never includes setting values.
    """
    if not config_path:
        return {}
    path = Path(config_path)
    if not path.exists():
        logger.debug("Config file %s not found, using environment only", path)
        return {}
    parser = configparser.ConfigParser(interpolation=None)
    try:
        parser.read(path)
    except configparser.Error as exc:
        raise SmtpConfigurationError(f"Unreadable SMTP config file {path}: {exc.__class__.__name__}") from None
    if not parser.has_section("smtp"):
        return {}
    return dict(parser.items("smtp"))


def _first_set(*candidates: str | None) -> str | None:
    for value in candidates:
        if value and value.strip():
            return value.strip()
    return None


def resolve_settings(
    env: Mapping[str, str] | None = None,
    config_path: str | os.PathLike[str] | None = None,
) -> dict[str, str | None]:
    """Resolve the raw string value of every setting.

    Args:
        env: Environment mapping. Defaults to ``os.environ``.
        config_path: Optional INI file. Defaults to ``$MAILER_CONFIG``.

    Returns:
        Mapping of setting name to its raw value, or None when unset.
    """
    env = os.environ if env is None else env
    if config_path is None:
        config_path = env.get(CONFIG_PATH_ENV)
    ini = _read_ini(config_path)

    resolved: dict[str, str | None] = {}
    for name, (primary, fallback, option) in SETTINGS.items():
        resolved[name] = _first_set(env.get(primary), env.get(fallback), ini.get(option))
    return resolved


def load_smtp_config(
    env: Mapping[str, str] | None = None,
    config_path: str | os.PathLike[str] | None = None,
) -> SmtpConfig:
    """Build the SMTP configuration for one send.

    Args:
        env: Environment mapping. Defaults to ``os.environ``.
        config_path: Optional INI file. Defaults to ``$MAILER_CONFIG``.

    Returns:
        A validated ``SmtpConfig``.

    Raises:
        SmtpConfigurationError: If host, user or password is missing.
    """
    raw = resolve_settings(env, config_path)

    missing = [name for name in REQUIRED if not raw[name]]
    if missing:
        keys = ", ".join(SETTINGS[name][1] for name in missing)
        raise SmtpConfigurationError(
            f"Incomplete SMTP configuration: set {keys}",
            missing=missing,
        )

    try:
        return SmtpConfig(
            host=raw["host"],
            port=parse_port(raw["port"]),
            secure=parse_bool(raw["secure"], DEFAULT_SECURE),
            auth=SmtpAuth(user=raw["user"], password=raw["password"]),
            from_addr=raw["from"],
        )
    except ValidationError as exc:
        raise SmtpConfigurationError(f"Invalid SMTP configuration: {exc.errors()[0].get('msg')}") from exc
