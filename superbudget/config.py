"""Configuration management for the project tracker service."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

import yaml

from .errors import ConfigurationError

_DEFAULT_SMTP_HOST = "smtp.office365.com"
_DEFAULT_SMTP_PORT = 587
_DEFAULT_SENDER = "noreply@superbudget.com"
_DEFAULT_TOKEN_MINUTES = 24 * 60
_DEFAULT_CORS_ORIGINS = ("http://localhost:3000",)


def _clean(value: Optional[object]) -> Optional[str]:
    if value is None:
        return None
    stripped = str(value).strip()
    return stripped or None


def _as_int(value: Optional[object], default: int, *, name: str) -> int:
    cleaned = _clean(value)
    if cleaned is None:
        return default
    try:
        return int(cleaned)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid integer value {cleaned!r} for {name}") from exc


def _as_float(value: Optional[object], default: float, *, name: str) -> float:
    cleaned = _clean(value)
    if cleaned is None:
        return default
    try:
        return float(cleaned)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid number {cleaned!r} for {name}") from exc


@dataclass(frozen=True)
class AuthSettings:
    """Parameters used to sign and verify access tokens."""

    secret: str
    algorithm: str = "HS256"
    token_ttl_minutes: int = _DEFAULT_TOKEN_MINUTES

    def __post_init__(self) -> None:
        if not self.secret:
            raise ConfigurationError("A JWT secret must be configured (set JWT_SECRET)")
        if self.token_ttl_minutes <= 0:
            raise ConfigurationError("Token lifetime must be a positive number of minutes")


@dataclass(frozen=True)
class MailSettings:
    """SMTP transport settings for assignment notifications."""

    host: str = _DEFAULT_SMTP_HOST
    port: int = _DEFAULT_SMTP_PORT
    username: Optional[str] = None
    password: Optional[str] = None
    sender: str = _DEFAULT_SENDER
    reply_to: Optional[str] = None
    use_starttls: bool = True
    timeout: float = 30.0

    @property
    def configured(self) -> bool:
        return bool(self.username and self.password)

    def describe(self) -> Dict[str, object]:
        """Return a loggable summary with credentials masked."""

        return {
            "host": self.host,
            "port": self.port,
            "user": f"{self.username[:3]}***" if self.username else "NOT SET",
            "password": "***SET***" if self.password else "NOT SET",
        }


@dataclass(frozen=True)
class Settings:
    auth: AuthSettings
    mail: MailSettings = field(default_factory=MailSettings)
    database_path: Optional[Path] = None
    cors_origins: Tuple[str, ...] = _DEFAULT_CORS_ORIGINS


def resolve_config_path(env_value: Optional[str]) -> Optional[Path]:
    """Resolve the optional YAML settings file."""

    if not env_value:
        return None
    return Path(env_value).expanduser().resolve(strict=False)


def _load_yaml(config_path: Optional[Path]) -> Dict[str, object]:
    if config_path is None:
        return {}
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Configuration file {config_path} must contain a mapping")
    return raw


def _section(raw: Mapping[str, object], name: str) -> Mapping[str, object]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"Configuration section '{name}' must be a mapping")
    return value


def _database_path(env: Mapping[str, str], raw: Mapping[str, object]) -> Optional[Path]:
    value = _clean(env.get("SUPERBUDGET_DB_PATH")) or _clean(raw.get("database_path"))
    if not value:
        return None
    return Path(value).expanduser().resolve(strict=False)


def load_database_path(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Optional[Path]:
    """Return the configured database path without requiring the rest of the settings."""

    env = os.environ if environ is None else environ
    if config_path is None:
        config_path = resolve_config_path(env.get("SUPERBUDGET_CONFIG"))
    return _database_path(env, _load_yaml(config_path))


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build :class:`Settings` from defaults, an optional YAML file and the environment."""

    env = os.environ if environ is None else environ
    if config_path is None:
        config_path = resolve_config_path(env.get("SUPERBUDGET_CONFIG"))
    raw = _load_yaml(config_path)
    auth_raw = _section(raw, "auth")
    mail_raw = _section(raw, "mail")

    secret = _clean(env.get("JWT_SECRET")) or _clean(auth_raw.get("secret")) or ""
    auth = AuthSettings(
        secret=secret,
        algorithm=_clean(auth_raw.get("algorithm")) or "HS256",
        token_ttl_minutes=_as_int(
            env.get("JWT_EXPIRES_IN_MINUTES", auth_raw.get("token_ttl_minutes")),
            _DEFAULT_TOKEN_MINUTES,
            name="JWT_EXPIRES_IN_MINUTES",
        ),
    )

    support_email = _clean(env.get("SUPPORT_EMAIL"))
    mail = MailSettings(
        host=_clean(env.get("SMTP_HOST")) or _clean(mail_raw.get("host")) or _DEFAULT_SMTP_HOST,
        port=_as_int(env.get("SMTP_PORT", mail_raw.get("port")), _DEFAULT_SMTP_PORT, name="SMTP_PORT"),
        username=_clean(env.get("SMTP_USER")) or _clean(mail_raw.get("username")),
        password=_clean(env.get("SMTP_PASSWORD")) or _clean(mail_raw.get("password")),
        sender=(
            _clean(env.get("SMTP_SENDER"))
            or support_email
            or _clean(mail_raw.get("sender"))
            or _DEFAULT_SENDER
        ),
        reply_to=_clean(env.get("SMTP_REPLY_TO")) or support_email or _clean(mail_raw.get("reply_to")),
        timeout=_as_float(env.get("SMTP_TIMEOUT", mail_raw.get("timeout")), 30.0, name="SMTP_TIMEOUT"),
    )

    origins_raw = _clean(env.get("CORS_ORIGINS"))
    if origins_raw:
        cors_origins = tuple(item.strip() for item in origins_raw.split(",") if item.strip())
    else:
        configured = raw.get("cors_origins")
        cors_origins = tuple(str(item) for item in configured) if configured else _DEFAULT_CORS_ORIGINS

    return Settings(
        auth=auth,
        mail=mail,
        database_path=_database_path(env, raw),
        cors_origins=cors_origins,
    )


__all__ = [
    "AuthSettings",
    "MailSettings",
    "Settings",
    "load_database_path",
    "load_settings",
    "resolve_config_path",
]
