"""
Environment configuration.

Every key is looked up with the environment prefix first, then without it:

    APP_ENV=stage  →  STAGE_STORAGE_FILE, then STORAGE_FILE

so one host can run several isolated bots while plain container variables
(STORAGE_FILE, ALLOWED_USERS) keep working.

Invalid values raise ConfigurationError; main.py turns that into a non-zero
exit before any update is processed. Secrets are never logged.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Mapping, Optional

from zungenrede.core.exceptions import ConfigurationError
from zungenrede.i18n import LANGUAGES
from zungenrede.services.access import parse_allowed_users
from zungenrede.storage.models import LanguagePair

DEFAULT_STORAGE_FILE = "translations_storage.json"
VALID_APP_ENVS = ("prod", "stage", "local")
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Settings:
    """Immutable process configuration, read once at startup."""
    app_env: str
    bot_token: str
    storage_file: Path
    allowed_users: FrozenSet[int]
    restrict_reads: bool
    legacy_language_pair: LanguagePair
    list_limit: int
    bot_language: str
    log_level: str
    max_concurrent_updates: int
    health_server_enabled: bool
    health_server_host: str
    health_server_port: int


class _Env:
    """Prefixed lookup over one environment mapping."""

    def __init__(self, environ: Mapping[str, str], app_env: str):
        self._environ = environ
        self._prefix = f"{app_env.upper()}_"

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self._environ.get(self._prefix + key)
        if value is None:
            value = self._environ.get(key)
        return default if value is None else value

    def get_bool(self, key: str, default: bool) -> bool:
        value = self.get(key)
        if value is None or not value.strip():
            return default
        value = value.strip().lower()
        if value in ("true", "1", "yes", "on"):
            return True
        if value in ("false", "0", "no", "off"):
            return False
        raise ConfigurationError(f"{key} must be a boolean, got: {value!r}")

    def get_int(self, key: str, default: int, minimum: int = 1) -> int:
        value = self.get(key)
        if value is None or not value.strip():
            return default
        try:
            number = int(value)
        except ValueError:
            raise ConfigurationError(f"{key} must be a number, got: {value!r}") from None
        if number < minimum:
            raise ConfigurationError(f"{key} must be >= {minimum}, got: {number}")
        return number


def load_settings(environ: Optional[Mapping[str, str]] = None, require_token: bool = True) -> Settings:
    """
    Read and validate configuration.

    Args:
        environ: Variables to read (defaults to os.environ)
        require_token: Fail when no bot token is set

    Raises:
        ConfigurationError: On any missing or invalid value
    """
    if environ is None:
        environ = os.environ

    app_env = environ.get("APP_ENV", "prod").strip().lower()
    if app_env not in VALID_APP_ENVS:
        raise ConfigurationError(f"Invalid APP_ENV={app_env!r}. Must be one of: {', '.join(VALID_APP_ENVS)}")
    env = _Env(environ, app_env)

    # TELOXIDE_TOKEN is what earlier deployments of this bot set
    bot_token = (env.get("BOT_TOKEN") or env.get("TELOXIDE_TOKEN") or "").strip()
    if require_token and not bot_token:
        raise ConfigurationError("BOT_TOKEN environment variable is not set")

    storage_file = (env.get("STORAGE_FILE") or "").strip() or DEFAULT_STORAGE_FILE

    try:
        legacy_language_pair = LanguagePair.from_text(env.get("LEGACY_LANGUAGE_PAIR", "de,ru"))
    except ValueError as e:
        raise ConfigurationError(f"LEGACY_LANGUAGE_PAIR: {e}") from None

    bot_language = env.get("BOT_LANGUAGE", "en").strip().lower()
    if bot_language not in LANGUAGES:
        raise ConfigurationError(f"BOT_LANGUAGE must be one of: {', '.join(LANGUAGES)}, got: {bot_language!r}")

    log_level = env.get("LOG_LEVEL", "INFO").strip().upper()
    if log_level not in VALID_LOG_LEVELS:
        raise ConfigurationError(f"LOG_LEVEL must be one of: {', '.join(VALID_LOG_LEVELS)}, got: {log_level!r}")

    return Settings(
        app_env=app_env,
        bot_token=bot_token,
        storage_file=Path(storage_file),
        allowed_users=parse_allowed_users(env.get("ALLOWED_USERS")),
        restrict_reads=env.get_bool("RESTRICT_READS", default=False),
        legacy_language_pair=legacy_language_pair,
        list_limit=env.get_int("LIST_LIMIT", default=50),
        bot_language=bot_language,
        log_level=log_level,
        max_concurrent_updates=env.get_int("MAX_CONCURRENT_UPDATES", default=20),
        health_server_enabled=env.get_bool("HEALTH_SERVER_ENABLED", default=True),
        health_server_host=env.get("HEALTH_SERVER_HOST", "0.0.0.0"),
        health_server_port=env.get_int("HEALTH_SERVER_PORT", default=8080, minimum=0),
    )
