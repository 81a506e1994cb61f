import logging
import os
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DEFAULT_DATABASE_URL = "sqlite:///name_picker.db"
DEFAULT_API_URL = "http://127.0.0.1:8000"
# Public key for local development only
DEFAULT_API_KEY = "local-dev-anon-key"
DEFAULT_SEED_PASSWORD = "password123"

# UI pacing, seconds
ADVANCE_DELAY = 0.3
CELEBRATION_DELAY = 2.0
NOTICE_SECONDS = 5.0

# Bearer tokens older than this are rejected by the service
SESSION_MAX_AGE = timedelta(days=30)


class ConfigError(RuntimeError):
    pass


def _truthy(value):
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def strict_config() -> bool:
    return _truthy(os.environ.get("NAME_PICKER_STRICT_CONFIG", ""))


def _setting(key: str, default: str) -> str:
    value = os.environ.get(key)
    if value:
        return value
    if strict_config():
        raise ConfigError(f"{key} is not set")
    return default


def database_url() -> str:
    return os.environ.get("NAME_PICKER_DATABASE_URL", DEFAULT_DATABASE_URL)


def api_url() -> str:
    return _setting("NAME_PICKER_API_URL", DEFAULT_API_URL).rstrip("/")


def api_key() -> str:
    return _setting("NAME_PICKER_API_KEY", DEFAULT_API_KEY)


def server_api_key():
    """Key the service expects in the ``apikey`` header, or None to accept any."""
    return os.environ.get("NAME_PICKER_API_KEY") or None


def seed_password(username: str) -> str:
    return os.environ.get(f"NAME_PICKER_{username.upper()}_PASSWORD", DEFAULT_SEED_PASSWORD)


def session_file() -> Path:
    path = os.environ.get("NAME_PICKER_SESSION_FILE")
    if path:
        return Path(path)
    return Path.home() / ".name_picker_session.json"


def setup_logging(level: str = None) -> logging.Logger:
    """Configure the ``name_picker`` logger.

    Args:
        level: Log level name. Falls back to ``NAME_PICKER_LOG_LEVEL``, then
               WARNING so normal use is quiet.
    """
    level = level or os.environ.get("NAME_PICKER_LOG_LEVEL", "WARNING")
    numeric = getattr(logging, level.upper(), logging.WARNING)
    logger = logging.getLogger("name_picker")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(numeric)
    return logger
