from __future__ import annotations

from dataclasses import dataclass
import os

from dotenv import load_dotenv

DEFAULT_DATABASE_URL = "sqlite:///data/locker_booking.db"
DEFAULT_EVENT_LOG_PATH = "data/events.yaml"


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    event_log_path: str | None = DEFAULT_EVENT_LOG_PATH
    log_level: str = "INFO"
    max_place_number: int = 50
    host: str = "127.0.0.1"
    port: int = 8080


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as error:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from error


def load_settings(env_file: str | None = ".env") -> Settings:
    """Read settings from the environment.

    ``.env`` is loaded first but never overrides variables that are already
    set. An empty ``EVENT_LOG_PATH`` disables the audit log.
    """
    if env_file:
        load_dotenv(env_file, override=False)

    event_log_path = os.environ.get("EVENT_LOG_PATH", DEFAULT_EVENT_LOG_PATH).strip() or None
    return Settings(
        database_url=os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL),
        event_log_path=event_log_path,
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        max_place_number=_int_env("MAX_PLACE_NUMBER", 50),
        host=os.environ.get("HOST", "127.0.0.1"),
        port=_int_env("PORT", 8080),
    )
