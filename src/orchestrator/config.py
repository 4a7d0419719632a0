"""Configuration management."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings from environment."""

    # Watch target
    watched_file_path: str

    # Git
    git_executable: str = "git"

    # Change detection
    debounce_delay_seconds: float = 0.9
    unlock_timeout_seconds: float = 25.0
    lock_poll_interval_seconds: float = 0.25

    # Logging
    log_level: str = "INFO"
    notice_history: int = 50

    # Control API
    host: str = "127.0.0.1"
    port: int = 8765

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
