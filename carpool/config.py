"""Centralised application settings loaded from environment / .env file."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Flat-file store
    data_dir: str = "data"
    backup_dir: str = "data/backups"
    max_backups: int = 5  # kept per entity file

    # Autosave worker
    autosave_enabled: bool = True
    autosave_interval_seconds: int = 300

    # Service surface
    lock_timeout_seconds: float = 5.0
    rate_limit: str = "100/minute"
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_prefix": "CARPOOL_", "extra": "ignore"}


settings = Settings()
