from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(BASE_DIR / ".env"),
        env_file_encoding="utf-8",
        env_prefix="PUPPET_",
        extra="ignore",
    )

    # Watchdog (seconds without food before a "watchdog" event)
    watchdog_timeout: float = 60.0

    # Logging
    log_level: str = "INFO"
    log_dir: Path = BASE_DIR / "logs"
    log_file_max_bytes: int = 5 * 1024 * 1024  # 5 MB
    log_file_backup_count: int = 3

    # Demo runner
    demo_puppet_name: str = "MockPuppet"


settings = Settings()
