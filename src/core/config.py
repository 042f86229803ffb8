"""Application configuration."""

from pathlib import Path
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    # Application
    PROJECT_NAME: str = "livesource"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    LOG_LEVEL: str = "INFO"

    # Files
    CATALOG_PATH: Path = Path("channel.json")
    OUTPUT_PATH: Path = Path("output.json")
    STATE_DIR: Path = Path(".state")
    CHECKPOINT_FILENAME: str = "checkpoint.json"
    DOWNLOAD_MARKER_FILENAME: str = ".downloaded"
    DOWNLOAD_DIR_PREFIX: str = "subscriptions-"

    # Batch Settings
    BATCH_SIZE: int = 5
    MAX_SOURCES_PER_CHANNEL: int = 100
    MAX_EXPANDED_NAMES: int = 50

    # Fetch Settings
    FETCH_TIMEOUT_SEC: float = 30.0  # 连接 + 整体传输
    FETCH_MAX_BYTES: int = 10 * 1024 * 1024  # 10 MiB
    FETCHER_USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )

    @computed_field
    @property
    def checkpoint_path(self) -> Path:
        return self.STATE_DIR / self.CHECKPOINT_FILENAME

    @computed_field
    @property
    def download_marker_path(self) -> Path:
        """订阅下载完成标记文件路径。"""
        return self.STATE_DIR / self.DOWNLOAD_MARKER_FILENAME


settings = Settings()
