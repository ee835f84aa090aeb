from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

PACKAGE_DATA_DIR = Path(__file__).resolve().parent / "data"


class Settings(BaseSettings):
    """Configuration sourced from environment variables."""

    service_title: str = "ReviewTrust Authenticity Service"
    service_version: str = "1.0.0"
    data_dir: Path = PACKAGE_DATA_DIR
    min_text_length: int = Field(default=20, ge=1)
    min_signals_required: int = Field(default=3, ge=1)
    confidence_decay: float = Field(default=0.85, ge=0.0, le=1.0)
    full_coverage_signals: int = Field(default=10, ge=1)
    batch_max_workers: int = Field(default=4, ge=1)
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "REVIEWTRUST_",
        "case_sensitive": False,
    }


@lru_cache(1)
def get_settings() -> Settings:
    return Settings()
