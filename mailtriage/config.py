"""
Application configuration.

All settings are loaded from environment variables (or a local .env file).
Nothing here is secret, so every field has a default and the package imports
cleanly in tests and scripts.

Usage:
    from mailtriage.config import settings
    config = settings.processing_config()
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings

from mailtriage.processing.schemas import ProcessingConfig

DEFAULT_PATTERN_CATALOG = Path(__file__).parent / "processing" / "patterns.yaml"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # --- App ---
    app_name: str = Field(default="Mail Triage")
    app_env: Literal["development", "staging", "production"] = Field(default="development")
    log_level: str = Field(default="info")

    # --- Pattern catalog ---
    pattern_catalog_path: str = Field(
        default=str(DEFAULT_PATTERN_CATALOG),
        description="YAML file with category patterns and action tiers",
    )
    processing_version: str = Field(default="1.0.0")

    # --- Processing defaults (see ProcessingConfig for ranges) ---
    enable_categorization: bool = Field(default=True)
    enable_todo_extraction: bool = Field(default=True)
    enable_newsletter_detection: bool = Field(default=True)
    max_tokens_per_email: int = Field(default=4000)
    confidence_threshold: float = Field(default=0.5)
    batch_size: int = Field(default=10)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    def processing_config(self) -> ProcessingConfig:
        """Build a validated ProcessingConfig from the environment defaults."""
        return ProcessingConfig(
            enable_categorization=self.enable_categorization,
            enable_todo_extraction=self.enable_todo_extraction,
            enable_newsletter_detection=self.enable_newsletter_detection,
            max_tokens_per_email=self.max_tokens_per_email,
            confidence_threshold=self.confidence_threshold,
            batch_size=self.batch_size,
        )


settings = Settings()
