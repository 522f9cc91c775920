"""Configuration management for the application."""

from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

from .scoring import ScoringConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Transcription provider (OpenAI Whisper)
    openai_api_key: Optional[str] = None
    whisper_api_url: str = "https://api.openai.com/v1"
    whisper_model: str = "whisper-1"
    transcription_language: str = "he"
    transcription_timeout_seconds: float = 300.0
    max_audio_file_mb: int = 25  # Whisper upload limit
    gateway_max_retries: int = 3
    gateway_backoff_factor: float = 0.8

    # Database settings
    sqlite_db_path: str = "./data/sales_calls.db"

    # Scoring weights (normalized by the engine)
    weight_urgency: float = 0.30
    weight_budget: float = 0.25
    weight_interest: float = 0.25
    weight_engagement: float = 0.20

    # Scoring thresholds
    high_potential_threshold: int = 80
    low_potential_threshold: int = 39
    category_high_threshold: int = 70
    floor_score: int = 10
    min_reliable_words: int = 100

    # API settings
    api_host: str = "127.0.0.1"
    api_port: int = 3001
    default_page_size: int = 10
    max_page_size: int = 100

    log_level: str = "INFO"

    class Config:
        """Pydantic config."""

        env_file = ".env"
        case_sensitive = False

    def scoring_config(self) -> ScoringConfig:
        """Build the scoring engine configuration from these settings."""
        return ScoringConfig(
            weights={
                "urgency": self.weight_urgency,
                "budget": self.weight_budget,
                "interest": self.weight_interest,
                "engagement": self.weight_engagement,
            },
            high_potential_threshold=self.high_potential_threshold,
            low_potential_threshold=self.low_potential_threshold,
            category_high_threshold=self.category_high_threshold,
            floor_score=self.floor_score,
            min_reliable_words=self.min_reliable_words,
        )


def load_settings() -> Settings:
    """Load and return application settings."""
    load_dotenv()
    return Settings()
