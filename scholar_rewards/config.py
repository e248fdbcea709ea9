"""Configuration settings using pydantic-settings."""
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_PATH: str = Field(
        default="data/scholar_rewards.db",
        description="Path to SQLite database file"
    )

    # Short-answer judge (any OpenAI-compatible endpoint)
    LLM_BASE_URL: Optional[str] = Field(
        default=None,
        description="OpenAI-compatible base URL (None = api.openai.com)"
    )
    LLM_API_KEY: str = Field(
        default="",
        description="API key for the judge; empty disables AI grading"
    )
    LLM_MODEL: str = Field(default="gpt-4o-mini", description="Judge model name")
    JUDGE_TIMEOUT_SECONDS: float = Field(
        default=8.0,
        description="Upper bound for a single judge call in seconds"
    )
    JUDGE_TEMPERATURE: float = Field(default=0.3, description="Judge sampling temperature")

    # Grading and rewards
    PASSING_SCORE: int = Field(
        default=60,
        description="Minimum percentage for an attempt to earn rewards"
    )
    BASE_XP_PER_CORRECT: int = Field(default=10, description="XP per correct answer")
    BASE_COIN_PER_CORRECT: int = Field(default=2, description="Coins per correct answer")

    # Mastery
    MASTERY_UNLOCK_THRESHOLD: int = Field(
        default=70,
        description="Cumulative percentage that unlocks a mastery category"
    )

    # Claim validation
    PRACTICE_MINIMUM: int = Field(default=60, description="Minimum practice set score (%)")
    GAME_MINIMUM: int = Field(default=70, description="Minimum game score (%)")
    STUDY_GOAL_MAX_XP: int = Field(default=25, description="XP ceiling for a study goal")
    STUDY_GOAL_MAX_COINS: int = Field(default=10, description="Coin ceiling for a study goal")

    # Request limits
    MAX_XP_PER_REQUEST: int = Field(default=1000, description="Max XP in one award request")
    MAX_COINS_PER_REQUEST: int = Field(default=500, description="Max coins in one award request")
    MAX_REASON_LENGTH: int = Field(default=500, description="Max award reason length")
    MAX_QUESTIONS_PER_ASSIGNMENT: int = Field(
        default=100,
        description="Max questions in one grade request"
    )

    # Partner sync
    SYNC_WEBHOOK_URL: Optional[str] = Field(
        default=None,
        description="Endpoint for grading outcome events; None disables sync"
    )
    SYNC_TIMEOUT_SECONDS: int = Field(default=10, description="Outbound request timeout")
    SOURCE_APP: str = Field(default="scholar-app", description="Source tag for outbound events")

    # Logging
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    class Config:
        """Pydantic config."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


# Global settings instance
settings = Settings()
