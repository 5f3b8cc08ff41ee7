"""
Configuration management for the BrainBites time economy
"""

import logging
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Storage Configuration
    database_url: str = Field(default="sqlite:///data/brainbites.db", env="DATABASE_URL")

    # Application Configuration
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    debug: bool = Field(default=False, env="DEBUG")
    timezone: str = Field(default="UTC", env="TIMEZONE")
    tick_interval: float = Field(default=1.0, env="TICK_INTERVAL")

    # Timer Configuration
    overtime_buffer_seconds: int = Field(default=300, env="OVERTIME_BUFFER_SECONDS")
    overtime_penalty_interval: int = Field(
        default=120, env="OVERTIME_PENALTY_INTERVAL"
    )  # one point per 2 minutes past the buffer
    time_warning_thresholds: str = Field(default="300,60", env="TIME_WARNING_THRESHOLDS")
    ad_reward_seconds: int = Field(default=300, env="AD_REWARD_SECONDS")

    # Quiz Rewards
    base_points: int = Field(default=10, env="BASE_POINTS")
    correct_answer_seconds: int = Field(default=30, env="CORRECT_ANSWER_SECONDS")
    streak_milestone_bonus_seconds: int = Field(
        default=120, env="STREAK_MILESTONE_BONUS_SECONDS"
    )
    auto_advance_seconds: float = Field(default=3.0, env="AUTO_ADVANCE_SECONDS")
    completed_session_min_questions: int = Field(
        default=10, env="COMPLETED_SESSION_MIN_QUESTIONS"
    )

    # Daily Goals
    daily_goal_count: int = Field(default=3, env="DAILY_GOAL_COUNT")

    # Telegram notifications (optional)
    telegram_bot_token: str | None = Field(default=None, env="TELEGRAM_BOT_TOKEN")
    telegram_chat_id: int | None = Field(default=None, env="TELEGRAM_CHAT_ID")

    @property
    def time_warning_thresholds_list(self) -> list[int]:
        """Convert time_warning_thresholds string to a descending list of seconds"""
        if not self.time_warning_thresholds.strip():
            return []
        thresholds = [
            int(value.strip())
            for value in self.time_warning_thresholds.split(",")
            if value.strip()
        ]
        return sorted(thresholds, reverse=True)

    @property
    def effective_log_level(self) -> int:
        """Logging level to configure; DEBUG overrides LOG_LEVEL"""
        if self.debug:
            return logging.DEBUG
        return getattr(logging, self.log_level.upper(), logging.INFO)

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.telegram_bot_token) and self.telegram_chat_id is not None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


def get_database_path(database_url: str | None = None) -> str:
    """Get the database file path from URL"""
    url = database_url or get_settings().database_url
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "")
    return "data/brainbites.db"
