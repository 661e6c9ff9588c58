"""Application settings and configuration management."""
from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    LLM_API_KEY: str | None = None
    LLM_BASE_URL: str = "https://api.openai.com"
    LLM_ENDPOINT: str = "/v1/chat/completions"
    LLM_MODEL: str = "gpt-3.5-turbo"
    LLM_TIMEOUT_S: float = Field(default=30.0, ge=0.1)
    LLM_TEMPERATURE: float = 0.7
    LLM_MAX_TOKENS: int = 1000
    LLM_SEQUENTIAL: bool = False

    DB_PATH: str = Field(default="data/interview.db")
    QUESTION_BANK_PATH: str = Field(default="data/question_bank.json")

    DEFAULT_TOPIC: str = "Excel"
    DEFAULT_DIFFICULTY: Literal["beginner", "intermediate", "advanced"] = "intermediate"
    DEFAULT_TOTAL_QUESTIONS: int = Field(default=5, ge=1)

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", validate_assignment=True)


settings = Settings()
