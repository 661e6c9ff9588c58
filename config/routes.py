from __future__ import annotations  # Configuration schema for LLM routing and rubric weights

from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, Field, model_validator

from .settings import Settings

API_KEY_ENV = "LLM_API_KEY"


class LlmRoute(BaseModel):  # LLM endpoint configuration
    name: str
    base_url: str
    endpoint: str
    model: str
    timeout_s: float = Field(ge=0.1)
    api_key: str | None = None
    api_key_env: str | None = None
    temperature: float = 0.7
    max_tokens: int = Field(default=1000, ge=1)
    extra_headers: Dict[str, str] = Field(default_factory=dict)
    sequential: bool = False


class RubricWeights(BaseModel):  # Weighting applied to the three rubric criteria
    correctness: float = Field(default=0.5, ge=0.0, le=1.0)
    depth: float = Field(default=0.3, ge=0.0, le=1.0)
    clarity: float = Field(default=0.2, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_total(self) -> "RubricWeights":
        total = self.correctness + self.depth + self.clarity
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Rubric weights must sum to 1.0 (got {total:.3f})")
        return self


class AppConfig(BaseModel):  # Application configuration root
    llm_route: Optional[LlmRoute] = None
    rubric_weights: RubricWeights = Field(default_factory=RubricWeights)


def load_config(path: Path) -> AppConfig:  # Load configuration from disk
    data = path.read_text(encoding="utf-8")
    return AppConfig.model_validate_json(data)


def route_from_settings(cfg: Settings) -> Optional[LlmRoute]:  # Build the default route, None when no key is set
    if not cfg.LLM_API_KEY:
        return None
    return LlmRoute(
        name="default",
        base_url=cfg.LLM_BASE_URL,
        endpoint=cfg.LLM_ENDPOINT,
        model=cfg.LLM_MODEL,
        timeout_s=cfg.LLM_TIMEOUT_S,
        api_key=cfg.LLM_API_KEY,
        api_key_env=API_KEY_ENV,
        temperature=cfg.LLM_TEMPERATURE,
        max_tokens=cfg.LLM_MAX_TOKENS,
        sequential=cfg.LLM_SEQUENTIAL,
    )
