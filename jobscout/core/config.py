"""Configuration models and YAML loader for the signal engine."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

KNOWN_PROVIDERS = {"anthropic", "openai", "ollama"}


def _check_provider(v: str) -> str:
    v = v.lower().strip()
    if v not in KNOWN_PROVIDERS:
        msg = f"provider must be one of {sorted(KNOWN_PROVIDERS)}, got '{v}'"
        raise ValueError(msg)
    return v


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "data/jobscout.db"


class ClassifierConfig(BaseModel):
    """LLM settings for news classification."""

    enabled: bool = True
    provider: str = "openai"
    model: str | None = "gpt-4o-mini"
    temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    max_tokens: int = Field(default=500, ge=1)
    summary_chars: int = Field(default=1500, ge=1)

    @field_validator("provider")
    @classmethod
    def provider_known(cls, v: str) -> str:
        return _check_provider(v)


class AgentConfig(BaseModel):
    """LLM and loop settings for the conversational agent."""

    provider: str = "anthropic"
    model: str | None = None
    max_tokens: int = Field(default=4096, ge=1)
    history_limit: int = Field(default=10, ge=0)
    max_tool_rounds: int = Field(default=8, ge=1, le=50)

    @field_validator("provider")
    @classmethod
    def provider_known(cls, v: str) -> str:
        return _check_provider(v)


class CVConfig(BaseModel):
    """LLM settings for turning CV text into profile fields."""

    provider: str = "openai"
    model: str | None = "gpt-4o-mini"
    temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1000, ge=1)
    max_chars: int = Field(default=10000, ge=1)
    min_chars: int = Field(default=50, ge=0)

    @field_validator("provider")
    @classmethod
    def provider_known(cls, v: str) -> str:
        return _check_provider(v)


class ContextConfig(BaseModel):
    """Bounds for the per-turn user context snapshot."""

    match_limit: int = Field(default=20, ge=0)
    company_limit: int = Field(default=10, ge=0)
    events_per_company: int = Field(default=5, ge=0)


class PipelineConfig(BaseModel):
    """Windows and limits for the batch passes."""

    news_days_back: int = Field(default=14, ge=1)
    score_days_back: int = Field(default=30, ge=1)
    events_per_company: int = Field(default=50, ge=1)
    jobs_per_company: int = Field(default=100, ge=1)
    match_job_limit: int = Field(default=200, ge=1)


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    cv: CVConfig = Field(default_factory=CVConfig)
    context: ContextConfig = Field(default_factory=ContextConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
