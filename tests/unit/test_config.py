"""Tests for configuration models and YAML loading."""

from pathlib import Path
from textwrap import dedent

import pytest
from pydantic import ValidationError

from jobscout.core.config import (
    AgentConfig,
    ClassifierConfig,
    ContextConfig,
    CVConfig,
    DatabaseConfig,
    PipelineConfig,
    Settings,
)


class TestClassifierConfig:
    def test_defaults(self) -> None:
        c = ClassifierConfig()
        assert c.enabled is True
        assert c.provider == "openai"
        assert c.temperature == 0.1
        assert c.max_tokens == 500
        assert c.summary_chars == 1500

    def test_provider_normalized(self) -> None:
        assert ClassifierConfig(provider="  Anthropic ").provider == "anthropic"

    def test_unknown_provider_rejected(self) -> None:
        with pytest.raises(ValidationError, match="provider must be one of"):
            ClassifierConfig(provider="gemini")

    def test_temperature_bounds(self) -> None:
        with pytest.raises(ValidationError):
            ClassifierConfig(temperature=3.0)


class TestAgentConfig:
    def test_defaults(self) -> None:
        a = AgentConfig()
        assert a.provider == "anthropic"
        assert a.model is None
        assert a.history_limit == 10
        assert a.max_tool_rounds == 8

    def test_tool_rounds_bounds(self) -> None:
        with pytest.raises(ValidationError):
            AgentConfig(max_tool_rounds=0)
        with pytest.raises(ValidationError):
            AgentConfig(max_tool_rounds=51)


class TestCVConfig:
    def test_defaults(self) -> None:
        c = CVConfig()
        assert c.provider == "openai"
        assert c.model == "gpt-4o-mini"
        assert c.max_tokens == 1000
        assert (c.max_chars, c.min_chars) == (10000, 50)

    def test_unknown_provider_rejected(self) -> None:
        with pytest.raises(ValidationError, match="provider must be one of"):
            CVConfig(provider="gemini")


class TestLimits:
    def test_context_defaults(self) -> None:
        c = ContextConfig()
        assert (c.match_limit, c.company_limit, c.events_per_company) == (20, 10, 5)

    def test_pipeline_defaults(self) -> None:
        p = PipelineConfig()
        assert p.news_days_back == 14
        assert p.score_days_back == 30
        assert p.match_job_limit == 200

    def test_pipeline_window_positive(self) -> None:
        with pytest.raises(ValidationError):
            PipelineConfig(score_days_back=0)


class TestSettings:
    def test_defaults(self) -> None:
        s = Settings()
        assert s.database == DatabaseConfig()
        assert s.database.path == "data/jobscout.db"

    def test_from_yaml(self, tmp_path: Path) -> None:
        cfg = tmp_path / "settings.yaml"
        cfg.write_text(
            dedent("""\
                database:
                  path: /tmp/test.db
                classifier:
                  provider: ollama
                  model: llama3.1
                agent:
                  provider: openai
                  history_limit: 4
                pipeline:
                  score_days_back: 60
            """)
        )
        s = Settings.from_yaml(cfg)
        assert s.database.path == "/tmp/test.db"
        assert s.classifier.provider == "ollama"
        assert s.classifier.model == "llama3.1"
        assert s.agent.provider == "openai"
        assert s.agent.history_limit == 4
        assert s.pipeline.score_days_back == 60
        assert s.context == ContextConfig()

    def test_empty_yaml_uses_defaults(self, tmp_path: Path) -> None:
        cfg = tmp_path / "settings.yaml"
        cfg.write_text("")
        assert Settings.from_yaml(cfg) == Settings()

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            Settings.from_yaml(tmp_path / "nope.yaml")

    def test_invalid_value(self, tmp_path: Path) -> None:
        cfg = tmp_path / "settings.yaml"
        cfg.write_text("agent:\n  provider: gemini\n")
        with pytest.raises(ValidationError):
            Settings.from_yaml(cfg)

    def test_example_file_loads(self) -> None:
        example = Path(__file__).resolve().parents[2] / "config" / "settings.example.yaml"
        s = Settings.from_yaml(example)
        assert s.classifier.provider == "openai"
        assert s.agent.model is None
