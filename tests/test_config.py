"""
Unit tests for environment-driven settings.
"""
import pytest

from config import EngineConfig

ENV_VARS = (
    "AI_PROVIDER",
    "AI_API_KEY",
    "AI_MODEL",
    "OPENAI_API_KEY",
    "GOOGLE_API_KEY",
    "JIRA_BASE_URL",
    "JIRA_EMAIL",
    "LOGS_DIR",
    "DATA_DIR",
    "JIRA_API_TOKEN",
    "JIRA_API_TIMEOUT",
    "PORT",
)


@pytest.fixture
def env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        # set first so variables loaded from a .env file are removed afterwards
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return str(tmp_path / "missing.env")


def test_defaults(env):
    config = EngineConfig.from_env(env)

    assert config.ai_provider == "openai"
    assert config.ai_api_key == ""
    assert config.ai_model is None
    assert config.jira_timeout == 90
    assert config.port == 8000


def test_reads_environment(env, monkeypatch):
    monkeypatch.setenv("AI_PROVIDER", " Gemini ")
    monkeypatch.setenv("GOOGLE_API_KEY", "g-key")
    monkeypatch.setenv("JIRA_BASE_URL", "https://example.atlassian.net/")
    monkeypatch.setenv("JIRA_API_TIMEOUT", "30")
    monkeypatch.setenv("PORT", "9000")

    config = EngineConfig.from_env(env)

    assert config.ai_provider == "gemini"
    assert config.ai_api_key == "g-key"
    assert config.jira_base_url == "https://example.atlassian.net"
    assert config.jira_timeout == 30
    assert config.port == 9000


def test_ai_api_key_takes_precedence(env, monkeypatch):
    monkeypatch.setenv("AI_API_KEY", "generic")
    monkeypatch.setenv("OPENAI_API_KEY", "specific")

    assert EngineConfig.from_env(env).ai_api_key == "generic"


def test_env_file_is_loaded(env, monkeypatch, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("JIRA_EMAIL=me@example.com\nAI_MODEL=gpt-4o\n")

    config = EngineConfig.from_env(str(env_file))

    assert config.jira_email == "me@example.com"
    assert config.ai_model == "gpt-4o"


def test_unknown_provider_is_rejected(env, monkeypatch):
    monkeypatch.setenv("AI_PROVIDER", "mistral")

    with pytest.raises(ValueError, match="Unsupported AI provider: mistral"):
        EngineConfig.from_env(env)
