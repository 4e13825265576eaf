import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

KNOWN_PROVIDERS = ("openai", "gemini", "anthropic", "ollama")

# api key env var used when AI_API_KEY is not set
PROVIDER_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "gemini": "GOOGLE_API_KEY",
}


class EngineConfig(BaseModel):
    """Runtime settings for the assistant backend."""

    ai_provider: str = "openai"
    ai_api_key: str = ""
    ai_model: Optional[str] = None
    jira_base_url: str = ""
    jira_email: str = ""
    jira_api_token: str = ""
    jira_timeout: int = 90
    logs_dir: str = "logs"
    data_dir: str = "data"
    host: str = "0.0.0.0"
    port: int = 8000

    @field_validator("ai_provider", mode="before")
    @classmethod
    def check_provider(cls, v: str) -> str:
        provider = (v or "openai").strip().lower()
        if provider not in KNOWN_PROVIDERS:
            raise ValueError(f"Unsupported AI provider: {v}")
        return provider

    @field_validator("jira_base_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return (v or "").strip().rstrip("/")

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "EngineConfig":
        """
        Builds a config from environment variables, after loading a `.env` file.

        Args:
            env_file: Optional path to a `.env` file. Defaults to python-dotenv's
                lookup from the current working directory.

        Returns:
            EngineConfig: The populated config.
        """
        load_dotenv(env_file)

        provider = os.getenv("AI_PROVIDER", "openai")
        api_key = os.getenv("AI_API_KEY") or os.getenv(
            PROVIDER_KEY_ENV.get(provider.strip().lower(), ""), ""
        )

        return cls(
            ai_provider=provider,
            ai_api_key=api_key,
            ai_model=os.getenv("AI_MODEL") or None,
            jira_base_url=os.getenv("JIRA_BASE_URL", ""),
            jira_email=os.getenv("JIRA_EMAIL", ""),
            jira_api_token=os.getenv("JIRA_API_TOKEN", ""),
            jira_timeout=int(os.getenv("JIRA_API_TIMEOUT", "90")),
            logs_dir=os.getenv("LOGS_DIR", "logs"),
            data_dir=os.getenv("DATA_DIR", "data"),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
        )
