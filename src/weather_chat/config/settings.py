# weather_chat/config/settings.py
import yaml
from pathlib import Path
from functools import lru_cache
from typing import Optional, Dict, Any
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

DEFAULT_API_ENDPOINT = "https://millions-screeching-vultur.mastra.cloud/api/agents/weatherAgent/stream"
DEFAULT_THREAD_ID = "22-COMPC18-26"

DEFAULT_CONFIG_PATH = "config/config.yaml"
DEFAULT_SYSTEM_PROMPT_PATH = "config/prompts/system_prompt.md"

GUARDRAIL_PROMPT = (
    "You are a weather-only assistant. Answer strictly weather-related queries. "
    "If the message is not about weather or lacks a location, ask for a weather "
    "question with a location. Keep responses concise."
)


class AgentConfig(BaseSettings):
    """Agent run parameters from YAML."""
    run_id: str = Field(default="weatherAgent", description="Agent run identifier")
    resource_id: str = Field(default="weatherAgent", description="Agent resource identifier")
    max_retries: int = Field(default=2, description="Retries the agent may attempt server-side")
    max_steps: int = Field(default=5, description="Maximum agent steps per turn")
    temperature: float = Field(default=0.5, description="Model temperature")
    top_p: float = Field(default=1.0, description="Nucleus sampling cutoff")


class ClientConfig(BaseSettings):
    """HTTP client configuration from YAML."""
    extra_headers: Dict[str, str] = Field(
        default_factory=lambda: {"x-mastra-dev-playground": "true"},
        description="Headers sent with every stream request"
    )
    request_timeout_seconds: Optional[float] = Field(
        default=None, description="Total request timeout; None leaves aiohttp's default"
    )
    connectivity_probe_host: str = Field(default="1.1.1.1", description="Host probed to tell offline from network failure")
    connectivity_probe_port: int = Field(default=53, description="TCP port of the connectivity probe")
    connectivity_probe_timeout: float = Field(default=2.0, description="Connectivity probe timeout in seconds")
    history_path: Optional[str] = Field(default=None, description="JSON file for chat history; None keeps it in memory")
    max_input_length: int = Field(default=1000, description="Maximum length of a user question")


class Settings(BaseSettings):
    """Application settings combining environment variables and YAML config."""

    # ===== ENVIRONMENT VARIABLES =====
    api_endpoint: str = Field(default=DEFAULT_API_ENDPOINT, description="Streaming agent endpoint")
    thread_id: str = Field(default=DEFAULT_THREAD_ID, description="Conversation thread for this client")

    app_name: str = Field(default="Weather Chat", description="Application name")
    debug: bool = Field(default=False, description="Debug mode; forces DEBUG logging")
    log_level: str = Field(default="INFO", description="Logging level")

    # ===== YAML LOADED CONFIGS =====
    agent_config: AgentConfig = Field(default_factory=AgentConfig)
    client_config: ClientConfig = Field(default_factory=ClientConfig)

    # System prompt (loaded from file)
    system_prompt: str = Field(default=GUARDRAIL_PROMPT, description="Guardrail system prompt")

    # Config file paths
    config_file_path: str = Field(default=DEFAULT_CONFIG_PATH, description="Path to YAML config file")
    system_prompt_path: str = Field(default=DEFAULT_SYSTEM_PROMPT_PATH, description="Path to system prompt file")

    def __init__(self, **kwargs):
        config_path = Path(kwargs.get("config_file_path", DEFAULT_CONFIG_PATH))
        prompt_path = Path(kwargs.get("system_prompt_path", DEFAULT_SYSTEM_PROMPT_PATH))

        config_data = self._load_yaml_config(config_path)
        system_prompt = self._load_system_prompt(prompt_path)

        # Explicit kwargs win over file contents
        merged_data = {**config_data, "system_prompt": system_prompt, **kwargs}

        super().__init__(**merged_data)

    @staticmethod
    def _load_yaml_config(config_path: Path) -> Dict[str, Any]:
        """Load configuration from YAML file."""
        if not config_path.exists():
            return {
                "agent_config": AgentConfig(),
                "client_config": ClientConfig()
            }

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                yaml_data = yaml.safe_load(f) or {}

            agent_data = yaml_data.get('agent_config', {}) or {}
            client_data = yaml_data.get('client_config', {}) or {}

            return {
                "agent_config": AgentConfig(**agent_data),
                "client_config": ClientConfig(**client_data)
            }

        except Exception as e:
            raise ValueError(f"Failed to load YAML config from {config_path}: {e}")

    @staticmethod
    def _load_system_prompt(prompt_path: Path) -> str:
        """Load the guardrail prompt from a markdown file."""
        if not prompt_path.exists():
            return GUARDRAIL_PROMPT

        try:
            with open(prompt_path, 'r', encoding='utf-8') as f:
                return f.read().strip() or GUARDRAIL_PROMPT
        except OSError as e:
            raise ValueError(f"Failed to load system prompt from {prompt_path}: {e}")

    @field_validator('log_level', mode='before')
    @classmethod
    def normalize_log_level(cls, v):
        return str(v).strip().upper() if v else "INFO"

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level

    def get_request_headers(self) -> Dict[str, str]:
        """Headers for a streaming agent request."""
        return {
            "Accept": "text/event-stream",
            "Content-Type": "application/json",
            **self.client_config.extra_headers,
        }

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"
        validate_assignment = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def reload_settings() -> Settings:
    """Reload settings (clears cache)."""
    get_settings.cache_clear()
    return get_settings()
