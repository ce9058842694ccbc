"""
Configuration models for Pantry Planner.

Defines dataclasses for the YAML configuration file.
"""

from dataclasses import dataclass, field


def _default_data_tools() -> list[str]:
    return ["pantry_get", "recipe_get"]


@dataclass
class AgentConfig:
    """Configuration for the planning loop and its data sources."""
    max_iterations: int = 10
    repetition_threshold: int = 2
    data_tools: list[str] = field(default_factory=_default_data_tools)
    pantry_path: str = "artifacts/pantry.json"
    recipes_path: str = "artifacts/recipes.json"
    log_dir: str = "logs"


@dataclass
class ModelConfig:
    """Configuration for the planner model backend."""
    backend: str = "mock"
    model_id: str = "mock"
    base_url: str = "http://localhost:11434"
    api_key: str = ""
    temperature: float = 0.2
    top_p: float = 0.9
    max_tokens: int = 1024
    timeout: float = 120.0
    num_ctx: int = 16384


@dataclass
class ServerConfig:
    """Configuration for the FastAPI server."""
    host: str = "0.0.0.0"
    port: int = 8000


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"


@dataclass
class LangfuseConfig:
    """Configuration for Langfuse observability.

    Tracing auto-enables when both public_key and secret_key are provided.
    """
    enabled: bool = False
    public_key: str = ""
    secret_key: str = ""
    host: str = "https://cloud.langfuse.com"
    debug: bool = False

    @property
    def is_configured(self) -> bool:
        """Check if Langfuse is configured (both keys present)."""
        return bool(self.public_key and self.secret_key)


@dataclass
class NotifyConfig:
    """Configuration for Slack notification of finished plans."""
    slack_webhook_url: str = ""
    slack_channel: str = "#general"


@dataclass
class AppConfig:
    """
    Unified application configuration container.

    Holds all configuration sections loaded from config/config.yaml.
    """
    version: str = "1.0"
    agent: AgentConfig = field(default_factory=AgentConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    langfuse: LangfuseConfig = field(default_factory=LangfuseConfig)
    notify: NotifyConfig = field(default_factory=NotifyConfig)

    @property
    def log_level(self) -> str:
        return self.logging.level
