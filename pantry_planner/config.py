"""
Configuration loader for Pantry Planner.

Loads configuration from a YAML file with support for environment
variable interpolation.  A ``.env`` file is read first so that
``${VAR}`` references can be satisfied from it.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from .models import (
    AgentConfig,
    AppConfig,
    LangfuseConfig,
    LoggingConfig,
    ModelConfig,
    NotifyConfig,
    ServerConfig,
)

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "config.yaml"

# ${VAR} or ${VAR:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")

BACKENDS = ("mock", "openai", "ollama")

_app_config: Optional[AppConfig] = None


def resolve_env_vars(value: str) -> str:
    """
    Resolve environment variable references in a string.

    Supports ${VAR} and ${VAR:-default} syntax.
    """

    def replace_match(match: re.Match) -> str:
        var_name = match.group(1)
        default_value = match.group(2) if match.group(2) is not None else ""
        return os.environ.get(var_name, default_value)

    return ENV_VAR_PATTERN.sub(replace_match, value)


def _substitute_env_vars_recursive(data: Any) -> Any:
    """Recursively substitute environment variables in a data structure."""
    if isinstance(data, dict):
        return {k: _substitute_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_substitute_env_vars_recursive(item) for item in data]
    elif isinstance(data, str):
        return resolve_env_vars(data)
    return data


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def _parse_agent_config(data: dict) -> AgentConfig:
    """Parse agent configuration from dict."""
    max_iterations = int(data.get("max_iterations", 10))
    if max_iterations <= 0:
        raise ValueError("agent.max_iterations must be a positive integer")

    threshold = int(data.get("repetition_threshold", 2))
    if threshold < 0:
        raise ValueError("agent.repetition_threshold must not be negative")

    data_tools = data.get("data_tools", ["pantry_get", "recipe_get"])
    if isinstance(data_tools, str):
        data_tools = [t.strip() for t in data_tools.split(",") if t.strip()]

    return AgentConfig(
        max_iterations=max_iterations,
        repetition_threshold=threshold,
        data_tools=list(data_tools),
        pantry_path=data.get("pantry_path", "artifacts/pantry.json"),
        recipes_path=data.get("recipes_path", "artifacts/recipes.json"),
        log_dir=data.get("log_dir", "logs"),
    )


def _parse_model_config(data: dict) -> ModelConfig:
    """Parse model backend configuration from dict."""
    backend = str(data.get("backend", "mock")).lower()
    if backend not in BACKENDS:
        raise ValueError(
            f"Unknown model backend: {backend} (expected one of {', '.join(BACKENDS)})"
        )

    return ModelConfig(
        backend=backend,
        model_id=data.get("model_id", "mock"),
        base_url=data.get("base_url", "http://localhost:11434"),
        api_key=data.get("api_key", "") or "",
        temperature=float(data.get("temperature", 0.2)),
        top_p=float(data.get("top_p", 0.9)),
        max_tokens=int(data.get("max_tokens", 1024)),
        timeout=float(data.get("timeout", 120)),
        num_ctx=int(data.get("num_ctx", 16384)),
    )


def _parse_server_config(data: dict) -> ServerConfig:
    """Parse server configuration from dict."""
    return ServerConfig(
        host=data.get("host", "0.0.0.0"),
        port=int(data.get("port", 8000)),
    )


def _parse_logging_config(data: dict) -> LoggingConfig:
    """Parse logging configuration from dict."""
    return LoggingConfig(level=str(data.get("level", "INFO")).upper())


def _parse_langfuse_config(data: dict) -> LangfuseConfig:
    """Parse Langfuse configuration from dict."""
    return LangfuseConfig(
        enabled=_as_bool(data.get("enabled", False)),
        public_key=data.get("public_key", ""),
        secret_key=data.get("secret_key", ""),
        host=data.get("host", "https://cloud.langfuse.com"),
        debug=_as_bool(data.get("debug", False)),
    )


def _parse_notify_config(data: dict) -> NotifyConfig:
    """Parse notification configuration from dict."""
    return NotifyConfig(
        slack_webhook_url=data.get("slack_webhook_url", ""),
        slack_channel=data.get("slack_channel", "#general"),
    )


def parse_app_config(raw_config: dict) -> AppConfig:
    """Build an AppConfig from an already-loaded mapping."""
    raw_config = _substitute_env_vars_recursive(raw_config)
    return AppConfig(
        version=str(raw_config.get("version", "1.0")),
        agent=_parse_agent_config(raw_config.get("agent") or {}),
        model=_parse_model_config(raw_config.get("model") or {}),
        server=_parse_server_config(raw_config.get("server") or {}),
        logging=_parse_logging_config(raw_config.get("logging") or {}),
        langfuse=_parse_langfuse_config(raw_config.get("langfuse") or {}),
        notify=_parse_notify_config(raw_config.get("notify") or {}),
    )


def load_app_config(path: Optional[str] = None, reload: bool = False) -> AppConfig:
    """
    Load application configuration from a YAML file.

    Uses a singleton pattern - subsequent calls return the cached config
    unless reload=True is specified.  A missing file yields the defaults.

    Args:
        path: Path to the YAML configuration file. If None, uses
              CONFIG_PATH env var or the default path (config/config.yaml).
        reload: If True, force reload from disk instead of using cache.

    Raises:
        ValueError: If the config is invalid
    """
    global _app_config

    if _app_config is not None and not reload:
        return _app_config

    if path is None:
        path = os.environ.get("CONFIG_PATH", str(DEFAULT_CONFIG_PATH))

    config_path = Path(path)

    if not config_path.exists():
        logger.warning("Configuration file not found at %s, using defaults", config_path)
        raw_config: dict = {}
    else:
        logger.info("Loading configuration from %s", config_path)
        with open(config_path, "r") as f:
            raw_config = yaml.safe_load(f) or {}
        if not isinstance(raw_config, dict):
            raise ValueError(f"Configuration file {config_path} must contain a mapping")

    app_config = parse_app_config(raw_config)
    _app_config = app_config

    logger.debug(
        "Configuration loaded: backend=%s, model=%s, max_iterations=%d",
        app_config.model.backend,
        app_config.model.model_id,
        app_config.agent.max_iterations,
    )
    return app_config


def reset_config_cache() -> None:
    """Reset the configuration cache, forcing a reload on next access."""
    global _app_config
    _app_config = None
    logger.debug("Configuration cache reset")
