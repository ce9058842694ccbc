"""
Data models for Pantry Planner.
"""

from .config import (
    AgentConfig,
    AppConfig,
    LangfuseConfig,
    LoggingConfig,
    ModelConfig,
    NotifyConfig,
    ServerConfig,
)
from .plan import DayPlan, Meal, MealPlan, MAX_SUMMARY_CHARS

__all__ = [
    "AgentConfig",
    "AppConfig",
    "LangfuseConfig",
    "LoggingConfig",
    "ModelConfig",
    "NotifyConfig",
    "ServerConfig",
    "DayPlan",
    "Meal",
    "MealPlan",
    "MAX_SUMMARY_CHARS",
]
