"""
Pantry Planner Tools Package

Available tools:
- pantry_get: pantry quantities with freshness
- recipe_get: recipe catalog, optionally filtered by meal type
"""

from ..storage import StateStore
from . import pantry_get, recipe_get
from .registry import ToolDefinition, ToolRegistry


def build_default_registry(pantry_store: StateStore, recipe_store: StateStore) -> ToolRegistry:
    """Create a registry holding pantry_get and recipe_get bound to the stores."""
    registry = ToolRegistry()
    registry.register(
        name=pantry_get.NAME,
        title=pantry_get.TITLE,
        description=pantry_get.DESCRIPTION,
        input_schema=pantry_get.INPUT_SCHEMA,
        handler=pantry_get.make_handler(pantry_store),
    )
    registry.register(
        name=recipe_get.NAME,
        title=recipe_get.TITLE,
        description=recipe_get.DESCRIPTION,
        input_schema=recipe_get.INPUT_SCHEMA,
        handler=recipe_get.make_handler(recipe_store),
    )
    return registry


__all__ = [
    "ToolDefinition",
    "ToolRegistry",
    "build_default_registry",
]
