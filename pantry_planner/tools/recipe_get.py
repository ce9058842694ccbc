"""
recipe_get tool

Returns recipes, optionally filtered by meal type.
"""

import json
import logging
from typing import Optional

from ..storage import StateStore

logger = logging.getLogger(__name__)

NAME = "recipe_get"
TITLE = "Get Recipes"
DESCRIPTION = "Gets recipes filtered by meal types (optional)."
INPUT_SCHEMA = {
    "type": "object",
    "properties": {
        "meal_types": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Only return recipes tagged with any of these meal types.",
        },
    },
}


def load_recipes(store: StateStore) -> list[dict]:
    """Load the raw recipe list from ``store``."""
    try:
        recipes = json.loads(store.load())
    except OSError as e:
        raise RuntimeError(f"read recipes: {e}") from e
    except ValueError as e:
        raise RuntimeError(f"parse recipes: {e}") from e
    if not isinstance(recipes, list):
        raise RuntimeError("parse recipes: expected a JSON array")
    return [r for r in recipes if isinstance(r, dict)]


def get_recipes(store: StateStore, meal_types: Optional[list] = None) -> dict:
    """Return ``{"recipes": [...]}``, keeping recipes that share a meal type."""
    recipes = load_recipes(store)
    wanted = {m for m in meal_types or [] if isinstance(m, str) and m}
    if not wanted:
        return {"recipes": recipes}

    selected = []
    for recipe in recipes:
        tags = recipe.get("meal_types")
        if isinstance(tags, list) and any(t in wanted for t in tags if isinstance(t, str)):
            selected.append(recipe)
    logger.debug("recipe_get: %d of %d recipe(s) match %s", len(selected), len(recipes), sorted(wanted))
    return {"recipes": selected}


def make_handler(store: StateStore):
    """Bind the tool handler to a recipe store."""

    def _handle_recipe_get(params: dict) -> dict:
        meal_types = params.get("meal_types")
        if not isinstance(meal_types, list):
            meal_types = None
        return get_recipes(store, meal_types)

    return _handle_recipe_get
