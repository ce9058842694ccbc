"""
Pytest configuration and fixtures for Pantry Planner tests.
"""

import copy
import json

import pytest

from pantry_planner.config import reset_config_cache
from pantry_planner.inventory import Pantry, RecipeCatalog
from pantry_planner.models.plan import MealPlan
from pantry_planner.storage import InMemoryStateStore
from pantry_planner.tools import build_default_registry
from pantry_planner.tracing import shutdown_tracing

PANTRY_DATA = {
    "ingredients": [
        {"name": "black beans", "qty": 4, "unit": "can", "perishable_days": 0},
        {"name": "onion", "qty": 3, "unit": "count", "perishable_days": 14, "added_day": 0},
        {"name": "tomato", "qty": 6, "unit": "count", "perishable_days": 5, "added_day": 0},
        {"name": "chili powder", "qty": 50, "unit": "g"},
        {"name": "rice", "qty": 1000, "unit": "g"},
        {"name": "egg", "qty": 12, "unit": "count", "perishable_days": 21, "added_day": 0},
        {"name": "spinach", "qty": 300, "unit": "g", "days_left": 2},
    ]
}

RECIPES_DATA = [
    {
        "id": "dinner_bean_chili",
        "name": "Bean Chili",
        "servings": 2,
        "meal_types": ["dinner"],
        "ingredients": [
            {"name": "black beans", "qty": 1, "unit": "can"},
            {"name": "onion", "qty": 1, "unit": "count"},
            {"name": "tomato", "qty": 2, "unit": "count"},
            {"name": "chili powder", "qty": 10, "unit": "g"},
            {"name": "sour cream", "qty": 50, "unit": "g", "optional": True},
        ],
    },
    {
        "id": "dinner_spinach_rice",
        "name": "Spinach Fried Rice",
        "servings": 2,
        "meal_types": ["dinner", "lunch"],
        "ingredients": [
            {"name": "rice", "qty": 200, "unit": "g"},
            {"name": "spinach", "qty": 150, "unit": "g"},
            {"name": "egg", "qty": 2, "unit": "count"},
            {"name": "onion", "qty": 1, "unit": "count"},
        ],
    },
    {
        "id": "breakfast_scramble",
        "name": "Egg Scramble",
        "servings": 1,
        "meal_types": ["breakfast"],
        "ingredients": [
            {"name": "egg", "qty": 3, "unit": "count"},
            {"name": "tomato", "qty": 1, "unit": "count"},
        ],
    },
]

FEASIBLE_PLAN = {
    "summary": "Bean chili on day 1.",
    "days_planned": [
        {"day": 1, "meals": [{"id": "dinner_bean_chili", "name": "Bean Chili", "servings": 2}]}
    ],
}


@pytest.fixture(autouse=True)
def reset_global_state():
    """Reset cached configuration and the tracing singleton around each test."""
    reset_config_cache()
    yield
    reset_config_cache()
    shutdown_tracing()


@pytest.fixture
def pantry_data():
    return copy.deepcopy(PANTRY_DATA)


@pytest.fixture
def recipes_data():
    return copy.deepcopy(RECIPES_DATA)


@pytest.fixture
def pantry(pantry_data):
    return Pantry.from_json(pantry_data)


@pytest.fixture
def catalog(recipes_data):
    return RecipeCatalog.from_json(recipes_data)


@pytest.fixture
def pantry_store(pantry_data):
    return InMemoryStateStore(json.dumps(pantry_data))


@pytest.fixture
def recipe_store(recipes_data):
    return InMemoryStateStore(json.dumps(recipes_data))


@pytest.fixture
def registry(pantry_store, recipe_store):
    return build_default_registry(pantry_store, recipe_store)


@pytest.fixture
def feasible_plan_json():
    return json.dumps(FEASIBLE_PLAN)


@pytest.fixture
def make_plan():
    """Factory: make_plan([(day, [(id, servings), ...]), ...]) -> MealPlan."""

    def _make(days, summary="test plan"):
        return MealPlan.model_validate(
            {
                "summary": summary,
                "days_planned": [
                    {
                        "day": day,
                        "meals": [
                            {"id": meal_id, "name": meal_id, "servings": servings}
                            for meal_id, servings in meals
                        ],
                    }
                    for day, meals in days
                ],
            }
        )

    return _make
