"""
Pantry and recipe snapshots.

Pantry and recipe data arrive as loosely-typed JSON (quantities may be
ints, floats or numeric strings; flags may be missing).  This module
normalizes them once, at the boundary, into small frozen records that
the feasibility checker can trust.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Iterator, Mapping, Optional

logger = logging.getLogger(__name__)


def as_str(value: Any, default: str = "") -> str:
    """Return ``value`` if it is a string, else ``default``."""
    return value if isinstance(value, str) else default


def as_float(value: Any, default: float = 0.0) -> float:
    """Coerce a JSON number (or numeric string) to float."""
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return default
    return default


def as_int(value: Any, default: int = 0) -> int:
    """Coerce a JSON number to int, truncating floats."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, (float, str)):
        number = as_float(value, float("nan"))
        if number != number:  # NaN
            return default
        return int(number)
    return default


def as_bool(value: Any, default: bool = False) -> bool:
    """Return ``value`` if it is a real JSON boolean, else ``default``."""
    return value if isinstance(value, bool) else default


def normalize_name(name: str) -> str:
    """Canonical ingredient key: trimmed and lower-cased."""
    return name.strip().lower()


@dataclass(frozen=True)
class PantryItem:
    """Available stock of one ingredient."""

    name: str
    qty: float
    unit: str


class Pantry:
    """Read-only ingredient ledger keyed by case-insensitive name."""

    def __init__(self, items: Optional[Mapping[str, PantryItem]] = None):
        self._items: dict[str, PantryItem] = {
            normalize_name(name): item for name, item in (items or {}).items()
        }

    @classmethod
    def from_json(cls, data: Any) -> "Pantry":
        """
        Build a pantry from ``{"ingredients": [{name, qty, unit}, ...]}``.

        Entries without a name are ignored; a later entry with the same
        (case-insensitive) name replaces an earlier one.
        """
        items: dict[str, PantryItem] = {}
        raw_items = data.get("ingredients") if isinstance(data, dict) else None
        if not isinstance(raw_items, list):
            return cls(items)
        for raw in raw_items:
            if not isinstance(raw, dict):
                continue
            name = normalize_name(as_str(raw.get("name")))
            if not name:
                continue
            items[name] = PantryItem(
                name=name,
                qty=as_float(raw.get("qty")),
                unit=as_str(raw.get("unit")).strip(),
            )
        return cls(items)

    @classmethod
    def from_bytes(cls, raw: bytes) -> "Pantry":
        return cls.from_json(json.loads(raw))

    def get(self, name: str) -> Optional[PantryItem]:
        return self._items.get(normalize_name(name))

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and normalize_name(name) in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[PantryItem]:
        return iter(self._items.values())


@dataclass(frozen=True)
class RecipeIngredient:
    name: str
    qty: float
    unit: str
    optional: bool = False


@dataclass(frozen=True)
class Recipe:
    """A recipe and the ingredients it needs for ``servings`` portions."""

    id: str
    name: str
    servings: int
    ingredients: tuple[RecipeIngredient, ...] = ()
    meal_types: tuple[str, ...] = ()


class RecipeCatalog:
    """Read-only recipe index keyed by recipe id."""

    def __init__(self, recipes: Optional[list[Recipe]] = None):
        self._recipes: dict[str, Recipe] = {}
        for recipe in recipes or []:
            self._recipes[recipe.id] = recipe

    @classmethod
    def from_json(cls, data: Any) -> "RecipeCatalog":
        """
        Build a catalog from a list of recipe objects.

        A top-level ``{"recipes": [...]}`` wrapper (the recipe_get tool
        output) is accepted as well.  Recipes without an id are skipped.
        Base servings are kept as given, even when non-positive; the
        feasibility checker decides how to treat them.
        """
        if isinstance(data, dict):
            data = data.get("recipes")
        if not isinstance(data, list):
            return cls([])

        recipes: list[Recipe] = []
        for raw in data:
            if not isinstance(raw, dict):
                continue
            recipe_id = as_str(raw.get("id")).strip()
            if not recipe_id:
                logger.debug("Skipping recipe without id: %s", as_str(raw.get("name")))
                continue
            ingredients = []
            raw_ingredients = raw.get("ingredients")
            if isinstance(raw_ingredients, list):
                for item in raw_ingredients:
                    if not isinstance(item, dict):
                        continue
                    ingredients.append(
                        RecipeIngredient(
                            name=normalize_name(as_str(item.get("name"))),
                            qty=as_float(item.get("qty")),
                            unit=as_str(item.get("unit")).strip(),
                            optional=as_bool(item.get("optional")),
                        )
                    )
            meal_types = raw.get("meal_types")
            recipes.append(
                Recipe(
                    id=recipe_id,
                    name=as_str(raw.get("name")),
                    servings=as_int(raw.get("servings")),
                    ingredients=tuple(ingredients),
                    meal_types=tuple(
                        m for m in meal_types if isinstance(m, str)
                    ) if isinstance(meal_types, list) else (),
                )
            )
        return cls(recipes)

    @classmethod
    def from_bytes(cls, raw: bytes) -> "RecipeCatalog":
        return cls.from_json(json.loads(raw))

    def get(self, recipe_id: str) -> Optional[Recipe]:
        return self._recipes.get(recipe_id)

    def __contains__(self, recipe_id: object) -> bool:
        return recipe_id in self._recipes

    def __len__(self) -> int:
        return len(self._recipes)

    def __iter__(self) -> Iterator[Recipe]:
        return iter(self._recipes.values())
