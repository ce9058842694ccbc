"""
Feasibility check for candidate meal plans.

Aggregates the ingredient demand of a whole plan and compares it against
the pantry.  Units must match exactly; there is no unit conversion.  The
plan is treated as one-shot demand: stock is not depleted day by day.
"""

import json
import logging
from dataclasses import dataclass, field

from .inventory import Pantry, RecipeCatalog, RecipeIngredient, normalize_name
from .models.plan import MealPlan

logger = logging.getLogger(__name__)

EPSILON = 1e-9

EMPTY_PLAN_PROBLEM = "days_planned must be non-empty"


@dataclass(frozen=True)
class FeasibilityReport:
    """Outcome of a feasibility check. ``problems`` is sorted."""

    feasible: bool
    problems: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {"feasible": self.feasible, "problems": list(self.problems)}


@dataclass
class _Demand:
    qty: float = 0.0
    unit: str = ""


@dataclass
class _IndexedRecipe:
    base_servings: int
    needs: list[RecipeIngredient] = field(default_factory=list)


def _q(value: str) -> str:
    """Double-quote a string for problem messages."""
    return json.dumps(value, ensure_ascii=False)


def _fmt(qty: float) -> str:
    return f"{qty:.4g}"


def _index_recipes(catalog: RecipeCatalog, problems: list[str]) -> dict[str, _IndexedRecipe]:
    """Index the catalog, flagging malformed recipes as it goes."""
    index: dict[str, _IndexedRecipe] = {}
    for recipe in catalog:
        base = recipe.servings
        if base <= 0:
            problems.append(f"recipe {_q(recipe.id)} has invalid base servings")
            base = 1
        for need in recipe.ingredients:
            if need.name and not need.optional:
                if not need.unit:
                    problems.append(
                        f"recipe {_q(recipe.id)} ingredient {_q(need.name)} missing unit"
                    )
                if not need.qty > 0:
                    problems.append(
                        f"recipe {_q(recipe.id)} ingredient {_q(need.name)} has non-positive qty"
                    )
        index[recipe.id] = _IndexedRecipe(base_servings=base, needs=list(recipe.ingredients))
    return index


def _aggregate_demand(
    plan: MealPlan,
    recipes: dict[str, _IndexedRecipe],
    problems: list[str],
) -> dict[str, _Demand]:
    """Sum scaled ingredient quantities over every meal of the plan."""
    required: dict[str, _Demand] = {}
    conflicted: set[str] = set()
    unknown_ids: set[str] = set()
    non_positive: set[str] = set()

    for day in plan.days_planned:
        for meal in day.meals:
            recipe = recipes.get(meal.id)
            if recipe is None:
                if meal.id not in unknown_ids:
                    problems.append(f"unknown recipe id: {_q(meal.id)}")
                    unknown_ids.add(meal.id)
                continue
            if meal.servings <= 0:
                if meal.id not in non_positive:
                    problems.append(f"meal {_q(meal.id)} has non-positive servings")
                    non_positive.add(meal.id)
                continue

            scale = meal.servings / recipe.base_servings
            for need in recipe.needs:
                # Malformed needs were flagged while indexing.
                if not need.name or not need.unit or not need.qty > 0:
                    continue
                if need.optional:
                    continue
                name = normalize_name(need.name)
                current = required.setdefault(name, _Demand())
                if current.unit and current.unit != need.unit:
                    if name not in conflicted:
                        problems.append(
                            f"unit conflict for {_q(name)} "
                            f"({current.unit} vs {need.unit})"
                        )
                        conflicted.add(name)
                    continue
                current.unit = need.unit
                current.qty += need.qty * scale
    return required


def check_feasibility(
    plan: MealPlan,
    pantry: Pantry,
    catalog: RecipeCatalog,
) -> FeasibilityReport:
    """
    Check that ``plan`` can be cooked from ``pantry`` using ``catalog``.

    Args:
        plan: Parsed candidate plan (invariants not required to hold).
        pantry: Available stock snapshot.
        catalog: Recipe snapshot.

    Returns:
        FeasibilityReport whose problems are sorted lexicographically.
    """
    if not plan.days_planned:
        return FeasibilityReport(feasible=False, problems=(EMPTY_PLAN_PROBLEM,))

    problems: list[str] = []
    recipes = _index_recipes(catalog, problems)
    required = _aggregate_demand(plan, recipes, problems)

    for name, demand in required.items():
        if not demand.qty > 0:
            continue
        stock = pantry.get(name)
        if stock is None:
            problems.append(
                f"missing ingredient: {name} (need {_fmt(demand.qty)} {demand.unit})"
            )
            continue
        if stock.unit != demand.unit:
            problems.append(
                f"unit mismatch: {name} (need {demand.unit}, have {stock.unit})"
            )
            continue
        if stock.qty + EPSILON < demand.qty:
            problems.append(
                f"insufficient {name} (need {_fmt(demand.qty)} {demand.unit}, "
                f"have {_fmt(stock.qty)} {stock.unit})"
            )

    problems.sort()
    if problems:
        logger.debug("Plan infeasible: %d problem(s)", len(problems))
    return FeasibilityReport(feasible=not problems, problems=tuple(problems))
