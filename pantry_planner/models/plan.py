"""
Meal plan schema.

The pydantic models describe the wire shape of a candidate plan; the
plan invariants (non-empty days, positive servings, ...) are checked
separately by ``MealPlan.invariant_violations`` so that the feasibility
checker can still reason about a plan that parsed but is ill-formed.
Field types are strict: a quoted number or a boolean is never read as an
integer day or serving count.
"""

from pydantic import BaseModel, ConfigDict, Field

MAX_SUMMARY_CHARS = 400


class Meal(BaseModel):
    """A single meal: a recipe id and the servings to cook."""

    model_config = ConfigDict(frozen=True, strict=True)

    id: str = Field(..., description="Recipe id (from recipe_get).")
    name: str = Field(..., description="Recipe name.")
    servings: int = Field(..., description="Servings to cook for this meal.")


class DayPlan(BaseModel):
    """Meals planned for one day."""

    model_config = ConfigDict(frozen=True, strict=True)

    day: int = Field(..., description="1-based day number.")
    meals: list[Meal] = Field(default_factory=list)


class MealPlan(BaseModel):
    """A candidate final plan emitted by the model."""

    model_config = ConfigDict(frozen=True, strict=True)

    summary: str = Field(..., description="Overview of the plan (<= 400 chars).")
    days_planned: list[DayPlan] = Field(default_factory=list)

    def invariant_violations(self) -> list[str]:
        """Return a description of every invariant this plan breaks."""
        problems: list[str] = []
        if len(self.summary) > MAX_SUMMARY_CHARS:
            problems.append(
                f"summary exceeds {MAX_SUMMARY_CHARS} characters ({len(self.summary)})"
            )
        if not self.days_planned:
            problems.append("days_planned must be non-empty")
        for index, day in enumerate(self.days_planned):
            if day.day < 1:
                problems.append(f"days_planned[{index}].day must be >= 1")
            if not day.meals:
                problems.append(f"days_planned[{index}].meals must be non-empty")
            for meal_index, meal in enumerate(day.meals):
                where = f"days_planned[{index}].meals[{meal_index}]"
                if not meal.id.strip():
                    problems.append(f"{where}.id must be non-empty")
                if not meal.name.strip():
                    problems.append(f"{where}.name must be non-empty")
                if meal.servings <= 0:
                    problems.append(f"{where}.servings must be positive")
        return problems
