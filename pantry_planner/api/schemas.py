"""
Pydantic schemas for the planning API.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field

from ..models.plan import MealPlan


class PlanRequest(BaseModel):
    """Request body for /v1/plan."""

    task: str = Field(..., min_length=1, description="Natural-language planning task")
    max_iterations: Optional[int] = Field(
        default=None, ge=1, le=50, description="Iteration budget (default from config)"
    )
    include_trace: bool = Field(default=False, description="Include per-iteration trace")


class TraceStep(BaseModel):
    """One iteration of the planning loop."""

    iteration: int
    action: str
    detail: list[str] = Field(default_factory=list)


class PlanResponse(BaseModel):
    """Response body for /v1/plan. ``plan`` is null when no plan converged."""

    plan: Optional[MealPlan] = None
    converged: bool
    iterations: int
    trace: Optional[list[TraceStep]] = None


class HealthResponse(BaseModel):
    """Response body for /health endpoint."""

    status: Literal["healthy", "unhealthy"]
    version: str
    backend: str
