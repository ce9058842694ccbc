"""
Pantry Planner - tool-calling meal planning agent

This package provides:
- A bounded planning loop that only accepts pantry-feasible meal plans
- pantry_get / recipe_get tools over file-backed state
- Model backends (scripted mock, OpenAI-compatible, Ollama)
- CLI and FastAPI entry points
"""

__version__ = "0.1.0"

from .feasibility import FeasibilityReport, check_feasibility
from .orchestration import PlanningLoop
from .planner import build_planner

__all__ = [
    "FeasibilityReport",
    "PlanningLoop",
    "build_planner",
    "check_feasibility",
]
