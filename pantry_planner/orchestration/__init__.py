"""
Agent control loop for meal planning.

The loop invokes the model, suppresses repeated data-gathering calls,
dispatches tools and only accepts a final plan that is well-formed and
fits the pantry.
"""

from .dispatcher import ToolDispatcher
from .guard import RepetitionGuard
from .loop import PlanningLoop, PlanningStep
from .validator import Candidate, Recoverable, classify_final, looks_like_final

__all__ = [
    "ToolDispatcher",
    "RepetitionGuard",
    "PlanningLoop",
    "PlanningStep",
    "Candidate",
    "Recoverable",
    "classify_final",
    "looks_like_final",
]
