"""
Exception hierarchy for the planner.

Everything raised out of ``PlanningLoop.run`` is a ``PlannerError``; each
subclass marks a fatal condition.  Recoverable conditions never raise, they
become corrective messages in the conversation.
"""


class PlannerError(Exception):
    """Base class for fatal planner failures."""


class SetupError(PlannerError):
    """Raised when a run cannot start (e.g. the tool catalog is unavailable)."""


class InvocationError(PlannerError):
    """Raised when the model transport fails."""


class RunCancelledError(PlannerError):
    """Raised when a run is cancelled or times out while awaiting the model."""


class ProtocolError(PlannerError):
    """Raised when the model returns neither tool calls nor text."""


class ToolNotFoundError(PlannerError):
    """Raised when the model requests a tool absent from the registry."""

    def __init__(self, name: str):
        super().__init__(f"tool {name!r} not found in registry")
        self.name = name


class NotificationError(Exception):
    """Raised when a notification cannot be delivered."""
