"""API route modules."""

from . import health, plan

__all__ = ["health", "plan"]
