"""
FastAPI server module for Pantry Planner.
"""

from .main import app, create_app

__all__ = ["app", "create_app"]
