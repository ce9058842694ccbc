"""Small shared helpers."""

from .cancel import CancellationToken

__all__ = ["CancellationToken"]
