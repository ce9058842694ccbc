"""
Raw state sources for pantry and recipe data.

A store only knows how to produce bytes; parsing belongs to the tools and
to ``pantry_planner.inventory``.
"""

from pathlib import Path
from typing import Optional, Protocol, Union


class StateStore(Protocol):
    """Anything that can load a JSON document as bytes."""

    def load(self) -> bytes: ...


class FileStateStore:
    """Reads state from a file on disk on every load."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> bytes:
        return self.path.read_bytes()

    def __repr__(self) -> str:
        return f"FileStateStore({str(self.path)!r})"


class InMemoryStateStore:
    """Fixed in-memory state, optionally failing every load (for tests)."""

    def __init__(self, data: Union[bytes, str] = b"", error: Optional[Exception] = None):
        self._data = data.encode("utf-8") if isinstance(data, str) else data
        self._error = error

    def load(self) -> bytes:
        if self._error is not None:
            raise self._error
        return self._data
