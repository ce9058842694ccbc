"""
Per-iteration records of a planning run and the sinks that store them.

The loop hands one ``IterationRecord`` to ``log_iteration`` per iteration.
``FileIterationLogger`` buffers them and writes a single coordination
session document on ``flush()``.
"""

import json
import logging
import os
import sys
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Protocol, TextIO

logger = logging.getLogger(__name__)


@dataclass
class ToolCallRecord:
    name: str
    input: dict[str, Any]
    output: Optional[Any] = None
    error: Optional[str] = None


@dataclass
class IterationRecord:
    """Everything that happened in one loop iteration."""

    iteration: int
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    llm_input: Optional[Any] = None
    llm_output: Optional[Any] = None
    tool_calls: list[ToolCallRecord] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        if not self.tool_calls:
            data.pop("tool_calls")
        if self.error is None:
            data.pop("error")
        return data


class IterationLogger(Protocol):
    def log_iteration(self, record: IterationRecord) -> None: ...


class NoOpIterationLogger:
    """Discards every record."""

    def log_iteration(self, record: IterationRecord) -> None:
        pass


class StdoutIterationLogger:
    """Writes one JSON line per iteration."""

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream or sys.stdout

    def log_iteration(self, record: IterationRecord) -> None:
        self._stream.write(json.dumps(record.to_dict(), default=str) + "\n")
        self._stream.flush()


class FileIterationLogger:
    """
    Buffers records and writes them as one session document.

    Output shape::

        {"coordination_session": {"timestamp": "...", "iterations": [...]}}
    """

    def __init__(self, stream: TextIO):
        self._stream = stream
        self._records: list[IterationRecord] = []

    @property
    def records(self) -> list[IterationRecord]:
        return list(self._records)

    def log_iteration(self, record: IterationRecord) -> None:
        self._records.append(record)

    def flush(self) -> None:
        """Write buffered records to the stream and clear the buffer."""
        session = {
            "coordination_session": {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "iterations": [r.to_dict() for r in self._records],
            }
        }
        json.dump(session, self._stream, indent=2, default=str)
        self._stream.write("\n")
        self._stream.flush()
        logger.debug("Flushed %d iteration record(s)", len(self._records))
        self._records = []


def new_log_file_path(model_id: str, log_dir: str = "logs") -> str:
    """``<log_dir>/<unix-ts>.<model id, lowercased, ':' -> '_'>.json``"""
    safe_model = model_id.lower().replace(":", "_")
    return os.path.join(log_dir, f"{int(time.time())}.{safe_model}.json")
