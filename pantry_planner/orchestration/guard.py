"""
Repetition guard for data-gathering tools.
"""

import logging
from collections import Counter
from typing import Iterable, Optional, Sequence

from ..conversation import ToolCall
from .validator import EXCESSIVE_TOOL_REPETITION, Recoverable

logger = logging.getLogger(__name__)

# Suppress a data tool once it has been requested more than this many times.
DEFAULT_REPETITION_THRESHOLD = 2
DEFAULT_DATA_TOOLS = ("pantry_get", "recipe_get")


class RepetitionGuard:
    """
    Per-run invocation counts.

    When a data-retrieval tool is requested more than ``threshold`` times
    the whole batch is rejected and nothing is dispatched.  Counts keep
    growing across rejected batches, so a model that keeps asking keeps
    being refused.
    """

    def __init__(
        self,
        threshold: int = DEFAULT_REPETITION_THRESHOLD,
        data_tools: Iterable[str] = DEFAULT_DATA_TOOLS,
    ):
        self.threshold = threshold
        self.data_tools = frozenset(data_tools)
        self._counts: Counter[str] = Counter()

    def count(self, tool_name: str) -> int:
        return self._counts[tool_name]

    def check(self, calls: Sequence[ToolCall]) -> Optional[Recoverable]:
        """Record ``calls``; return a corrective outcome if the batch must be dropped."""
        for call in calls:
            self._counts[call.name] += 1
            if call.name in self.data_tools and self._counts[call.name] > self.threshold:
                logger.warning(
                    "Excessive tool repetition: %s requested %d times",
                    call.name,
                    self._counts[call.name],
                )
                return Recoverable(
                    reason=EXCESSIVE_TOOL_REPETITION,
                    hint=(
                        f"You've already gathered data with {', '.join(sorted(self.data_tools))} "
                        "multiple times. Use the existing data to select feasible recipes that fit "
                        "the available ingredients and provide the final JSON plan directly."
                    ),
                    log_error="excessive tool repetition",
                )
        return None
