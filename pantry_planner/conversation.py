"""
Conversation data model.

A conversation is an append-only list of messages.  Each message carries an
ordered tuple of content parts: plain text, a tool-call request, or a tool
result.  Model backends translate these into their own wire formats.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Optional, Union

ROLE_SYSTEM = "system"
ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
ROLE_TOOL = "tool"

ROLES = (ROLE_SYSTEM, ROLE_USER, ROLE_ASSISTANT, ROLE_TOOL)


def new_call_id() -> str:
    """Generate an opaque tool-call id for backends that do not supply one."""
    return f"call_{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class ToolCall:
    """A tool invocation requested by the model."""

    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    call_id: str = field(default_factory=new_call_id)

    def to_dict(self) -> dict:
        return {"name": self.name, "input": self.arguments, "tool_use_id": self.call_id}


@dataclass(frozen=True)
class ToolOutcome:
    """Result of dispatching one ToolCall: a payload or an error message."""

    call_id: str
    tool_name: str
    payload: Optional[dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def result_data(self) -> dict[str, Any]:
        """Data fed back to the model for this call."""
        if self.error is not None:
            return {"error": self.error}
        return self.payload or {}


@dataclass(frozen=True)
class TextPart:
    text: str
    type: str = "text"


@dataclass(frozen=True)
class ToolCallPart:
    call: ToolCall
    type: str = "tool_use"


@dataclass(frozen=True)
class ToolResultPart:
    outcome: ToolOutcome
    type: str = "tool_result"


ContentPart = Union[TextPart, ToolCallPart, ToolResultPart]


@dataclass(frozen=True)
class Message:
    """A single conversation message."""

    role: str
    parts: tuple[ContentPart, ...]

    def __post_init__(self):
        if self.role not in ROLES:
            raise ValueError(f"Unknown message role: {self.role}")

    @classmethod
    def text(cls, role: str, text: str) -> "Message":
        return cls(role=role, parts=(TextPart(text),))

    @property
    def text_content(self) -> str:
        """Concatenated text parts."""
        return "".join(p.text for p in self.parts if isinstance(p, TextPart))

    @property
    def tool_calls(self) -> list[ToolCall]:
        return [p.call for p in self.parts if isinstance(p, ToolCallPart)]

    @property
    def tool_outcomes(self) -> list[ToolOutcome]:
        return [p.outcome for p in self.parts if isinstance(p, ToolResultPart)]

    def to_dict(self) -> dict:
        """Backend-neutral JSON form, used for iteration logs."""
        content: list[dict] = []
        for part in self.parts:
            if isinstance(part, TextPart):
                content.append({"type": part.type, "text": part.text})
            elif isinstance(part, ToolCallPart):
                content.append(
                    {
                        "type": part.type,
                        "tool_use_id": part.call.call_id,
                        "tool_name": part.call.name,
                        "data": part.call.arguments,
                    }
                )
            else:
                content.append(
                    {
                        "type": part.type,
                        "tool_use_id": part.outcome.call_id,
                        "tool_name": part.outcome.tool_name,
                        "data": part.outcome.result_data(),
                    }
                )
        return {"role": self.role, "content": content}


class Conversation:
    """Append-only message history owned by a single run."""

    def __init__(self, messages: Optional[list[Message]] = None):
        self._messages: list[Message] = list(messages or [])

    def append(self, message: Message) -> None:
        self._messages.append(message)

    def append_text(self, role: str, text: str) -> None:
        self.append(Message.text(role, text))

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self):
        return iter(tuple(self._messages))

    def has_tool_result(self, tool_name: str) -> bool:
        """True if any message carries a result for ``tool_name``."""
        return any(
            outcome.tool_name == tool_name
            for message in self._messages
            for outcome in message.tool_outcomes
        )

    def to_list(self) -> list[dict]:
        return [m.to_dict() for m in self._messages]
