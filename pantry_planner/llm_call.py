"""
Model invocation backends for Pantry Planner

Every backend implements the same ``ModelInvoker`` contract:

    invoke(conversation, tools, cancel_token=None) -> ModelResponse

- ScriptedInvoker: deterministic mock (and scripted responses for tests)
- OpenAIInvoker: OpenAI-compatible endpoints via the ``openai`` SDK
- OllamaInvoker: Ollama ``/api/chat`` via ``requests``
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol, Sequence, Union

import openai
import requests
from openai import OpenAI

from .conversation import (
    ROLE_ASSISTANT,
    ROLE_TOOL,
    Conversation,
    ToolCall,
    new_call_id,
)
from .errors import InvocationError, RunCancelledError
from .models.config import ModelConfig
from .prompt import ToolSpec
from .utils.cancel import CancellationToken

logger = logging.getLogger(__name__)

_decoder = json.JSONDecoder()


@dataclass
class ModelResponse:
    """What the model said: free text, tool-call requests, or both."""

    content: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    usage: Optional[dict] = None

    def to_dict(self) -> dict:
        data: dict = {}
        if self.content:
            data["content"] = self.content
        if self.tool_calls:
            data["tool_calls"] = [c.to_dict() for c in self.tool_calls]
        return data


class ModelInvoker(Protocol):
    """Contract between the planning loop and a model backend."""

    def invoke(
        self,
        conversation: Conversation,
        tools: Sequence[ToolSpec],
        cancel_token: Optional[CancellationToken] = None,
    ) -> ModelResponse: ...


def _coerce_arguments(raw) -> dict:
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str) and raw.strip():
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Failed to parse tool call arguments: %s", raw[:200])
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def _token_usage(prompt_tokens, completion_tokens) -> Optional[dict]:
    if not isinstance(prompt_tokens, int) or not isinstance(completion_tokens, int):
        return None
    return {
        "prompt_tokens": prompt_tokens,
        "completion_tokens": completion_tokens,
        "total_tokens": prompt_tokens + completion_tokens,
    }


def _raise_if_cancelled(cancel_token: Optional[CancellationToken]) -> None:
    if cancel_token is not None and cancel_token.cancelled:
        raise RunCancelledError("run cancelled before model call")


def parse_model_output(text: str) -> ModelResponse:
    """
    Split model text into tool calls and remaining content.

    Models without native tool calling embed requests as
    ``{"tool_calls": [{"name": ..., "input": {...}}]}`` objects inside
    their text.  Every such object becomes ToolCalls; any other text,
    including other JSON objects, stays in ``content``.
    """
    s = text.strip()
    content: list[str] = []
    calls: list[ToolCall] = []
    i = 0
    while i < len(s):
        start = s.find("{", i)
        if start == -1:
            content.append(s[i:])
            break
        content.append(s[i:start])
        try:
            obj, end = _decoder.raw_decode(s, start)
        except json.JSONDecodeError:
            # Malformed JSON: keep the rest as plain content
            content.append(s[start:])
            break

        raw_calls = obj.get("tool_calls") if isinstance(obj, dict) else None
        if isinstance(raw_calls, list) and raw_calls:
            for raw in raw_calls:
                if not isinstance(raw, dict) or not isinstance(raw.get("name"), str):
                    continue
                calls.append(
                    ToolCall(
                        name=raw["name"],
                        arguments=_coerce_arguments(raw.get("input", raw.get("arguments"))),
                        call_id=raw.get("tool_use_id") or new_call_id(),
                    )
                )
        else:
            content.append(s[start:end])
        i = end

    return ModelResponse(content="".join(content).strip(), tool_calls=calls)


# ---------------------------------------------------------------------------
# Scripted / mock backend
# ---------------------------------------------------------------------------

ScriptStep = Union[ModelResponse, str, Exception, Callable[[Conversation], ModelResponse]]

MOCK_FINAL_PLAN = {
    "summary": "Planned 1 dinner prioritizing items with low days_left.",
    "days_planned": [
        {
            "day": 1,
            "meals": [{"id": "dinner_bean_chili", "name": "Bean Chili", "servings": 2}],
        }
    ],
}


class ScriptedInvoker:
    """
    Deterministic invoker.

    Without a script it behaves like a well-mannered model: it requests
    pantry_get and recipe_get until both results are in the conversation,
    then returns a fixed final plan.  With a script it replays the given
    steps in order; strings are parsed with ``parse_model_output``,
    exceptions are raised and callables receive the conversation.
    """

    def __init__(
        self,
        script: Optional[Sequence[ScriptStep]] = None,
        final_plan: Optional[dict] = None,
        repeat_last: bool = False,
    ):
        self._script = list(script) if script is not None else None
        self._final_plan = final_plan or MOCK_FINAL_PLAN
        self._repeat_last = repeat_last
        self.calls: list[Conversation] = []

    def invoke(
        self,
        conversation: Conversation,
        tools: Sequence[ToolSpec],
        cancel_token: Optional[CancellationToken] = None,
    ) -> ModelResponse:
        self.calls.append(conversation)
        logger.debug("Scripted invoker called (messages=%d)", len(conversation))

        if self._script is None:
            return self._default_response(conversation)

        index = len(self.calls) - 1
        if index >= len(self._script):
            if not self._repeat_last or not self._script:
                raise InvocationError("scripted invoker has no more responses")
            index = len(self._script) - 1

        step = self._script[index]
        if isinstance(step, Exception):
            raise step
        if isinstance(step, ModelResponse):
            return step
        if isinstance(step, str):
            return parse_model_output(step)
        return step(conversation)

    def _default_response(self, conversation: Conversation) -> ModelResponse:
        if conversation.has_tool_result("pantry_get") and conversation.has_tool_result(
            "recipe_get"
        ):
            return ModelResponse(content=json.dumps(self._final_plan))
        return ModelResponse(
            tool_calls=[
                ToolCall(name="pantry_get", arguments={"current_day": 0}),
                ToolCall(name="recipe_get", arguments={"meal_types": ["dinner"]}),
            ]
        )


# ---------------------------------------------------------------------------
# OpenAI-compatible backend
# ---------------------------------------------------------------------------


def to_openai_messages(conversation: Conversation) -> list[dict]:
    """Translate a conversation into OpenAI chat messages."""
    messages: list[dict] = []
    for message in conversation:
        if message.role == ROLE_TOOL:
            for outcome in message.tool_outcomes:
                messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": outcome.call_id,
                        "content": json.dumps(outcome.result_data()),
                    }
                )
            continue

        entry: dict = {"role": message.role, "content": message.text_content}
        calls = message.tool_calls
        if message.role == ROLE_ASSISTANT and calls:
            entry["content"] = message.text_content or None
            entry["tool_calls"] = [
                {
                    "id": call.call_id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": json.dumps(call.arguments)},
                }
                for call in calls
            ]
        messages.append(entry)
    return messages


class OpenAIInvoker:
    """Native function calling against an OpenAI-compatible endpoint."""

    def __init__(self, model_config: ModelConfig, client: Optional[OpenAI] = None):
        self.model = model_config.model_id
        self.temperature = model_config.temperature
        self.top_p = model_config.top_p
        self.max_tokens = model_config.max_tokens
        self.timeout = model_config.timeout
        self._client = client or OpenAI(
            base_url=model_config.base_url or None,
            api_key=model_config.api_key or "not-needed",
            timeout=model_config.timeout,
        )

    def invoke(
        self,
        conversation: Conversation,
        tools: Sequence[ToolSpec],
        cancel_token: Optional[CancellationToken] = None,
    ) -> ModelResponse:
        create_kwargs: dict = {
            "model": self.model,
            "messages": to_openai_messages(conversation),
            "temperature": self.temperature,
            "top_p": self.top_p,
            "max_tokens": self.max_tokens,
        }
        if tools:
            create_kwargs["tools"] = [t.to_function_schema() for t in tools]

        _raise_if_cancelled(cancel_token)

        try:
            response = self._client.chat.completions.create(**create_kwargs)
        except openai.APITimeoutError as e:
            raise RunCancelledError(f"model call timed out after {self.timeout}s") from e
        except openai.OpenAIError as e:
            raise InvocationError(f"model call failed: {e}") from e

        if not response.choices:
            raise InvocationError("model returned no choices")
        message = response.choices[0].message

        calls = [
            ToolCall(
                name=tc.function.name,
                arguments=_coerce_arguments(tc.function.arguments),
                call_id=tc.id or new_call_id(),
            )
            for tc in (message.tool_calls or [])
        ]
        usage = getattr(response, "usage", None)
        return ModelResponse(
            content=message.content or "",
            tool_calls=calls,
            usage=_token_usage(
                getattr(usage, "prompt_tokens", None), getattr(usage, "completion_tokens", None)
            ),
        )

    def close(self) -> None:
        """Close the underlying OpenAI client."""
        try:
            self._client.close()
        except Exception as e:
            logger.debug("Error closing OpenAI client: %s", e)


# ---------------------------------------------------------------------------
# Ollama backend
# ---------------------------------------------------------------------------


def to_ollama_messages(conversation: Conversation) -> list[dict]:
    """Translate a conversation into Ollama chat messages."""
    messages: list[dict] = []
    for message in conversation:
        if message.role == ROLE_TOOL:
            for outcome in message.tool_outcomes:
                messages.append(
                    {
                        "role": "tool",
                        "name": outcome.tool_name,
                        "content": json.dumps(outcome.result_data()),
                    }
                )
            continue

        entry: dict = {"role": message.role, "content": message.text_content}
        if message.role == ROLE_ASSISTANT and message.tool_calls:
            entry["tool_calls"] = [
                {"function": {"name": c.name, "arguments": c.arguments}}
                for c in message.tool_calls
            ]
        messages.append(entry)
    return messages


class OllamaInvoker:
    """Native tool calling against Ollama's ``/api/chat``."""

    REPEAT_PENALTY = 1.05

    def __init__(self, model_config: ModelConfig, session: Optional[requests.Session] = None):
        self.model = model_config.model_id
        self.endpoint = model_config.base_url.rstrip("/") + "/api/chat"
        self.timeout = model_config.timeout
        self.options = {
            "temperature": model_config.temperature,
            "top_p": model_config.top_p,
            "repeat_penalty": self.REPEAT_PENALTY,
            "num_ctx": model_config.num_ctx,
        }
        self._session = session or requests.Session()

    def invoke(
        self,
        conversation: Conversation,
        tools: Sequence[ToolSpec],
        cancel_token: Optional[CancellationToken] = None,
    ) -> ModelResponse:
        payload = {
            "model": self.model,
            "messages": to_ollama_messages(conversation),
            "stream": False,
            "options": self.options,
        }
        if tools:
            payload["tools"] = [t.to_function_schema() for t in tools]

        _raise_if_cancelled(cancel_token)

        try:
            response = self._session.post(self.endpoint, json=payload, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise RunCancelledError(f"model call timed out after {self.timeout}s") from e
        except requests.exceptions.RequestException as e:
            raise InvocationError(f"model call failed: {e}") from e

        if response.status_code != 200:
            raise InvocationError(f"model call failed: {response.status_code}: {response.text}")

        try:
            body = response.json()
            message = body["message"]
            if not isinstance(message, dict):
                raise TypeError("message is not an object")
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Ollama response decode failed, returning raw body: %s", e)
            return ModelResponse(content=response.text)

        calls = []
        for raw in message.get("tool_calls") or []:
            function = raw.get("function") or {}
            name = function.get("name")
            if not name:
                continue
            calls.append(
                ToolCall(name=name, arguments=_coerce_arguments(function.get("arguments")))
            )
        content = message.get("content") or ""
        usage = _token_usage(body.get("prompt_eval_count"), body.get("eval_count"))
        if not calls and content:
            parsed = parse_model_output(content)
            parsed.usage = usage
            return parsed
        return ModelResponse(content=content, tool_calls=calls, usage=usage)

    def close(self) -> None:
        self._session.close()


def create_invoker(model_config: ModelConfig) -> ModelInvoker:
    """Create the invoker selected by ``model_config.backend``."""
    backend = model_config.backend
    if backend == "mock":
        return ScriptedInvoker()
    if backend == "openai":
        return OpenAIInvoker(model_config)
    if backend == "ollama":
        return OllamaInvoker(model_config)
    raise ValueError(f"Unknown model backend: {backend}")
