"""Tests for model invocation backends."""

import json
from unittest.mock import Mock, patch

import httpx
import openai
import pytest
import requests

from pantry_planner.conversation import (
    ROLE_ASSISTANT,
    ROLE_SYSTEM,
    ROLE_TOOL,
    ROLE_USER,
    Conversation,
    Message,
    TextPart,
    ToolCall,
    ToolCallPart,
    ToolOutcome,
    ToolResultPart,
)
from pantry_planner.errors import InvocationError, RunCancelledError
from pantry_planner.llm_call import (
    MOCK_FINAL_PLAN,
    ModelResponse,
    OllamaInvoker,
    OpenAIInvoker,
    ScriptedInvoker,
    create_invoker,
    parse_model_output,
    to_ollama_messages,
    to_openai_messages,
)
from pantry_planner.models.config import ModelConfig
from pantry_planner.prompt import build_tool_catalog
from pantry_planner.utils.cancel import CancellationToken


def _conversation_with_tool_round():
    call = ToolCall(name="pantry_get", arguments={"current_day": 0}, call_id="call_1")
    outcome = ToolOutcome(call_id="call_1", tool_name="pantry_get", payload={"pantry": {"ingredients": []}})
    conversation = Conversation()
    conversation.append_text(ROLE_SYSTEM, "system prompt")
    conversation.append_text(ROLE_USER, "Plan dinner")
    conversation.append(Message(role=ROLE_ASSISTANT, parts=(TextPart("Checking."), ToolCallPart(call))))
    conversation.append(Message(role=ROLE_TOOL, parts=(ToolResultPart(outcome),)))
    return conversation


def _cancelled_token():
    token = CancellationToken()
    token.request_cancel()
    return token


class TestParseModelOutput:
    """Tests for text-embedded tool call extraction."""

    def test_plain_text(self):
        response = parse_model_output("  I will check the pantry.  ")
        assert response.content == "I will check the pantry."
        assert response.tool_calls == []

    def test_tool_call_object(self):
        text = '{"tool_calls": [{"name": "pantry_get", "input": {"current_day": 0}, "tool_use_id": "t1"}]}'
        response = parse_model_output(text)
        assert response.content == ""
        assert len(response.tool_calls) == 1
        call = response.tool_calls[0]
        assert (call.name, call.arguments, call.call_id) == ("pantry_get", {"current_day": 0}, "t1")

    def test_text_around_tool_calls(self):
        text = (
            'Checking recipes. {"tool_calls": [{"name": "recipe_get", '
            '"arguments": "{\\"meal_types\\": [\\"dinner\\"]}"}]}'
        )
        response = parse_model_output(text)
        assert response.content == "Checking recipes."
        assert response.tool_calls[0].arguments == {"meal_types": ["dinner"]}
        assert response.tool_calls[0].call_id.startswith("call_")

    def test_plan_object_stays_content(self):
        text = json.dumps(MOCK_FINAL_PLAN)
        response = parse_model_output(text)
        assert response.content == text
        assert response.tool_calls == []

    def test_empty_tool_call_list_stays_content(self):
        assert parse_model_output('{"tool_calls": []}').content == '{"tool_calls": []}'

    def test_malformed_json_kept(self):
        response = parse_model_output('Sure {"tool_calls": [')
        assert response.content == 'Sure {"tool_calls": ['
        assert response.tool_calls == []

    def test_entries_without_name_skipped(self):
        response = parse_model_output('{"tool_calls": [{"input": {}}, {"name": "recipe_get"}]}')
        assert [c.name for c in response.tool_calls] == ["recipe_get"]


class TestScriptedInvoker:
    """Tests for the deterministic mock backend."""

    def test_default_requests_data_then_plans(self):
        invoker = ScriptedInvoker()
        conversation = Conversation()
        first = invoker.invoke(conversation, [])
        assert [c.name for c in first.tool_calls] == ["pantry_get", "recipe_get"]

        outcomes = [ToolOutcome(call_id=c.call_id, tool_name=c.name, payload={}) for c in first.tool_calls]
        conversation.append(Message(role=ROLE_TOOL, parts=tuple(ToolResultPart(o) for o in outcomes)))
        second = invoker.invoke(conversation, [])
        assert json.loads(second.content) == MOCK_FINAL_PLAN
        assert len(invoker.calls) == 2

    def test_script_steps(self):
        def callable_step(conversation):
            return ModelResponse(content=f"{len(conversation)} messages")

        invoker = ScriptedInvoker(
            [ModelResponse(content="a"), '{"tool_calls": [{"name": "pantry_get"}]}', callable_step]
        )
        conversation = Conversation()
        assert invoker.invoke(conversation, []).content == "a"
        assert invoker.invoke(conversation, []).tool_calls[0].name == "pantry_get"
        assert invoker.invoke(conversation, []).content == "0 messages"

    def test_script_exception_raised(self):
        invoker = ScriptedInvoker([InvocationError("down")])
        with pytest.raises(InvocationError, match="down"):
            invoker.invoke(Conversation(), [])

    def test_script_exhausted(self):
        invoker = ScriptedInvoker(["only"])
        invoker.invoke(Conversation(), [])
        with pytest.raises(InvocationError):
            invoker.invoke(Conversation(), [])

    def test_repeat_last(self):
        invoker = ScriptedInvoker(["first", "again"], repeat_last=True)
        contents = [invoker.invoke(Conversation(), []).content for _ in range(4)]
        assert contents == ["first", "again", "again", "again"]


class TestOpenAIMessages:
    """Tests for to_openai_messages."""

    def test_tool_round_translation(self):
        messages = to_openai_messages(_conversation_with_tool_round())
        assert [m["role"] for m in messages] == ["system", "user", "assistant", "tool"]
        assistant = messages[2]
        assert assistant["content"] == "Checking."
        assert assistant["tool_calls"][0]["id"] == "call_1"
        assert json.loads(assistant["tool_calls"][0]["function"]["arguments"]) == {"current_day": 0}
        assert messages[3]["tool_call_id"] == "call_1"
        assert json.loads(messages[3]["content"]) == {"pantry": {"ingredients": []}}


class TestOpenAIInvoker:
    """Tests for OpenAIInvoker with a mocked client."""

    def _invoker(self, client):
        return OpenAIInvoker(ModelConfig(backend="openai", model_id="gpt-test", max_tokens=256), client=client)

    def _completion(self, content=None, tool_calls=None):
        message = Mock(content=content, tool_calls=tool_calls)
        return Mock(choices=[Mock(message=message)])

    def test_native_tool_calls(self, registry):
        function = Mock(arguments='{"current_day": 0}')
        function.name = "pantry_get"
        client = Mock()
        client.chat.completions.create.return_value = self._completion(
            tool_calls=[Mock(id="c1", function=function)]
        )

        response = self._invoker(client).invoke(
            _conversation_with_tool_round(), build_tool_catalog(registry)
        )

        assert response.content == ""
        assert response.tool_calls[0].name == "pantry_get"
        assert response.tool_calls[0].arguments == {"current_day": 0}
        assert response.tool_calls[0].call_id == "c1"
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-test"
        assert kwargs["max_tokens"] == 256
        assert [t["function"]["name"] for t in kwargs["tools"]] == ["pantry_get", "recipe_get"]

    def test_text_response(self):
        client = Mock()
        client.chat.completions.create.return_value = self._completion(content='{"summary": "x"}')
        response = self._invoker(client).invoke(Conversation(), [])
        assert response.content == '{"summary": "x"}'
        assert response.tool_calls == []
        assert "tools" not in client.chat.completions.create.call_args.kwargs

    def test_token_usage(self):
        client = Mock()
        completion = self._completion(content="hi")
        completion.usage = Mock(prompt_tokens=120, completion_tokens=30)
        client.chat.completions.create.return_value = completion
        response = self._invoker(client).invoke(Conversation(), [])
        assert response.usage == {"prompt_tokens": 120, "completion_tokens": 30, "total_tokens": 150}

    def test_timeout_is_cancellation(self):
        client = Mock()
        client.chat.completions.create.side_effect = openai.APITimeoutError(
            request=httpx.Request("POST", "http://localhost/v1/chat/completions")
        )
        with pytest.raises(RunCancelledError):
            self._invoker(client).invoke(Conversation(), [])

    def test_api_error_is_invocation_error(self):
        client = Mock()
        client.chat.completions.create.side_effect = openai.APIConnectionError(
            request=httpx.Request("POST", "http://localhost/v1/chat/completions")
        )
        with pytest.raises(InvocationError, match="model call failed"):
            self._invoker(client).invoke(Conversation(), [])

    def test_no_choices(self):
        client = Mock()
        client.chat.completions.create.return_value = Mock(choices=[])
        with pytest.raises(InvocationError, match="no choices"):
            self._invoker(client).invoke(Conversation(), [])

    def test_cancelled_before_request(self):
        client = Mock()
        with pytest.raises(RunCancelledError):
            self._invoker(client).invoke(Conversation(), [], _cancelled_token())
        client.chat.completions.create.assert_not_called()


class TestOllamaInvoker:
    """Tests for OllamaInvoker with a mocked requests session."""

    def _invoker(self, session):
        return OllamaInvoker(ModelConfig(backend="ollama", model_id="qwen3:8b"), session=session)

    def _session(self, body=None, status_code=200):
        session = Mock()
        session.post.return_value = Mock(
            status_code=status_code, text="error body", json=Mock(return_value=body)
        )
        return session

    def test_payload(self, registry):
        session = self._session({"message": {"content": "hello"}})
        self._invoker(session).invoke(_conversation_with_tool_round(), build_tool_catalog(registry))

        args, kwargs = session.post.call_args
        assert args[0] == "http://localhost:11434/api/chat"
        payload = kwargs["json"]
        assert payload["model"] == "qwen3:8b"
        assert payload["stream"] is False
        assert payload["options"]["repeat_penalty"] == 1.05
        assert payload["options"]["num_ctx"] == 16384
        assert payload["messages"][3] == {
            "role": "tool",
            "name": "pantry_get",
            "content": json.dumps({"pantry": {"ingredients": []}}),
        }
        assert len(payload["tools"]) == 2

    def test_native_tool_calls(self):
        session = self._session(
            {
                "message": {
                    "content": "",
                    "tool_calls": [{"function": {"name": "recipe_get", "arguments": {"meal_types": ["dinner"]}}}],
                }
            }
        )
        response = self._invoker(session).invoke(Conversation(), [])
        assert [c.name for c in response.tool_calls] == ["recipe_get"]
        assert response.tool_calls[0].arguments == {"meal_types": ["dinner"]}

    def test_text_embedded_tool_calls(self):
        content = '{"tool_calls": [{"name": "pantry_get", "input": {"current_day": 1}}]}'
        session = self._session({"message": {"content": content}})
        response = self._invoker(session).invoke(Conversation(), [])
        assert response.tool_calls[0].arguments == {"current_day": 1}

    def test_token_usage(self):
        session = self._session({"message": {"content": "hi"}, "prompt_eval_count": 40, "eval_count": 2})
        assert self._invoker(session).invoke(Conversation(), []).usage["total_tokens"] == 42

    def test_non_200(self):
        session = self._session(status_code=500)
        with pytest.raises(InvocationError, match="500"):
            self._invoker(session).invoke(Conversation(), [])

    def test_timeout_is_cancellation(self):
        session = Mock()
        session.post.side_effect = requests.exceptions.Timeout("read timed out")
        with pytest.raises(RunCancelledError):
            self._invoker(session).invoke(Conversation(), [])

    def test_connection_error(self):
        session = Mock()
        session.post.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(InvocationError):
            self._invoker(session).invoke(Conversation(), [])

    def test_undecodable_body_returned_raw(self):
        session = Mock()
        session.post.return_value = Mock(status_code=200, text="not json", json=Mock(side_effect=ValueError("bad")))
        assert self._invoker(session).invoke(Conversation(), []).content == "not json"

    def test_cancelled_before_request(self):
        session = Mock()
        with pytest.raises(RunCancelledError):
            self._invoker(session).invoke(Conversation(), [], _cancelled_token())
        session.post.assert_not_called()

    def test_message_translation(self):
        messages = to_ollama_messages(_conversation_with_tool_round())
        assert messages[2]["tool_calls"] == [
            {"function": {"name": "pantry_get", "arguments": {"current_day": 0}}}
        ]


class TestCreateInvoker:
    """Tests for backend selection."""

    def test_mock(self):
        assert isinstance(create_invoker(ModelConfig(backend="mock")), ScriptedInvoker)

    @patch("pantry_planner.llm_call.OpenAI")
    def test_openai(self, mock_openai_cls):
        invoker = create_invoker(ModelConfig(backend="openai", base_url="http://vllm:8000/v1", model_id="m"))
        assert isinstance(invoker, OpenAIInvoker)
        assert mock_openai_cls.call_args.kwargs["base_url"] == "http://vllm:8000/v1"

    def test_ollama(self):
        assert isinstance(create_invoker(ModelConfig(backend="ollama")), OllamaInvoker)

    def test_unknown(self):
        with pytest.raises(ValueError):
            create_invoker(ModelConfig(backend="bedrock"))
