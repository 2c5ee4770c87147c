from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import openai
import pytest

from shipping_agent.app.errors import ModelInvocationError, ModelTimeoutError
from shipping_agent.infrastructure.data_models import Message
from shipping_agent.infrastructure.openai_gpt_manager import (
    OpenAIChat,
    _retry_sleep_seconds_from_headers,
)
from shipping_agent.services.llm_service import LLMService, decision_from_response
from shipping_agent.tools.schemas import LIST

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/responses")


def make_response(output=(), output_text="", model="gpt-5-mini-2025-08-07"):
    return SimpleNamespace(
        output=list(output),
        output_text=output_text,
        model=model,
        usage=SimpleNamespace(
            input_tokens=120,
            output_tokens=30,
            total_tokens=150,
            output_tokens_details=SimpleNamespace(reasoning_tokens=10),
        ),
        error=None,
        incomplete_details=None,
    )


def function_call(name, arguments, call_id="call_1"):
    return SimpleNamespace(type="function_call", name=name, arguments=arguments, call_id=call_id)


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def llm(client):
    return OpenAIChat(model="gpt-5-mini", api_key="", client=client)


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(
        "shipping_agent.infrastructure.openai_gpt_manager.time.sleep", lambda s: None
    )


class TestOpenAIChat:
    def test_text_response(self, llm, client):
        client.responses.create.return_value = make_response(output_text="Hello there")

        result = llm.generate([Message(role="user", content="hi")], tools=[])

        assert result["text"] == "Hello there"
        assert result["tool_calls"] == []
        assert result["usage"]["total_tokens"] == 150
        assert result["usage"]["reasoning_tokens"] == 10
        assert result["model_version"] == "gpt-5-mini-2025-08-07"

    def test_tool_calls_keep_model_order(self, llm, client):
        client.responses.create.return_value = make_response(
            output=[
                SimpleNamespace(type="reasoning"),
                function_call("book_shipment", '{"origin": "A"}', "c1"),
                function_call("get_quote", "{}", "c2"),
            ]
        )

        result = llm.generate([Message(role="user", content="book")])

        assert [c["name"] for c in result["tool_calls"]] == ["book_shipment", "get_quote"]
        assert result["tool_calls"][0]["arguments"] == '{"origin": "A"}'
        assert result["tool_calls"][1]["call_id"] == "c2"

    def test_request_parameters_for_gpt5(self, llm, client):
        client.responses.create.return_value = make_response(output_text="ok")
        tools = [{"type": "function", "name": "get_quote"}]

        messages = [Message(role="system", content="sys"), Message(role="user", content="hi")]
        llm.generate(messages, tools=tools)

        kwargs = client.responses.create.call_args.kwargs
        assert kwargs["model"] == "gpt-5-mini"
        assert kwargs["input"] == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "hi"},
        ]
        assert kwargs["tools"] == tools
        assert kwargs["tool_choice"] == "auto"
        assert kwargs["reasoning"] == {"effort": "low"}

    def test_request_parameters_for_gpt4(self, client):
        client.responses.create.return_value = make_response(output_text="ok")
        llm = OpenAIChat(model="gpt-4.1-mini", api_key="", client=client)

        llm.generate([Message(role="user", content="hi")])

        kwargs = client.responses.create.call_args.kwargs
        assert kwargs["temperature"] == 0.7
        assert "reasoning" not in kwargs

    def test_empty_response_is_an_error(self, llm, client):
        client.responses.create.return_value = make_response()

        with pytest.raises(ModelInvocationError):
            llm.generate([Message(role="user", content="hi")])

    def test_single_attempt_by_default(self, llm, client):
        client.responses.create.side_effect = openai.APIConnectionError(request=REQUEST)

        with pytest.raises(ModelInvocationError):
            llm.generate([Message(role="user", content="hi")])

        assert client.responses.create.call_count == 1

    def test_timeout_maps_to_timeout_error(self, llm, client):
        client.responses.create.side_effect = openai.APITimeoutError(request=REQUEST)

        with pytest.raises(ModelTimeoutError):
            llm.generate([Message(role="user", content="hi")])

    def test_non_retryable_error(self, client):
        llm = OpenAIChat(model="gpt-5-mini", api_key="", client=client, max_attempts=3)
        client.responses.create.side_effect = openai.AuthenticationError(
            "bad key", response=httpx.Response(401, request=REQUEST), body=None
        )

        with pytest.raises(ModelInvocationError, match="Fatal error"):
            llm.generate([Message(role="user", content="hi")])

        assert client.responses.create.call_count == 1

    def test_opt_in_retries_recover(self, client):
        llm = OpenAIChat(model="gpt-5-mini", api_key="", client=client, max_attempts=2)
        rate_limited = openai.RateLimitError(
            "slow down",
            response=httpx.Response(429, request=REQUEST, headers={"Retry-After": "0"}),
            body=None,
        )
        client.responses.create.side_effect = [rate_limited, make_response(output_text="ok")]

        result = llm.generate([Message(role="user", content="hi")])

        assert result["text"] == "ok"
        assert client.responses.create.call_count == 2

    def test_unsupported_model(self, client):
        with pytest.raises(ValueError, match="Unsupported model"):
            OpenAIChat(model="claude-x", api_key="k", client=client)

    def test_missing_api_key(self):
        with pytest.raises(ValueError, match="OPENAI_API_KEY"):
            OpenAIChat(model="gpt-5-mini", api_key="")


def test_retry_after_seconds_header():
    err = SimpleNamespace(response=SimpleNamespace(headers={"Retry-After": "2.5"}))
    assert _retry_sleep_seconds_from_headers(err) == 2.5


def test_no_headers_means_no_guidance():
    assert _retry_sleep_seconds_from_headers(Exception("x")) is None


class TestDecisionFromResponse:
    def test_text_only(self):
        decision = decision_from_response({"text": "hi", "tool_calls": []})
        assert decision.text == "hi"
        assert not decision.wants_action

    def test_arguments_are_parsed(self):
        decision = decision_from_response(
            {"text": "", "tool_calls": [{"name": "get_quote", "arguments": '{"weight": "5kg"}'}]}
        )
        assert decision.wants_action
        assert decision.calls[0].action_name == "get_quote"
        assert decision.calls[0].arguments == {"weight": "5kg"}

    @pytest.mark.parametrize("arguments", ["{not json", "[1, 2]"])
    def test_malformed_arguments(self, arguments):
        with pytest.raises(ModelInvocationError):
            decision_from_response({"tool_calls": [{"name": "get_quote", "arguments": arguments}]})


def test_llm_service_prepends_system_prompt_and_sends_tools(llm, client):
    client.responses.create.return_value = make_response(
        output=[function_call("get_shipment_status", "{}")]
    )
    service = LLMService(llm, system_prompt="You are a logistics assistant.")

    decision = service.decide([Message(role="user", content="status?")], list(LIST.values()))

    kwargs = client.responses.create.call_args.kwargs
    assert kwargs["input"][0] == {"role": "system", "content": "You are a logistics assistant."}
    assert kwargs["input"][1] == {"role": "user", "content": "status?"}
    assert [t["name"] for t in kwargs["tools"]] == [
        "get_quote",
        "get_shipment_status",
        "book_shipment",
    ]
    assert kwargs["tools"][0]["parameters"]["required"] == ["origin", "destination", "weight"]
    assert decision.calls[0].action_name == "get_shipment_status"
    assert decision.calls[0].arguments == {}


def test_default_system_prompt_is_loaded(llm):
    service = LLMService(llm)
    assert "logistics assistant" in service._system_prompt
