import pytest
import requests

from tsagent.llm_client import (
    LLMClient,
    LLMError,
    extract_json_object,
    extract_response_text,
    get_provider,
)
from tsagent.models import ModelConfig


class DummyResponse:
    def __init__(self, status_code=200, payload=None, json_error=False):
        self.status_code = status_code
        self.payload = payload
        self.ok = status_code < 400
        self.json_error = json_error

    def json(self):
        if self.json_error:
            raise ValueError("not json")
        return self.payload

    def raise_for_status(self):
        if not self.ok:
            raise requests.exceptions.HTTPError(f"{self.status_code} error", response=self)


class DummySession:
    """Records calls and replays queued responses or exceptions"""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def _next(self, method, url, kwargs):
        self.calls.append((method, url, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def request(self, method, url, **kwargs):
        return self._next(method, url, kwargs)

    def get(self, url, **kwargs):
        return self._next('GET', url, kwargs)

    def post(self, url, **kwargs):
        return self._next('POST', url, kwargs)


def make_client(session=None, **overrides):
    values = dict(provider="openai", base_url="https://llm.example.com/v1/", api_key="sk-test", model="gpt-4o")
    values.update(overrides)
    client = LLMClient(ModelConfig(**values))
    if session is not None:
        client.session = session
    return client


@pytest.mark.parametrize("payload,expected", [
    ({"choices": [{"message": {"content": "openai"}}]}, "openai"),
    ({"candidates": [{"content": {"parts": [{"text": "gemini"}]}}]}, "gemini"),
    ({"result": "plain"}, "plain"),
    ({"output": {"text": "nested"}}, "nested"),
    ({"output": [{"content": [{"text": "content list"}]}]}, "content list"),
    ({"output": [{"text": "flat list"}]}, "flat list"),
])
def test_extract_response_text(payload, expected):
    assert extract_response_text(payload) == expected


def test_extract_response_text_prefers_first_match():
    payload = {"choices": [{"message": {"content": ""}}], "result": "fallback"}
    assert extract_response_text(payload) == "fallback"
    assert extract_response_text({"choices": []}) is None
    assert extract_response_text(["unexpected"]) is None


def test_extract_json_object():
    text = 'Sure!\n```json\n{"a": {"b": [1, 2]}}\n```\nHope that helps {ok}'
    with pytest.raises(LLMError):
        extract_json_object(text)

    assert extract_json_object('Result: {"a": {"b": [1, 2]}} done') == {"a": {"b": [1, 2]}}

    with pytest.raises(LLMError, match="No JSON object"):
        extract_json_object("nothing here")


def test_base_url_trailing_slash_stripped():
    client = make_client()
    assert client.config.base_url == "https://llm.example.com/v1"
    assert client.session.headers["Authorization"] == "Bearer sk-test"


def test_model_config_validation():
    with pytest.raises(ValueError, match="base URL"):
        ModelConfig(provider="openai", base_url="ftp://x", api_key="k", model="m")
    with pytest.raises(ValueError, match="Model identifier"):
        ModelConfig(provider="openai", base_url="https://x", api_key="k", model="")


def test_request_body_defaults_and_sampling_parameters():
    client = make_client(top_p=0.9, presence_penalty=0.1, frequency_penalty=0.2)
    body = client.build_request_body("sys", "user", default_max_tokens=20000)

    assert body["model"] == "gpt-4o"
    assert body["messages"] == [
        {"role": "system", "content": "sys"},
        {"role": "user", "content": "user"},
    ]
    assert body["temperature"] == 0.7
    assert body["max_tokens"] == 20000
    assert body["top_p"] == 0.9
    assert body["presence_penalty"] == 0.1
    assert body["frequency_penalty"] == 0.2


def test_request_body_omits_sampling_for_other_providers():
    client = make_client(provider="custom", top_p=0.9, max_tokens=512, temperature=0.2)
    body = client.build_request_body("sys", "user")

    assert body["max_tokens"] == 512
    assert body["temperature"] == 0.2
    assert "top_p" not in body
    assert "presence_penalty" not in body


def test_chat_success():
    session = DummySession(DummyResponse(200, {"choices": [{"message": {"content": "hello"}}]}))
    client = make_client(session)

    assert client.chat("sys", "user") == "hello"
    method, url, kwargs = session.calls[0]
    assert (method, url) == ("POST", "https://llm.example.com/v1/chat/completions")
    assert kwargs["json"]["max_tokens"] == 4000
    assert kwargs["timeout"] == 60


@pytest.mark.parametrize("response,message", [
    (DummyResponse(401), "Authentication failed"),
    (DummyResponse(404), "Resource not found"),
    (DummyResponse(500), "HTTP error 500"),
    (requests.exceptions.Timeout(), "Request timeout"),
    (requests.exceptions.ConnectionError(), "Connection error"),
    (DummyResponse(200, {"unexpected": True}), "Unrecognized response format"),
    (DummyResponse(200, json_error=True), "non-JSON body"),
])
def test_chat_failures(response, message):
    client = make_client(DummySession(response))
    with pytest.raises(LLMError, match=message):
        client.chat("sys", "user")


def test_connection_via_models_list():
    session = DummySession(DummyResponse(200, {"data": [{"id": "gpt-4o"}, {"id": "gpt-4o-mini"}]}))
    success, message = make_client(session).test_connection()

    assert success
    assert "gpt-4o" in message
    assert session.calls[0][:2] == ("GET", "https://llm.example.com/v1/models")


def test_connection_model_missing_from_list():
    session = DummySession(DummyResponse(200, {"data": [{"id": "other"}]}))
    success, message = make_client(session).test_connection()

    assert not success
    assert "not available" in message


def test_connection_falls_back_to_chat():
    session = DummySession(
        requests.exceptions.ConnectionError(),
        DummyResponse(200, {"choices": []}),
    )
    success, _ = make_client(session).test_connection()

    assert success
    method, url, kwargs = session.calls[1]
    assert (method, url) == ("POST", "https://llm.example.com/v1/chat/completions")
    assert kwargs["json"]["max_tokens"] == 1


@pytest.mark.parametrize("status,message", [
    (401, "Invalid API key"),
    (404, "does not exist"),
    (503, "HTTP 503"),
])
def test_connection_failure_messages(status, message):
    session = DummySession(DummyResponse(500), DummyResponse(status))
    success, text = make_client(session).test_connection()

    assert not success
    assert message in text


def test_known_providers():
    assert get_provider("deepseek").base_url == "https://api.deepseek.com/v1"
    assert get_provider("zhipu").models[0] == "glm-4"
    assert get_provider("nope") is None
