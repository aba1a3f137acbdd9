from __future__ import annotations

from datetime import datetime
from unittest import mock

import pytest
import requests

from app.chatbot import NO_CHOICES_REPLY, TRUNCATION_MARKER, ChatbotService, build_context
from app.clients.openai_chat import OpenAIChatClient, OpenAIError
from app.config import Settings


class FakeStore:
    def __init__(self, results) -> None:
        self.results = results
        self.queries: list[str] = []

    def search_all(self, query):
        self.queries.append(query)
        return self.results


class FakeLLM:
    model = "fake-model"

    def __init__(self, reply="Ada builds engines.") -> None:
        self.reply = reply
        self.prompts: list[str] = []

    def complete(self, prompt):
        self.prompts.append(prompt)
        return self.reply


def make_settings(**overrides) -> Settings:
    values = {"openai_api_key": "sk-test", "portfolio_owner": "Ada", "assistant_name": "ADABOT"}
    values.update(overrides)
    return Settings(**values)


def make_response(status: int, payload: str) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response._content = payload.encode("utf-8")
    return response


def test_build_context_truncates_long_results():
    results = {"projects": [{"description": "x" * 200}]}

    context = build_context(results, max_chars=50)

    assert len(context) == 50 + len(TRUNCATION_MARKER)
    assert context.endswith(TRUNCATION_MARKER)


def test_build_context_keeps_short_results():
    context = build_context({"authors": []}, max_chars=8000)

    assert context == '{\n  "authors": []\n}'


def test_answer_sends_prompt_with_context_and_question():
    store = FakeStore({"authors": [{"name": "Ada Lovelace"}]})
    llm = FakeLLM()
    service = ChatbotService(
        store, llm, make_settings(), now=lambda: datetime(2025, 3, 1, 9, 30, 0)
    )

    answer = service.answer("Who is Ada?")

    assert answer == "Ada builds engines."
    assert store.queries == ["Who is Ada?"]
    prompt = llm.prompts[0]
    assert "You are ADABOT" in prompt
    assert "CURRENT DATE: 2025-03-01 09:30:00" in prompt
    assert '"name": "Ada Lovelace"' in prompt
    assert "USER QUESTION: Who is Ada?" in prompt


def test_answer_without_choices_returns_apology():
    service = ChatbotService(FakeStore({}), FakeLLM(reply=None), make_settings())

    assert service.answer("hello") == NO_CHOICES_REPLY


def test_openai_client_returns_first_choice():
    client = OpenAIChatClient(make_settings(openai_model="gpt-test"))
    payload = '{"choices": [{"message": {"role": "assistant", "content": "Hi there"}}]}'
    client._session.post = mock.Mock(return_value=make_response(200, payload))

    assert client.complete("hello") == "Hi there"
    _, kwargs = client._session.post.call_args
    assert kwargs["json"]["model"] == "gpt-test"
    assert kwargs["json"]["messages"] == [{"role": "user", "content": "hello"}]


def test_openai_client_without_choices_returns_none():
    client = OpenAIChatClient(make_settings())
    client._session.post = mock.Mock(return_value=make_response(200, '{"choices": []}'))

    assert client.complete("hello") is None


def test_openai_client_raises_on_unauthorized():
    client = OpenAIChatClient(make_settings())
    client._session.post = mock.Mock(return_value=make_response(401, "bad key"))

    with pytest.raises(OpenAIError, match="Unauthorized"):
        client.complete("hello")


def test_openai_client_wraps_connection_errors():
    client = OpenAIChatClient(make_settings())
    client._session.post = mock.Mock(side_effect=requests.ConnectionError("refused"))

    with pytest.raises(OpenAIError, match="unreachable"):
        client.complete("hello")


def test_openai_client_requires_api_key():
    with pytest.raises(ValueError):
        OpenAIChatClient(Settings())
