from types import SimpleNamespace

import httpx
import pytest
from openai import APIConnectionError, APITimeoutError

from mytodos.config import Settings
from mytodos.core.errors import UpstreamError
from mytodos.services.llm_client import PROVIDERS, ChatModelClient

REQUEST = httpx.Request("POST", "https://api.deepseek.com/chat/completions")


class ScriptedCompletions:
    """Returns or raises the scripted outcomes in order."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.kwargs = []

    def create(self, **kwargs):
        self.kwargs.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def answer(content):
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def make_client(completions, max_retries=2):
    sleeps = []
    client = ChatModelClient(
        provider="deepseek",
        api_key="sk-test",
        model="deepseek-chat",
        base_url=PROVIDERS["deepseek"].base_url,
        max_retries=max_retries,
        sleep=sleeps.append,
    )
    client._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return client, sleeps


def test_complete_sends_both_prompts():
    completions = ScriptedCompletions(answer("Do the dishes first."))
    client, _ = make_client(completions)

    assert client.complete("be helpful", "my todos", max_tokens=50) == "Do the dishes first."
    sent = completions.kwargs[0]
    assert sent["model"] == "deepseek-chat"
    assert sent["max_tokens"] == 50
    assert sent["messages"] == [
        {"role": "system", "content": "be helpful"},
        {"role": "user", "content": "my todos"},
    ]


def test_timeout_is_retried_with_backoff():
    completions = ScriptedCompletions(APITimeoutError(request=REQUEST), answer("ok"))
    client, sleeps = make_client(completions)

    assert client.complete("s", "u") == "ok"
    assert sleeps == [2]


def test_timeout_on_every_attempt():
    completions = ScriptedCompletions(*[APITimeoutError(request=REQUEST) for _ in range(3)])
    client, sleeps = make_client(completions, max_retries=2)

    with pytest.raises(UpstreamError, match="timed out"):
        client.complete("s", "u")
    # one initial call plus two retries
    assert len(completions.kwargs) == 3
    assert sleeps == [2, 4]


def test_zero_retries_makes_a_single_call():
    completions = ScriptedCompletions(APITimeoutError(request=REQUEST), answer("unused"))
    client, sleeps = make_client(completions, max_retries=0)

    with pytest.raises(UpstreamError, match="timed out"):
        client.complete("s", "u")
    assert len(completions.kwargs) == 1
    assert sleeps == []


def test_connection_error_is_not_retried():
    completions = ScriptedCompletions(APIConnectionError(request=REQUEST))
    client, sleeps = make_client(completions)

    with pytest.raises(UpstreamError):
        client.complete("s", "u")
    assert sleeps == []


def test_empty_answer_is_an_error():
    client, _ = make_client(ScriptedCompletions(answer("   ")))
    with pytest.raises(UpstreamError, match="empty response"):
        client.complete("s", "u")


def test_from_settings_selects_provider():
    settings = Settings(AI_PROVIDER="gemini", GEMINI_API_KEY="g-key", OPENAI_API_KEY="")

    gemini = ChatModelClient.from_settings(settings)
    assert gemini.provider == "gemini"
    assert gemini.model == settings.GEMINI_MODEL
    assert gemini.base_url == PROVIDERS["gemini"].base_url
    assert gemini.configured

    openai = ChatModelClient.from_settings(settings, provider="openai")
    assert openai.base_url is None
    assert not openai.configured
