from __future__ import annotations

from types import SimpleNamespace

import pytest
from openai import OpenAI

from prompt_analyzer.adapters.openai_provider import OpenAITextProvider
from prompt_analyzer.domain.errors import ProviderError
from prompt_analyzer.ports.text_provider import GenerationOptions


class FakeCompletions:
    def __init__(self, content="hello", error=None):
        self.content = content
        self.error = error
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _provider(completions: FakeCompletions) -> OpenAITextProvider:
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return OpenAITextProvider(client)


def test_generate_text_sends_single_user_message():
    completions = FakeCompletions(content="an answer")
    text = _provider(completions).generate_text(
        "What is AI?", GenerationOptions(model="gpt-4o-mini", max_output_tokens=500, temperature=0.7)
    )

    assert text == "an answer"
    assert completions.kwargs == {
        "model": "gpt-4o-mini",
        "messages": [{"role": "user", "content": "What is AI?"}],
        "max_tokens": 500,
        "temperature": 0.7,
    }


def test_missing_content_becomes_empty_string():
    assert _provider(FakeCompletions(content=None)).generate_text("p", GenerationOptions()) == ""


def test_client_failure_is_wrapped():
    provider = _provider(FakeCompletions(error=RuntimeError("rate limited")))
    with pytest.raises(ProviderError, match="Failed to generate response: rate limited"):
        provider.generate_text("p", GenerationOptions())


def test_from_api_key_requires_key():
    with pytest.raises(ValueError):
        OpenAITextProvider.from_api_key("  ")


def test_from_api_key_builds_client():
    provider = OpenAITextProvider.from_api_key("sk-test", timeout_seconds=5)
    assert isinstance(provider.client, OpenAI)
