from __future__ import annotations

import logging
from typing import Any, Optional

from openai import OpenAI

from prompt_analyzer.domain.errors import ProviderError
from prompt_analyzer.ports.text_provider import GenerationOptions, TextProvider

logger = logging.getLogger(__name__)


class OpenAITextProvider(TextProvider):
    """
    Chat Completions adapter.

    One user message per prompt, no retries. Any client failure surfaces as
    ProviderError so the scheduler can record it on the item.
    """

    def __init__(self, client: Any):
        self.client = client

    @classmethod
    def from_api_key(cls, api_key: str, *, timeout_seconds: Optional[float] = None) -> "OpenAITextProvider":
        if not (api_key or "").strip():
            raise ValueError("OpenAI API key is empty. Set it in the environment or .env file.")
        kwargs = {"api_key": api_key.strip()}
        if timeout_seconds:
            kwargs["timeout"] = float(timeout_seconds)
        return cls(OpenAI(**kwargs))

    def generate_text(self, prompt: str, options: GenerationOptions) -> str:
        try:
            completion = self.client.chat.completions.create(
                model=options.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=options.max_output_tokens,
                temperature=options.temperature,
            )
        except Exception as e:
            logger.error("OpenAI API error: %s", e)
            raise ProviderError(f"Failed to generate response: {e}") from e

        choices = getattr(completion, "choices", None) or []
        if not choices:
            return ""
        message = getattr(choices[0], "message", None)
        return (getattr(message, "content", None) or "") if message is not None else ""
