from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class GenerationOptions:
    model: str = "gpt-4o-mini"
    max_output_tokens: int = 500
    temperature: float = 0.7


class TextProvider:
    """
    Port for the text-generation service.
    Implementations raise on quota, network or validation failures.
    """

    def generate_text(self, prompt: str, options: GenerationOptions) -> str:
        raise NotImplementedError
