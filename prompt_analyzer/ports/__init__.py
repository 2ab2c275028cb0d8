from .text_provider import GenerationOptions, TextProvider

__all__ = [
    "GenerationOptions",
    "TextProvider",
]
