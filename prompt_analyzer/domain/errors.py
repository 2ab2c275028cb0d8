######## errors.py
########


class PromptAnalyzerError(Exception):
    """Base class for errors raised by the analyzer core."""


class PreconditionError(PromptAnalyzerError, ValueError):
    """A run was requested without the inputs it needs (or while one is active)."""


class InputRejectedError(PromptAnalyzerError, ValueError):
    """A draft prompt or keyword was refused by the input rules."""


class BatchParseError(PromptAnalyzerError, ValueError):
    """The uploaded batch table is malformed, empty or over the row limit."""


class InvalidTransitionError(PromptAnalyzerError, RuntimeError):
    pass


class ProviderError(PromptAnalyzerError, RuntimeError):
    pass
