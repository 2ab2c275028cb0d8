from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from prompt_analyzer.ports.text_provider import TextProvider
from prompt_analyzer.services.batch_runner import BatchRunner
from prompt_analyzer.services.keyword_matcher import LiteralKeywordMatcher
from prompt_analyzer.services.scheduler import SequentialScheduler
from prompt_analyzer.services.workspace import AnalysisWorkspace

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


# -----------------------------
# Test doubles
# -----------------------------
class FakeProvider(TextProvider):
    """reply(prompt) returns the text, or an exception instance to raise."""

    def __init__(self, reply=None):
        self.reply = reply or (lambda prompt: "AI and ai")
        self.calls = []

    def generate_text(self, prompt, options):
        self.calls.append((prompt, options))
        result = self.reply(prompt)
        if isinstance(result, BaseException):
            raise result
        return result


class SleepRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


# -----------------------------
# Fixtures
# -----------------------------
@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def scheduler(provider: FakeProvider, sleeper: SleepRecorder) -> SequentialScheduler:
    return SequentialScheduler(
        provider=provider,
        matcher=LiteralKeywordMatcher(),
        inter_call_delay_seconds=1.0,
        sleep=sleeper,
        clock=lambda: T0,
    )


@pytest.fixture
def workspace(scheduler: SequentialScheduler) -> AnalysisWorkspace:
    return AnalysisWorkspace(
        scheduler=scheduler,
        batch_runner=BatchRunner(scheduler=scheduler, max_rows=50),
        max_prompts=10,
        clock=lambda: T0,
    )


@pytest.fixture
def ini_path(tmp_path: Path) -> Path:
    p = tmp_path / "PromptAnalyzer.ini"
    p.write_text(
        "[paths]\n"
        "exports_base = exports\n"
        "\n"
        "[provider]\n"
        "model = test-model\n"
        "max_output_tokens = 100\n"
        "temperature = 0.2\n"
        "\n"
        "[scheduler]\n"
        "inter_call_delay_ms = 0\n"
        "max_prompts = 3\n"
        "max_batch_rows = 5\n"
        "\n"
        "[logging]\n"
        "level = DEBUG\n",
        encoding="utf-8",
    )
    return p
