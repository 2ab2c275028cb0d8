from __future__ import annotations

import pytest

from prompt_analyzer.domain.errors import PreconditionError
from prompt_analyzer.domain.models import PromptStatus, SessionKind, SessionStatus
from prompt_analyzer.ports.text_provider import GenerationOptions
from prompt_analyzer.services.analytics import summarize


class EmitRecorder:
    def __init__(self):
        self.events = []

    def __call__(self, item) -> None:
        self.events.append((item.prompt, item.status))


def test_run_processes_prompts_in_order_and_isolates_failures(scheduler, provider, sleeper):
    provider.reply = lambda p: RuntimeError("boom") if p == "p2" else "AI and ai"
    emit = EmitRecorder()

    session = scheduler.run(["p1", "p2", "p3"], ["ai"], emit)

    assert [p for p, _ in provider.calls] == ["p1", "p2", "p3"]
    assert [it.status for it in session.items] == [
        PromptStatus.COMPLETED,
        PromptStatus.ERROR,
        PromptStatus.COMPLETED,
    ]
    assert session.items[1].error == "boom"
    assert session.items[0].matches[0].positions == (0, 7)
    assert session.items[0].matches[0].count == 2
    assert session.status is SessionStatus.COMPLETED
    assert session.kind is SessionKind.MANUAL
    assert session.end_time is not None

    assert emit.events == [
        ("p1", PromptStatus.PENDING),
        ("p2", PromptStatus.PENDING),
        ("p3", PromptStatus.PENDING),
        ("p1", PromptStatus.PROCESSING),
        ("p1", PromptStatus.COMPLETED),
        ("p2", PromptStatus.PROCESSING),
        ("p2", PromptStatus.ERROR),
        ("p3", PromptStatus.PROCESSING),
        ("p3", PromptStatus.COMPLETED),
    ]


def test_delay_only_between_calls(scheduler, sleeper):
    scheduler.run(["a", "b", "c", "d"], ["ai"], EmitRecorder())
    assert sleeper.calls == [1.0, 1.0, 1.0]


def test_single_prompt_never_sleeps(scheduler, sleeper):
    scheduler.run(["only"], ["ai"], EmitRecorder())
    assert sleeper.calls == []


def test_zero_delay_skips_sleep(scheduler, sleeper):
    scheduler.inter_call_delay_seconds = 0
    scheduler.run(["a", "b"], ["ai"], EmitRecorder())
    assert sleeper.calls == []


def test_options_are_passed_to_provider(scheduler, provider):
    scheduler.options = GenerationOptions(model="m", max_output_tokens=42, temperature=0.1)
    scheduler.run(["a"], ["ai"], EmitRecorder())
    assert provider.calls[0][1] == GenerationOptions(model="m", max_output_tokens=42, temperature=0.1)


def test_empty_response_is_recorded_as_error(scheduler, provider):
    provider.reply = lambda p: ""
    session = scheduler.run(["a"], ["ai"], EmitRecorder())

    item = session.items[0]
    assert item.status is PromptStatus.ERROR
    assert item.error == "Provider returned an empty response."
    assert session.status is SessionStatus.COMPLETED


def test_completed_item_without_matches(scheduler, provider):
    provider.reply = lambda p: "nothing relevant here"
    session = scheduler.run(["a"], ["robot"], EmitRecorder())

    assert session.items[0].status is PromptStatus.COMPLETED
    assert session.items[0].matches == ()


def test_abandoned_session_drops_late_result_and_stops(scheduler, provider):
    state = {"current": True}

    def reply(p):
        state["current"] = False
        return "AI"

    provider.reply = reply
    emit = EmitRecorder()

    session = scheduler.run(["p1", "p2"], ["ai"], emit, is_current=lambda: state["current"])

    assert len(provider.calls) == 1
    assert session.items[0].status is PromptStatus.PROCESSING
    assert session.items[1].status is PromptStatus.PENDING
    assert ("p1", PromptStatus.COMPLETED) not in emit.events
    assert session.status is SessionStatus.RUNNING


def test_session_abort_marks_error(scheduler):
    def emit(item):
        if item.status is PromptStatus.PROCESSING:
            raise RuntimeError("listener exploded")

    session = scheduler.run(["p1", "p2"], ["ai"], emit)

    assert session.status is SessionStatus.ERROR
    assert session.error == "listener exploded"
    assert session.end_time is not None


def test_on_session_sees_start_and_finish(scheduler):
    seen = []
    scheduler.run(["p1"], ["ai"], EmitRecorder(), on_session=lambda s: seen.append(s.status))
    assert seen == [SessionStatus.RUNNING, SessionStatus.COMPLETED]


def test_session_id_is_respected(scheduler):
    session = scheduler.run(["p1"], ["ai"], EmitRecorder(), session_id="abc123")
    assert session.id == "abc123"


@pytest.mark.parametrize("prompts,keywords", [([], ["ai"]), (["p"], []), (None, None)])
def test_run_preconditions(scheduler, provider, prompts, keywords):
    with pytest.raises(PreconditionError):
        scheduler.run(prompts, keywords, EmitRecorder())
    assert provider.calls == []


def test_end_to_end_with_failing_middle_prompt(scheduler, provider):
    replies = {
        "p1": "AI is moving to the cloud",
        "p2": RuntimeError("quota exceeded"),
        "p3": "Cloud AI, cloud everything",
    }
    provider.reply = lambda p: replies[p]

    session = scheduler.run(["p1", "p2", "p3"], ["ai", "cloud"], EmitRecorder())

    assert session.status is SessionStatus.COMPLETED
    assert session.items[1].error == "quota exceeded"
    analytics = summarize(session.items, session)
    assert analytics.total_responses == 2
    assert analytics.keyword_frequency == {"ai": 2, "cloud": 3}
    assert summarize(session.items, session, now=session.end_time) == summarize(
        session.items, session, now=session.end_time
    )
