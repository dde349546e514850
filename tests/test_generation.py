import asyncio
import copy

from conftest import VALID_READING, RecordingSleep, ScriptedLLM, ok_completion, timeout_failure

from dream_oracle.services.generation import (
    PARSE_ERROR,
    PROVIDER_ERROR,
    VALIDATION_ERROR,
    generate_reading,
    interpret_completion,
)
from dream_oracle.services.llm_client import Completion, CompletionFailure


MESSAGES = [{"role": "user", "content": "dream"}]


def _generate(llm, sleep, max_attempts=2):
    return asyncio.run(generate_reading(llm, MESSAGES, max_attempts=max_attempts, backoff_secs=1.0, sleep=sleep))


def test_interpret_completion_kinds():
    assert interpret_completion(timeout_failure()).kind == PROVIDER_ERROR
    assert interpret_completion(Completion("no json here")).kind == PARSE_ERROR

    two_tags = copy.deepcopy(VALID_READING)
    two_tags["tags"] = ["a", "b"]
    outcome = interpret_completion(ok_completion(two_tags))
    assert outcome.kind == VALIDATION_ERROR
    assert "tags" in outcome.detail

    ok = interpret_completion(ok_completion())
    assert ok.reading.title == VALID_READING["title"]


def test_first_attempt_success_short_circuits():
    llm = ScriptedLLM([ok_completion(), ok_completion()])
    sleep = RecordingSleep()

    result = _generate(llm, sleep)

    assert result.succeeded
    assert len(llm.calls) == 1
    assert sleep.delays == []
    assert len(result.attempts) == 1


def test_timeout_then_success_uses_second_attempt_after_backoff():
    llm = ScriptedLLM([timeout_failure(), ok_completion()])
    sleep = RecordingSleep()

    result = _generate(llm, sleep)

    assert result.succeeded
    assert result.reading.title == VALID_READING["title"]
    assert len(llm.calls) == 2
    assert sleep.delays == [1.0]
    assert result.attempts[0].provider_error.startswith("timeout")
    assert result.attempts[1].provider_error is None


def test_parse_failure_is_retried():
    llm = ScriptedLLM([Completion("The oracle mumbles."), ok_completion()])
    result = _generate(llm, RecordingSleep())
    assert result.succeeded
    assert result.attempts[0].parse_error == "Failed to parse LLM response as JSON"
    assert result.attempts[0].raw_text == "The oracle mumbles."


def test_budget_exhausted_returns_empty_result_without_third_call():
    llm = ScriptedLLM([timeout_failure(), Completion("still not json"), ok_completion()])
    sleep = RecordingSleep()

    result = _generate(llm, sleep)

    assert not result.succeeded
    assert result.reading is None
    assert len(llm.calls) == 2
    assert sleep.delays == [1.0]


def test_backoff_doubles_between_attempts():
    llm = ScriptedLLM([timeout_failure()] * 3)
    sleep = RecordingSleep()
    _generate(llm, sleep, max_attempts=3)
    assert sleep.delays == [1.0, 2.0]


def test_non_retryable_failure_stops_immediately():
    llm = ScriptedLLM([CompletionFailure("provider_error", "LLM API error (401)", retryable=False), ok_completion()])
    sleep = RecordingSleep()

    result = _generate(llm, sleep)

    assert not result.succeeded
    assert len(llm.calls) == 1
    assert sleep.delays == []
