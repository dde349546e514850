from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Protocol

from dream_oracle.models import Reading
from dream_oracle.services.extraction import extract_json
from dream_oracle.services.llm_client import Completion, CompletionResult
from dream_oracle.services.reading_schema import validate_reading


logger = logging.getLogger("dream-oracle.generation")

OK = "ok"
PROVIDER_ERROR = "provider_error"
PARSE_ERROR = "parse_error"
VALIDATION_ERROR = "validation_error"


class CompletionSource(Protocol):
    async def complete(self, messages: List[Dict[str, str]]) -> CompletionResult: ...


@dataclass(frozen=True)
class AttemptOutcome:
    kind: str
    reading: Optional[Reading] = None
    detail: Optional[str] = None
    retryable: bool = True


@dataclass(frozen=True)
class GenerationAttempt:
    """Diagnostic record for one provider call. Logged, never returned to callers."""

    attempt_index: int
    raw_text: Optional[str] = None
    parse_error: Optional[str] = None
    provider_error: Optional[str] = None


@dataclass
class GenerationResult:
    reading: Optional[Reading]
    attempts: List[GenerationAttempt] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.reading is not None


def interpret_completion(result: CompletionResult) -> AttemptOutcome:
    if not isinstance(result, Completion):
        return AttemptOutcome(PROVIDER_ERROR, detail=f"{result.kind}: {result.detail}", retryable=result.retryable)

    parsed = extract_json(result.text)
    if parsed is None:
        return AttemptOutcome(PARSE_ERROR, detail="Failed to parse LLM response as JSON")

    validation = validate_reading(parsed)
    if not validation.ok:
        return AttemptOutcome(VALIDATION_ERROR, detail=validation.error)
    return AttemptOutcome(OK, reading=validation.reading)


def _record(index: int, result: CompletionResult, outcome: AttemptOutcome) -> GenerationAttempt:
    raw_text = result.text if isinstance(result, Completion) else None
    if outcome.kind == PROVIDER_ERROR:
        return GenerationAttempt(index, raw_text=raw_text, provider_error=outcome.detail)
    if outcome.kind in (PARSE_ERROR, VALIDATION_ERROR):
        return GenerationAttempt(index, raw_text=raw_text, parse_error=outcome.detail)
    return GenerationAttempt(index, raw_text=raw_text)


async def generate_reading(
    llm: CompletionSource,
    messages: List[Dict[str, str]],
    *,
    max_attempts: int = 2,
    backoff_secs: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    correlation_id: str = "-",
) -> GenerationResult:
    """
    Ask the provider for a Reading, retrying with exponential backoff.

    Stops at the first schema-valid Reading, after a non-retryable provider
    failure, or when the attempt budget runs out. Returns an empty result
    rather than raising; the caller decides what to substitute.
    """
    attempts: List[GenerationAttempt] = []
    for attempt in range(max_attempts):
        logger.info("[%s] LLM attempt %d/%d", correlation_id, attempt + 1, max_attempts)
        result = await llm.complete(messages)
        outcome = interpret_completion(result)
        attempts.append(_record(attempt, result, outcome))

        if outcome.kind == OK:
            logger.info("[%s] Parsed reading on attempt %d", correlation_id, attempt + 1)
            return GenerationResult(outcome.reading, attempts)

        raw_len = len(attempts[-1].raw_text or "")
        logger.warning(
            "[%s] LLM attempt %d failed kind=%s detail=%s raw_len=%d",
            correlation_id,
            attempt + 1,
            outcome.kind,
            outcome.detail,
            raw_len,
        )
        if not outcome.retryable:
            logger.warning("[%s] Provider failure is not retryable; skipping remaining attempts", correlation_id)
            break
        if attempt < max_attempts - 1:
            await sleep(backoff_secs * (2 ** attempt))

    return GenerationResult(None, attempts)
