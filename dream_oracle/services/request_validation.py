from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from dream_oracle.models import DreamerContext, DreamInput


MIN_DREAM_TEXT_LENGTH = 10
MAX_DREAM_TEXT_LENGTH = 10000

OPTIONAL_STRING_FIELDS = ("mood", "dream_id", "zodiac_sign", "gender", "age_range")


@dataclass(frozen=True)
class RequestValidation:
    ok: bool
    error: Optional[str] = None
    dream_input: Optional[DreamInput] = None


def _reject(error: str) -> RequestValidation:
    return RequestValidation(ok=False, error=error)


def validate_request(body: Any) -> RequestValidation:
    """
    Checks a decoded request body and builds the DreamInput.

    Rules run in a fixed order and the first failure is reported.
    """
    if not isinstance(body, dict):
        return _reject("Request body must be a JSON object")

    raw_text = body.get("dream_text")
    if not isinstance(raw_text, str):
        return _reject("dream_text is required and must be a string")

    dream_text = raw_text.strip()
    if len(dream_text) < MIN_DREAM_TEXT_LENGTH:
        return _reject(f"dream_text must be at least {MIN_DREAM_TEXT_LENGTH} characters")
    if len(dream_text) > MAX_DREAM_TEXT_LENGTH:
        return _reject(f"dream_text must not exceed {MAX_DREAM_TEXT_LENGTH} characters")

    # a present key with a null value counts as provided
    for field in OPTIONAL_STRING_FIELDS:
        if field in body and not isinstance(body[field], str):
            return _reject(f"{field} must be a string if provided")

    context = DreamerContext(
        mood=body.get("mood"),
        zodiac_sign=body.get("zodiac_sign"),
        gender=body.get("gender"),
        age_range=body.get("age_range"),
    )
    return RequestValidation(
        ok=True,
        dream_input=DreamInput(
            dream_text=dream_text,
            mood=body.get("mood"),
            dream_id=body.get("dream_id"),
            dreamer_context=context,
        ),
    )
