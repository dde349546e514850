from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from pydantic import ValidationError

from dream_oracle.models import Reading


REQUIRED_STRING_FIELDS = ("title", "tldr", "omen", "ritual", "journal_prompt")
REQUIRED_SYMBOL_FIELDS = ("name", "meaning", "shadow", "guidance")

MAX_TLDR_CHARS = 150
MIN_SYMBOLS, MAX_SYMBOLS = 1, 3
MIN_TAGS, MAX_TAGS = 3, 5


@dataclass(frozen=True)
class ReadingValidation:
    ok: bool
    error: Optional[str] = None
    reading: Optional[Reading] = None


def _fail(error: str) -> ReadingValidation:
    return ReadingValidation(ok=False, error=error)


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def _check(value: Any) -> Optional[str]:
    if not isinstance(value, dict):
        return "Reading must be an object"

    for field in REQUIRED_STRING_FIELDS:
        if not _non_empty_str(value.get(field)):
            return f"Missing or invalid field: {field}"

    if "plain_english" in value and not isinstance(value["plain_english"], str):
        return "plain_english must be a string"

    if len(value["tldr"]) > MAX_TLDR_CHARS:
        return f"tldr exceeds {MAX_TLDR_CHARS} characters"

    symbols = value.get("symbols")
    if not isinstance(symbols, list):
        return "symbols must be an array"
    if not MIN_SYMBOLS <= len(symbols) <= MAX_SYMBOLS:
        return f"symbols must have {MIN_SYMBOLS}-{MAX_SYMBOLS} items"
    for index, symbol in enumerate(symbols, start=1):
        if not isinstance(symbol, dict):
            return f"Symbol {index} must be an object"
        for field in REQUIRED_SYMBOL_FIELDS:
            if not _non_empty_str(symbol.get(field)):
                return f"Symbol {index} missing or invalid field: {field}"
        interpretation = symbol.get("interpretation")
        if interpretation is not None and not isinstance(interpretation, str):
            return f"Symbol {index} interpretation must be a string"

    tags = value.get("tags")
    if not isinstance(tags, list):
        return "tags must be an array"
    if not MIN_TAGS <= len(tags) <= MAX_TAGS:
        return f"tags must have {MIN_TAGS}-{MAX_TAGS} items"
    if not all(isinstance(tag, str) for tag in tags):
        return "All tags must be strings"

    warnings = value.get("content_warnings")
    if not isinstance(warnings, list):
        return "content_warnings must be an array"
    if not all(isinstance(warning, str) for warning in warnings):
        return "All content_warnings must be strings"

    image_url = value.get("image_url")
    if image_url is not None and not isinstance(image_url, str):
        return "image_url must be a string"

    return None


def validate_reading(value: Any) -> ReadingValidation:
    """Check a decoded value against the Reading contract and type it on success."""
    error = _check(value)
    if error:
        return _fail(error)
    try:
        reading = Reading.model_validate(value)
    except ValidationError as exc:
        return _fail(f"Reading does not match schema: {exc.errors()[0].get('msg', 'invalid')}")
    return ReadingValidation(ok=True, reading=reading)
