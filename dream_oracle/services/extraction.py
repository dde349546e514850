from __future__ import annotations

import json
import re
from typing import Any, Optional


_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)
_BRACES_RE = re.compile(r"\{.*\}", re.DOTALL)


def _loads(text: str) -> Optional[Any]:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, RecursionError):
        return None


def extract_json(content: Optional[str]) -> Optional[Any]:
    """
    Recover a JSON document from a model completion.

    Tried in order: the whole completion, the first fenced block, the widest
    {...} span. A fenced block that does not parse ends the search.
    """
    if not isinstance(content, str) or not content.strip():
        return None

    try:
        return json.loads(content)
    except (json.JSONDecodeError, RecursionError):
        pass

    fenced = _FENCE_RE.search(content)
    if fenced:
        return _loads(fenced.group(1).strip())

    brace_match = _BRACES_RE.search(content)
    if brace_match:
        return _loads(brace_match.group(0))
    return None
