from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import httpx

from dream_oracle.settings import Settings


logger = logging.getLogger("dream-oracle.llm")

# credential or request-shape problems; retrying cannot fix them
NON_RETRYABLE_STATUSES = frozenset({400, 401, 403, 404})


@dataclass(frozen=True)
class Completion:
    text: str


@dataclass(frozen=True)
class CompletionFailure:
    kind: str  # "timeout" | "provider_error" | "empty_completion"
    detail: str
    retryable: bool = True
    status_code: Optional[int] = None


CompletionResult = Union[Completion, CompletionFailure]


def _extract_text(data: Dict[str, Any]) -> str:
    choices = data.get("choices") or []
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    if not isinstance(first, dict):
        return ""
    msg = first.get("message")
    if isinstance(msg, dict) and msg.get("content") is not None:
        return str(msg["content"])
    if first.get("text") is not None:
        return str(first["text"])
    return ""


class DreamLLMClient:
    """OpenAI-compatible chat completion client that reports failures as values."""

    def __init__(self, settings: Settings, http: httpx.AsyncClient) -> None:
        self._settings = settings
        self._http = http

    def _url(self) -> str:
        return self._settings.dream_llm_base_url.rstrip("/") + "/chat/completions"

    def _payload(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        return {
            "model": self._settings.dream_llm_model,
            "messages": messages,
            "temperature": self._settings.dream_llm_temperature,
            "max_tokens": self._settings.dream_llm_max_tokens,
        }

    async def complete(self, messages: List[Dict[str, str]]) -> CompletionResult:
        api_key = self._settings.openai_api_key
        if not api_key:
            return CompletionFailure("provider_error", "OPENAI_API_KEY not configured", retryable=False)

        timeout = self._settings.dream_llm_timeout_secs
        try:
            response = await asyncio.wait_for(
                self._http.post(
                    self._url(),
                    json=self._payload(messages),
                    headers={"Authorization": f"Bearer {api_key}"},
                    timeout=timeout,
                ),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return CompletionFailure("timeout", f"LLM request timed out after {timeout:g}s")
        except httpx.HTTPError as exc:
            return CompletionFailure("provider_error", f"LLM transport error: {exc}")

        if not response.is_success:
            status = response.status_code
            return CompletionFailure(
                "provider_error",
                f"LLM API error ({status}): {response.text[:200]}",
                retryable=status not in NON_RETRYABLE_STATUSES,
                status_code=status,
            )

        try:
            data = response.json()
        except ValueError:
            return CompletionFailure("provider_error", "LLM response body is not JSON")

        if not isinstance(data, dict):
            return CompletionFailure("provider_error", "LLM response body is not an object")
        if data.get("error"):
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            return CompletionFailure("provider_error", f"LLM error: {message}")
        if not data.get("choices"):
            return CompletionFailure("provider_error", "No choices in LLM response")

        text = _extract_text(data)
        if not text.strip():
            return CompletionFailure("empty_completion", "LLM returned an empty completion")
        return Completion(text)
