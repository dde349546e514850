import json
import os
import sys
from typing import Any, Dict, List, Optional

import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

# Provide defaults for settings imports in this service
os.environ.setdefault("SERVICE_NAME", "dream-oracle")
os.environ.setdefault("SERVICE_VERSION", "0.1.0")
os.environ.setdefault("NODE_NAME", "athena")
os.environ.setdefault("OPENAI_API_KEY", "sk-test")
os.environ.setdefault("SUPABASE_URL", "https://sb.test")
os.environ.setdefault("SUPABASE_ANON_KEY", "anon-test")

from dream_oracle.services.fallback import FALLBACK_READING  # noqa: E402
from dream_oracle.services.llm_client import Completion, CompletionFailure  # noqa: E402
from dream_oracle.services.pipeline import DreamReadingPipeline  # noqa: E402
from dream_oracle.settings import Settings  # noqa: E402
from dream_oracle.storage.supabase import StorageError  # noqa: E402


VALID_READING: Dict[str, Any] = {
    "title": "The Tide Beneath the Floorboards",
    "tldr": "Rising water in a familiar house hints at feelings you have kept politely downstairs.",
    "plain_english": "The dream might suggest that something emotional is building up at home.",
    "symbols": [
        {
            "name": "Water",
            "interpretation": "The water rising in your childhood home may point to old feelings resurfacing.",
            "meaning": "Emotion, the unconscious, cleansing",
            "shadow": "Being overwhelmed by what was left unspoken",
            "guidance": "Let one feeling be named out loud this week",
        }
    ],
    "omen": "A season of emotional housekeeping is beginning. Small honest conversations will carry you.",
    "ritual": "Pour a glass of water at dusk and name what you are ready to release before drinking it.",
    "journal_prompt": "What feeling have you been keeping in the basement?",
    "tags": ["water", "home", "emotion"],
    "content_warnings": [],
}

DREAM_TEXT = "I was walking through my childhood home and the floors slowly filled with warm water."


def make_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = {
        "OPENAI_API_KEY": "sk-test",
        "SUPABASE_URL": "https://sb.test",
        "SUPABASE_ANON_KEY": "anon-test",
    }
    values.update(overrides)
    return Settings(**values)


class ScriptedLLM:
    """Returns queued completion results in order and counts calls."""

    def __init__(self, results: List[Any]) -> None:
        self.results = list(results)
        self.calls: List[Any] = []

    async def complete(self, messages):
        self.calls.append(messages)
        return self.results.pop(0)


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeAuth:
    def __init__(self, user_id: Optional[str] = "user-1", error: Optional[Exception] = None) -> None:
        self.user_id = user_id
        self.error = error
        self.calls: List[str] = []

    async def resolve_user_id(self, authorization: str) -> Optional[str]:
        self.calls.append(authorization)
        if self.error:
            raise self.error
        return self.user_id


class FakeRecords:
    def __init__(self, fail: bool = False, existing: Optional[Dict[str, Any]] = None) -> None:
        self.fail = fail
        self.existing = existing
        self.updates: List[Dict[str, Any]] = []

    async def update_reading(self, dream_id, user_id, reading, *, authorization):
        if self.fail:
            raise StorageError("record update failed status=503")
        self.updates.append({"dream_id": dream_id, "user_id": user_id, "reading": reading})

    async def fetch_reading(self, dream_id, user_id, *, authorization):
        if self.fail:
            raise StorageError("record read failed status=503")
        return self.existing


class FakeImages:
    def __init__(self, url: Optional[str] = None) -> None:
        self.url = url
        self.calls: List[Dict[str, Any]] = []

    async def create_image(self, **kwargs):
        self.calls.append(kwargs)
        return self.url


def ok_completion(payload: Optional[Dict[str, Any]] = None) -> Completion:
    return Completion(json.dumps(payload or VALID_READING))


def timeout_failure() -> CompletionFailure:
    return CompletionFailure("timeout", "LLM request timed out after 30s")


@pytest.fixture
def build_pipeline():
    def _build(
        *,
        llm=None,
        images=None,
        auth=None,
        records=None,
        settings=None,
        sleep=None,
    ) -> DreamReadingPipeline:
        return DreamReadingPipeline(
            settings or make_settings(),
            llm=llm or ScriptedLLM([ok_completion()]),
            images=images or FakeImages(),
            auth=auth or FakeAuth(),
            records=records or FakeRecords(),
            sleep=sleep or RecordingSleep(),
        )

    return _build


@pytest.fixture
def fallback_record() -> Dict[str, Any]:
    return FALLBACK_READING.to_record()
