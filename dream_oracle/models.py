from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DreamerContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    mood: Optional[str] = None
    zodiac_sign: Optional[str] = None
    gender: Optional[str] = None
    age_range: Optional[str] = None


class DreamInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    dream_text: str
    mood: Optional[str] = None
    dream_id: Optional[str] = None
    dreamer_context: DreamerContext = Field(default_factory=DreamerContext)


class Symbol(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    interpretation: Optional[str] = None
    meaning: str
    shadow: str
    guidance: str


class Reading(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str
    tldr: str
    plain_english: Optional[str] = None
    symbols: List[Symbol]
    omen: str
    ritual: str
    journal_prompt: str
    tags: List[str]
    content_warnings: List[str] = Field(default_factory=list)
    image_url: Optional[str] = None

    @property
    def primary_symbol(self) -> Optional[str]:
        if not self.symbols:
            return None
        return self.symbols[0].name or None

    def to_record(self) -> Dict[str, Any]:
        """Shape stored on the dream row and returned to the client."""
        return self.model_dump(mode="json", exclude_none=True)


class ErrorBody(BaseModel):
    code: str
    message: str
    retryable: bool = False


class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorBody


class ReadingResponse(BaseModel):
    success: bool = True
    reading: Dict[str, Any]


class ImageRequest(BaseModel):
    dream_id: Optional[str] = None
    dream_text: Optional[str] = None
    symbol_name: Optional[str] = None


class ImageResponse(BaseModel):
    success: bool = True
    image_url: str
