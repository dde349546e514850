from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional
from uuid import uuid4

from pydantic import ValidationError

from dream_oracle.errors import (
    DreamServiceError,
    config_error,
    invalid_json,
    unauthorized,
    validation_error,
)
from dream_oracle.models import DreamInput, ImageRequest, ImageResponse, Reading, ReadingResponse
from dream_oracle.services.dream_images import DreamImageService
from dream_oracle.services.fallback import fallback_reading
from dream_oracle.services.generation import CompletionSource, generate_reading
from dream_oracle.services.prompts import build_messages
from dream_oracle.services.request_validation import validate_request
from dream_oracle.settings import Settings
from dream_oracle.storage.auth import SupabaseAuth
from dream_oracle.storage.dream_records import DreamRecordStore, utc_now
from dream_oracle.storage.supabase import StorageError


logger = logging.getLogger("dream-oracle.pipeline")


class DreamReadingPipeline:
    """
    Request handler for dream readings:
      authenticate -> validate -> generate (retry, else fallback)
      -> image enrichment (optional) -> best-effort persist -> respond

    Only the first two stages can reject a request. Everything after them
    degrades quietly and the caller always gets a Reading.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        llm: CompletionSource,
        images: DreamImageService,
        auth: SupabaseAuth,
        records: DreamRecordStore,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.settings = settings
        self.llm = llm
        self.images = images
        self.auth = auth
        self.records = records
        self._sleep = sleep
        self._clock = clock

    # ─────────────────────────────────────────────
    # Rejecting stages
    # ─────────────────────────────────────────────

    async def authenticate(self, authorization: Optional[str], correlation_id: str) -> str:
        missing = self.settings.missing_credentials()
        if missing:
            logger.error("[%s] Missing configuration: %s", correlation_id, ", ".join(missing))
            raise config_error()

        if not authorization:
            raise unauthorized("Missing authorization header")

        try:
            user_id = await self.auth.resolve_user_id(authorization)
        except StorageError as exc:
            logger.error("[%s] Auth lookup failed: %s", correlation_id, exc)
            raise DreamServiceError(
                "INTERNAL_ERROR",
                "An unexpected error occurred. Please try again.",
                500,
                retryable=True,
            ) from exc

        if not user_id:
            logger.info("[%s] Auth rejected", correlation_id)
            raise unauthorized("Invalid or expired token")
        return user_id

    @staticmethod
    def decode_body(raw_body: bytes) -> Any:
        try:
            return json.loads(raw_body)
        except (ValueError, TypeError, RecursionError) as exc:
            raise invalid_json() from exc

    def validate(self, raw_body: bytes) -> DreamInput:
        validation = validate_request(self.decode_body(raw_body))
        if not validation.ok:
            raise validation_error(validation.error or "Invalid request")
        return validation.dream_input

    # ─────────────────────────────────────────────
    # Reading flow
    # ─────────────────────────────────────────────

    async def run(self, authorization: Optional[str], raw_body: bytes) -> ReadingResponse:
        correlation_id = str(uuid4())
        user_id = await self.authenticate(authorization, correlation_id)
        dream = self.validate(raw_body)

        messages = build_messages(dream.dream_text, dream.dreamer_context)
        result = await generate_reading(
            self.llm,
            messages,
            max_attempts=self.settings.dream_llm_max_attempts,
            backoff_secs=self.settings.dream_llm_backoff_secs,
            sleep=self._sleep,
            correlation_id=correlation_id,
        )

        fallback_used = not result.succeeded
        if fallback_used:
            last = result.attempts[-1] if result.attempts else None
            last_error = (last.provider_error or last.parse_error) if last else None
            logger.error(
                "[%s] All %d attempts failed, using fallback reading. Last error: %s",
                correlation_id,
                len(result.attempts),
                last_error,
            )
            reading = fallback_reading()
        else:
            reading = result.reading

        reading = await self._enrich_with_image(reading, dream, user_id, authorization, fallback_used, correlation_id)

        record = reading.to_record()
        if dream.dream_id:
            await self._persist(dream.dream_id, user_id, record, authorization, correlation_id)

        payload: Dict[str, Any] = {**record, "timestamp": self._clock().isoformat()}
        if fallback_used:
            payload["fallback"] = True
        return ReadingResponse(reading=payload)

    async def _enrich_with_image(
        self,
        reading: Reading,
        dream: DreamInput,
        user_id: str,
        authorization: Optional[str],
        fallback_used: bool,
        correlation_id: str,
    ) -> Reading:
        if reading.image_url:
            return reading
        if not dream.dream_text or not dream.dream_id:
            logger.info("[%s] Image step skipped: no dream_id to key storage", correlation_id)
            return reading
        if fallback_used and not self.settings.dream_image_on_fallback:
            logger.info("[%s] Image step skipped for fallback reading", correlation_id)
            return reading

        logger.info("[%s] Generating dream image", correlation_id)
        try:
            image_url = await self.images.create_image(
                dream_text=dream.dream_text,
                symbol_name=reading.primary_symbol,
                owner_id=user_id,
                dream_id=dream.dream_id,
                authorization=authorization,
                correlation_id=correlation_id,
            )
        except Exception as exc:  # noqa: BLE001
            logger.error("[%s] Image step failed: %s", correlation_id, exc)
            return reading

        if not image_url:
            return reading
        return reading.model_copy(update={"image_url": image_url})

    async def _persist(
        self,
        dream_id: str,
        user_id: str,
        record: Dict[str, Any],
        authorization: Optional[str],
        correlation_id: str,
    ) -> None:
        try:
            await self.records.update_reading(dream_id, user_id, record, authorization=authorization)
        except Exception as exc:  # noqa: BLE001
            logger.error("[%s] Failed to update dream record: %s", correlation_id, exc)
            return
        logger.info("[%s] Dream record updated", correlation_id)

    # ─────────────────────────────────────────────
    # Standalone image flow
    # ─────────────────────────────────────────────

    async def generate_image(self, authorization: Optional[str], raw_body: bytes) -> ImageResponse:
        correlation_id = str(uuid4())
        user_id = await self.authenticate(authorization, correlation_id)

        body = self.decode_body(raw_body)
        if not isinstance(body, dict):
            raise validation_error("Request body must be a JSON object")
        try:
            req = ImageRequest.model_validate(body)
        except ValidationError as exc:
            raise validation_error("dream_id, dream_text and symbol_name must be strings") from exc
        if not req.dream_id or not req.dream_text:
            raise validation_error("dream_id and dream_text are required")

        image_url = await self.images.create_image(
            dream_text=req.dream_text,
            symbol_name=req.symbol_name,
            owner_id=user_id,
            dream_id=req.dream_id,
            authorization=authorization,
            correlation_id=correlation_id,
        )
        if not image_url:
            raise DreamServiceError("IMAGE_ERROR", "Image generation failed", 500, retryable=True)

        await self._attach_image(req.dream_id, user_id, image_url, authorization, correlation_id)
        return ImageResponse(image_url=image_url)

    async def _attach_image(
        self,
        dream_id: str,
        user_id: str,
        image_url: str,
        authorization: Optional[str],
        correlation_id: str,
    ) -> None:
        try:
            existing = await self.records.fetch_reading(dream_id, user_id, authorization=authorization)
            if not existing:
                logger.info("[%s] No reading on record yet; image not attached", correlation_id)
                return
            await self.records.update_reading(
                dream_id,
                user_id,
                {**existing, "image_url": image_url},
                authorization=authorization,
            )
        except Exception as exc:  # noqa: BLE001
            logger.error("[%s] Failed to attach image to dream record: %s", correlation_id, exc)
