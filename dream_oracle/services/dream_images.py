from __future__ import annotations

import logging
from typing import Optional

from dream_oracle.services.image_client import DreamImageClient
from dream_oracle.services.prompts import build_image_prompt
from dream_oracle.storage.object_store import DreamImageStore
from dream_oracle.storage.supabase import StorageError


logger = logging.getLogger("dream-oracle.images")


class DreamImageService:
    """
    Generates a dream image and tries to make it durable.

    Two levels of degradation:
      - provider produced nothing      -> None
      - produced but could not persist -> the provider's temporary URL
    """

    def __init__(self, client: DreamImageClient, store: DreamImageStore) -> None:
        self.client = client
        self.store = store

    async def create_image(
        self,
        *,
        dream_text: str,
        symbol_name: Optional[str],
        owner_id: str,
        dream_id: str,
        authorization: Optional[str] = None,
        correlation_id: str = "-",
    ) -> Optional[str]:
        prompt = build_image_prompt(dream_text, symbol_name)
        provider_url = await self.client.generate(prompt)
        if not provider_url:
            logger.info("[%s] Image generation skipped or failed", correlation_id)
            return None

        permanent = await self._persist(provider_url, owner_id, dream_id, authorization, correlation_id)
        if permanent:
            logger.info("[%s] Image stored durably", correlation_id)
            return permanent
        logger.warning("[%s] Image persistence failed, using temporary provider URL", correlation_id)
        return provider_url

    async def _persist(
        self,
        provider_url: str,
        owner_id: str,
        dream_id: str,
        authorization: Optional[str],
        correlation_id: str,
    ) -> Optional[str]:
        try:
            data = await self.client.download(provider_url)
            if data is None:
                return None
            path = self.store.object_path(owner_id, dream_id)
            return await self.store.put(path, data, authorization=authorization)
        except StorageError as exc:
            logger.error("[%s] Storage upload failed: %s", correlation_id, exc)
        except Exception as exc:  # noqa: BLE001
            logger.error("[%s] Image persistence failed: %r", correlation_id, exc)
        return None
