from __future__ import annotations

import asyncio
from typing import Optional

import httpx

from dream_oracle.storage.supabase import StorageError, SupabaseCollaborator


class DreamImageStore(SupabaseCollaborator):
    """Durable object storage for generated dream images."""

    def object_path(self, owner_id: str, dream_id: str) -> str:
        return f"{owner_id}/{dream_id}.png"

    def public_url(self, path: str) -> str:
        bucket = self._settings.dream_image_bucket
        return f"{self._base_url()}/storage/v1/object/public/{bucket}/{path}"

    async def put(
        self,
        path: str,
        data: bytes,
        *,
        authorization: Optional[str],
        content_type: str = "image/png",
    ) -> str:
        """Upload (upsert) an object and return its public URL."""
        bucket = self._settings.dream_image_bucket
        url = f"{self._base_url()}/storage/v1/object/{bucket}/{path}"
        timeout = self._settings.dream_image_upload_timeout_secs
        headers = self._headers(authorization, **{"Content-Type": content_type, "x-upsert": "true"})
        try:
            response = await asyncio.wait_for(
                self._http.post(url, content=data, headers=headers, timeout=timeout),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, httpx.HTTPError) as exc:
            raise StorageError(f"upload failed path={path}: {exc!r}") from exc

        if not response.is_success:
            raise StorageError(f"upload failed path={path} status={response.status_code}: {response.text[:200]}")
        return self.public_url(path)
