from __future__ import annotations

from typing import Dict, Optional

import httpx

from dream_oracle.settings import Settings


class StorageError(RuntimeError):
    """A collaborator call (auth, storage, records) failed or timed out."""


class SupabaseCollaborator:
    def __init__(self, settings: Settings, http: httpx.AsyncClient) -> None:
        self._settings = settings
        self._http = http

    def _base_url(self) -> str:
        if not self._settings.supabase_url:
            raise StorageError("SUPABASE_URL not configured")
        return self._settings.supabase_url.rstrip("/")

    def _headers(self, authorization: Optional[str], **extra: str) -> Dict[str, str]:
        headers = {"apikey": self._settings.supabase_anon_key or ""}
        if authorization:
            headers["Authorization"] = authorization
        headers.update(extra)
        return headers
