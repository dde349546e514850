from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from dream_oracle.storage.supabase import StorageError, SupabaseCollaborator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DreamRecordStore(SupabaseCollaborator):
    """The dream rows a Reading attaches to, addressed by record id and owner id."""

    def _url(self) -> str:
        return f"{self._base_url()}/rest/v1/{self._settings.dream_records_table}"

    def _filters(self, dream_id: str, user_id: str) -> Dict[str, str]:
        return {"id": f"eq.{dream_id}", "user_id": f"eq.{user_id}"}

    async def update_reading(
        self,
        dream_id: str,
        user_id: str,
        reading: Dict[str, Any],
        *,
        authorization: Optional[str],
    ) -> None:
        """Conditional update; matching no row is a silent no-op."""
        timeout = self._settings.dream_record_timeout_secs
        body = {"reading": reading, "updated_at": utc_now().isoformat()}
        try:
            response = await asyncio.wait_for(
                self._http.patch(
                    self._url(),
                    params=self._filters(dream_id, user_id),
                    json=body,
                    headers=self._headers(authorization, Prefer="return=minimal"),
                    timeout=timeout,
                ),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, httpx.HTTPError) as exc:
            raise StorageError(f"record update failed dream_id={dream_id}: {exc!r}") from exc

        if not response.is_success:
            raise StorageError(
                f"record update failed dream_id={dream_id} status={response.status_code}: {response.text[:200]}"
            )

    async def fetch_reading(
        self,
        dream_id: str,
        user_id: str,
        *,
        authorization: Optional[str],
    ) -> Optional[Dict[str, Any]]:
        timeout = self._settings.dream_record_timeout_secs
        params = {**self._filters(dream_id, user_id), "select": "reading"}
        try:
            response = await asyncio.wait_for(
                self._http.get(
                    self._url(),
                    params=params,
                    headers=self._headers(authorization),
                    timeout=timeout,
                ),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, httpx.HTTPError) as exc:
            raise StorageError(f"record read failed dream_id={dream_id}: {exc!r}") from exc

        if not response.is_success:
            raise StorageError(f"record read failed dream_id={dream_id} status={response.status_code}")
        try:
            rows = response.json()
        except ValueError as exc:
            raise StorageError(f"record read returned invalid JSON dream_id={dream_id}") from exc
        if not isinstance(rows, list) or not rows or not isinstance(rows[0], dict):
            return None
        reading = rows[0].get("reading")
        return reading if isinstance(reading, dict) else None
