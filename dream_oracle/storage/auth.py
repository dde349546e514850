from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx

from dream_oracle.storage.supabase import StorageError, SupabaseCollaborator


logger = logging.getLogger("dream-oracle.auth")


class SupabaseAuth(SupabaseCollaborator):
    """Resolves a caller's bearer credential to a user id."""

    async def resolve_user_id(self, authorization: str) -> Optional[str]:
        """
        Returns the user id, or None when the token is rejected.

        Raises StorageError when the auth service cannot be reached, so an
        outage is not reported to the caller as a bad token.
        """
        url = f"{self._base_url()}/auth/v1/user"
        timeout = self._settings.dream_auth_timeout_secs
        try:
            response = await asyncio.wait_for(
                self._http.get(url, headers=self._headers(authorization), timeout=timeout),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, httpx.HTTPError) as exc:
            raise StorageError(f"auth lookup failed: {exc!r}") from exc

        if response.status_code >= 500:
            raise StorageError(f"auth service error status={response.status_code}")
        if not response.is_success:
            logger.info("Auth rejected token status=%s", response.status_code)
            return None

        try:
            data = response.json()
        except ValueError:
            return None
        user_id = data.get("id") if isinstance(data, dict) else None
        return str(user_id) if user_id else None
