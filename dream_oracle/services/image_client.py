from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from dream_oracle.settings import Settings


logger = logging.getLogger("dream-oracle.images")


class DreamImageClient:
    """Image generation and download. Every failure comes back as None."""

    def __init__(self, settings: Settings, http: httpx.AsyncClient) -> None:
        self._settings = settings
        self._http = http

    def _url(self) -> str:
        return self._settings.dream_image_base_url.rstrip("/") + "/images/generations"

    def _payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self._settings.dream_image_model,
            "prompt": prompt,
            "n": 1,
            "size": self._settings.dream_image_size,
            "quality": self._settings.dream_image_quality,
        }

    async def generate(self, prompt: str) -> Optional[str]:
        api_key = self._settings.openai_api_key
        if not api_key:
            logger.warning("Image generation skipped: OPENAI_API_KEY not configured")
            return None

        timeout = self._settings.dream_image_timeout_secs
        try:
            response = await asyncio.wait_for(
                self._http.post(
                    self._url(),
                    json=self._payload(prompt),
                    headers={"Authorization": f"Bearer {api_key}"},
                    timeout=timeout,
                ),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.error("Image generation timed out after %ss", timeout)
            return None
        except httpx.HTTPError as exc:
            logger.error("Image generation transport error: %s", exc)
            return None

        if not response.is_success:
            logger.error("Image generation failed (%s): %s", response.status_code, response.text[:200])
            return None

        try:
            data = response.json()
        except ValueError:
            logger.error("Image generation returned a non-JSON body")
            return None

        items = data.get("data") if isinstance(data, dict) else None
        if not isinstance(items, list) or not items or not isinstance(items[0], dict):
            logger.error("Image generation response has no data")
            return None
        url = items[0].get("url")
        return url if isinstance(url, str) and url else None

    async def download(self, url: str) -> Optional[bytes]:
        timeout = self._settings.dream_image_download_timeout_secs
        try:
            response = await asyncio.wait_for(self._http.get(url, timeout=timeout), timeout=timeout)
        except (asyncio.TimeoutError, httpx.HTTPError) as exc:
            logger.warning("Image download failed: %r", exc)
            return None
        if not response.is_success:
            logger.warning("Image download failed status=%s", response.status_code)
            return None
        return response.content
