import asyncio
import json

import httpx
from conftest import make_settings

from dream_oracle.services.dream_images import DreamImageService
from dream_oracle.services.image_client import DreamImageClient
from dream_oracle.storage.object_store import DreamImageStore


PROVIDER_URL = "https://cdn.test/tmp/abc.png"
PUBLIC_URL = "https://sb.test/storage/v1/object/public/dream-images/user-1/dream-9.png"


def _handler(*, generate_status=200, generate_body=None, download_status=200, upload_status=200, log=None):
    log = log if log is not None else []

    def handler(request: httpx.Request) -> httpx.Response:
        log.append((request.method, str(request.url)))
        url = str(request.url)
        if url.endswith("/images/generations"):
            body = generate_body if generate_body is not None else {"data": [{"url": PROVIDER_URL}]}
            return httpx.Response(generate_status, json=body)
        if url == PROVIDER_URL:
            return httpx.Response(download_status, content=b"\x89PNG-bytes")
        if "/storage/v1/object/" in url:
            return httpx.Response(upload_status, json={"Key": "dream-images/user-1/dream-9.png"})
        return httpx.Response(404)

    return handler


def _create(handler, **settings_overrides):
    settings = make_settings(**settings_overrides)

    async def _call():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            service = DreamImageService(DreamImageClient(settings, http), DreamImageStore(settings, http))
            return await service.create_image(
                dream_text="A lantern floating above a frozen lake.",
                symbol_name="Lantern",
                owner_id="user-1",
                dream_id="dream-9",
                authorization="Bearer user-jwt",
            )

    return asyncio.run(_call())


def test_generated_image_is_stored_and_public_url_returned():
    log = []
    assert _create(_handler(log=log)) == PUBLIC_URL
    methods = [method for method, _ in log]
    assert methods == ["POST", "GET", "POST"]
    assert log[2][1] == "https://sb.test/storage/v1/object/dream-images/user-1/dream-9.png"


def test_download_failure_falls_back_to_provider_url():
    assert _create(_handler(download_status=500)) == PROVIDER_URL


def test_upload_failure_falls_back_to_provider_url():
    assert _create(_handler(upload_status=403)) == PROVIDER_URL


def test_generation_error_status_returns_none():
    assert _create(_handler(generate_status=500)) is None


def test_missing_url_returns_none():
    assert _create(_handler(generate_body={"data": []})) is None
    assert _create(_handler(generate_body={"data": [{"revised_prompt": "x"}]})) is None


def test_generation_timeout_returns_none():
    def handler(request):
        raise httpx.ConnectTimeout("slow", request=request)

    assert _create(handler) is None


def test_image_request_payload():
    seen = {}

    def handler(request):
        if str(request.url).endswith("/images/generations"):
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers["Authorization"]
        return _handler()(request)

    _create(handler)
    body = seen["body"]
    assert body["model"] == "dall-e-3"
    assert body["n"] == 1
    assert body["size"] == "1024x1024"
    assert body["quality"] == "standard"
    assert "Central focus on Lantern." in body["prompt"]
    assert seen["auth"] == "Bearer sk-test"


def test_upload_sends_user_credentials_and_upsert():
    seen = {}

    def handler(request):
        if "/storage/v1/object/" in str(request.url):
            seen["headers"] = request.headers
            seen["content"] = request.content
        return _handler()(request)

    _create(handler)
    assert seen["headers"]["authorization"] == "Bearer user-jwt"
    assert seen["headers"]["apikey"] == "anon-test"
    assert seen["headers"]["x-upsert"] == "true"
    assert seen["headers"]["content-type"] == "image/png"
    assert seen["content"] == b"\x89PNG-bytes"


def test_unparseable_provider_url_is_returned_as_is():
    odd_url = "https://cdn.test/a b\x00.png"
    log = []

    def handler(request):
        log.append(str(request.url))
        if str(request.url).endswith("/images/generations"):
            return httpx.Response(200, json={"data": [{"url": odd_url}]})
        return httpx.Response(500)

    assert _create(handler) == odd_url
    assert len(log) == 1
