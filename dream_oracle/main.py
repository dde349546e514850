from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dream_oracle.errors import install_error_handlers
from dream_oracle.routers.images import router as images_router
from dream_oracle.routers.readings import router as readings_router
from dream_oracle.services.dream_images import DreamImageService
from dream_oracle.services.image_client import DreamImageClient
from dream_oracle.services.llm_client import DreamLLMClient
from dream_oracle.services.pipeline import DreamReadingPipeline
from dream_oracle.settings import Settings, get_settings
from dream_oracle.storage.auth import SupabaseAuth
from dream_oracle.storage.dream_records import DreamRecordStore
from dream_oracle.storage.object_store import DreamImageStore


settings = get_settings()

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger("dream-oracle")


def build_pipeline(settings: Settings, http: httpx.AsyncClient) -> DreamReadingPipeline:
    return DreamReadingPipeline(
        settings,
        llm=DreamLLMClient(settings, http),
        images=DreamImageService(DreamImageClient(settings, http), DreamImageStore(settings, http)),
        auth=SupabaseAuth(settings, http),
        records=DreamRecordStore(settings, http),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Dream Oracle service starting version=%s node=%s", settings.service_version, settings.node_name)
    missing = settings.missing_credentials()
    if missing:
        logger.warning("Missing configuration, requests will be rejected: %s", ", ".join(missing))

    http = httpx.AsyncClient(timeout=httpx.Timeout(60.0, connect=10.0))
    if getattr(app.state, "pipeline", None) is None:
        app.state.pipeline = build_pipeline(settings, http)
    try:
        yield
    finally:
        await http.aclose()


app = FastAPI(title="Dream Oracle", version=settings.service_version, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)
install_error_handlers(app)


@app.get("/health")
def health():
    return {
        "ok": True,
        "service": settings.service_name,
        "version": settings.service_version,
        "node": settings.node_name,
    }


app.include_router(readings_router)
app.include_router(images_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)
