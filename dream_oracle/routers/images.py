from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from dream_oracle.models import ImageResponse
from dream_oracle.routers.readings import get_pipeline
from dream_oracle.services.pipeline import DreamReadingPipeline


router = APIRouter()


@router.post("/generate-dream-image", response_model=ImageResponse)
async def generate_dream_image(
    request: Request,
    pipeline: DreamReadingPipeline = Depends(get_pipeline),
) -> ImageResponse:
    raw_body = await request.body()
    return await pipeline.generate_image(request.headers.get("Authorization"), raw_body)
