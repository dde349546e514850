from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from dream_oracle.models import ReadingResponse
from dream_oracle.services.pipeline import DreamReadingPipeline


router = APIRouter()


def get_pipeline(request: Request) -> DreamReadingPipeline:
    return request.app.state.pipeline


@router.post("/analyze-dream", response_model=ReadingResponse)
async def analyze_dream(
    request: Request,
    pipeline: DreamReadingPipeline = Depends(get_pipeline),
) -> ReadingResponse:
    # body is read raw so malformed JSON and field rules report in our envelope
    raw_body = await request.body()
    return await pipeline.run(request.headers.get("Authorization"), raw_body)
