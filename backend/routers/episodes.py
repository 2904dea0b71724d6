"""
Episodes router - generate, list and look up audio briefs.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query, Request
from pydantic import BaseModel

from briefcast.core.errors import FailureKind, GenerationFailure, StorageFailure
from briefcast.episodes import (
    ContentRecord,
    ContentSummary,
    Coverage,
    DurationClass,
    PipelineOrchestrator,
    describe_failure,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/episodes", tags=["episodes"])


# ==================== Request/Response Models ====================

class BriefGenerationRequest(BaseModel):
    topic: str
    duration_class: DurationClass = DurationClass.MEDIUM


class BriefGenerationResponse(BaseModel):
    success: bool
    url: str
    slug: str
    coverage: Coverage
    word_count: int
    estimated_seconds: int
    audio_url: Optional[str] = None
    message: str


class BriefListResponse(BaseModel):
    success: bool
    episodes: List[ContentSummary]


class BriefDetailResponse(BaseModel):
    success: bool
    episode: ContentRecord


FAILURE_STATUS = {
    FailureKind.CAPACITY_EXCEEDED: 503,
    FailureKind.TIMEOUT: 504,
    FailureKind.OTHER: 502,
}


# ==================== Dependencies ====================

def get_orchestrator(request: Request) -> PipelineOrchestrator:
    """Get the pipeline orchestrator built at startup."""
    return request.app.state.orchestrator


# ==================== Endpoints ====================

@router.post("", response_model=BriefGenerationResponse)
async def generate_brief(
    request: BriefGenerationRequest,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator)
):
    """
    Generate an audio brief for a topic.

    Writes the script, synthesizes as much of it as the speech service
    allows, mints a slug and stores the record. Only a failed script is an
    error; everything else degrades the result.
    """
    if not request.topic.strip():
        raise HTTPException(status_code=400, detail="Topic must not be empty")

    try:
        result = await orchestrator.generate(request.topic, request.duration_class)
    except GenerationFailure as e:
        raise HTTPException(status_code=FAILURE_STATUS[e.kind], detail=describe_failure(e))

    return BriefGenerationResponse(
        success=True,
        url=result.url,
        slug=result.slug,
        coverage=result.coverage,
        word_count=result.word_count,
        estimated_seconds=result.estimated_seconds,
        audio_url=result.audio_url,
        message=result.message,
    )


@router.get("", response_model=BriefListResponse)
async def list_briefs(
    limit: int = Query(10, ge=1, le=50),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator)
):
    """List the most recent briefs."""
    try:
        episodes = await orchestrator.list_recent(limit)
    except StorageFailure as e:
        logger.error(f"Failed to list briefs: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))

    return BriefListResponse(success=True, episodes=episodes)


@router.get("/{slug}", response_model=BriefDetailResponse)
async def get_brief(
    slug: str,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator)
):
    """Get a specific brief."""
    try:
        record = await orchestrator.lookup(slug)
    except StorageFailure as e:
        logger.error(f"Failed to get brief: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))

    if record is None:
        raise HTTPException(status_code=404, detail="Brief not found")

    return BriefDetailResponse(success=True, episode=record)
