"""Plan router: images + audio analysis (+ oracle suggestions) -> EditingPlan."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from backend.routers.deps import get_planner
from backend.services.audio.types import AudioFeatures
from backend.services.video.planner import EditingPlanner, NoImagesError, PlanningError
from backend.services.video.switch_points import parse_plan_metadata, parse_switch_points
from backend.services.video.types import ImageAttributes, clamp_dynamism

logger = logging.getLogger("slideshow_studio.routers.plan")
router = APIRouter()


class ImageInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    dynamism: Optional[float] = 5.0
    motion_suggestion: Optional[str] = Field(default=None, alias="motionSuggestion")
    mood: Optional[str] = None


class PlanRequest(BaseModel):
    """Request body for ``POST /api/plan``.

    ``switchPoints`` is an already-structured list; ``oracleResponse`` is the
    raw text an LLM returned.  Either, both or neither may be given.
    """

    model_config = ConfigDict(populate_by_name=True)

    images: List[ImageInput]
    audio_analysis: Dict[str, Any] = Field(alias="audioAnalysis")
    duration: Optional[float] = None
    switch_points: Optional[List[Any]] = Field(default=None, alias="switchPoints")
    oracle_response: Optional[str] = Field(default=None, alias="oracleResponse")
    overall_mood: Optional[str] = Field(default=None, alias="overallMood")
    suggested_title: Optional[str] = Field(default=None, alias="suggestedTitle")


@router.post("")
async def create_plan(
    request: PlanRequest,
    planner: EditingPlanner = Depends(get_planner),
) -> Dict[str, Any]:
    """Build an editing plan for the given images over the analysed audio."""
    try:
        features = AudioFeatures.from_dict(request.audio_analysis)
    except (KeyError, TypeError, ValueError) as exc:
        raise HTTPException(
            status_code=422,
            detail=f"Malformed audioAnalysis: {exc}",
        ) from exc

    duration = request.duration if request.duration is not None else features.duration

    external = None
    if request.switch_points is not None:
        external = parse_switch_points(request.switch_points, duration)
    mood, title = request.overall_mood, request.suggested_title
    if request.oracle_response is not None:
        oracle_points = parse_switch_points(request.oracle_response, duration)
        external = sorted((external or []) + oracle_points, key=lambda p: p.time)
        oracle_mood, oracle_title = parse_plan_metadata(request.oracle_response)
        mood = mood or oracle_mood
        title = title or oracle_title

    images = [
        ImageAttributes(
            dynamism=clamp_dynamism(img.dynamism),
            motion_suggestion=img.motion_suggestion,
            mood=img.mood,
        )
        for img in request.images
    ]

    try:
        plan = planner.create_plan(
            features,
            images,
            external=external,
            overall_mood=mood,
            suggested_title=title,
            duration=duration,
        )
    except NoImagesError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="No image analyses provided"
        ) from exc
    except PlanningError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return {"success": True, "editingPlan": plan.to_dict()}
