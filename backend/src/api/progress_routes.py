"""Project progress estimation endpoint."""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from services.models import ProgressSource, parse_datetime
from services.progress_service import (
    completion_ratio_percent,
    compute_progress,
    task_ratio,
    time_ratio,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/projects", tags=["Projects"])


class ProgressRequest(BaseModel):
    action_items: List[Dict[str, Any]] = Field(default_factory=list, description="Action items with a status")
    milestones: List[Dict[str, Any]] = Field(default_factory=list, description="Milestones with completed_at")
    status: Optional[str] = Field(None, description="Project status")
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    progress: Optional[float] = Field(None, ge=0, le=100, description="Previously stored progress")
    now: Optional[datetime] = Field(None, description="Evaluate as of this time instead of the current time")


class ProgressResponse(BaseModel):
    progress: int
    task_ratio: float
    time_ratio: float
    completion_percent: int


@router.post("/progress", response_model=ProgressResponse, status_code=status.HTTP_200_OK)
def estimate_progress(payload: ProgressRequest) -> ProgressResponse:
    try:
        source = ProgressSource.from_dict(payload.model_dump(exclude={"now"}))
    except ValueError as exc:
        logger.info(f"Rejected progress request: {exc}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "validation_error", "message": str(exc)},
        )

    now = parse_datetime(payload.now)
    return ProgressResponse(
        progress=compute_progress(source, now),
        task_ratio=round(task_ratio(source), 4),
        time_ratio=round(time_ratio(source, now), 4),
        completion_percent=completion_ratio_percent(source),
    )
