"""Duplicate table routes."""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from scoreboard.api.deps import get_model
from scoreboard.api.schemas import DuplicateGroupResponse
from scoreboard.models.duplicates import build_duplicates_for, find_duplicates
from scoreboard.models.identifiers import ScoreId
from scoreboard.models.score_model import ScoreModel

router = APIRouter(prefix="/duplicates", tags=["duplicates"])


@router.get("", response_model=List[DuplicateGroupResponse])
async def list_duplicates(
    needs_work: bool = Query(False, description="Only groups needing operator action"),
    model: ScoreModel = Depends(get_model),
) -> List[DuplicateGroupResponse]:
    groups = [DuplicateGroupResponse.from_group(score_id, group) for score_id, group in find_duplicates(model)]
    if needs_work:
        groups = [group for group in groups if group.needs_work]
    return groups


@router.get("/{score_key}", response_model=DuplicateGroupResponse)
async def get_duplicate_group(score_key: str, model: ScoreModel = Depends(get_model)) -> DuplicateGroupResponse:
    """One group, keyed by "name:offset"."""
    score_id = ScoreId.from_key(score_key)
    group = build_duplicates_for(model, score_id)
    if group.count == 0:
        raise HTTPException(status_code=404, detail=f"No tables for score id '{score_key}'")
    return DuplicateGroupResponse.from_group(score_id, group)
