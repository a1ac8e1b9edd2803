"""Table routes: list rows, table detail and manual score entry.

Provides endpoints for:
- Listing tables with the owner's standing, filtered by name/VR/playable
- Table detail with scoreboard, variations and duplicate attribution
- Adding and removing manual scores
- Making a table the owner of its shared scoreboard

Writes wait for a running scan to finish before touching the model.
"""
import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from scoreboard.api.deps import AppServices, get_model, get_services, get_table_or_404
from scoreboard.api.schemas import (
    ManualScoreRequest,
    RemoveScoreRequest,
    ScoreboardResponse,
    SnapshotResponse,
    TableDetailResponse,
    TableItemResponse,
    TableResponse,
)
from scoreboard.core import metrics
from scoreboard.models.score import Score
from scoreboard.models.score_model import ScoreModel
from scoreboard.models.table import Table, VR
from scoreboard.services.capture import capture_score, settle_frames

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tables", tags=["tables"])


@router.get("", response_model=List[TableItemResponse])
async def list_tables(
    search: str = Query("", description="Name filter, typo tolerant"),
    vr: VR = Query(VR.FLAT, description="Show tables supporting this VR mode"),
    playable: bool = Query(False, description="Hide disabled tables"),
    model: ScoreModel = Depends(get_model),
) -> List[TableItemResponse]:
    tables = model.search(search, vr=vr, playable=playable)
    return [TableItemResponse.from_item(model.table_item(table)) for table in tables]


@router.get("/{cabinet_id}", response_model=TableDetailResponse)
async def get_table(
    table: Table = Depends(get_table_or_404),
    model: ScoreModel = Depends(get_model),
) -> TableDetailResponse:
    representative = model.representative(table.score_id)
    snapshot = model.activity.snapshot(table.cabinet_id)
    return TableDetailResponse(
        item=TableItemResponse.from_item(model.table_item(table)),
        scoreboard=ScoreboardResponse.from_scoreboard(table.score_id, model.scoreboard_for(table)),
        scoreboard_saved=model.scoreboard(table.score_id) is not None,
        misconfigured=model.has_misconfigured_scores(table),
        representative=TableResponse.from_table(representative) if representative else None,
        variations=[
            TableResponse.from_table(variation)
            for variation in model.variations(table)
            if variation.cabinet_id != table.cabinet_id
        ],
        activity=SnapshotResponse.from_snapshot(snapshot) if snapshot else None,
    )


@router.post("/{cabinet_id}/scores")
async def add_score(
    request: ManualScoreRequest,
    table: Table = Depends(get_table_or_404),
    services: AppServices = Depends(get_services),
) -> Dict:
    """
    Add a manual score.

    `score` is taken as typed. `text` is one reading recognized from a photo
    of the display. `frames` are successive camera readings; the score is
    the value the readings agree on. Initials default to the owner's.
    """
    initials = request.initials or services.model.owner_initials
    if not initials:
        raise HTTPException(status_code=422, detail="initials required when no owner initials are configured")

    if request.score is not None:
        score: Optional[Score] = Score(initials=initials, score=request.score)
    elif request.frames:
        score = settle_frames(request.frames, initials)
        if score is None:
            raise HTTPException(status_code=422, detail="No reading repeated across frames")
    else:
        score = capture_score(request.text, initials)
        if score is None:
            raise HTTPException(status_code=422, detail=f"No score in '{request.text}'")

    async with services.orchestrator.exclusive() as model:
        # re-read, a scan may have changed the table meanwhile
        table = model.table(table.cabinet_id) or table
        added = model.add_score(table, score)
        if added:
            metrics.record_score_added("manual")
            await services.commit()
            logger.info(f"Manual score {score.initials} {score.score:,} on {table.name}")
        scoreboard = model.scoreboard_for(table)

    return {
        "added": added,
        "score": score.score,
        "scoreboard": ScoreboardResponse.from_scoreboard(table.score_id, scoreboard),
    }


@router.delete("/{cabinet_id}/scores")
async def remove_score(
    request: RemoveScoreRequest,
    table: Table = Depends(get_table_or_404),
    services: AppServices = Depends(get_services),
) -> Dict:
    async with services.orchestrator.exclusive() as model:
        table = model.table(table.cabinet_id) or table
        removed = model.remove_score(table, Score(initials=request.initials, score=request.score))
        if not removed:
            raise HTTPException(status_code=404, detail="Score not found")
        await services.commit()
        scoreboard = model.scoreboard_for(table)
    return {
        "removed": True,
        "scoreboard": ScoreboardResponse.from_scoreboard(table.score_id, scoreboard),
    }


@router.post("/{cabinet_id}/primary")
async def make_primary(
    table: Table = Depends(get_table_or_404),
    services: AppServices = Depends(get_services),
) -> Dict:
    """Attribute the scoreboard at this table's score id to this table's design."""
    async with services.orchestrator.exclusive() as model:
        table = model.table(table.cabinet_id) or table
        model.set_scores_web_id(table)
        await services.commit()
    logger.info(f"Scores {table.score_id} now attributed to {table.web_id} ({table.name})")
    return {"score_id": table.score_id.to_key(), "web_id": table.web_id.id}
