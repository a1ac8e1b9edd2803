"""Recent score routes."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from scoreboard.api.deps import get_model
from scoreboard.api.schemas import ScoreboardResponse, TableItemResponse
from scoreboard.core.config import settings
from scoreboard.models.score_model import ScoreModel

router = APIRouter(prefix="/scores", tags=["scores"])


@router.get("/recent", response_model=List[TableItemResponse])
async def recent_scores(
    days: Optional[int] = Query(None, ge=1, le=365, description="Look-back window in days"),
    model: ScoreModel = Depends(get_model),
) -> List[TableItemResponse]:
    """Tables where the owner set their best score within the window, newest first."""
    items = model.recent_items(days or settings.RECENT_SCORE_DAYS)
    items.sort(key=lambda item: item.last_score_date, reverse=True)
    return [TableItemResponse.from_item(item) for item in items]


@router.get("/orphaned", response_model=List[ScoreboardResponse])
async def orphaned_scoreboards(model: ScoreModel = Depends(get_model)) -> List[ScoreboardResponse]:
    """Scoreboards no table maps to any more."""
    return [
        ScoreboardResponse.from_scoreboard(score_id, model.scores[score_id])
        for score_id in model.orphaned_score_ids()
    ]
