"""Play activity routes."""
from datetime import date, timedelta
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from scoreboard.api.deps import get_model
from scoreboard.api.schemas import DayRecordResponse, SnapshotResponse
from scoreboard.models.activity import format_seconds
from scoreboard.models.identifiers import Day
from scoreboard.models.score_model import ScoreModel

router = APIRouter(prefix="/activity", tags=["activity"])


@router.get("")
async def get_activity(
    start: Optional[date] = Query(None, description="First day (default: 30 days ago)"),
    end: Optional[date] = Query(None, description="Last day (default: today)"),
    model: ScoreModel = Depends(get_model),
) -> Dict:
    end = end or date.today()
    start = start or end - timedelta(days=30)
    if start > end:
        raise HTTPException(status_code=422, detail="start must not be after end")

    records = model.activity.days_between(Day.from_date(start), Day.from_date(end))
    total = sum(record.seconds_played for record in records)
    return {
        "start": start.isoformat(),
        "end": end.isoformat(),
        "days": [DayRecordResponse.from_record(record) for record in records],
        "seconds_played": total,
        "time_played": format_seconds(total),
        "all_tables": SnapshotResponse.from_snapshot(model.activity.total()),
    }
