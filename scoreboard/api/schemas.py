"""Response and request bodies for the HTTP API."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from scoreboard.models.activity import DayRecord, Snapshot
from scoreboard.models.duplicates import DuplicateTables
from scoreboard.models.identifiers import ScoreId
from scoreboard.models.score import Score, TableScoreboard
from scoreboard.models.score_model import TableItem
from scoreboard.models.table import Table


class TableResponse(BaseModel):
    cabinet_id: str
    web_id: str
    name: str
    long_name: Optional[str] = None
    score_id: str
    score_type: Optional[str] = None
    score_status: Optional[str] = None
    disabled: bool
    vr: str

    @classmethod
    def from_table(cls, table: Table) -> "TableResponse":
        return cls(
            cabinet_id=table.cabinet_id.id,
            web_id=table.web_id.id,
            name=table.name,
            long_name=table.long_name,
            score_id=table.score_id.to_key(),
            score_type=table.score_type.value if table.score_type else None,
            score_status=table.score_status.value if table.score_status else None,
            disabled=table.disabled,
            vr=table.vr.value,
        )


class TableItemResponse(BaseModel):
    table: TableResponse
    score_count: int
    score: int
    rank: int
    rank_count: int
    last_score_date: Optional[datetime] = None

    @classmethod
    def from_item(cls, item: TableItem) -> "TableItemResponse":
        return cls(
            table=TableResponse.from_table(item.table),
            score_count=item.score_count,
            score=item.score,
            rank=item.rank,
            rank_count=item.rank_count,
            last_score_date=item.last_score_date,
        )


class ScoreResponse(BaseModel):
    initials: str
    score: int
    date: datetime

    @classmethod
    def from_score(cls, score: Score) -> "ScoreResponse":
        return cls(initials=score.initials, score=score.score, date=score.date)


class ScoreboardResponse(BaseModel):
    score_id: str
    web_id: str
    name: str
    entries: List[ScoreResponse]

    @classmethod
    def from_scoreboard(cls, score_id: ScoreId, scoreboard: TableScoreboard) -> "ScoreboardResponse":
        return cls(
            score_id=score_id.to_key(),
            web_id=scoreboard.web_id.id,
            name=scoreboard.name,
            entries=[ScoreResponse.from_score(entry) for entry in scoreboard.entries],
        )


class SnapshotResponse(BaseModel):
    last_played: int
    number_of_plays: int
    time_played_secs: int

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "SnapshotResponse":
        return cls(
            last_played=snapshot.last_played.value,
            number_of_plays=snapshot.number_of_plays,
            time_played_secs=snapshot.time_played_secs,
        )


class TableDetailResponse(BaseModel):
    item: TableItemResponse
    scoreboard: ScoreboardResponse
    scoreboard_saved: bool
    misconfigured: bool
    representative: Optional[TableResponse] = None
    variations: List[TableResponse]
    activity: Optional[SnapshotResponse] = None


class DuplicateGroupResponse(BaseModel):
    score_id: str
    disposition: str
    needs_work: bool
    primary_web_id: Optional[str] = None
    tables: List[TableResponse]

    @classmethod
    def from_group(cls, score_id: ScoreId, group: DuplicateTables) -> "DuplicateGroupResponse":
        primary = group.primary_web_id
        disposition = group.disposition
        return cls(
            score_id=score_id.to_key(),
            disposition=disposition.value,
            needs_work=disposition.needs_work,
            primary_web_id=primary.id if primary else None,
            tables=[TableResponse.from_table(table) for table in group.tables],
        )


class DayRecordResponse(BaseModel):
    day: int
    label: str
    tables_played: int
    seconds_played: int
    plays: dict

    @classmethod
    def from_record(cls, record: DayRecord) -> "DayRecordResponse":
        return cls(
            day=record.day.value,
            label=str(record.day),
            tables_played=record.tables_played,
            seconds_played=record.seconds_played,
            plays={web_id.id: play.time_played_secs for web_id, play in record.plays.items()},
        )


class ManualScoreRequest(BaseModel):
    """
    A score typed in, text recognized from a photo of the display, or the
    readings of successive camera frames.
    """

    initials: Optional[str] = Field(None, max_length=8)
    score: Optional[int] = Field(None, gt=0)
    text: Optional[str] = None
    frames: Optional[List[str]] = Field(None, max_length=100)

    @model_validator(mode="after")
    def _score_or_text(self) -> "ManualScoreRequest":
        if self.score is None and not self.text and not self.frames:
            raise ValueError("one of score, text or frames is required")
        return self


class RemoveScoreRequest(BaseModel):
    initials: str
    score: int


class CabinetSearchRequest(BaseModel):
    text: str = Field(..., min_length=1)
