"""
Score reconciliation model.

- identifiers: CabinetId, WebTableId, ScoreId, Day
- score: Score, TableScoreboard
- table: Table and its enums
- activity: per-day play aggregation
- score_model: ScoreModel aggregate root with derived indexes
- duplicates: duplicate-table grouping and disposition
"""
from scoreboard.models.identifiers import CabinetId, Day, ScoreId, WebTableId
from scoreboard.models.score import Score, TableScoreboard, best_cabinet_score
from scoreboard.models.table import HighScoreType, ScoreStatus, Table, VR
from scoreboard.models.activity import Activity, DayRecord, Play, Snapshot, format_seconds
from scoreboard.models.score_model import ScoreModel, TableItem
from scoreboard.models.duplicates import (
    DuplicateDisposition,
    DuplicateTables,
    build_duplicates,
    build_duplicates_for,
    find_duplicates,
)

__all__ = [
    "Activity",
    "CabinetId",
    "Day",
    "DayRecord",
    "DuplicateDisposition",
    "DuplicateTables",
    "HighScoreType",
    "Play",
    "Score",
    "ScoreId",
    "ScoreModel",
    "ScoreStatus",
    "Snapshot",
    "Table",
    "TableItem",
    "TableScoreboard",
    "VR",
    "WebTableId",
    "best_cabinet_score",
    "build_duplicates",
    "build_duplicates_for",
    "find_duplicates",
    "format_seconds",
]
