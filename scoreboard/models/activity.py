"""
Play activity tracking.

The cabinet reports cumulative counters per table (last played, number of
plays, seconds played). Each scan is compared against the last-known
snapshot and only the delta is attributed to the day it was played on.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from scoreboard.models.identifiers import CabinetId, Day, WebTableId

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    """Cumulative play counters for one table at scan time."""

    last_played: Day
    number_of_plays: int
    time_played_secs: int

    @classmethod
    def zero(cls) -> "Snapshot":
        return cls(Day(0), 0, 0)

    @classmethod
    def from_report(cls, report) -> "Snapshot":
        last_played = report.last_played
        if isinstance(last_played, (date, datetime)):
            last_played = Day.from_date(last_played)
        return cls(Day.parse(last_played), report.number_of_plays, report.time_played_secs)

    def __add__(self, other: "Snapshot") -> "Snapshot":
        return Snapshot(
            last_played=max(self.last_played, other.last_played),
            number_of_plays=self.number_of_plays + other.number_of_plays,
            time_played_secs=self.time_played_secs + other.time_played_secs,
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            "lastPlayed": self.last_played.value,
            "numberOfPlays": self.number_of_plays,
            "timePlayedSecs": self.time_played_secs,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Snapshot":
        return cls(Day.parse(data["lastPlayed"]), int(data["numberOfPlays"]), int(data["timePlayedSecs"]))


@dataclass
class Play:
    time_played_secs: int = 0

    def record(self, seconds: int) -> None:
        self.time_played_secs += seconds


@dataclass
class DayRecord:
    """Aggregated play for one calendar day."""

    day: Day
    tables_played: int = 0
    seconds_played: int = 0
    plays: Dict[WebTableId, Play] = field(default_factory=dict)

    def record(self, web_id: WebTableId, snapshot: Snapshot, prior: Optional[Snapshot]) -> None:
        seconds = snapshot.time_played_secs - (prior.time_played_secs if prior else 0)
        self.plays.setdefault(web_id, Play()).record(seconds)
        self.tables_played = len(self.plays)
        self.seconds_played = sum(play.time_played_secs for play in self.plays.values())

    def __lt__(self, other: "DayRecord") -> bool:
        return self.day < other.day

    def to_dict(self) -> Dict[str, Any]:
        return {
            "day": self.day.value,
            "tablesPlayed": self.tables_played,
            "secondsPlayed": self.seconds_played,
            "plays": {web_id.id: {"timePlayedSecs": play.time_played_secs} for web_id, play in self.plays.items()},
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DayRecord":
        return cls(
            day=Day.parse(data["day"]),
            tables_played=int(data.get("tablesPlayed", 0)),
            seconds_played=int(data.get("secondsPlayed", 0)),
            plays={
                WebTableId(web_id): Play(int(play.get("timePlayedSecs", 0)))
                for web_id, play in data.get("plays", {}).items()
            },
        )


@dataclass
class Activity:
    """Last-seen snapshots per table plus the derived day records."""

    snapshots: Dict[CabinetId, Snapshot] = field(default_factory=dict)
    days: List[DayRecord] = field(default_factory=list)

    def snapshot(self, cabinet_id: CabinetId) -> Optional[Snapshot]:
        return self.snapshots.get(cabinet_id)

    def total(self) -> Snapshot:
        """All-tables counters: plays and seconds summed, latest play day."""
        return sum(self.snapshots.values(), Snapshot.zero())

    def day(self, day: Day) -> Optional[DayRecord]:
        return next((record for record in self.days if record.day == day), None)

    def days_between(self, start: Day, end: Day) -> List[DayRecord]:
        """Day records with start <= day <= end, oldest first."""
        return [record for record in self.days if start <= record.day <= end]

    def record(self, reports: Iterable[Any], tables: Mapping[CabinetId, Any]) -> bool:
        """
        Fold a scan's activity reports into the day records.

        The first scan only fills the baseline so all-time totals are not
        attributed to a single day. Reports for tables the model does not
        know are skipped afterwards.

        Returns:
            True if any day record changed
        """
        reports = list(reports)
        if not self.snapshots:
            for report in reports:
                self.snapshots[CabinetId.parse(report.game_id)] = Snapshot.from_report(report)
            logger.info(f"Activity baseline filled with {len(self.snapshots)} snapshots")
            return False

        days = {record.day: record for record in self.days}
        changed = False
        for report in reports:
            cabinet_id = CabinetId.parse(report.game_id)
            table = tables.get(cabinet_id)
            if table is None:
                continue

            snapshot = Snapshot.from_report(report)
            prior = self.snapshots.get(cabinet_id)
            self.snapshots[cabinet_id] = snapshot

            if prior is not None and prior == snapshot:
                continue

            changed = True
            record = days.setdefault(snapshot.last_played, DayRecord(snapshot.last_played))
            record.record(table.web_id, snapshot, prior)

        if changed:
            self.days = sorted(days.values())
        return changed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "snapshots": {cabinet_id.id: snapshot.to_dict() for cabinet_id, snapshot in self.snapshots.items()},
            "days": [record.to_dict() for record in self.days],
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "Activity":
        if not data:
            return cls()
        return cls(
            snapshots={
                CabinetId(cabinet_id): Snapshot.from_dict(snapshot)
                for cabinet_id, snapshot in data.get("snapshots", {}).items()
            },
            days=sorted(DayRecord.from_dict(record) for record in data.get("days", [])),
        )


def format_seconds(seconds: int) -> str:
    """Render a duration as "12 s" or "03 m 07 s"."""
    minutes, remainder = divmod(seconds, 60)
    if minutes == 0:
        return f"{remainder} s"
    return f"{minutes:02d} m {remainder:02d} s"
