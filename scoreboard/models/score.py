"""
Score entries and per-identity scoreboards.

A Score is identified by (initials, score): re-adding the same pair from a
second source is a no-op regardless of date. Scoreboards keep their entries
sorted best-first.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from scoreboard.models.identifiers import WebTableId


@dataclass(eq=False)
class Score:
    """A single high-score entry."""

    initials: str
    score: int
    date: datetime = field(default_factory=datetime.now)

    @property
    def id(self) -> str:
        return f"{self.initials}{self.score}"

    def is_local(self, owner_initials: str) -> bool:
        return self.initials == owner_initials

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Score):
            return NotImplemented
        return self.initials == other.initials and self.score == other.score

    def __hash__(self) -> int:
        return hash((self.initials, self.score))

    def __lt__(self, other: "Score") -> bool:
        # best first
        return self.score > other.score

    def to_dict(self) -> Dict[str, Any]:
        return {
            "initials": self.initials,
            "score": self.score,
            "date": self.date.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Score":
        date = data.get("date")
        return cls(
            initials=data["initials"],
            score=int(data["score"]),
            date=datetime.fromisoformat(date) if date else datetime.now(),
        )


@dataclass
class TableScoreboard:
    """
    The scores stored under one ScoreId.

    web_id records which table design currently owns this score store;
    duplicate resolution rewrites it to repoint the scoreboard.
    """

    web_id: WebTableId
    name: str
    entries: List[Score] = field(default_factory=list)

    @classmethod
    def for_table(cls, table) -> "TableScoreboard":
        return cls(web_id=table.web_id, name=table.name)

    def local_count(self, initials: str) -> int:
        return sum(1 for entry in self.entries if entry.initials == initials)

    def best(self, initials: str) -> Optional[Score]:
        return next((entry for entry in self.entries if entry.initials == initials), None)

    def rank(self, initials: str) -> Optional[int]:
        """1-based position of the player's best entry, None if absent."""
        for index, entry in enumerate(self.entries):
            if entry.initials == initials:
                return index + 1
        return None

    def rank_count(self, initials: str) -> int:
        """Entries held by other players plus one ("rank X of Y")."""
        return sum(1 for entry in self.entries if entry.initials != initials) + 1

    def last_score_date(self, initials: str) -> Optional[datetime]:
        best = self.best(initials)
        return best.date if best else None

    def add(self, score: Score) -> bool:
        if score in self.entries:
            return False
        self.entries.append(score)
        self.entries.sort()
        return True

    def remove(self, score: Score) -> bool:
        before = len(self.entries)
        self.entries = [entry for entry in self.entries if entry != score]
        return len(self.entries) != before

    def merge_remote_scores(self, remote: Iterable[Score], initials: str) -> bool:
        """
        Replace every non-local entry with the deduplicated remote set.

        Local entries are kept untouched; remote entries carrying the local
        initials are dropped. Merging the same snapshot twice is a no-op.

        Returns:
            True if the entry set changed
        """
        local = [entry for entry in self.entries if entry.initials == initials]
        others: Dict[Score, Score] = {}
        for entry in remote:
            if entry.initials != initials and entry not in others:
                others[entry] = entry

        merged = sorted(local + list(others.values()))
        changed = set(merged) != set(self.entries) or len(merged) != len(self.entries)
        self.entries = merged
        return changed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "webId": self.web_id.id,
            "name": self.name,
            "entries": [entry.to_dict() for entry in self.entries],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TableScoreboard":
        scoreboard = cls(web_id=WebTableId.parse(data["webId"]), name=data.get("name", ""))
        scoreboard.entries = sorted(Score.from_dict(entry) for entry in data.get("entries", []))
        return scoreboard


def best_cabinet_score(scores: Iterable[Any], initials: str) -> Optional[Any]:
    """
    Highest owner score from a cabinet fetch.

    Entries with a zero numeric score (malformed text) are never a best
    score candidate.
    """
    candidates = [
        score for score in scores
        if score.player_initials == initials and score.numeric_score > 0
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda score: score.numeric_score)
