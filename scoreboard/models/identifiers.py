"""
Value identifiers used as keys throughout the score model.

- CabinetId: primary key of a table row in the cabinet database
- WebTableId: catalog id of a table design (Virtual Pinball Spreadsheet)
- ScoreId: where a high-score list physically lives (rom/file + offset)
- Day: YYYYMMDD day code used by activity tracking
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from functools import total_ordering
from typing import Union

# offset markers for ScoreId
MANUAL_OFFSET = -1
WILDCARD_OFFSET = 0


@dataclass(frozen=True, order=True)
class CabinetId:
    """Row id of a table in the cabinet database. Arrives as int or str."""

    id: str

    @classmethod
    def parse(cls, value: Union[str, int, "CabinetId"]) -> "CabinetId":
        if isinstance(value, CabinetId):
            return value
        return cls(str(value))

    def __str__(self) -> str:
        return self.id


@dataclass(frozen=True, order=True)
class WebTableId:
    """
    Catalog identifier for a table design.

    Two cabinet tables with the same WebTableId are variations of the same
    general table and may be considered equivalent.
    """

    id: str

    @classmethod
    def parse(cls, value: Union[str, int, "WebTableId"]) -> "WebTableId":
        if isinstance(value, WebTableId):
            return value
        return cls(str(value))

    def __str__(self) -> str:
        return self.id


@total_ordering
@dataclass(frozen=True)
class ScoreId:
    """
    Identity of a physical high-score store.

    offset -1 marks a manual score source (no physical store, keyed by the
    web id). offset 0 is a wildcard: storage formats without an offset are
    compatible with every offset variant of the same name.
    """

    name: str
    offset: int = WILDCARD_OFFSET

    @classmethod
    def manual(cls, web_id: WebTableId) -> "ScoreId":
        return cls(web_id.id, MANUAL_OFFSET)

    @classmethod
    def from_details(cls, details) -> "ScoreId":
        """
        Derive the score identity from cabinet table details.

        nvram uses rom + nvOffset, em uses the highscore file (or rom),
        vpreg uses the rom; anything else falls back to a manual id keyed
        by the web id.
        """
        from scoreboard.models.table import HighScoreType

        score_type = details.highscore_type
        if score_type == HighScoreType.NVRAM:
            return cls(details.rom, details.nv_offset)
        if score_type == HighScoreType.EM:
            return cls(details.hs_file_name or details.rom, WILDCARD_OFFSET)
        if score_type == HighScoreType.VPREG:
            return cls(details.rom, WILDCARD_OFFSET)
        return cls.manual(WebTableId.parse(details.web_id))

    @property
    def is_manual(self) -> bool:
        return self.offset == MANUAL_OFFSET

    @property
    def is_wildcard(self) -> bool:
        return self.offset == WILDCARD_OFFSET

    def with_offset(self, offset: int) -> "ScoreId":
        return ScoreId(self.name, offset)

    def matches(self, other: "ScoreId") -> bool:
        """True when both ids can address the same high-score store."""
        if self.name != other.name:
            return False
        if self.offset == other.offset:
            return True
        if self.is_manual or other.is_manual:
            return False
        return self.is_wildcard or other.is_wildcard

    def sort_key(self) -> tuple:
        return (self.name.lower(), self.offset)

    def __lt__(self, other: "ScoreId") -> bool:
        if not isinstance(other, ScoreId):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def to_key(self) -> str:
        """Persisted form, always carries the offset."""
        return f"{self.name}:{self.offset}"

    @classmethod
    def from_key(cls, key: str) -> "ScoreId":
        name, sep, offset = key.rpartition(":")
        if not sep:
            return cls(key, WILDCARD_OFFSET)
        try:
            return cls(name, int(offset))
        except ValueError:
            return cls(key, WILDCARD_OFFSET)

    def __str__(self) -> str:
        if self.offset in (WILDCARD_OFFSET, MANUAL_OFFSET):
            return self.name
        return f"{self.name}:{self.offset}"


@dataclass(frozen=True, order=True)
class Day:
    """Calendar day encoded as YYYYMMDD."""

    value: int

    @classmethod
    def from_date(cls, value: Union[date, datetime]) -> "Day":
        return cls(value.year * 10000 + value.month * 100 + value.day)

    @classmethod
    def parse(cls, value: Union[int, str, "Day"]) -> "Day":
        if isinstance(value, Day):
            return value
        return cls(int(value))

    @property
    def year(self) -> int:
        return self.value // 10000

    @property
    def month(self) -> int:
        return (self.value % 10000) // 100

    @property
    def day(self) -> int:
        return self.value % 100

    @property
    def date(self) -> date:
        return date(self.year, self.month, self.day)

    def __str__(self) -> str:
        return f"{self.month}/{self.day}/{self.year}"
