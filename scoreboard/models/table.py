"""
Cabinet table entity.

A Table is one installed table on the cabinet. It is derived from the table
details reported by the cabinet and updated in place when a rescan reports
changed metadata. Tables are never deleted: a table missing from a scan is
marked disabled.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from scoreboard.models.identifiers import CabinetId, ScoreId, WebTableId

logger = logging.getLogger(__name__)


class HighScoreType(str, Enum):
    """How a table stores its high scores on the cabinet."""

    NVRAM = "NVRam"
    EM = "EM"
    VPREG = "VPReg"
    NA = "N/A"

    @property
    def sort_order(self) -> int:
        return list(HighScoreType).index(self)

    def __lt__(self, other: "HighScoreType") -> bool:
        return self.sort_order < other.sort_order


class ScoreStatus(str, Enum):
    """Coarse result of asking the cabinet for a table's scores."""

    OK = "ok"
    DUPLICATE = "duplicate"
    NO_SCORE = "no score"
    EMPTY = "empty"
    NO_FILE = "no file"
    NOT_SUPPORTED = "not supported"
    UNKNOWN = "unknown"

    @property
    def sort_order(self) -> int:
        return list(ScoreStatus).index(self)

    def __lt__(self, other: "ScoreStatus") -> bool:
        return self.sort_order < other.sort_order

    @classmethod
    def from_scan_status(cls, status: Optional[str]) -> "ScoreStatus":
        """
        Map the cabinet's free-text scan status to a ScoreStatus.

        Examples:
            >>> ScoreStatus.from_scan_status(None)
            <ScoreStatus.NO_SCORE: 'no score'>
            >>> ScoreStatus.from_scan_status("No nvram file, VPReg.stg entry or highscore text file found.")
            <ScoreStatus.NO_FILE: 'no file'>
        """
        if status is None:
            return cls.NO_SCORE
        if status.startswith("Found VPReg entry, but no highscore entries in it"):
            return cls.EMPTY
        if status.startswith("No nvram file"):
            return cls.NO_FILE
        if status.startswith("The NV ram file"):
            return cls.NOT_SUPPORTED

        logger.warning(f"Unknown score status: {status}")
        return cls.UNKNOWN


class VR(str, Enum):
    """VR support, taken from the display-name suffix."""

    FULL = "full"
    PARTIAL = "partial"
    FLAT = "flat"

    def matches(self, other: "VR") -> bool:
        """Whether a table of this kind is playable in `other` mode."""
        if other == VR.FLAT:
            return True
        if self == VR.FULL:
            return other in (VR.FULL, VR.PARTIAL)
        return self == other

    @classmethod
    def from_display_name(cls, name: Optional[str]) -> "VR":
        name = name or ""
        if name.endswith("VR"):
            return cls.FULL
        if name.endswith("VROK"):
            return cls.PARTIAL
        return cls.FLAT


@dataclass
class Table:
    """One physical table entry on the cabinet."""

    cabinet_id: CabinetId
    web_id: WebTableId
    name: str
    score_id: ScoreId
    long_name: Optional[str] = None
    score_type: Optional[HighScoreType] = None
    score_status: Optional[ScoreStatus] = None
    disabled: bool = False
    vr: VR = VR.FLAT

    @classmethod
    def from_details(cls, details) -> "Table":
        return cls(
            cabinet_id=CabinetId.parse(details.cabinet_id),
            web_id=WebTableId.parse(details.web_id),
            name=details.game_name,
            long_name=details.game_display_name,
            score_id=ScoreId.from_details(details),
            score_type=details.highscore_type,
            disabled=details.disabled,
            vr=VR.from_display_name(details.game_display_name),
        )

    @property
    def id(self) -> CabinetId:
        return self.cabinet_id

    @property
    def long_display_name(self) -> str:
        return self.long_name or self.name

    @property
    def comparable_score_status(self) -> ScoreStatus:
        return self.score_status or ScoreStatus.UNKNOWN

    @property
    def comparable_score_type(self) -> HighScoreType:
        return self.score_type or HighScoreType.NA

    @property
    def sort_key(self) -> str:
        return self.name.lower().replace("the ", "").replace("jp's ", "")

    def update(self, details) -> bool:
        """
        Apply changed fields from fresh cabinet details.

        Only differing fields are written.

        Returns:
            True if anything changed
        """
        fresh = Table.from_details(details)
        changed = False
        for name in ("name", "long_name", "web_id", "disabled", "score_type", "score_id", "vr"):
            value = getattr(fresh, name)
            if getattr(self, name) != value:
                setattr(self, name, value)
                changed = True
        return changed

    def __lt__(self, other: "Table") -> bool:
        return self.sort_key < other.sort_key

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cabinetId": self.cabinet_id.id,
            "webId": self.web_id.id,
            "name": self.name,
            "longName": self.long_name,
            "scoreId": self.score_id.to_key(),
            "scoreType": self.score_type.value if self.score_type else None,
            "scoreStatus": self.score_status.value if self.score_status else None,
            "disabled": self.disabled,
            "vr": self.vr.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Table":
        return cls(
            cabinet_id=CabinetId.parse(data["cabinetId"]),
            web_id=WebTableId.parse(data["webId"]),
            name=data["name"],
            long_name=data.get("longName"),
            score_id=ScoreId.from_key(data["scoreId"]),
            score_type=HighScoreType(data["scoreType"]) if data.get("scoreType") else None,
            score_status=ScoreStatus(data["scoreStatus"]) if data.get("scoreStatus") else None,
            disabled=bool(data.get("disabled", False)),
            vr=VR(data.get("vr", VR.FLAT.value)),
        )
