"""
VPin Studio cabinet client.

The cabinet runs VPin Studio, which reports installed tables, the high
scores it can read from each table's storage, per-table play activity and
proxies the VPin Mania online leaderboard.

API endpoints used:
    GET /api/v1/games/knowns/-1        installed table details
    GET /api/v1/games/scores/{id}      high scores read from the table
    GET /api/v1/games/scanscore/{id}   score scan status text
    GET /api/v1/alx                    cumulative play activity
    GET {mania}/{webId}                online leaderboard entries
"""
from datetime import datetime
from typing import Any, List, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

from scoreboard.core.config import settings
from scoreboard.core.logging import get_logger
from scoreboard.models.identifiers import CabinetId, WebTableId
from scoreboard.models.score import Score
from scoreboard.models.table import HighScoreType, ScoreStatus
from scoreboard.services.clients.base import BaseClient
from scoreboard.utils.scores import parse_score_text

logger = get_logger(__name__)

REMOTE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


# ─── Wire models ──────────────────────────────────────────────────────────────

class TableDetails(BaseModel):
    """One installed table as reported by the cabinet."""

    model_config = ConfigDict(populate_by_name=True)

    cabinet_id: str = Field(alias="id")
    web_id: str = Field(alias="extTableId")
    game_name: str = Field(alias="gameName")
    game_display_name: Optional[str] = Field(None, alias="gameDisplayName")
    highscore_type: Optional[HighScoreType] = Field(None, alias="highscoreType")
    rom: str = ""
    hs_file_name: Optional[str] = Field(None, alias="hsFileName")
    nv_offset: int = Field(0, alias="nvOffset")
    disabled: bool = False

    @field_validator("cabinet_id", "web_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("rom", mode="before")
    @classmethod
    def _coerce_rom(cls, value: Any) -> str:
        return value or ""

    @field_validator("nv_offset", mode="before")
    @classmethod
    def _coerce_offset(cls, value: Any) -> int:
        return value or 0

    @field_validator("highscore_type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> Optional[HighScoreType]:
        if value is None or isinstance(value, HighScoreType):
            return value
        try:
            return HighScoreType(value)
        except ValueError:
            logger.warning(f"Unknown highscore type: {value}")
            return None


class CabinetScore(BaseModel):
    """A high score read from the table's own storage."""

    model_config = ConfigDict(populate_by_name=True)

    player_initials: str = Field("", alias="playerInitials")
    score: str = ""
    position: int = 0

    @field_validator("player_initials", mode="before")
    @classmethod
    def _coerce_initials(cls, value: Any) -> str:
        return value or ""

    @property
    def numeric_score(self) -> int:
        return parse_score_text(self.score)


class RemoteScore(BaseModel):
    """An entry on the online leaderboard."""

    model_config = ConfigDict(populate_by_name=True)

    score: int
    initials: str
    display_name: Optional[str] = Field(None, alias="displayName")
    creation_date: datetime = Field(alias="creationDate")

    @field_validator("creation_date", mode="before")
    @classmethod
    def _parse_date(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return datetime.strptime(value, REMOTE_DATE_FORMAT)
            except ValueError:
                return value
        return value

    def as_score(self) -> Score:
        return Score(initials=self.initials, score=self.score, date=self.creation_date)


class ActivityReport(BaseModel):
    """Cumulative play counters for one table."""

    model_config = ConfigDict(populate_by_name=True)

    game_id: str = Field(alias="gameId")
    last_played: datetime = Field(alias="lastPlayed")
    number_of_plays: int = Field(0, alias="numberOfPlays")
    time_played_secs: int = Field(0, alias="timePlayedSecs")

    @field_validator("game_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return str(value)

    @field_validator("last_played", mode="before")
    @classmethod
    def _parse_epoch(cls, value: Any) -> Any:
        # the cabinet reports epoch milliseconds
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(value / 1000)
        return value


# ─── Client ───────────────────────────────────────────────────────────────────

class VPinStudioClient(BaseClient):
    """
    Client for the cabinet's VPin Studio server.

    Example:
        async with VPinStudioClient() as client:
            tables = await client.get_tables_list()
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        mania_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            base_url or settings.VPIN_STUDIO_URL,
            timeout=timeout or settings.HTTP_TIMEOUT,
            transport=transport,
        )
        self.mania_url = (mania_url or settings.VPIN_MANIA_URL).rstrip("/")

    async def get_tables_list(self) -> List[TableDetails]:
        data = await self.get_json(self.url("api/v1/games/knowns/-1"))
        tables = [TableDetails.model_validate(item) for item in data]
        logger.debug(f"Cabinet reported {len(tables)} tables")
        return tables

    async def get_scores(self, cabinet_id: Union[CabinetId, str]) -> List[CabinetScore]:
        data = await self.get_json(self.url("api/v1/games/scores", CabinetId.parse(cabinet_id)))
        return [CabinetScore.model_validate(item) for item in data.get("scores") or []]

    async def get_score_status(self, cabinet_id: Union[CabinetId, str]) -> ScoreStatus:
        data = await self.get_json(self.url("api/v1/games/scanscore", CabinetId.parse(cabinet_id)))
        return ScoreStatus.from_scan_status(data.get("status"))

    async def get_activity(self) -> List[ActivityReport]:
        data = await self.get_json(self.url("api/v1/alx"))
        return [ActivityReport.model_validate(item) for item in data]

    async def get_remote_scores(self, web_id: Union[WebTableId, str]) -> List[RemoteScore]:
        url = f"{self.mania_url}/{WebTableId.parse(web_id)}"
        data = await self.get_json(url)
        return [RemoteScore.model_validate(item) for item in data or []]

    def wheel_image_url(self, cabinet_id: Union[CabinetId, str]) -> str:
        return self.url("api/v1/poppermedia", CabinetId.parse(cabinet_id), "Wheel")
