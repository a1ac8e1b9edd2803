"""
PinUP Popper frontend client.

Popper's web remote answers on the cabinet's plain HTTP port and tells us
which table is currently selected. Only used to jump to the table in view.
"""
from typing import Any, Optional
from urllib.parse import quote

import httpx

from scoreboard.core.config import settings
from scoreboard.core.logging import get_logger
from scoreboard.models.identifiers import CabinetId
from scoreboard.services.clients.base import BaseClient

logger = get_logger(__name__)


class PinupPopperClient(BaseClient):
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            base_url or settings.CABINET_URL,
            timeout=timeout or settings.HTTP_TIMEOUT,
            transport=transport,
        )

    async def current_table_id(self) -> Optional[CabinetId]:
        """Cabinet id of the table selected in the frontend, if any."""
        data: Any = await self.get_json(self.url("function/getcuritem"))
        game_id = data.get("GameID") if isinstance(data, dict) else None
        if game_id in (None, "", 0):
            return None
        return CabinetId.parse(game_id)

    async def search(self, text: str) -> None:
        """Ask the frontend to filter its wheel to matching tables."""
        logger.info(f"Frontend search: {text}")
        await self.get(self.url("function/findgame", quote(text, safe="")))
