"""
HTTP collaborators.

- vpin_studio: cabinet tables, scores, scan status, activity, leaderboard
- pinup_popper: frontend selection and search
- pinball_db: cached table catalog
"""
from scoreboard.services.clients.errors import CabinetRequestError
from scoreboard.services.clients.pinball_db import CatalogEntry, PinballDBClient
from scoreboard.services.clients.pinup_popper import PinupPopperClient
from scoreboard.services.clients.vpin_studio import (
    ActivityReport,
    CabinetScore,
    RemoteScore,
    TableDetails,
    VPinStudioClient,
)

__all__ = [
    "ActivityReport",
    "CabinetRequestError",
    "CabinetScore",
    "CatalogEntry",
    "PinballDBClient",
    "PinupPopperClient",
    "RemoteScore",
    "TableDetails",
    "VPinStudioClient",
]
