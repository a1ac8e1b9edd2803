"""
JSON document persistence for the score model.

Layout (version 1):
    {
        "version": 1,
        "serialNumber": 12,
        "ownerInitials": "DAS",
        "tables": {"<cabinetId>": {...Table...}},
        "scores": {"afm_113b:0": {"webId": ..., "name": ..., "entries": [...]}},
        "activity": {"snapshots": {...}, "days": [...]}
    }

Tables and scoreboards are keyed by the string form of their identifier.
Derived indexes are not stored; they are rebuilt when the model is loaded.
Saves go to a temporary file beside the target and are renamed into place
so a crash never leaves a half-written document.
"""
import asyncio
import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Union

from scoreboard.core.logging import get_logger
from scoreboard.models.activity import Activity
from scoreboard.models.identifiers import ScoreId
from scoreboard.models.score import TableScoreboard
from scoreboard.models.score_model import ScoreModel
from scoreboard.models.table import Table

logger = get_logger(__name__)

DOCUMENT_VERSION = 1


class DocumentError(Exception):
    """The stored document cannot be read."""


@dataclass
class ScoreboardDocument:
    """A score model plus the counter bumped on every content change."""

    model: ScoreModel
    serial_number: int = 0

    def touch(self) -> None:
        self.serial_number += 1

    def to_dict(self) -> Dict[str, Any]:
        model = self.model
        return {
            "version": DOCUMENT_VERSION,
            "serialNumber": self.serial_number,
            "ownerInitials": model.owner_initials,
            "tables": {
                cabinet_id.id: model.tables[cabinet_id].to_dict()
                for cabinet_id in sorted(model.tables)
            },
            "scores": {
                score_id.to_key(): model.scores[score_id].to_dict()
                for score_id in sorted(model.scores)
            },
            "activity": model.activity.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], owner_initials: str = "") -> "ScoreboardDocument":
        version = data.get("version", DOCUMENT_VERSION)
        if version != DOCUMENT_VERSION:
            raise DocumentError(f"Unsupported document version: {version}")

        try:
            tables = [
                Table.from_dict({**item, "cabinetId": key})
                for key, item in data.get("tables", {}).items()
            ]
            scores = {
                ScoreId.from_key(key): TableScoreboard.from_dict(item)
                for key, item in data.get("scores", {}).items()
            }
            activity = Activity.from_dict(data.get("activity"))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise DocumentError(f"Malformed document: {e}") from e

        model = ScoreModel.from_parts(
            owner_initials or data.get("ownerInitials", ""),
            tables,
            scores,
            activity,
        )
        return cls(model=model, serial_number=int(data.get("serialNumber", 0)))


class DocumentStore:
    """Loads and saves the document at a fixed path."""

    def __init__(self, path: Union[str, Path], owner_initials: str = ""):
        self.path = Path(path)
        self.owner_initials = owner_initials

    def load(self) -> ScoreboardDocument:
        """Read the document, or start an empty one when none exists yet."""
        if not self.path.exists():
            logger.info(f"No document at {self.path}, starting empty")
            return ScoreboardDocument(ScoreModel(self.owner_initials))

        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise DocumentError(f"Cannot parse {self.path}: {e}") from e

        document = ScoreboardDocument.from_dict(data, self.owner_initials)
        logger.info(
            f"Loaded {self.path}: {len(document.model)} tables, "
            f"{len(document.model.scores)} scoreboards, serial {document.serial_number}"
        )
        return document

    def save(self, document: ScoreboardDocument) -> None:
        self._write(document.to_dict())

    async def save_async(self, document: ScoreboardDocument) -> None:
        """
        Save without blocking the event loop.

        The document is serialised on the loop, so the model is never read
        from another thread; only the file write runs in the executor.
        """
        data = document.to_dict()
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._write, data)

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.debug(f"Saved {self.path} (serial {data['serialNumber']})")
