"""Shared pytest fixtures for pinball scoreboard tests."""
import sys
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from scoreboard.models.score_model import ScoreModel  # noqa: E402
from scoreboard.storage.document import DocumentStore, ScoreboardDocument  # noqa: E402
from tests.factories import OWNER, make_table  # noqa: E402


@pytest.fixture
def owner() -> str:
    return OWNER


@pytest.fixture
def model() -> ScoreModel:
    """Empty score model owned by the local player."""
    return ScoreModel(OWNER)


@pytest.fixture
def duplicate_model(model: ScoreModel) -> ScoreModel:
    """Two table designs sharing one rom, no scoreboard yet."""
    model.set_table(make_table("1", "wA", name="Table A", rom="rom1"))
    model.set_table(make_table("2", "wB", name="Table B", rom="rom1"))
    return model


@pytest.fixture
def document(model: ScoreModel) -> ScoreboardDocument:
    return ScoreboardDocument(model)


@pytest.fixture
def store(tmp_path: Path) -> DocumentStore:
    return DocumentStore(tmp_path / "scoreboard.json", OWNER)


@pytest.fixture
def fake_cabinet() -> AsyncMock:
    """Cabinet client stub: no tables, no scores, no activity."""
    cabinet = AsyncMock()
    cabinet.get_tables_list.return_value = []
    cabinet.get_scores.return_value = []
    cabinet.get_score_status.return_value = None
    cabinet.get_activity.return_value = []
    cabinet.get_remote_scores.return_value = []
    return cabinet
