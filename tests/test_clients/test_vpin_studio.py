"""Unit tests for the cabinet HTTP clients.

Test Strategy:
1. Wire payload decoding (aliases, int/str ids, nulls, date formats)
2. Endpoint paths per operation
3. Failures surface as CabinetRequestError carrying the URL
4. Transient failures are retried, client errors are not

Uses httpx.MockTransport so no network is touched.
"""
from datetime import datetime

import httpx
import pytest
from tenacity import wait_none

from scoreboard.models.identifiers import CabinetId, ScoreId
from scoreboard.models.table import HighScoreType, ScoreStatus, Table
from scoreboard.services.clients.base import BaseClient
from scoreboard.services.clients.errors import CabinetRequestError
from scoreboard.services.clients.pinup_popper import PinupPopperClient
from scoreboard.services.clients.vpin_studio import TableDetails, VPinStudioClient
from scoreboard.utils.scores import parse_score_text

BASE = "http://cabinet:8089"
MANIA = "http://mania/api/highscores/table"


def client_for(handler) -> VPinStudioClient:
    return VPinStudioClient(base_url=BASE, mania_url=MANIA, transport=httpx.MockTransport(handler))


@pytest.fixture(autouse=True)
def no_retry_wait():
    """Retries keep their attempt count but skip the backoff sleeps."""
    original = BaseClient._fetch.retry.wait
    BaseClient._fetch.retry.wait = wait_none()
    yield
    BaseClient._fetch.retry.wait = original


class TestParseScoreText:
    """Test suite for score text normalization."""

    def test_separators(self):
        assert parse_score_text("48,104,320") == 48104320
        assert parse_score_text("1.234.567") == 1234567
        assert parse_score_text("12 000") == 12000

    def test_malformed_is_zero(self):
        assert parse_score_text("n/a") == 0
        assert parse_score_text("") == 0
        assert parse_score_text(None) == 0


class TestTableDetails:
    """Test suite for decoding table details."""

    def test_decodes_cabinet_payload(self):
        details = TableDetails.model_validate({
            "id": 12,
            "extTableId": "8hR5rkqd",
            "gameName": "Attack From Mars",
            "gameDisplayName": "Attack From Mars (Bally 1995)",
            "rom": "afm_113b",
            "nvOffset": None,
            "highscoreType": "NVRam",
            "hsFileName": None,
            "disabled": False,
        })

        assert details.cabinet_id == "12"
        assert details.nv_offset == 0
        assert details.highscore_type == HighScoreType.NVRAM
        table = Table.from_details(details)
        assert table.score_id == ScoreId("afm_113b", 0)

    def test_null_rom_and_missing_type(self):
        details = TableDetails.model_validate({"id": "3", "extTableId": "w3", "gameName": "Rocket", "rom": None})
        assert details.rom == ""
        assert details.highscore_type is None


class TestVPinStudioClient:
    """Test suite for VPinStudioClient operations."""

    @pytest.mark.asyncio
    async def test_get_tables_list(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v1/games/knowns/-1"
            return httpx.Response(200, json=[
                {"id": 1, "extTableId": "w1", "gameName": "A", "rom": "a", "highscoreType": "VPReg"},
                {"id": 2, "extTableId": "w2", "gameName": "B", "rom": "b", "highscoreType": "EM"},
            ])

        async with client_for(handler) as client:
            tables = await client.get_tables_list()

        assert [t.cabinet_id for t in tables] == ["1", "2"]

    @pytest.mark.asyncio
    async def test_get_scores(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v1/games/scores/7"
            return httpx.Response(200, json={"scores": [
                {"playerInitials": "DAS", "score": "1,000,000", "position": 1},
                {"playerInitials": None, "score": "??", "position": 2},
            ]})

        async with client_for(handler) as client:
            scores = await client.get_scores(CabinetId("7"))

        assert scores[0].numeric_score == 1000000
        assert scores[1].player_initials == ""
        assert scores[1].numeric_score == 0

    @pytest.mark.asyncio
    async def test_get_score_status(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v1/games/scanscore/7"
            return httpx.Response(200, json={"status": "No nvram file, VPReg.stg entry or highscore text file found."})

        async with client_for(handler) as client:
            assert await client.get_score_status("7") == ScoreStatus.NO_FILE

    @pytest.mark.asyncio
    async def test_get_remote_scores(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert str(request.url) == f"{MANIA}/w1"
            return httpx.Response(200, json=[
                {"score": 5000, "initials": "AA", "displayName": "Ann", "creationDate": "2024-07-30 03:58:39"},
            ])

        async with client_for(handler) as client:
            remote = await client.get_remote_scores("w1")

        score = remote[0].as_score()
        assert (score.initials, score.score) == ("AA", 5000)
        assert score.date == datetime(2024, 7, 30, 3, 58, 39)

    @pytest.mark.asyncio
    async def test_get_activity_accepts_epoch_millis(self):
        stamp = datetime(2024, 7, 30, 20, 0)

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v1/alx"
            return httpx.Response(200, json=[
                {"gameId": 1, "lastPlayed": int(stamp.timestamp() * 1000), "numberOfPlays": 4, "timePlayedSecs": 900},
            ])

        async with client_for(handler) as client:
            reports = await client.get_activity()

        assert reports[0].game_id == "1"
        assert reports[0].last_played == stamp

    def test_wheel_image_url(self):
        client = VPinStudioClient(base_url=BASE, mania_url=MANIA)
        assert client.wheel_image_url("7") == f"{BASE}/api/v1/poppermedia/7/Wheel"

    # Failures
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_server_errors_are_retried_then_wrapped(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(503)

        async with client_for(handler) as client:
            with pytest.raises(CabinetRequestError) as exc_info:
                await client.get_tables_list()

        assert len(calls) == 3
        assert exc_info.value.url == f"{BASE}/api/v1/games/knowns/-1"

    @pytest.mark.asyncio
    async def test_client_errors_fail_immediately(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(404)

        async with client_for(handler) as client:
            with pytest.raises(CabinetRequestError):
                await client.get_scores("7")

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_transient_failure_recovers(self):
        responses = [httpx.Response(500), httpx.Response(200, json={"status": None})]

        def handler(request: httpx.Request) -> httpx.Response:
            return responses.pop(0)

        async with client_for(handler) as client:
            assert await client.get_score_status("1") == ScoreStatus.NO_SCORE


class TestPinupPopperClient:
    """Test suite for the frontend client."""

    @pytest.mark.asyncio
    async def test_current_table_id(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/function/getcuritem"
            return httpx.Response(200, json={"GameID": 12, "GameName": "Attack From Mars"})

        client = PinupPopperClient(base_url="http://cabinet", transport=httpx.MockTransport(handler))
        async with client:
            assert await client.current_table_id() == CabinetId("12")

    @pytest.mark.asyncio
    async def test_nothing_selected(self):
        client = PinupPopperClient(
            base_url="http://cabinet",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})),
        )
        async with client:
            assert await client.current_table_id() is None

    @pytest.mark.asyncio
    async def test_search_quotes_text(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.raw_path)
            return httpx.Response(200, text="ok")

        client = PinupPopperClient(base_url="http://cabinet", transport=httpx.MockTransport(handler))
        async with client:
            await client.search("Twilight Zone")

        assert seen == [b"/function/findgame/Twilight%20Zone"]
