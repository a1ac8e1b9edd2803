"""Unit tests for the scan orchestrator.

Test Strategy:
1. Table scan creates, updates and disables tables
2. Score scan merges owner best scores, records statuses, tolerates failures
3. Leaderboard scan merges remote scores per table design
4. Activity runs alongside the score scan
5. Serial number and persistence follow changes

Collaborators are AsyncMock stubs; no network is touched.
"""
import asyncio
from datetime import datetime

import pytest

from scoreboard.models.identifiers import CabinetId, ScoreId, WebTableId
from scoreboard.models.score import Score
from scoreboard.models.table import ScoreStatus, Table
from scoreboard.services.clients.errors import CabinetRequestError
from scoreboard.services.sync.orchestrator import ProgressReporter, ScanOrchestrator
from scoreboard.storage.document import DocumentStore, ScoreboardDocument
from tests.factories import OWNER, activity_report, cabinet_scores, make_details, remote_scores


def orchestrator_for(document, cabinet, **kwargs) -> ScanOrchestrator:
    return ScanOrchestrator(document, cabinet, concurrency=4, progress_interval=0, **kwargs)


class TestScanTables:
    """Test suite for the table list scan."""

    @pytest.mark.asyncio
    async def test_creates_updates_and_disables(self, document: ScoreboardDocument, fake_cabinet):
        fake_cabinet.get_tables_list.return_value = [
            make_details("1", "w1", name="Alpha", rom="a"),
            make_details("2", "w2", name="Beta", rom="b"),
        ]
        orchestrator = orchestrator_for(document, fake_cabinet)
        first = await orchestrator.scan_tables()

        fake_cabinet.get_tables_list.return_value = [
            make_details("1", "w1", name="Alpha", rom="a", nv_offset=3),
        ]
        second = await orchestrator.scan_tables()

        assert first.messages == ["New Alpha", "New Beta"]
        assert second.messages == ["Update Alpha", "Deleted (disabled) Beta"]
        model = document.model
        assert model.table(CabinetId("1")).score_id == ScoreId("a", 3)
        assert model.table(CabinetId("2")).disabled is True
        model.check_indexes()
        assert document.serial_number == 2

    @pytest.mark.asyncio
    async def test_unchanged_scan_keeps_serial(self, document: ScoreboardDocument, fake_cabinet):
        fake_cabinet.get_tables_list.return_value = [make_details("1", "w1")]
        orchestrator = orchestrator_for(document, fake_cabinet)
        await orchestrator.scan_tables()

        result = await orchestrator.scan_tables()

        assert result.changed is False
        assert result.messages == []
        assert document.serial_number == 1

    @pytest.mark.asyncio
    async def test_cabinet_down_fails_scan(self, document: ScoreboardDocument, fake_cabinet):
        fake_cabinet.get_tables_list.side_effect = CabinetRequestError("http://cabinet", OSError("down"))
        orchestrator = orchestrator_for(document, fake_cabinet)

        result = await orchestrator.scan_tables()

        assert result.success is False
        assert orchestrator.last_results["tables"] is result


class TestScanScores:
    """Test suite for the per-table score scan."""

    @pytest.fixture
    def scanned(self, document: ScoreboardDocument, fake_cabinet) -> ScanOrchestrator:
        model = document.model
        for details in (
            make_details("1", "w1", name="Alpha", rom="a"),
            make_details("2", "w2", name="Beta", rom="b"),
            make_details("3", "w3", name="Gamma", rom="c"),
            make_details("4", "w4", name="Delta", rom="d", disabled=True),
        ):
            model.set_table(Table.from_details(details))
        return orchestrator_for(document, fake_cabinet)

    @pytest.mark.asyncio
    async def test_merges_best_owner_score_and_statuses(self, scanned: ScanOrchestrator, fake_cabinet):
        async def get_scores(cabinet_id):
            if cabinet_id == CabinetId("1"):
                return cabinet_scores(("BB", "9,000"), (OWNER, "1,500"), (OWNER, "700"))
            if cabinet_id == CabinetId("2"):
                raise CabinetRequestError("http://cabinet/api/v1/games/scores/2", OSError("timeout"))
            return cabinet_scores(("BB", "100"))

        fake_cabinet.get_scores.side_effect = get_scores
        fake_cabinet.get_score_status.return_value = ScoreStatus.NO_FILE

        result = await scanned.scan_scores()

        model = scanned.model
        assert model.scoreboard(ScoreId("a", 0)).entries == [Score(OWNER, 1500)]
        assert model.table(CabinetId("1")).score_status == ScoreStatus.OK
        assert model.table(CabinetId("2")).score_status is None
        assert model.table(CabinetId("3")).score_status == ScoreStatus.NO_FILE
        assert result.failed == 1
        assert result.processed == 3
        assert result.success is True
        called = {call.args[0] for call in fake_cabinet.get_scores.call_args_list}
        assert CabinetId("4") not in called

    @pytest.mark.asyncio
    async def test_rescan_is_idempotent(self, scanned: ScanOrchestrator, fake_cabinet):
        fake_cabinet.get_scores.return_value = cabinet_scores((OWNER, "1,500"))

        await scanned.scan_scores()
        second = await scanned.scan_scores()

        assert second.changed is False
        assert len(scanned.model.scoreboard(ScoreId("a", 0)).entries) == 1

    @pytest.mark.asyncio
    async def test_known_status_is_not_asked_again(self, scanned: ScanOrchestrator, fake_cabinet):
        fake_cabinet.get_score_status.return_value = ScoreStatus.NO_FILE
        await scanned.scan_scores()
        fake_cabinet.get_score_status.reset_mock()

        await scanned.scan_scores()
        assert fake_cabinet.get_score_status.call_count == 0

        await scanned.reset_scan_scores()
        assert fake_cabinet.get_score_status.call_count == 3

    @pytest.mark.asyncio
    async def test_misconfigured_tables_are_skipped(self, scanned: ScanOrchestrator, fake_cabinet):
        model = scanned.model
        model.add_score(model.table(CabinetId("1")), Score("BB", 1))
        model.scores[ScoreId("a", 0)].web_id = WebTableId("elsewhere")

        await scanned.scan_scores()

        called = {call.args[0] for call in fake_cabinet.get_scores.call_args_list}
        assert CabinetId("1") not in called

    @pytest.mark.asyncio
    async def test_activity_runs_alongside(self, scanned: ScanOrchestrator, fake_cabinet):
        fake_cabinet.get_activity.return_value = [activity_report("1", datetime(2024, 7, 30), 1, 60)]

        result = await scanned.scan_scores()

        assert fake_cabinet.get_activity.await_count == 1
        assert scanned.model.activity.snapshot(CabinetId("1")) is not None
        assert result.changed is True

    @pytest.mark.asyncio
    async def test_activity_failure_does_not_fail_scores(self, scanned: ScanOrchestrator, fake_cabinet):
        fake_cabinet.get_activity.side_effect = CabinetRequestError("http://cabinet/api/v1/alx", OSError("down"))
        fake_cabinet.get_scores.return_value = cabinet_scores((OWNER, "10"))

        result = await scanned.scan_scores()

        assert result.success is True
        assert scanned.model.scoreboard(ScoreId("a", 0)) is not None

    @pytest.mark.asyncio
    async def test_progress_reaches_total(self, document: ScoreboardDocument, fake_cabinet):
        for index in range(5):
            document.model.set_table(Table.from_details(make_details(str(index), f"w{index}", rom=f"r{index}")))
        updates = []
        orchestrator = ScanOrchestrator(document, fake_cabinet, concurrency=2, progress=lambda p, t: updates.append((p, t)))

        await orchestrator.scan_scores()

        assert updates[-1] == (5, 5)


class TestScanLeaderboard:
    """Test suite for the leaderboard scan."""

    @pytest.mark.asyncio
    async def test_merges_remote_scores(self, duplicate_model, document, fake_cabinet):
        model = document.model
        a = model.table(CabinetId("1"))
        model.add_score(a, Score(OWNER, 500))
        fake_cabinet.get_remote_scores.return_value = remote_scores(("AA", 900), (OWNER, 100), ("AA", 900))
        orchestrator = orchestrator_for(document, fake_cabinet)

        result = await orchestrator.scan_leaderboard()

        entries = model.scoreboard(ScoreId("rom1", 0)).entries
        assert [(e.initials, e.score) for e in entries] == [("AA", 900), (OWNER, 500)]
        assert result.changed is True
        fake_cabinet.get_remote_scores.assert_awaited_once_with(a.web_id)

    @pytest.mark.asyncio
    async def test_failure_per_design_is_tolerated(self, document, fake_cabinet):
        model = document.model
        for cabinet_id, web_id, rom in (("1", "w1", "a"), ("2", "w2", "b")):
            table = Table.from_details(make_details(cabinet_id, web_id, rom=rom))
            model.set_table(table)
            model.add_score(table, Score(OWNER, 1))

        async def get_remote_scores(web_id):
            if web_id.id == "w1":
                raise CabinetRequestError("http://mania/w1", OSError("boom"))
            return remote_scores(("ZZ", 5))

        fake_cabinet.get_remote_scores.side_effect = get_remote_scores
        orchestrator = orchestrator_for(document, fake_cabinet)

        result = await orchestrator.scan_leaderboard()

        assert result.failed == 1
        assert len(model.scoreboard(ScoreId("b", 0)).entries) == 2


class TestScanAll:
    """Test suite for the full scan and persistence."""

    @pytest.mark.asyncio
    async def test_full_scan_saves_document(self, document, fake_cabinet, tmp_path):
        store = DocumentStore(tmp_path / "doc.json", OWNER)
        fake_cabinet.get_tables_list.return_value = [make_details("1", "w1", rom="a")]
        fake_cabinet.get_scores.return_value = cabinet_scores((OWNER, "2,000"))
        fake_cabinet.get_remote_scores.return_value = remote_scores(("AA", 3000))
        orchestrator = orchestrator_for(document, fake_cabinet, store=store)

        results = await orchestrator.scan_all()

        assert [r.kind for r in results] == ["tables", "scores", "leaderboard"]
        loaded = store.load()
        assert loaded.serial_number == document.serial_number == 3
        assert [e.initials for e in loaded.model.scoreboard(ScoreId("a", 0)).entries] == ["AA", OWNER]

    @pytest.mark.asyncio
    async def test_stops_when_table_scan_fails(self, document, fake_cabinet):
        fake_cabinet.get_tables_list.side_effect = CabinetRequestError("http://cabinet", OSError("down"))
        orchestrator = orchestrator_for(document, fake_cabinet)

        results = await orchestrator.scan_all()

        assert [r.kind for r in results] == ["tables"]
        fake_cabinet.get_scores.assert_not_awaited()


class TestProgressReporter:
    """Test suite for throttled progress."""

    def test_throttles_and_always_emits_final(self):
        now = [0.0]
        updates = []
        reporter = ProgressReporter(4, lambda p, t: updates.append(p), interval=1.0, clock=lambda: now[0])

        reporter.advance()
        reporter.advance()
        now[0] = 1.5
        reporter.advance()
        reporter.advance()
        reporter.finish()

        assert updates == [1, 3, 4]

    def test_empty_batch_reports_done(self):
        updates = []
        ProgressReporter(0, lambda p, t: updates.append((p, t))).finish()
        assert updates == [(0, 0)]


class TestExclusiveEdits:
    """Test suite for edits made outside a scan."""

    @pytest.mark.asyncio
    async def test_scan_waits_for_edit(self, document: ScoreboardDocument, fake_cabinet):
        fake_cabinet.get_tables_list.return_value = [make_details("1", "w1")]
        orchestrator = orchestrator_for(document, fake_cabinet)

        async with orchestrator.exclusive() as model:
            assert orchestrator.busy
            scan = asyncio.ensure_future(orchestrator.scan_tables())
            await asyncio.sleep(0)
            assert not scan.done()
            assert len(model) == 0

        result = await scan
        assert result.changed
        assert len(document.model) == 1

    @pytest.mark.asyncio
    async def test_commit_saves_document(self, document: ScoreboardDocument, fake_cabinet, store: DocumentStore):
        orchestrator = orchestrator_for(document, fake_cabinet, store=store)

        await orchestrator.commit()

        assert document.serial_number == 1
        assert store.load().serial_number == 1
