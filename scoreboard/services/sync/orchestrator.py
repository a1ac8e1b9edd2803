"""Scan orchestrator for merging cabinet and leaderboard data into the score model.

This orchestrator coordinates:
- Table list refresh (new, changed and vanished tables)
- Cabinet score refresh, fanned out per table
- Online leaderboard refresh, fanned out per table design
- Play activity refresh
- Progress reporting and document persistence

Fetches run concurrently; their results are applied to the model one at a
time as they complete, so the model never sees interleaved writes. A failed
fetch for one table is reported and skipped without aborting the batch.
All scan operations go through this orchestrator.
"""
import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple

from scoreboard.core import metrics
from scoreboard.core.config import settings
from scoreboard.core.logging import correlation_scope, get_logger
from scoreboard.models.score import Score, best_cabinet_score
from scoreboard.models.score_model import ScoreModel
from scoreboard.models.table import ScoreStatus, Table
from scoreboard.storage.document import DocumentStore, ScoreboardDocument

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int], None]


@dataclass
class ScanResult:
    """Outcome of one scan operation."""

    kind: str
    processed: int = 0
    changed: bool = False
    failed: int = 0
    messages: List[str] = field(default_factory=list)
    duration_ms: int = 0
    success: bool = True
    finished_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "processed": self.processed,
            "changed": self.changed,
            "failed": self.failed,
            "messages": list(self.messages),
            "duration_ms": self.duration_ms,
            "success": self.success,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


class ProgressReporter:
    """
    Throttled processed/total reporting.

    Emits at most once per `interval` seconds; the final count is always
    emitted.
    """

    def __init__(
        self,
        total: int,
        callback: Optional[ProgressCallback] = None,
        interval: float = 0.25,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.total = total
        self.processed = 0
        self.callback = callback
        self.interval = interval
        self.clock = clock
        self._last_emit: Optional[float] = None
        self._emitted_final = False

    def _emit(self) -> None:
        self._last_emit = self.clock()
        if self.processed >= self.total:
            self._emitted_final = True
        if self.callback is not None:
            self.callback(self.processed, self.total)

    def advance(self, count: int = 1) -> None:
        self.processed += count
        if self.processed >= self.total:
            self._emit()
        elif self._last_emit is None or self.clock() - self._last_emit >= self.interval:
            self._emit()

    def finish(self) -> None:
        if not self._emitted_final:
            self.processed = max(self.processed, self.total)
            self._emit()


class ScanOrchestrator:
    """
    Single logical owner of the score model while scanning.

    Every public scan takes the orchestrator lock, so two scans never write
    the model at the same time. When a scan changes the document its serial
    number is bumped and, if a store is attached, the document is saved.
    """

    def __init__(
        self,
        document: ScoreboardDocument,
        cabinet,
        store: Optional[DocumentStore] = None,
        concurrency: Optional[int] = None,
        progress: Optional[ProgressCallback] = None,
        progress_interval: Optional[float] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            document: Document holding the score model
            cabinet: VPinStudioClient (or anything with the same coroutines)
            store: Where to save the document after a changing scan
            concurrency: Max in-flight per-table fetches
            progress: Called with (processed, total) during fan-out scans
            progress_interval: Minimum seconds between progress callbacks
        """
        self.document = document
        self.cabinet = cabinet
        self.store = store
        self.concurrency = concurrency or settings.SCAN_CONCURRENCY
        self.progress = progress
        self.progress_interval = (
            settings.PROGRESS_INTERVAL if progress_interval is None else progress_interval
        )
        self.last_results: Dict[str, ScanResult] = {}
        self._lock = asyncio.Lock()

    @property
    def model(self):
        return self.document.model

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    # Public scans
    # ─────────────────────────────────────────────────────────────

    async def scan_tables(self) -> ScanResult:
        async with self._lock:
            return await self._run("tables", self._scan_tables)

    async def scan_scores(self) -> ScanResult:
        async with self._lock:
            return await self._run("scores", self._scan_scores_and_activity)

    async def reset_scan_scores(self) -> ScanResult:
        """Forget non-ok statuses so every table is asked again, then scan scores."""
        async with self._lock:
            cleared = self.model.clear_score_statuses()
            logger.info(f"Cleared {cleared} score statuses")
            result = await self._run("scores", self._scan_scores_and_activity)
            if cleared and not result.changed:
                result.changed = True
                await self._commit(result)
            return result

    async def scan_leaderboard(self) -> ScanResult:
        async with self._lock:
            return await self._run("leaderboard", self._scan_leaderboard)

    async def scan_activity(self) -> ScanResult:
        async with self._lock:
            return await self._run("activity", self._scan_activity)

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator[ScoreModel]:
        """
        Hold the scan lock for an edit made outside a scan.

        Waits for a running scan to finish, so a save never captures a
        half-merged model.
        """
        async with self._lock:
            yield self.model

    async def scan_all(self) -> List[ScanResult]:
        """Tables, then scores with activity, then the leaderboard."""
        async with self._lock:
            results = [await self._run("tables", self._scan_tables)]
            if not results[0].success:
                logger.warning("Table scan failed, skipping score and leaderboard scans")
                return results
            results.append(await self._run("scores", self._scan_scores_and_activity))
            results.append(await self._run("leaderboard", self._scan_leaderboard))
            return results

    # Scan plumbing
    # ─────────────────────────────────────────────────────────────

    async def _run(self, kind: str, scan: Callable[[ScanResult], Awaitable[None]]) -> ScanResult:
        result = ScanResult(kind=kind)
        start = time.monotonic()
        with correlation_scope(kind):
            logger.info(f"Starting {kind} scan")
            try:
                await scan(result)
            except Exception as e:
                logger.error(f"{kind} scan failed: {e}", exc_info=True)
                result.success = False
                result.messages.append(f"Scan failed: {e}")
                metrics.record_fetch_failure(kind)

            result.duration_ms = int((time.monotonic() - start) * 1000)
            result.finished_at = datetime.now()
            await self._commit(result)
            logger.info(
                f"Finished {kind} scan: processed={result.processed} changed={result.changed} "
                f"failed={result.failed} in {result.duration_ms}ms"
            )

        metrics.record_scan(kind, result.success)
        self.last_results[kind] = result
        return result

    async def _commit(self, result: ScanResult) -> None:
        if not result.changed:
            return
        await self.commit()

    async def commit(self) -> None:
        """Bump the serial number and persist the document."""
        self.document.touch()
        metrics.update_model_metrics(self.model)
        if self.store is not None:
            await self.store.save_async(self.document)

    def _reporter(self, total: int) -> ProgressReporter:
        return ProgressReporter(total, self.progress, self.progress_interval)

    async def _fan_out(
        self,
        items: List[Any],
        fetch: Callable[[Any], Awaitable[Any]],
    ):
        """
        Run fetch(item) for every item with bounded concurrency.

        Yields (item, value, error) in completion order.
        """
        semaphore = asyncio.Semaphore(self.concurrency)

        async def guarded(item) -> Tuple[Any, Any, Optional[BaseException]]:
            async with semaphore:
                try:
                    return item, await fetch(item), None
                except Exception as e:
                    return item, None, e

        tasks = [asyncio.ensure_future(guarded(item)) for item in items]
        try:
            for next_done in asyncio.as_completed(tasks):
                yield await next_done
        finally:
            for task in tasks:
                task.cancel()

    # Tables
    # ─────────────────────────────────────────────────────────────

    async def _scan_tables(self, result: ScanResult) -> None:
        details_list = await self.cabinet.get_tables_list()
        model = self.model
        seen = set()

        for details in details_list:
            fresh = Table.from_details(details)
            seen.add(fresh.cabinet_id)
            result.processed += 1

            existing = model.table(fresh.cabinet_id)
            if existing is None:
                model.set_table(fresh)
                result.messages.append(f"New {fresh.name}")
                result.changed = True
            elif existing.update(details):
                model.set_table(existing)
                result.messages.append(f"Update {existing.name}")
                result.changed = True

        for table in model.tables.values():
            if table.cabinet_id not in seen and not table.disabled:
                model.set_disabled(table.cabinet_id, True)
                result.messages.append(f"Deleted (disabled) {table.name}")
                result.changed = True

    # Scores
    # ─────────────────────────────────────────────────────────────

    async def _scan_scores_and_activity(self, result: ScanResult) -> None:
        activity = ScanResult(kind="activity")

        async def scan_activity() -> None:
            try:
                await self._scan_activity(activity)
            except Exception as e:
                logger.warning(f"Activity fetch failed: {e}")
                activity.messages.append(f"Activity: {e}")
                metrics.record_fetch_failure("activity")

        await asyncio.gather(self._scan_scores(result), scan_activity())
        result.changed = result.changed or activity.changed
        result.messages.extend(activity.messages)

    async def _fetch_table_score(self, table: Table) -> Tuple[Optional[Score], Optional[ScoreStatus]]:
        initials = self.model.owner_initials
        scores = await self.cabinet.get_scores(table.cabinet_id)
        best = best_cabinet_score(scores, initials) if initials else None
        if best is not None:
            return Score(initials=initials, score=best.numeric_score), ScoreStatus.OK
        if table.score_status is None:
            return None, await self.cabinet.get_score_status(table.cabinet_id)
        return None, None

    async def _scan_scores(self, result: ScanResult) -> None:
        model = self.model
        tables = [
            table for table in model.tables.values()
            if not table.disabled and not model.has_misconfigured_scores(table)
        ]
        reporter = self._reporter(len(tables))

        async for table, value, error in self._fan_out(tables, self._fetch_table_score):
            result.processed += 1
            reporter.advance()

            if error is not None:
                logger.warning(f"Score fetch failed for {table.name} ({table.cabinet_id}): {error}")
                result.failed += 1
                result.messages.append(f"{table.name}: {error}")
                metrics.record_fetch_failure("scores")
                continue

            score, status = value
            if score is not None and model.add_score(table, score):
                metrics.record_score_added("cabinet")
                result.messages.append(f"New score {table.name}: {score.score:,}")
                result.changed = True
            current = model.table(table.cabinet_id)
            if status is not None and current is not None and current.score_status != status:
                model.set_score_status(table.cabinet_id, status)
                result.changed = True

        reporter.finish()

    # Leaderboard
    # ─────────────────────────────────────────────────────────────

    async def _scan_leaderboard(self, result: ScanResult) -> None:
        model = self.model
        score_ids_by_web_id: Dict[Any, List[Any]] = {}
        for score_id, scoreboard in model.scores.items():
            score_ids_by_web_id.setdefault(scoreboard.web_id, []).append(score_id)

        web_ids = sorted(score_ids_by_web_id, key=lambda web_id: web_id.id)
        reporter = self._reporter(len(web_ids))

        async for web_id, remote, error in self._fan_out(web_ids, self.cabinet.get_remote_scores):
            result.processed += 1
            reporter.advance()

            if error is not None:
                logger.warning(f"Leaderboard fetch failed for {web_id}: {error}")
                result.failed += 1
                result.messages.append(f"{web_id}: {error}")
                metrics.record_fetch_failure("leaderboard")
                continue

            scores = [entry.as_score() for entry in remote]
            for score_id in score_ids_by_web_id[web_id]:
                if model.merge_remote_scores(score_id, scores):
                    result.changed = True
                    result.messages.append(f"Leaderboard {model.scores[score_id].name}")

        reporter.finish()

    # Activity
    # ─────────────────────────────────────────────────────────────

    async def _scan_activity(self, result: ScanResult) -> None:
        reports = await self.cabinet.get_activity()
        result.processed = len(reports)
        baseline = not self.model.activity.snapshots
        if self.model.record_activity(reports) or (baseline and reports):
            result.changed = True
            result.messages.append(f"Activity updated from {len(reports)} tables")
