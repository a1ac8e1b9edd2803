"""
Score model: the in-memory aggregate root for tables and scoreboards.

Primary maps:
- tables:  CabinetId -> Table
- scores:  ScoreId   -> TableScoreboard

Derived indexes (never persisted, rebuilt from tables on load):
- web id index:   WebTableId -> [CabinetId]
- score id index: ScoreId    -> [CabinetId]

Every write that changes a table's web id or score id goes through
set_table(), which keeps both indexes exact and applies the scoreboard
relocation rule. Callers receive copies of tables so they cannot mutate
indexed state behind the model's back.
"""
from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from scoreboard.models.activity import Activity
from scoreboard.models.identifiers import CabinetId, ScoreId, WebTableId
from scoreboard.models.score import Score, TableScoreboard
from scoreboard.models.table import ScoreStatus, Table, VR

logger = logging.getLogger(__name__)

# minimum RapidFuzz WRatio for a fuzzy table-name hit
SEARCH_FUZZY_CUTOFF = 80


@dataclass(frozen=True)
class TableItem:
    """Row shown in a table list: a table plus its owner's standing."""

    table: Table
    score_count: int
    score: int
    rank: int
    rank_count: int
    last_score_date: Optional[datetime]

    @property
    def id(self) -> CabinetId:
        return self.table.cabinet_id


class ScoreModel:
    """
    Tables, scoreboards and activity for one cabinet.

    Mutated from a single logical owner at a time; no internal locking.
    """

    def __init__(self, owner_initials: str):
        self.owner_initials = owner_initials
        self.scores: Dict[ScoreId, TableScoreboard] = {}
        self.activity = Activity()

        self._tables: Dict[CabinetId, Table] = {}
        self._tables_by_web_id: Dict[WebTableId, List[CabinetId]] = {}
        self._tables_by_score_id: Dict[ScoreId, List[CabinetId]] = {}

    @classmethod
    def from_parts(
        cls,
        owner_initials: str,
        tables: Iterable[Table],
        scores: Dict[ScoreId, TableScoreboard],
        activity: Optional[Activity] = None,
    ) -> "ScoreModel":
        """Rebuild a model (and its indexes) from persisted parts."""
        model = cls(owner_initials)
        model.scores = dict(scores)
        model.activity = activity or Activity()
        for table in tables:
            model._tables[table.cabinet_id] = table
            model._tables_by_web_id.setdefault(table.web_id, []).append(table.cabinet_id)
            model._tables_by_score_id.setdefault(table.score_id, []).append(table.cabinet_id)
        return model

    # Tables
    # ─────────────────────────────────────────────────────────────

    @property
    def tables(self) -> Dict[CabinetId, Table]:
        """Copy of the table map."""
        return {cabinet_id: dataclasses.replace(table) for cabinet_id, table in self._tables.items()}

    def table_ids(self) -> List[CabinetId]:
        return list(self._tables)

    def __len__(self) -> int:
        return len(self._tables)

    def table(self, cabinet_id: CabinetId) -> Optional[Table]:
        table = self._tables.get(cabinet_id)
        return dataclasses.replace(table) if table else None

    def set_table(self, table: Table) -> None:
        """Insert or replace a table, keeping the indexes exact."""
        stored = dataclasses.replace(table)
        old = self._tables.get(stored.cabinet_id)
        self._update_index(old, stored)
        self._tables[stored.cabinet_id] = stored

    def set_score_status(self, cabinet_id: CabinetId, status: Optional[ScoreStatus]) -> None:
        table = self._tables.get(cabinet_id)
        if table is not None:
            table.score_status = status

    def set_disabled(self, cabinet_id: CabinetId, disabled: bool) -> None:
        table = self._tables.get(cabinet_id)
        if table is not None:
            table.disabled = disabled

    def clear_score_statuses(self) -> int:
        """Forget every non-ok status so the next scan asks again."""
        cleared = 0
        for table in self._tables.values():
            if table.score_status is not None and table.score_status != ScoreStatus.OK:
                table.score_status = None
                cleared += 1
        return cleared

    def tables_by_web_id(self, web_id: WebTableId) -> List[Table]:
        return [dataclasses.replace(self._tables[i]) for i in self._tables_by_web_id.get(web_id, [])]

    def tables_by_score_id(self, score_id: ScoreId) -> List[Table]:
        return [dataclasses.replace(self._tables[i]) for i in self._tables_by_score_id.get(score_id, [])]

    @property
    def web_id_index(self) -> Dict[WebTableId, List[CabinetId]]:
        return {key: list(ids) for key, ids in self._tables_by_web_id.items()}

    @property
    def score_id_index(self) -> Dict[ScoreId, List[CabinetId]]:
        return {key: list(ids) for key, ids in self._tables_by_score_id.items()}

    def variations(self, table: Table) -> List[Table]:
        """All cabinet tables of the same table design."""
        return self.tables_by_web_id(table.web_id)

    # Scoreboards
    # ─────────────────────────────────────────────────────────────

    def scoreboard(self, score_id: ScoreId) -> Optional[TableScoreboard]:
        return self.scores.get(score_id)

    def scoreboard_for(self, table: Table) -> TableScoreboard:
        """Scoreboard for the table, or an unsaved empty one seeded from it."""
        scoreboard = self.scores.get(table.score_id)
        if scoreboard is None:
            return TableScoreboard.for_table(table)
        return scoreboard

    def _scoreboard_for_write(self, table: Table) -> TableScoreboard:
        scoreboard = self.scores.get(table.score_id)
        if scoreboard is None:
            scoreboard = TableScoreboard.for_table(table)
            self.scores[table.score_id] = scoreboard
        return scoreboard

    def add_score(self, table: Table, score: Score) -> bool:
        """Add a score to the table's scoreboard; no-op for a known (initials, score)."""
        existing = self.scores.get(table.score_id)
        if existing is not None and score in existing.entries:
            return False
        return self._scoreboard_for_write(table).add(score)

    def remove_score(self, table: Table, score: Score) -> bool:
        scoreboard = self.scores.get(table.score_id)
        if scoreboard is None:
            return False
        return scoreboard.remove(score)

    def merge_remote_scores(self, score_id: ScoreId, remote: Iterable[Score]) -> bool:
        """Merge a leaderboard snapshot into an existing scoreboard."""
        scoreboard = self.scores.get(score_id)
        if scoreboard is None:
            return False
        return scoreboard.merge_remote_scores(remote, self.owner_initials)

    def has_misconfigured_scores(self, table: Table) -> bool:
        """
        True when the scores stored at the table's ScoreId were attributed
        to a different table design. Such scores must not be trusted or
        downloaded into blindly.
        """
        scoreboard = self.scores.get(table.score_id)
        return scoreboard is not None and scoreboard.web_id != table.web_id

    def is_score_owner(self, table: Table) -> bool:
        """True when a scoreboard exists and is attributed to this table's design."""
        scoreboard = self.scores.get(table.score_id)
        return scoreboard is not None and scoreboard.web_id == table.web_id

    def set_scores_web_id(self, table: Table) -> None:
        """Attribute the scoreboard at the table's ScoreId to this table's design."""
        self._scoreboard_for_write(table).web_id = table.web_id

    def representative(self, score_id: ScoreId) -> Optional[Table]:
        """
        Canonical table to show for a score identity.

        Preference order:
        1. enabled table whose web id matches the scoreboard's
        2. any table whose web id matches the scoreboard's
        3. any enabled table sharing the ScoreId
        4. any table sharing the ScoreId
        """
        tables = [self._tables[i] for i in self._tables_by_score_id.get(score_id, [])]
        if not tables:
            return None

        candidates = []
        scoreboard = self.scores.get(score_id)
        if scoreboard is not None:
            web_id = scoreboard.web_id
            candidates.append(lambda t: not t.disabled and t.web_id == web_id)
            candidates.append(lambda t: t.web_id == web_id)
        candidates.append(lambda t: not t.disabled)

        for predicate in candidates:
            table = next((t for t in tables if predicate(t)), None)
            if table is not None:
                return dataclasses.replace(table)
        return dataclasses.replace(tables[0])

    def orphaned_score_ids(self) -> List[ScoreId]:
        """Scoreboards no table maps to. They are retained, never pruned."""
        return sorted(score_id for score_id in self.scores if score_id not in self._tables_by_score_id)

    # Activity
    # ─────────────────────────────────────────────────────────────

    def record_activity(self, reports: Iterable[Any]) -> bool:
        return self.activity.record(reports, self._tables)

    # Derived views
    # ─────────────────────────────────────────────────────────────

    def table_item(self, table: Table) -> TableItem:
        initials = self.owner_initials
        scoreboard = self.scores.get(table.score_id)
        if scoreboard is None:
            return TableItem(dataclasses.replace(table), 0, 0, 0, 0, None)

        best = scoreboard.best(initials)
        return TableItem(
            table=dataclasses.replace(table),
            score_count=scoreboard.local_count(initials),
            score=best.score if best else 0,
            rank=scoreboard.rank(initials) or 0,
            rank_count=scoreboard.rank_count(initials),
            last_score_date=best.date if best else None,
        )

    def table_items(self) -> List[TableItem]:
        return [self.table_item(table) for table in sorted(self._tables.values())]

    def recent_items(self, days: int = 3, now: Optional[datetime] = None) -> List[TableItem]:
        """Tables whose best owner score was set within the last `days` days."""
        cutoff = (now or datetime.now()) - timedelta(days=days)
        return [
            item for item in self.table_items()
            if item.last_score_date is not None and item.last_score_date > cutoff
        ]

    def search(self, text: str = "", vr: VR = VR.FLAT, playable: bool = False) -> List[Table]:
        """
        Find tables by name.

        Case-insensitive containment first; when nothing contains the text,
        fall back to RapidFuzz WRatio matching to tolerate typos.
        """
        tables = [
            table for table in sorted(self._tables.values())
            if (not playable or not table.disabled) and table.vr.matches(vr)
        ]
        needle = text.strip().lower()
        if not needle:
            return [dataclasses.replace(table) for table in tables]

        hits = [table for table in tables if needle in table.long_display_name.lower()]
        if hits:
            return [dataclasses.replace(table) for table in hits]

        from rapidfuzz import fuzz, process

        choices = {index: table.name for index, table in enumerate(tables)}
        matches = process.extract(
            needle,
            choices,
            scorer=fuzz.WRatio,
            processor=str.lower,
            score_cutoff=SEARCH_FUZZY_CUTOFF,
            limit=None,
        )
        return [dataclasses.replace(tables[index]) for _, _, index in matches]

    # Index maintenance
    # ─────────────────────────────────────────────────────────────

    def check_indexes(self) -> None:
        """Assert that both indexes exactly reflect the table map."""
        expected_web: Dict[WebTableId, set] = {}
        expected_score: Dict[ScoreId, set] = {}
        for cabinet_id, table in self._tables.items():
            expected_web.setdefault(table.web_id, set()).add(cabinet_id)
            expected_score.setdefault(table.score_id, set()).add(cabinet_id)

        actual_web = {key: set(ids) for key, ids in self._tables_by_web_id.items()}
        actual_score = {key: set(ids) for key, ids in self._tables_by_score_id.items()}
        assert actual_web == expected_web, "web id index out of sync with tables"
        assert actual_score == expected_score, "score id index out of sync with tables"

    @staticmethod
    def _remove_from_bucket(index: Dict[Any, List[CabinetId]], key: Any, cabinet_id: CabinetId) -> None:
        bucket = index.get(key)
        assert bucket is not None and cabinet_id in bucket, (
            f"table {cabinet_id} missing from index bucket {key}"
        )
        bucket.remove(cabinet_id)
        if not bucket:
            del index[key]

    def _update_index(self, old: Optional[Table], new: Optional[Table]) -> None:
        old_web = old.web_id if old else None
        new_web = new.web_id if new else None
        if old_web != new_web:
            if old is not None:
                self._remove_from_bucket(self._tables_by_web_id, old.web_id, old.cabinet_id)
            if new is not None:
                self._tables_by_web_id.setdefault(new.web_id, []).append(new.cabinet_id)

        old_score = old.score_id if old else None
        new_score = new.score_id if new else None
        if old_score != new_score:
            if old is not None:
                self._remove_from_bucket(self._tables_by_score_id, old.score_id, old.cabinet_id)
            if new is not None:
                self._tables_by_score_id.setdefault(new.score_id, []).append(new.cabinet_id)

        if old is not None and new is not None and old.score_id != new.score_id:
            self._relocate_scoreboard(old, new)

    def _relocate_scoreboard(self, old: Table, new: Table) -> None:
        """
        Move the scoreboard at the old ScoreId to the new one when it
        belonged to this table: the old id was manual (a one-off binding) or
        the scoreboard was attributed to the old table's design. Otherwise it
        stays put; it belongs to another table still sharing the old id.
        """
        scoreboard = self.scores.get(old.score_id)
        if scoreboard is None:
            return
        if not (old.score_id.is_manual or scoreboard.web_id == old.web_id):
            logger.debug(
                f"Scoreboard {old.score_id} stays: owned by {scoreboard.web_id}, "
                f"table {old.cabinet_id} moved to {new.score_id}"
            )
            return

        del self.scores[old.score_id]
        target = self.scores.get(new.score_id)
        if target is None:
            scoreboard.web_id = new.web_id
            self.scores[new.score_id] = scoreboard
        else:
            for entry in scoreboard.entries:
                target.add(entry)
            target.web_id = new.web_id
        logger.info(f"Relocated scoreboard {old.score_id} -> {new.score_id} for {new.name}")
