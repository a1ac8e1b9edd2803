"""
Duplicate table detection.

A ScoreId is duplicated when two or more cabinet tables map to it, which is
common because one ROM/offset backs several table file variants. Tables
stored at offset 0 are compatible with every offset of the same name, so
they join the group of each offset variant.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Set

from scoreboard.models.identifiers import ScoreId, WebTableId
from scoreboard.models.table import Table

if TYPE_CHECKING:
    from scoreboard.models.score_model import ScoreModel


class DuplicateDisposition(str, Enum):
    # every table has the same web id
    ALL_MATCH = "all_match"
    # enabled tables agree, disabled variants may differ
    ALL_ENABLED_MATCH = "all_enabled_match"
    ALL_DISABLED = "all_disabled"
    # web ids differ but a table already owns the scores
    NEEDS_PRIMARY = "needs_primary"
    # web ids differ and nobody owns the scores: operator must choose
    MISMATCH = "mismatch"

    @property
    def needs_work(self) -> bool:
        return self in (DuplicateDisposition.NEEDS_PRIMARY, DuplicateDisposition.MISMATCH)


@dataclass
class DuplicateTables:
    """Tables sharing one score identity, evaluated against a model."""

    model: "ScoreModel"
    tables: List[Table] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.tables)

    @property
    def primary_table(self) -> Optional[Table]:
        return next((table for table in self.tables if self.model.is_score_owner(table)), None)

    @property
    def primary_web_id(self) -> Optional[WebTableId]:
        primary = self.primary_table
        return primary.web_id if primary else None

    @property
    def disposition(self) -> DuplicateDisposition:
        web_ids = {table.web_id for table in self.tables}
        if len(web_ids) == 1:
            return DuplicateDisposition.ALL_MATCH

        enabled_web_ids = {table.web_id for table in self.tables if not table.disabled}
        if len(enabled_web_ids) == 1:
            return DuplicateDisposition.ALL_ENABLED_MATCH
        if not enabled_web_ids:
            return DuplicateDisposition.ALL_DISABLED

        if self.primary_table is None:
            return DuplicateDisposition.MISMATCH
        return DuplicateDisposition.NEEDS_PRIMARY

    def append(self, table: Table) -> None:
        self.tables.append(table)


def build_duplicates(model: "ScoreModel") -> Dict[ScoreId, DuplicateTables]:
    """
    Group every table by ScoreId.

    Zero-offset tables are also appended to the group of every non-zero
    offset ScoreId sharing their name.
    """
    score_ids_by_name: Dict[str, Set[ScoreId]] = {}
    tables = sorted(model.tables.values(), key=lambda t: t.cabinet_id)
    for table in tables:
        if table.score_id.offset > 0:
            score_ids_by_name.setdefault(table.score_id.name, set()).add(table.score_id)

    result: Dict[ScoreId, DuplicateTables] = {}
    for table in tables:
        result.setdefault(table.score_id, DuplicateTables(model)).append(table)
        if table.score_id.is_wildcard:
            for score_id in score_ids_by_name.get(table.score_id.name, ()):
                result.setdefault(score_id, DuplicateTables(model)).append(table)
    return result


def build_duplicates_for(model: "ScoreModel", score_id: ScoreId) -> DuplicateTables:
    """The duplicate group for a single ScoreId."""
    tables = model.tables_by_score_id(score_id)
    if score_id.offset > 0:
        tables += model.tables_by_score_id(score_id.with_offset(0))
    return DuplicateTables(model, tables)


def find_duplicates(model: "ScoreModel") -> List[tuple]:
    """(ScoreId, DuplicateTables) for groups of two or more tables, sorted by ScoreId."""
    groups = build_duplicates(model)
    return sorted(
        ((score_id, group) for score_id, group in groups.items() if group.count > 1),
        key=lambda pair: pair[0],
    )
