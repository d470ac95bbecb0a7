"""
Historical Cutoff Store

Read-only access to historical_cutoffs rows. There is no write path: the
table is filled by the offline ingestion pipeline.

query() always:
- filters by exam, category and an inclusive year range
- orders by closing rank ascending (best admission chance first)
- returns [] when nothing matches
- raises DataUnavailableError when the backend is unreachable or the
  deadline has already passed
"""

import logging
import time
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import DataUnavailableError
from app.db.postgres import execute_raw_sql, get_engine
from app.models.domain import Category, ExamType, HistoricalCutoff

logger = logging.getLogger(__name__)

YearRange = Tuple[int, int]


def remaining_ms(deadline: Optional[float], source: str) -> Optional[int]:
    """Milliseconds left before a time.monotonic() deadline; raises once it has passed."""
    if deadline is None:
        return None
    left = deadline - time.monotonic()
    if left <= 0:
        raise DataUnavailableError(source, "deadline exceeded")
    return max(1, int(left * 1000))


def _sort_key(row: HistoricalCutoff):
    return (row.closing_rank, -row.exam_year, row.round_number, row.college_id)


class CutoffStore:
    """Interface shared by every historical cutoff backend."""

    source = "historical cutoff store"

    def query(
        self,
        exam: ExamType,
        category: Category,
        year_range: YearRange,
        deadline: Optional[float] = None,
    ) -> List[HistoricalCutoff]:
        raise NotImplementedError


class InMemoryCutoffStore(CutoffStore):
    """Serves a fixed list of rows (tests, fixtures, embedded use)."""

    source = "in-memory cutoff store"

    def __init__(self, rows: Iterable[HistoricalCutoff] = ()):
        self._rows = tuple(rows)

    def query(self, exam, category, year_range, deadline=None):
        remaining_ms(deadline, self.source)
        start, end = year_range
        rows = [
            r for r in self._rows
            if r.exam_name is exam and r.category is category and start <= r.exam_year <= end
        ]
        return sorted(rows, key=_sort_key)


class SqlCutoffStore(CutoffStore):
    """Reads historical_cutoffs through SQLAlchemy with raw SQL."""

    source = "historical_cutoffs table"

    QUERY = """
        SELECT college_id, exam_name, exam_year, category, round_number,
               opening_rank, closing_rank, state_quota
        FROM historical_cutoffs
        WHERE exam_name = :exam_name
            AND category = :category
            AND exam_year BETWEEN :start_year AND :end_year
            AND closing_rank IS NOT NULL
            AND college_id IS NOT NULL
        ORDER BY closing_rank ASC, exam_year DESC, round_number ASC
    """

    def __init__(self, engine: Optional[Engine] = None):
        self._engine = engine

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = get_engine()
        return self._engine

    def query(self, exam, category, year_range, deadline=None):
        timeout_ms = remaining_ms(deadline, self.source)
        start, end = year_range
        try:
            rows = execute_raw_sql(
                self.QUERY,
                {
                    "exam_name": exam.db_name,
                    "category": category.value,
                    "start_year": start,
                    "end_year": end,
                },
                engine=self.engine,
                timeout_ms=timeout_ms,
            )
        except SQLAlchemyError as e:
            logger.error("Cutoff query failed for %s/%s: %s", exam.value, category.value, e)
            raise DataUnavailableError(self.source, str(e)) from e

        cutoffs = [self._to_cutoff(row, exam, category) for row in rows]
        logger.debug("Fetched %d cutoff rows for %s/%s %s", len(cutoffs), exam.value, category.value, year_range)
        return cutoffs

    @staticmethod
    def _to_cutoff(row: dict, exam: ExamType, category: Category) -> HistoricalCutoff:
        opening = row.get("opening_rank")
        return HistoricalCutoff(
            college_id=str(row["college_id"]),
            exam_name=exam,
            exam_year=int(row["exam_year"]),
            category=category,
            round_number=int(row["round_number"] or 1),
            opening_rank=int(opening) if opening is not None else None,
            closing_rank=int(row["closing_rank"]),
            state_quota=bool(row.get("state_quota")),
        )
