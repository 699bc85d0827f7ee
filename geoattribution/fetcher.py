"""
Read access to the visit log.

Visits are selected by ``visit_last_action_time`` in a half-open range
``[start, end)`` and paged by ``idvisit`` (keyset pagination), so rows
appended while a scan runs never shift a page that is already read.
"""

from datetime import datetime
from typing import Any, Sequence

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from geoattribution.database import LogVisit

_visit_columns = LogVisit.__table__.c


class RawLogFetcher:
    """Count and page through visits inside a date range."""

    def __init__(self, session: Session):
        self.session = session

    @staticmethod
    def _in_range(start: datetime, end: datetime) -> list:
        return [
            LogVisit.visit_last_action_time >= start,
            LogVisit.visit_last_action_time < end,
        ]

    def count_visits_with_dates_limit(self, start: datetime, end: datetime) -> int:
        """Number of visits in ``[start, end)``."""
        query = select(func.count()).select_from(LogVisit).where(*self._in_range(start, end))
        return int(self.session.scalar(query) or 0)

    def get_visits_with_dates_limit(
        self,
        start: datetime,
        end: datetime,
        fields: Sequence[str],
        after_id: int,
        limit: int,
    ) -> list[dict[str, Any]]:
        """
        Fetch the next page of visits after ``after_id``.

        Args:
            start: Inclusive lower bound on visit_last_action_time
            end: Exclusive upper bound on visit_last_action_time
            fields: Column names to return
            after_id: Cursor; only visits with a greater idvisit are returned
            limit: Maximum number of rows

        Returns:
            Rows as dicts holding only ``fields``, ascending by idvisit.
            Empty once the range is exhausted.

        Raises:
            ValueError: if a field is not a log_visit column
        """
        unknown = [name for name in fields if name not in _visit_columns]
        if unknown:
            raise ValueError(f"Unknown log_visit fields: {', '.join(unknown)}")

        query = (
            select(*[_visit_columns[name] for name in fields])
            .where(*self._in_range(start, end), LogVisit.idvisit > after_id)
            .order_by(LogVisit.idvisit)
            .limit(limit)
        )
        rows = [dict(row._mapping) for row in self.session.execute(query)]
        logger.debug(f"Fetched {len(rows)} visits after idvisit={after_id}")
        return rows
