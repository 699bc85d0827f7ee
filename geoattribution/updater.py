"""
Write access to the visit and conversion logs.

Every call is plain column assignment followed by a commit, so applying the
same values twice leaves the same state and an interrupted run keeps what it
already wrote.
"""

from typing import Any, Mapping

from loguru import logger
from sqlalchemy import update
from sqlalchemy.orm import Session

from geoattribution.database import LogConversion, LogVisit


class RawLogUpdater:
    """Apply location updates to a visit and its conversions."""

    def __init__(self, session: Session):
        self.session = session

    def update_visits(self, values: Mapping[str, Any], idvisit: int) -> None:
        """Assign ``values`` on the visit ``idvisit``."""
        self._update(LogVisit, values, idvisit)

    def update_conversions(self, values: Mapping[str, Any], idvisit: int) -> None:
        """Assign ``values`` on every conversion of ``idvisit`` (there may be none)."""
        self._update(LogConversion, values, idvisit)

    def _update(self, model, values: Mapping[str, Any], idvisit: int) -> int:
        if not values:
            return 0

        result = self.session.execute(
            update(model)
            .where(model.idvisit == idvisit)
            .values(**dict(values))
        )
        self.session.commit()

        logger.debug(f"Updated {result.rowcount} {model.__tablename__} row(s) for idvisit={idvisit}")
        return result.rowcount
