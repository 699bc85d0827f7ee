# SPDX-License-Identifier: MIT
"""Pytest configuration and fixtures for re-attribution tests."""

import io
import os
from datetime import datetime
from typing import Generator

import pytest

# Set test environment variables before importing the package
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("DISABLE_LOGGING", "1")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from rich.console import Console  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from geoattribution.database import LogConversion, LogVisit, init_db  # noqa: E402
from geoattribution.location import EMPTY_LOCATION, LocationProvider, LocationResult, VisitorGeolocator  # noqa: E402
from geoattribution.utils.net import string_to_binary_ip  # noqa: E402


# =============================================================================
# Store fixtures
# =============================================================================

@pytest.fixture
def db_engine():
    """Fresh in-memory SQLite database with the log tables."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Generator[Session, None, None]:
    session = Session(db_engine)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def add_visit(db_session):
    """Insert a visit; returns its idvisit."""
    def _add_visit(ip: str | None = "81.2.69.160", when: datetime = datetime(2012, 6, 1, 12, 0), **location) -> int:
        visit = LogVisit(
            visit_last_action_time=when,
            location_ip=string_to_binary_ip(ip) if ip else None,
            **location,
        )
        db_session.add(visit)
        db_session.commit()
        return visit.idvisit

    return _add_visit


@pytest.fixture
def add_conversion(db_session):
    """Insert a conversion for an existing visit."""
    def _add_conversion(idvisit: int, idgoal: int = 1, **location) -> None:
        db_session.add(LogConversion(
            idvisit=idvisit,
            idgoal=idgoal,
            buster=0,
            server_time=datetime(2012, 6, 1, 12, 5),
            **location,
        ))
        db_session.commit()

    return _add_conversion


# =============================================================================
# Test doubles for the pipeline collaborators
# =============================================================================

class FakeFetcher:
    """Serves visit rows from a list, the way the store pages them."""

    def __init__(self, rows: list[dict]):
        self.rows = rows
        self.count_calls = []
        self.page_calls = []

    def count_visits_with_dates_limit(self, start, end) -> int:
        self.count_calls.append((start, end))
        return len(self.rows)

    def get_visits_with_dates_limit(self, start, end, fields, after_id, limit):
        self.page_calls.append((after_id, limit))
        page = [row for row in self.rows if (row.get("idvisit") or 0) > after_id][:limit]
        return [{name: row.get(name) for name in fields} for row in page]


class FakeUpdater:
    """Applies updates to the fake rows and records every call in order."""

    def __init__(self, rows: list[dict] | None = None, fail_on: str | None = None):
        self.rows = {row.get("idvisit"): row for row in rows or []}
        self.calls = []
        self.fail_on = fail_on

    def update_visits(self, values, idvisit):
        self.calls.append(("visits", dict(values), idvisit))
        if self.fail_on == "visits":
            raise RuntimeError("visit update failed")
        if idvisit in self.rows:
            self.rows[idvisit].update(values)

    def update_conversions(self, values, idvisit):
        self.calls.append(("conversions", dict(values), idvisit))
        if self.fail_on == "conversions":
            raise RuntimeError("conversion update failed")


class StaticProvider(LocationProvider):
    """Answers from a fixed ip -> LocationResult table."""

    id = "static"
    title = "Static test provider"

    def __init__(self, locations: dict[str, LocationResult] | None = None, default: LocationResult = EMPTY_LOCATION):
        self.locations = locations or {}
        self.default = default
        self.lookups = []

    def get_location(self, ip: str) -> LocationResult:
        self.lookups.append(ip)
        return self.locations.get(ip, self.default)


@pytest.fixture
def fake_fetcher():
    return FakeFetcher


@pytest.fixture
def fake_updater():
    return FakeUpdater


@pytest.fixture
def static_geolocator():
    """Factory building a VisitorGeolocator over a StaticProvider."""
    def _static_geolocator(locations=None, default=EMPTY_LOCATION) -> VisitorGeolocator:
        return VisitorGeolocator(StaticProvider(locations, default))

    return _static_geolocator


@pytest.fixture
def recording_console() -> Console:
    """Console whose output can be read back with export_text()."""
    return Console(file=io.StringIO(), record=True, soft_wrap=True, highlight=False, width=200)


def make_row(idvisit, ip="81.2.69.160", **location) -> dict:
    """Visit row as returned by the fetcher."""
    row = {
        "idvisit": idvisit,
        "location_ip": string_to_binary_ip(ip) if ip else ip,
        "location_country": None,
        "location_region": None,
        "location_city": None,
        "location_latitude": None,
        "location_longitude": None,
    }
    row.update(location)
    return row


@pytest.fixture
def visit_row():
    return make_row


@pytest.fixture
def london() -> LocationResult:
    return LocationResult(
        country_code="GB",
        region_code="ENG",
        city_name="London",
        latitude=51.5142,
        longitude=-0.0931,
    )
