"""
Re-attribution of logged visits to their current geolocation.

The pipeline walks the visit log of a date range page by page (keyset
pagination on idvisit), resolves each visit's address, and writes only the
location columns whose resolved value differs from what is stored. A
conversion shares its visit's location, so every write to a visit is repeated
on the visit's conversions.

Usage:
    pipeline = AttributionPipeline(fetcher, updater, VisitorGeolocator(), console)
    result = pipeline.run(date(2012, 1, 1), date(2013, 1, 1))
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, Protocol, Sequence

from loguru import logger
from rich.console import Console

from geoattribution.dates import range_bounds
from geoattribution.location import (
    CITY_NAME_KEY,
    COUNTRY_CODE_KEY,
    LATITUDE_KEY,
    LONGITUDE_KEY,
    REGION_CODE_KEY,
    LocationResult,
    VisitorGeolocator,
)
from geoattribution.progress import (
    PERCENT_STEP_DEFAULT,
    ProgressReporter,
    ProgressState,
    format_elapsed,
)
from geoattribution.utils.net import binary_to_string_ip

PAGE_SIZE_DEFAULT = 1000


class ComparisonMode(Enum):
    """How a resolved value is compared with the stored one."""
    CASE_INSENSITIVE_NORMALIZE = "case_insensitive_normalize"
    EXACT = "exact"


@dataclass(frozen=True)
class FieldMapping:
    column: str
    location_key: str
    mode: ComparisonMode = ComparisonMode.EXACT


LOCATION_FIELDS: tuple[FieldMapping, ...] = (
    FieldMapping("location_country", COUNTRY_CODE_KEY, ComparisonMode.CASE_INSENSITIVE_NORMALIZE),
    FieldMapping("location_region", REGION_CODE_KEY),
    FieldMapping("location_city", CITY_NAME_KEY),
    FieldMapping("location_latitude", LATITUDE_KEY),
    FieldMapping("location_longitude", LONGITUDE_KEY),
)

VISIT_FIELDS_TO_SELECT: tuple[str, ...] = ("idvisit", "location_ip") + tuple(
    mapping.column for mapping in LOCATION_FIELDS
)


class VisitFetcher(Protocol):
    def count_visits_with_dates_limit(self, start: datetime, end: datetime) -> int: ...

    def get_visits_with_dates_limit(
        self, start: datetime, end: datetime, fields: Sequence[str], after_id: int, limit: int
    ) -> list[dict[str, Any]]: ...


class VisitUpdater(Protocol):
    def update_visits(self, values: Mapping[str, Any], idvisit: int) -> None: ...

    def update_conversions(self, values: Mapping[str, Any], idvisit: int) -> None: ...


@dataclass
class AttributionResult:
    """Result of a re-attribution run."""
    start: date
    end: date
    provider_id: str
    total: int = 0
    processed: int = 0
    skipped: int = 0
    updated: int = 0
    pages_fetched: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def duration_seconds(self) -> float | None:
        """Calculate duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None


def _is_absent(value) -> bool:
    return value is None or value == ""


def get_values_to_update(row: Mapping[str, Any], location: LocationResult) -> dict[str, Any]:
    """
    Location columns whose resolved value differs from the stored one.

    Values the resolver could not determine are never staged. The country
    is always staged lowercased, and is staged whenever the stored value is
    neither the resolved value nor its lowercased form.
    """
    values_to_update: dict[str, Any] = {}

    for mapping in LOCATION_FIELDS:
        resolved = location.get(mapping.location_key)
        if _is_absent(resolved):
            continue

        existing = row.get(mapping.column)

        if mapping.mode is ComparisonMode.CASE_INSENSITIVE_NORMALIZE:
            # Stored casing that differs from the resolved value is rewritten
            # lowercased; a value already stored lowercased is left alone.
            normalized = str(resolved).lower()
            if existing not in (resolved, normalized):
                values_to_update[mapping.column] = normalized
        elif resolved != existing:
            values_to_update[mapping.column] = resolved

    return values_to_update


class AttributionPipeline:
    """
    Re-attributes visits of a date range with one geolocator.

    The fetcher, updater and geolocator are injected; the pipeline holds no
    state between runs.
    """

    def __init__(
        self,
        fetcher: VisitFetcher,
        updater: VisitUpdater,
        geolocator: VisitorGeolocator,
        console: Console | None = None,
        percent_step=PERCENT_STEP_DEFAULT,
        verbose: bool = False,
    ):
        self.fetcher = fetcher
        self.updater = updater
        self.geolocator = geolocator
        self.console = console or Console(soft_wrap=True, highlight=False)
        self.reporter = ProgressReporter(self.console, percent_step)
        self.verbose = verbose

    def run(self, start: date, end: date, page_size: int = PAGE_SIZE_DEFAULT) -> AttributionResult:
        """
        Re-attribute every visit in ``[start, end)``.

        Any store error aborts the run and propagates; rows written before it
        stay written.
        """
        if page_size < 1:
            raise ValueError(f"page_size must be positive, got {page_size}")

        range_start, range_end = range_bounds(start, end)
        provider_id = self.geolocator.get_provider().id

        total = self.fetcher.count_visits_with_dates_limit(range_start, range_end)
        result = AttributionResult(start=start, end=end, provider_id=provider_id, total=total)

        self.console.print(
            f"Re-attribution for date range: {start} to {end}. "
            f"{total} visits to process with provider \"{provider_id}\"."
        )
        logger.info(f"Re-attributing {total} visits from {start} to {end} with provider {provider_id}")

        state = ProgressState(total=total)
        result.started_at = datetime.now()

        self._process_in_pages(range_start, range_end, page_size, state, result)

        result.completed_at = datetime.now()
        self.console.print(f"Completed. [yellow]{format_elapsed(state)}[/yellow]")
        logger.info(
            f"Re-attribution complete: {result.processed} processed, "
            f"{result.updated} updated, {result.skipped} skipped in {result.pages_fetched} pages"
        )
        return result

    def _process_in_pages(
        self,
        start: datetime,
        end: datetime,
        page_size: int,
        state: ProgressState,
        result: AttributionResult,
    ) -> None:
        last_id = 0
        while True:
            rows = self.fetcher.get_visits_with_dates_limit(
                start, end, VISIT_FIELDS_TO_SELECT, last_id, page_size
            )
            result.pages_fetched += 1

            if rows:
                last_id = rows[-1]["idvisit"] or last_id
                self._reattribute_rows(rows, state, result)

            # A full page means there may be more; only a short page ends the scan
            if len(rows) != page_size:
                break

    def _reattribute_rows(
        self,
        rows: list[dict[str, Any]],
        state: ProgressState,
        result: AttributionResult,
    ) -> None:
        for row in rows:
            if not self._is_row_complete(row):
                result.skipped += 1
                self._record_processed(state, result)
                continue

            location = self._get_visit_location(row)
            values_to_update = get_values_to_update(row, location)

            self._record_processed(state, result)

            idvisit = row["idvisit"]

            if not values_to_update:
                self._write_if_verbose(
                    f"Nothing to update for idvisit = {idvisit}. "
                    "Existing location info is same as geolocated."
                )
                continue

            self._write_if_verbose(f"Updating visit with idvisit = {idvisit}.")

            self.updater.update_visits(values_to_update, idvisit)
            self.updater.update_conversions(values_to_update, idvisit)
            result.updated += 1

    def _record_processed(self, state: ProgressState, result: AttributionResult) -> None:
        self.reporter.record_processed(state)
        result.processed = state.processed

    def _is_row_complete(self, row: Mapping[str, Any]) -> bool:
        if not row.get("idvisit"):
            self._write_if_verbose("Empty idvisit field. Skipping...")
            return False

        if not row.get("location_ip"):
            self._write_if_verbose(f"Empty location_ip field for idvisit = {row['idvisit']}. Skipping...")
            return False

        return True

    def _get_visit_location(self, row: Mapping[str, Any]) -> LocationResult:
        ip = binary_to_string_ip(row["location_ip"])
        return self.geolocator.get_location(ip)

    def _write_if_verbose(self, message: str) -> None:
        logger.debug(message)
        if self.verbose:
            self.console.print(message, markup=False)
