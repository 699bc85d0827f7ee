"""
Location provider backed by a MaxMind GeoIP2 / GeoLite2 City database.

Usage:
    provider = GeoIp2Provider(Path("data/GeoLite2-City.mmdb"))
    provider.get_location("81.2.69.160")
"""

from pathlib import Path

import geoip2.database
import geoip2.errors
from loguru import logger
from maxminddb.errors import InvalidDatabaseError

from geoattribution.config import settings
from geoattribution.location.base import EMPTY_LOCATION, LocationProvider, LocationResult
from geoattribution.utils.geo import clean_coordinates


class GeoIp2Provider(LocationProvider):
    """City-level lookups from a local .mmdb file, opened lazily."""

    id = "geoip2"
    title = "MaxMind GeoIP2 City (local database)"

    def __init__(self, database_path: Path | None = None):
        self.database_path = Path(database_path or settings.pipeline.geoip2_database)
        self._reader = None
        self._open_failed = False

    def is_available(self) -> bool:
        return self.database_path.exists()

    def _get_reader(self):
        if self._reader is None and not self._open_failed:
            try:
                reader = geoip2.database.Reader(str(self.database_path))
            except (OSError, InvalidDatabaseError) as e:
                # Logged once; every later lookup answers empty
                self._open_failed = True
                logger.warning(f"GeoIP2 database unusable ({self.database_path}): {e}")
                return None

            database_type = reader.metadata().database_type
            if "City" not in database_type and "Enterprise" not in database_type:
                reader.close()
                self._open_failed = True
                logger.warning(
                    f"GeoIP2 database {self.database_path} is a {database_type} database, "
                    f"city lookups need a City database"
                )
                return None

            self._reader = reader
            logger.info(f"Opened GeoIP2 {database_type} database {self.database_path}")
        return self._reader

    def get_location(self, ip: str) -> LocationResult:
        reader = self._get_reader()
        if reader is None:
            return EMPTY_LOCATION

        try:
            resp = reader.city(ip)
        except (geoip2.errors.AddressNotFoundError, ValueError):
            return EMPTY_LOCATION

        subdiv = resp.subdivisions.most_specific if resp.subdivisions else None
        lat, lon = clean_coordinates(resp.location.latitude, resp.location.longitude)

        return LocationResult(
            country_code=resp.country.iso_code or None,
            region_code=(subdiv.iso_code if subdiv else None) or None,
            city_name=resp.city.name or None,
            latitude=lat,
            longitude=lon,
        )

    def close(self) -> None:
        if self._reader is not None:
            self._reader.close()
            self._reader = None
