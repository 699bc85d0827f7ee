"""
Location provider contract.

A provider turns a textual IP address into a LocationResult. Providers never
raise for malformed or unknown addresses: not knowing where an address is
located is a normal answer, expressed as an empty result.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, fields
from typing import Optional

# Keys of LocationResult, in the order the log stores them
COUNTRY_CODE_KEY = "country_code"
REGION_CODE_KEY = "region_code"
CITY_NAME_KEY = "city_name"
LATITUDE_KEY = "latitude"
LONGITUDE_KEY = "longitude"


@dataclass(frozen=True)
class LocationResult:
    """Location resolved for one address. Every field is None when unknown."""
    country_code: Optional[str] = None
    region_code: Optional[str] = None
    city_name: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    def get(self, key: str):
        return getattr(self, key)

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, f.name) in (None, "") for f in fields(self))


EMPTY_LOCATION = LocationResult()


class LocationProvider(ABC):
    """
    Abstract base class for location providers.

    Subclasses must set ``id`` and ``title`` and implement get_location().
    """

    id: str = None
    title: str = None

    def is_available(self) -> bool:
        """Whether the provider can answer lookups in this environment."""
        return True

    @abstractmethod
    def get_location(self, ip: str) -> LocationResult:
        """Resolve ``ip``; return EMPTY_LOCATION when nothing is known."""
        pass

    def close(self) -> None:
        """Release any database handle held by the provider."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} id={self.id}>"
