"""Fallback provider used when no other provider is configured."""

from geoattribution.location.base import EMPTY_LOCATION, LocationProvider, LocationResult


class DefaultProvider(LocationProvider):
    """
    Provider without an address database.

    It knows nothing about any address, so a run with it never changes stored
    location values.
    """

    id = "default"
    title = "Default (no address database)"

    def get_location(self, ip: str) -> LocationResult:
        return EMPTY_LOCATION
