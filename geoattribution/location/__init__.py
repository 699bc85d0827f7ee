"""
Location providers and provider selection.

Providers are registered by id. A run may name a provider explicitly; an
unknown or empty id falls back to the configured provider, and an unknown
configured provider falls back to the default one.
"""

from loguru import logger

from geoattribution.config import settings
from geoattribution.location.base import (
    CITY_NAME_KEY,
    COUNTRY_CODE_KEY,
    EMPTY_LOCATION,
    LATITUDE_KEY,
    LONGITUDE_KEY,
    REGION_CODE_KEY,
    LocationProvider,
    LocationResult,
)
from geoattribution.location.default import DefaultProvider
from geoattribution.location.geoip2_provider import GeoIp2Provider

# Registry of available providers
PROVIDERS: dict[str, type[LocationProvider]] = {
    DefaultProvider.id: DefaultProvider,
    GeoIp2Provider.id: GeoIp2Provider,
}


def get_provider_by_id(provider_id: str | None) -> LocationProvider | None:
    """Instantiate the provider registered as ``provider_id``, or None."""
    if not provider_id:
        return None
    provider_class = PROVIDERS.get(provider_id.strip().lower())
    return provider_class() if provider_class else None


def get_current_provider() -> LocationProvider:
    """Provider named in settings, or the default provider."""
    provider = get_provider_by_id(settings.pipeline.location_provider)
    if provider is None:
        logger.warning(
            f"Configured location provider '{settings.pipeline.location_provider}' "
            f"is unknown, using '{DefaultProvider.id}'"
        )
        return DefaultProvider()
    return provider


def available_providers() -> list[LocationProvider]:
    return [provider_class() for provider_class in PROVIDERS.values()]


class VisitorGeolocator:
    """Resolves visitor addresses through one selected provider."""

    def __init__(self, provider: LocationProvider | None = None):
        self.provider = provider or get_current_provider()

    def get_provider(self) -> LocationProvider:
        return self.provider

    def get_location(self, ip: str) -> LocationResult:
        return self.provider.get_location(ip)

    def close(self) -> None:
        self.provider.close()


__all__ = [
    "COUNTRY_CODE_KEY",
    "REGION_CODE_KEY",
    "CITY_NAME_KEY",
    "LATITUDE_KEY",
    "LONGITUDE_KEY",
    "EMPTY_LOCATION",
    "LocationProvider",
    "LocationResult",
    "DefaultProvider",
    "GeoIp2Provider",
    "PROVIDERS",
    "VisitorGeolocator",
    "available_providers",
    "get_current_provider",
    "get_provider_by_id",
]
