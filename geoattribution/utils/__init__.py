"""Utility modules for the re-attribution tool."""

from geoattribution.utils.geo import clean_coordinates, is_valid_coordinates
from geoattribution.utils.logging import add_file_sink, setup_logging
from geoattribution.utils.net import binary_to_string_ip, string_to_binary_ip

__all__ = [
    # Logging
    "setup_logging",
    "add_file_sink",
    # Network addresses
    "binary_to_string_ip",
    "string_to_binary_ip",
    # Geographic utilities
    "is_valid_coordinates",
    "clean_coordinates",
]
