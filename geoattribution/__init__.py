"""
Visit geolocation re-attribution.

Re-attributes historical visits and their conversions to corrected location
values, page by page, writing only the columns that changed.

Run with:
    python -m geoattribution.main attribute 2012-01-01,2013-01-01
"""

__version__ = "1.0.0"
