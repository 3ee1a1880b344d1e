"""
Chapter Geocoder
================
Resolves the City / StateRegion / Country of each chapter row into map
coordinates, with a persistent cache so repeated runs stay offline.

Public API::

    from chapter_geocoder import ChapterGeocoder, OpenMeteoBackend, NominatimBackend
"""

from chapter_geocoder.cache import CacheEntry, ResolutionCache
from chapter_geocoder.candidates import QueryCandidates
from chapter_geocoder.matcher import pick_best
from chapter_geocoder.normalizer import (
    LocationQuery,
    NormalizedLocation,
    country_to_region_code,
    expand_abbreviations,
    make_cache_key,
    normalize_country,
    normalize_location,
    normalize_place,
)
from chapter_geocoder.pipeline import (
    ChapterGeocoder,
    GeocoderSettings,
    OutputRecord,
    ResolutionResult,
    RunSummary,
)
from chapter_geocoder.providers import (
    GeocodeHit,
    GeocoderBackend,
    NominatimBackend,
    OpenMeteoBackend,
)

__all__ = [
    "CacheEntry",
    "ChapterGeocoder",
    "GeocodeHit",
    "GeocoderBackend",
    "GeocoderSettings",
    "LocationQuery",
    "NominatimBackend",
    "NormalizedLocation",
    "OpenMeteoBackend",
    "OutputRecord",
    "QueryCandidates",
    "ResolutionCache",
    "ResolutionResult",
    "RunSummary",
    "country_to_region_code",
    "expand_abbreviations",
    "make_cache_key",
    "normalize_country",
    "normalize_location",
    "normalize_place",
    "pick_best",
]
__version__ = "1.0.0"
