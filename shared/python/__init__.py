"""
Chapter Map — Shared Python Package
====================================
Re-exports the shared base class, exception hierarchy, and validator
utilities so individual tools can import from a single location::

    from shared.python import BatchTool, Validators
    from shared.python.exceptions import ProviderHttpError
"""

from shared.python.base_tool import BatchTool
from shared.python.exceptions import (
    CacheFormatError,
    ChapterMapError,
    ColumnNotFoundError,
    GeocodingError,
    GeocodingRateLimitError,
    InputFormatError,
    MissingDataError,
    NotFoundError,
    OutputWriteError,
    ProviderConnectionError,
    ProviderError,
    ProviderHttpError,
)
from shared.python.validators import Validators

__all__ = [
    "BatchTool",
    "Validators",
    "ChapterMapError",
    "InputFormatError",
    "ColumnNotFoundError",
    "CacheFormatError",
    "GeocodingError",
    "MissingDataError",
    "NotFoundError",
    "ProviderError",
    "ProviderHttpError",
    "GeocodingRateLimitError",
    "ProviderConnectionError",
    "OutputWriteError",
]
