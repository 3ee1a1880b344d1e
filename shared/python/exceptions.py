"""
Chapter Map — Custom Exception Hierarchy
=========================================
Every tool in this repository raises exceptions from this module so callers
can catch them at the right level of granularity.

Hierarchy::

    ChapterMapError                      ← catch-all base
    ├── InputFormatError                 ← fatal: bad input, aborts the run
    │   ├── ColumnNotFoundError          ← CSV column missing
    │   └── CacheFormatError             ← cache file is not a JSON object
    ├── GeocodingError                   ← per-record geocoding outcomes
    │   ├── MissingDataError             ← no cache key derivable
    │   ├── NotFoundError                ← every candidate exhausted
    │   └── ProviderError                ← a provider request failed
    │       ├── ProviderHttpError        ← non-2xx response
    │       │   └── GeocodingRateLimitError ← HTTP 429
    │       └── ProviderConnectionError  ← transport failure / timeout
    └── OutputWriteError                 ← cannot write to output path

Only the ``InputFormatError`` branch and ``OutputWriteError`` end a run.
``GeocodingError`` subclasses are caught per record and turned into a
``geocodeNote`` value.

Usage::

    from shared.python.exceptions import ProviderHttpError

    raise ProviderHttpError("open-meteo", 503, response.text)
"""

from __future__ import annotations


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


class ChapterMapError(Exception):
    """Base exception for all Chapter Map tools.

    Args:
        message: Human-readable description of the error.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message: str = message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


# ---------------------------------------------------------------------------
# Input validation (fatal)
# ---------------------------------------------------------------------------


class InputFormatError(ChapterMapError):
    """Raised when the input table or a support file cannot be used.

    Raised before any record is processed; the run aborts with nothing
    written.
    """


class ColumnNotFoundError(InputFormatError):
    """Raised when a required column is absent from the input table.

    Args:
        column: The name of the missing column.
        available: Column names that ARE present, used to build a helpful
                   error message.

    Example::

        raise ColumnNotFoundError("StateRegion", df.columns.tolist())
    """

    def __init__(self, column: str, available: list[str]) -> None:
        available_str = ", ".join(f"'{c}'" for c in available)
        super().__init__(
            f"Column '{column}' not found. Available columns: {available_str}"
        )
        self.column: str = column
        self.available: list[str] = available


class CacheFormatError(InputFormatError):
    """Raised when the resolution cache file exists but cannot be parsed.

    Args:
        cache_path: String form of the offending cache path.
        reason: Short explanation (parse error, wrong JSON type, ...).
    """

    def __init__(self, cache_path: str, reason: str) -> None:
        super().__init__(f"Cannot read geocode cache '{cache_path}': {reason}")
        self.cache_path: str = cache_path
        self.reason: str = reason


# ---------------------------------------------------------------------------
# Geocoding (per record)
# ---------------------------------------------------------------------------


class GeocodingError(ChapterMapError):
    """Raised when geocoding a single record fails for any reason."""


class MissingDataError(GeocodingError):
    """Raised when a record lacks the place or country needed for a key."""


class NotFoundError(GeocodingError):
    """Raised when every candidate and provider returned no acceptable hit."""


class ProviderError(GeocodingError):
    """Raised when a request to a geocoding provider fails.

    Args:
        provider: Short provider name (e.g. ``"open-meteo"``).
        message: Description of the failure.
    """

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(message)
        self.provider: str = provider


class ProviderHttpError(ProviderError):
    """Raised when a provider answers with a non-success HTTP status.

    Args:
        provider: Short provider name.
        status_code: The HTTP status code returned.
        body: Response body; only the first 200 characters are kept.

    Example::

        raise ProviderHttpError("nominatim", 503, "Service Unavailable")
    """

    BODY_LIMIT = 200

    def __init__(self, provider: str, status_code: int, body: str = "") -> None:
        body = (body or "")[: self.BODY_LIMIT]
        message = f"{provider} error {status_code}"
        if body.strip():
            message = f"{message}: {body.strip()}"
        super().__init__(provider, message)
        self.status_code: int = status_code
        self.body: str = body


class GeocodingRateLimitError(ProviderHttpError):
    """Raised when a provider returns HTTP 429.

    Args:
        provider: Short provider name.
        retry_after: Suggested seconds to wait before retrying, if the
                     provider sent a numeric ``Retry-After`` header.
        body: Response body (truncated).
    """

    def __init__(self, provider: str, retry_after: int | None = None, body: str = "") -> None:
        super().__init__(provider, 429, body)
        self.retry_after: int | None = retry_after
        if retry_after:
            self.message = f"{self.message} (retry after {retry_after}s)"
            self.args = (self.message,)


class ProviderConnectionError(ProviderError):
    """Raised when a provider cannot be reached (DNS, refused, timeout)."""


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


class OutputWriteError(ChapterMapError):
    """Raised when the tool cannot write its output to disk.

    Args:
        output_path: String representation of the path that failed.
        reason: Underlying OS error message.

    Example::

        raise OutputWriteError("/read-only/dir/chapters.json", "Permission denied")
    """

    def __init__(self, output_path: str, reason: str) -> None:
        super().__init__(
            f"Failed to write output to '{output_path}': {reason}"
        )
        self.output_path: str = output_path
        self.reason: str = reason
