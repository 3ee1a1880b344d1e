"""
Chapter Geocoder — Provider Backends
=====================================
Thin clients for the external geocoding services.  Each backend issues one
blocking HTTP request per :meth:`GeocoderBackend.search` call and adapts the
provider's response into a list of :class:`GeocodeHit` objects, so the match
selector never sees provider-specific shapes.

Architecture:
    ``GeocoderBackend`` is an abstract strategy.  The pipeline queries a
    primary backend and, optionally, a secondary one as fallback.

Classes:
    GeocodeHit          One candidate location returned by a provider.
    GeocoderBackend     Abstract base for geocoding providers.
    OpenMeteoBackend    Free Open-Meteo place search (primary, no key).
    NominatimBackend    OpenStreetMap Nominatim search (secondary).
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import requests

from shared.python.exceptions import (
    GeocodingRateLimitError,
    ProviderConnectionError,
    ProviderHttpError,
)

logger = logging.getLogger("chaptermap.chapter_geocoder.providers")

DEFAULT_USER_AGENT = "chapter-geocoder/1.0 (contact: maintainer@example.com)"


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GeocodeHit:
    """One geocoded location returned by a provider.

    Attributes:
        lat: Latitude in WGS84.
        lng: Longitude in WGS84.
        country: Country name as reported by the provider.
        region: First-level admin division (state, province, ...).
        source_name: Name of the backend that produced the hit.
        name: Place name or display name reported by the provider.
    """

    lat: float
    lng: float
    country: str = ""
    region: str = ""
    source_name: str = ""
    name: str = ""


def _finite_float(value: Any) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _text_fields(source: dict, *names: str) -> list[str] | None:
    """Return the named string fields of *source*, ``None`` if any has another type."""
    values = []
    for field in names:
        value = source.get(field)
        if value is None:
            value = ""
        elif not isinstance(value, str):
            return None
        values.append(value.strip())
    return values


def _retry_after(response: requests.Response) -> int | None:
    value = response.headers.get("Retry-After", "")
    return int(value) if value.isdigit() else None


# ---------------------------------------------------------------------------
# Backend strategies
# ---------------------------------------------------------------------------


class GeocoderBackend(ABC):
    """Abstract strategy for a geocoding provider.

    Subclasses set :attr:`name` and implement :meth:`_params` and
    :meth:`_parse`; :meth:`search` handles the HTTP exchange and error
    mapping.

    Attributes:
        name: Short provider name used in ``resolved:<name>`` notes.
        request_count: Number of HTTP requests issued so far.
    """

    name: str = "provider"
    base_url: str = ""

    def __init__(
        self,
        timeout: float = 10,
        max_results: int = 5,
        session: requests.Session | None = None,
    ) -> None:
        self.timeout = timeout
        self.max_results = max_results
        self.request_count = 0
        self._session = session or requests.Session()

    def search(self, query: str, country_code: str = "") -> list[GeocodeHit]:
        """Search for *query*, optionally restricted to *country_code*.

        Args:
            query: Free-text place query.
            country_code: ISO-3166 alpha-2 filter; ``""`` for no filter.

        Returns:
            Hits in provider rank order.  Empty or malformed responses
            yield ``[]``.

        Raises:
            GeocodingRateLimitError: On HTTP 429.
            ProviderHttpError: On any other non-success status.
            ProviderConnectionError: If the request could not be completed.
        """
        params = self._params(query, country_code)
        logger.debug("%s search: %s", self.name, params)

        self.request_count += 1
        try:
            response = self._session.get(self.base_url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ProviderConnectionError(self.name, f"{self.name} request failed: {exc}") from exc

        if response.status_code == 429:
            raise GeocodingRateLimitError(self.name, _retry_after(response), response.text)
        if not response.ok:
            raise ProviderHttpError(self.name, response.status_code, response.text)

        try:
            data = response.json()
        except ValueError:
            logger.debug("%s returned a non-JSON body for %r", self.name, query)
            return []
        return self._parse(data)

    @abstractmethod
    def _params(self, query: str, country_code: str) -> dict[str, Any]:
        """Build the query-string parameters for one request."""

    @abstractmethod
    def _parse(self, data: Any) -> list[GeocodeHit]:
        """Adapt a decoded JSON payload into :class:`GeocodeHit` objects."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(timeout={self.timeout}, max_results={self.max_results})"


class OpenMeteoBackend(GeocoderBackend):
    """Primary backend: the Open-Meteo geocoding search.

    **Free to use**, no API key.  Returns several ranked hits per query and
    accepts a ``country`` ISO code filter.

    Reference:
        https://open-meteo.com/en/docs/geocoding-api
    """

    name = "open-meteo"
    base_url = "https://geocoding-api.open-meteo.com/v1/search"

    def _params(self, query: str, country_code: str) -> dict[str, Any]:
        params: dict[str, Any] = {
            "name": query,
            "count": self.max_results,
            "language": "en",
            "format": "json",
        }
        if country_code:
            params["country"] = country_code
        return params

    def _parse(self, data: Any) -> list[GeocodeHit]:
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            return []

        hits: list[GeocodeHit] = []
        for item in results:
            if not isinstance(item, dict):
                continue
            lat = _finite_float(item.get("latitude"))
            lng = _finite_float(item.get("longitude"))
            text = _text_fields(item, "country", "admin1", "name")
            if lat is None or lng is None or text is None:
                continue
            country, region, place = text
            hits.append(
                GeocodeHit(
                    lat=lat,
                    lng=lng,
                    country=country,
                    region=region,
                    source_name=self.name,
                    name=place,
                )
            )
        return hits


class NominatimBackend(GeocoderBackend):
    """Secondary backend powered by OpenStreetMap's Nominatim search.

    Must comply with the Nominatim Usage Policy: send a descriptive
    ``User-Agent`` and stay under one request per second (the pipeline's
    pacing delay takes care of that).

    Args:
        user_agent: Identifies your application to Nominatim, ideally with
                    a contact address.
        timeout: HTTP request timeout in seconds.
        max_results: Value of the ``limit`` parameter.

    Reference:
        https://nominatim.org/release-docs/develop/api/Search/
    """

    name = "nominatim"
    base_url = "https://nominatim.openstreetmap.org/search"

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 10,
        max_results: int = 5,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(timeout=timeout, max_results=max_results, session=session)
        self.user_agent = user_agent
        self._session.headers["User-Agent"] = self.user_agent
        self._session.headers["Accept-Language"] = "en"

    def _params(self, query: str, country_code: str) -> dict[str, Any]:
        params: dict[str, Any] = {
            "q": query,
            "format": "json",
            "limit": self.max_results,
            "addressdetails": 1,
        }
        if country_code:
            params["countrycodes"] = country_code.lower()
        return params

    def _parse(self, data: Any) -> list[GeocodeHit]:
        if not isinstance(data, list):
            return []

        hits: list[GeocodeHit] = []
        for item in data:
            if not isinstance(item, dict):
                continue
            lat = _finite_float(item.get("lat"))
            lng = _finite_float(item.get("lon"))
            if lat is None or lng is None:
                continue
            address = item.get("address") or {}
            if not isinstance(address, dict):
                address = {}
            fields = _text_fields(address, "country", "state", "province", "region")
            display = _text_fields(item, "display_name")
            if fields is None or display is None:
                continue
            country, state, province, area = fields
            hits.append(
                GeocodeHit(
                    lat=lat,
                    lng=lng,
                    country=country,
                    region=state or province or area,
                    source_name=self.name,
                    name=display[0],
                )
            )
        return hits
