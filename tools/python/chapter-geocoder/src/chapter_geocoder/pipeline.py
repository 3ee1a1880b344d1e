"""
Chapter Geocoder — Batch Pipeline
==================================
Geocodes every row of a chapters CSV and writes one JSON record per row.

Each row walks the same states::

    START → OVERRIDE_CHECK → CACHE_CHECK → PROVIDER_LOOP → DONE

* ``OVERRIDE_CHECK`` — numeric ``LatOverride`` / ``LngOverride`` win outright
  and are written into the cache.
* ``CACHE_CHECK`` — rows without a place or country end as
  ``missing_data``; cached keys end as ``cache``.  No network call either way.
* ``PROVIDER_LOOP`` — query candidates go to the primary backend (country
  filter first, then unfiltered), then optionally to the secondary backend.
  The first hit accepted by :func:`~chapter_geocoder.matcher.pick_best` is
  cached.

Every row produces exactly one :class:`OutputRecord`, whatever happens to it.
Only setup problems (missing file or column, corrupt cache) abort the run.

Usage::

    from pathlib import Path
    from chapter_geocoder.pipeline import ChapterGeocoder

    tool = ChapterGeocoder(
        input_path=Path("data/chapters.csv"),
        output_path=Path("data/chapters.json"),
        cache_path=Path("data/geocode-cache.json"),
    )
    tool.run()
    print(tool.summary)
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping

import pandas as pd

from chapter_geocoder.cache import ResolutionCache, write_json_atomic
from chapter_geocoder.candidates import QueryCandidates
from chapter_geocoder.matcher import pick_best
from chapter_geocoder.normalizer import LocationQuery, NormalizedLocation, normalize_location
from chapter_geocoder.providers import (
    DEFAULT_USER_AGENT,
    GeocodeHit,
    GeocoderBackend,
    NominatimBackend,
    OpenMeteoBackend,
)
from shared.python.base_tool import BatchTool
from shared.python.exceptions import (
    GeocodingError,
    GeocodingRateLimitError,
    InputFormatError,
    MissingDataError,
    NotFoundError,
    ProviderError,
)
from shared.python.validators import Validators

logger = logging.getLogger("chaptermap.chapter_geocoder")

REQUIRED_COLUMNS = ["ChapterName", "City", "StateRegion", "Country"]
OFFICER_COLUMNS = {
    "PresidentName": "presidentName",
    "PresidentCell": "presidentCell",
    "VicePresidentName": "vicePresidentName",
    "VicePresidentCell": "vicePresidentCell",
}
LAT_OVERRIDE_COLUMN = "LatOverride"
LNG_OVERRIDE_COLUMN = "LngOverride"

NOTE_CACHE = "cache"
NOTE_OVERRIDE = "override"
NOTE_NOT_FOUND = "not_found"
NOTE_MISSING_DATA = "missing_data"
NOTE_RESOLVED_PREFIX = "resolved:"
NOTE_ERROR_PREFIX = "error:"


# ---------------------------------------------------------------------------
# Configuration and data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GeocoderSettings:
    """Run-time knobs for :class:`ChapterGeocoder`.

    Attributes:
        request_delay: Seconds to pause after each row that hit the network.
        fallback_delay: Seconds to pause before (and between) secondary
                        provider requests.
        timeout: Per-request HTTP timeout in seconds.
        max_results: Hits requested per provider query.
        use_fallback: Build a :class:`NominatimBackend` as secondary provider
                      when none is passed explicitly.
        user_agent: Identifying ``User-Agent`` for the secondary provider.
        checkpoint: Save the cache file after every new entry.
    """

    request_delay: float = 0.6
    fallback_delay: float = 0.9
    timeout: float = 10
    max_results: int = 5
    use_fallback: bool = False
    user_agent: str = DEFAULT_USER_AGENT
    checkpoint: bool = False


@dataclass(frozen=True)
class ResolutionResult:
    """Coordinates for one row plus how they were obtained.

    ``lat`` and ``lng`` are either both floats or both ``None``.
    """

    lat: float | None
    lng: float | None
    note: str

    @classmethod
    def unresolved(cls, note: str) -> "ResolutionResult":
        return cls(lat=None, lng=None, note=note)

    @property
    def success(self) -> bool:
        return self.lat is not None and self.lng is not None


@dataclass(frozen=True)
class OutputRecord:
    """One row of the output JSON array."""

    id: int
    chapter_name: str
    city: str
    state_region: str
    country: str
    result: ResolutionResult
    officers: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "chapterName": self.chapter_name,
            "city": self.city,
            "stateRegion": self.state_region,
            "country": self.country,
        }
        for key in OFFICER_COLUMNS.values():
            data[key] = self.officers.get(key, "")
        data["lat"] = self.result.lat
        data["lng"] = self.result.lng
        data["geocodeNote"] = self.result.note
        return data

    def to_geojson_feature(self) -> dict[str, Any]:
        """GeoJSON Feature for map layers; ``null`` geometry when unresolved."""
        props = self.to_dict()
        geometry = (
            {"type": "Point", "coordinates": [self.result.lng, self.result.lat]}
            if self.result.success
            else None
        )
        return {"type": "Feature", "geometry": geometry, "properties": props}


@dataclass
class RunSummary:
    """Counters reported at the end of a run."""

    total: int = 0
    cache_hits: int = 0
    overrides: int = 0
    api_calls: int = 0
    resolved: int = 0
    not_found: int = 0
    missing_data: int = 0
    errors: int = 0

    @property
    def failures(self) -> int:
        return self.not_found + self.missing_data + self.errors

    def record(self, note: str) -> None:
        self.total += 1
        if note == NOTE_CACHE:
            self.cache_hits += 1
        elif note == NOTE_OVERRIDE:
            self.overrides += 1
        elif note.startswith(NOTE_RESOLVED_PREFIX):
            self.resolved += 1
        elif note == NOTE_NOT_FOUND:
            self.not_found += 1
        elif note == NOTE_MISSING_DATA:
            self.missing_data += 1
        else:
            self.errors += 1

    def lines(self) -> list[str]:
        return [
            f"Total chapters : {self.total}",
            f"Cache hits     : {self.cache_hits}",
            f"Overrides      : {self.overrides}",
            f"API calls      : {self.api_calls}",
            f"Resolved       : {self.resolved}",
            f"Failures       : {self.failures}",
        ]


# ---------------------------------------------------------------------------
# Row helpers
# ---------------------------------------------------------------------------


def _cell(row: Mapping[str, Any], column: str) -> str:
    value = row.get(column, "")
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return ""
    return str(value).strip()


def _parse_coordinate(raw: str, column: str, row_id: int) -> float | None:
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Row %d: ignoring non-numeric %s %r", row_id, column, raw)
        return None
    if not math.isfinite(value):
        logger.warning("Row %d: ignoring non-finite %s %r", row_id, column, raw)
        return None
    return value


def parse_override(row: Mapping[str, Any], row_id: int = 0) -> tuple[float, float] | None:
    """Return ``(lat, lng)`` if the row carries a usable coordinate override.

    Blank cells count as absent, so ``"0"`` is a valid override but ``""``
    is not.  Half-supplied or out-of-range pairs are ignored with a warning.
    """
    lat = _parse_coordinate(_cell(row, LAT_OVERRIDE_COLUMN), LAT_OVERRIDE_COLUMN, row_id)
    lng = _parse_coordinate(_cell(row, LNG_OVERRIDE_COLUMN), LNG_OVERRIDE_COLUMN, row_id)
    if lat is None and lng is None:
        return None
    if lat is None or lng is None:
        logger.warning("Row %d: override needs both %s and %s; ignoring.",
                       row_id, LAT_OVERRIDE_COLUMN, LNG_OVERRIDE_COLUMN)
        return None
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        logger.warning("Row %d: override (%s, %s) is outside WGS84 range; ignoring.", row_id, lat, lng)
        return None
    return lat, lng


# ---------------------------------------------------------------------------
# Main tool class
# ---------------------------------------------------------------------------


class ChapterGeocoder(BatchTool):
    """Geocode every chapter row in a CSV and write a JSON array.

    Args:
        input_path: Path to the chapters CSV.
        output_path: Path for the output JSON array.
        cache_path: Path of the geocode cache file.  Defaults to
                    ``geocode-cache.json`` beside *output_path*.
        primary: Primary backend.  Defaults to :class:`OpenMeteoBackend`.
        secondary: Fallback backend.  Defaults to :class:`NominatimBackend`
                   when ``settings.use_fallback`` is set, else none.
        settings: :class:`GeocoderSettings` for delays and timeouts.
        geojson_path: Optional extra GeoJSON FeatureCollection output.
        verbose: Enable DEBUG-level logging.
        sleep: Pacing function, ``time.sleep`` unless replaced in tests.
    """

    def __init__(
        self,
        input_path: Path,
        output_path: Path,
        cache_path: Path | None = None,
        primary: GeocoderBackend | None = None,
        secondary: GeocoderBackend | None = None,
        settings: GeocoderSettings | None = None,
        geojson_path: Path | None = None,
        *,
        verbose: bool = False,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(input_path, output_path, verbose=verbose)
        self.settings = settings or GeocoderSettings()
        self.cache_path = Path(cache_path) if cache_path else self.output_path.parent / "geocode-cache.json"
        self.geojson_path = Path(geojson_path) if geojson_path else None
        self.primary: GeocoderBackend = primary or OpenMeteoBackend(
            timeout=self.settings.timeout, max_results=self.settings.max_results
        )
        if secondary is None and self.settings.use_fallback:
            secondary = NominatimBackend(
                user_agent=self.settings.user_agent,
                timeout=self.settings.timeout,
                max_results=self.settings.max_results,
            )
        self.secondary: GeocoderBackend | None = secondary
        self.cache = ResolutionCache(self.cache_path, autosave=self.settings.checkpoint)
        self._sleep = sleep

        self._records: list[OutputRecord] = []
        self._summary = RunSummary()

    # ------------------------------------------------------------------
    # BatchTool abstract method implementations
    # ------------------------------------------------------------------

    def validate_inputs(self) -> None:
        """Check the CSV header and output locations before any work.

        Raises:
            InputFormatError: If the file is missing, not a CSV or unreadable.
            ColumnNotFoundError: If a required column is absent.
            OutputWriteError: If an output directory cannot be created.
        """
        Validators.assert_file_exists(self.input_path)
        Validators.assert_supported_extension(self.input_path, [".csv"])
        Validators.assert_output_dir_writable(self.output_path)
        Validators.assert_output_dir_writable(self.cache_path)
        if self.geojson_path is not None:
            Validators.assert_output_dir_writable(self.geojson_path)

        df_peek = self._read_csv(nrows=0)
        Validators.assert_columns_exist(df_peek, REQUIRED_COLUMNS)
        logger.debug("Inputs validated successfully.")

    def process(self) -> None:
        """Resolve every row, then persist the cache and the output files.

        The cache is written before the output so the output never refers
        to coordinates the cache does not hold.
        """
        self.cache.load()
        df = self._read_csv()
        rows: list[dict[str, Any]] = df.to_dict("records")
        total = len(rows)
        logger.info(
            "Geocoding %d chapter(s) via %s%s...",
            total,
            self.primary.name,
            f" with {self.secondary.name} fallback" if self.secondary else "",
        )

        self._summary = RunSummary()
        records: list[OutputRecord] = []
        for index, row in enumerate(rows, start=1):
            calls_before = self._request_total()
            record = self.resolve_row(index, row, total=total)
            calls = self._request_total() - calls_before

            records.append(record)
            self._summary.record(record.result.note)
            self._summary.api_calls += calls
            if calls:
                self._sleep(self.settings.request_delay)

        self._records = records
        self.cache.save()
        write_json_atomic(self.output_path, [r.to_dict() for r in records])
        if self.geojson_path is not None:
            write_json_atomic(
                self.geojson_path,
                {"type": "FeatureCollection", "features": [r.to_geojson_feature() for r in records]},
            )

        for line in self._summary.lines():
            logger.info(line)

    # ------------------------------------------------------------------
    # Per-row state machine
    # ------------------------------------------------------------------

    def resolve_row(self, row_id: int, row: Mapping[str, Any], total: int = 0) -> OutputRecord:
        """Resolve one input row into its :class:`OutputRecord`.

        Never raises for per-row problems; they end up in ``geocodeNote``.
        """
        query = LocationQuery(
            place=_cell(row, "City"),
            region=_cell(row, "StateRegion"),
            country=_cell(row, "Country"),
        )
        location = normalize_location(query)

        try:
            result = self.resolve(location, parse_override(row, row_id))
        except MissingDataError:
            result = ResolutionResult.unresolved(NOTE_MISSING_DATA)
        except NotFoundError:
            result = ResolutionResult.unresolved(NOTE_NOT_FOUND)
        except GeocodingError as exc:
            result = ResolutionResult.unresolved(f"{NOTE_ERROR_PREFIX}{exc.message}")
        except Exception as exc:  # noqa: BLE001
            logger.exception("Row %d: unexpected error", row_id)
            result = ResolutionResult.unresolved(f"{NOTE_ERROR_PREFIX}{exc}")

        level = logging.DEBUG if result.note in (NOTE_CACHE, NOTE_OVERRIDE) else logging.INFO
        logger.log(level, "[%d/%d] %s, %s, %s → %s",
                   row_id, total or row_id, query.place, query.region, query.country, result.note)

        return OutputRecord(
            id=row_id,
            chapter_name=_cell(row, "ChapterName"),
            city=query.place,
            state_region=query.region,
            country=query.country,
            officers={key: _cell(row, col) for col, key in OFFICER_COLUMNS.items()},
            result=result,
        )

    def resolve(
        self,
        location: NormalizedLocation,
        override: tuple[float, float] | None = None,
    ) -> ResolutionResult:
        """Run OVERRIDE_CHECK → CACHE_CHECK → PROVIDER_LOOP for one location.

        Raises:
            MissingDataError: No cache key can be derived.
            NotFoundError: No provider returned an acceptable hit.
            ProviderError: Every attempt failed and the last one errored.
        """
        if override is not None:
            lat, lng = override
            if location.key:
                self.cache.put(location.key, lat, lng)
            return ResolutionResult(lat=lat, lng=lng, note=NOTE_OVERRIDE)

        if not location.key:
            raise MissingDataError(f"Missing place or country for {location.place!r}")

        entry = self.cache.get(location.key)
        if entry is not None:
            return ResolutionResult(lat=entry.lat, lng=entry.lng, note=NOTE_CACHE)

        hit = self._query_providers(location)
        self.cache.put(location.key, hit.lat, hit.lng)
        return ResolutionResult(lat=hit.lat, lng=hit.lng, note=f"{NOTE_RESOLVED_PREFIX}{hit.source_name}")

    def _query_providers(self, location: NormalizedLocation) -> GeocodeHit:
        filters = [location.country_code, ""] if location.country_code else [""]
        hit, error = self._search(self.primary, QueryCandidates(location), location, filters)
        if hit is not None:
            return hit
        last_error = error

        if self.secondary is not None:
            self._sleep(self.settings.fallback_delay)
            hit, error = self._search(
                self.secondary,
                QueryCandidates(location, include_bare_place=False),
                location,
                [location.country_code],
                pause=self.settings.fallback_delay,
            )
            if hit is not None:
                return hit
            last_error = error or last_error

        if last_error is not None:
            raise last_error
        raise NotFoundError(f"No acceptable match for {location.key!r}")

    def _search(
        self,
        backend: GeocoderBackend,
        candidates: QueryCandidates,
        location: NormalizedLocation,
        filters: list[str],
        pause: float = 0.0,
    ) -> tuple[GeocodeHit | None, ProviderError | None]:
        """Walk *candidates* against one backend; return the first accepted hit.

        A provider error skips the rest of that candidate; a rate-limit
        response stops using the backend for this row.
        """
        last_error: ProviderError | None = None
        first = True
        for query in candidates:
            for country_code in filters:
                if pause and not first:
                    self._sleep(pause)
                first = False
                try:
                    hits = backend.search(query, country_code)
                except GeocodingRateLimitError as exc:
                    logger.warning("%s rate limited: %s", backend.name, exc.message)
                    return None, exc
                except ProviderError as exc:
                    logger.warning("%s failed for %r: %s", backend.name, query, exc.message)
                    last_error = exc
                    break

                best = pick_best(hits, location.country, location.region)
                logger.debug("%s %r [%s]: %d hit(s), accepted=%s",
                             backend.name, query, country_code or "-", len(hits),
                             best.name if best else None)
                if best is not None:
                    return best, None
        return None, last_error

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _read_csv(self, nrows: int | None = None) -> pd.DataFrame:
        try:
            return pd.read_csv(self.input_path, dtype=str, keep_default_na=False, nrows=nrows)
        except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError, OSError) as exc:
            raise InputFormatError(f"Cannot read input CSV '{self.input_path}': {exc}") from exc

    def written_paths(self) -> list[Path]:
        """Cache first, then the output JSON and the optional GeoJSON."""
        paths = [self.cache_path, self.output_path]
        if self.geojson_path is not None:
            paths.append(self.geojson_path)
        return paths

    def _request_total(self) -> int:
        total = self.primary.request_count
        if self.secondary is not None:
            total += self.secondary.request_count
        return total

    @property
    def records(self) -> list[OutputRecord]:
        """All :class:`OutputRecord` objects from the last run, or ``[]``."""
        return self._records

    @property
    def summary(self) -> RunSummary:
        """Counters from the last run."""
        return self._summary
