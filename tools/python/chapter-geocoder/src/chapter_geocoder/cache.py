"""
Chapter Geocoder — Resolution Cache
====================================
Persistent ``cache key → {lat, lng}`` store backed by one JSON file.

The file is read fully by :meth:`ResolutionCache.load`, mutated in memory
during a run and written back by :meth:`ResolutionCache.save`.  Entries never
expire; delete or edit one in the file to force the row to be geocoded again.

Example file::

    {
      "mount pleasant|michigan|united states": {"lat": 43.59781, "lng": -84.76751}
    }
"""

from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from shared.python.exceptions import CacheFormatError, OutputWriteError

logger = logging.getLogger("chaptermap.chapter_geocoder.cache")


@dataclass(frozen=True)
class CacheEntry:
    """One cached coordinate pair."""

    key: str
    lat: float
    lng: float

    def to_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


def write_json_atomic(path: Path, data: Any) -> None:
    """Write *data* as indented JSON via a temp file and ``os.replace``.

    Raises:
        OutputWriteError: If the file cannot be written.
    """
    path = Path(path)
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=2, ensure_ascii=False)
        os.replace(tmp, path)
    except OSError as exc:
        raise OutputWriteError(str(path), str(exc)) from exc


class ResolutionCache:
    """In-memory view of the geocode cache file.

    Args:
        path: Location of the JSON cache file.  It need not exist yet.
        autosave: Persist the file after every :meth:`put`, so a crash
                  mid-run loses no resolved coordinates.
    """

    def __init__(self, path: Path, *, autosave: bool = False) -> None:
        self.path = Path(path)
        self.autosave = autosave
        self._entries: dict[str, CacheEntry] = {}
        self._dirty = False

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> "ResolutionCache":
        """Read the cache file into memory, replacing current entries.

        A missing file yields an empty cache.  Entries without numeric
        ``lat`` / ``lng`` are skipped with a warning.

        Raises:
            CacheFormatError: If the file is not a JSON object.
        """
        self._entries = {}
        self._dirty = False
        if not self.path.exists():
            logger.debug("No cache file at %s; starting empty.", self.path)
            return self

        try:
            with open(self.path, encoding="utf-8") as fh:
                raw = json.load(fh)
        except (OSError, ValueError) as exc:
            raise CacheFormatError(str(self.path), str(exc)) from exc
        if not isinstance(raw, dict):
            raise CacheFormatError(str(self.path), f"expected a JSON object, got {type(raw).__name__}")

        for key, value in raw.items():
            entry = self._entry_from_json(key, value)
            if entry is None:
                logger.warning("Ignoring malformed cache entry %r: %r", key, value)
                continue
            self._entries[key] = entry

        logger.info("Loaded %d cached location(s) from %s", len(self._entries), self.path)
        return self

    def save(self) -> None:
        """Write every entry back to :attr:`path` atomically."""
        data = {key: entry.to_dict() for key, entry in self._entries.items()}
        write_json_atomic(self.path, data)
        self._dirty = False
        logger.debug("Saved %d cache entries to %s", len(data), self.path)

    @staticmethod
    def _entry_from_json(key: str, value: Any) -> CacheEntry | None:
        if not key or not isinstance(value, dict):
            return None
        lat, lng = value.get("lat"), value.get("lng")
        if isinstance(lat, bool) or isinstance(lng, bool):
            return None
        if not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
            return None
        if not (math.isfinite(lat) and math.isfinite(lng)):
            return None
        return CacheEntry(key=key, lat=float(lat), lng=float(lng))

    # ------------------------------------------------------------------
    # Mapping API
    # ------------------------------------------------------------------

    def get(self, key: str) -> CacheEntry | None:
        """Return the entry for *key*, or ``None``."""
        if not key:
            return None
        return self._entries.get(key)

    def put(self, key: str, lat: float, lng: float) -> CacheEntry:
        """Store a coordinate pair under *key*.

        Raises:
            ValueError: If *key* is empty.
        """
        if not key:
            raise ValueError("Cannot cache a location without a key.")
        entry = CacheEntry(key=key, lat=float(lat), lng=float(lng))
        self._entries[key] = entry
        self._dirty = True
        if self.autosave:
            self.save()
        return entry

    @property
    def dirty(self) -> bool:
        """``True`` when in-memory entries differ from the last load/save."""
        return self._dirty

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(path={self.path!r}, entries={len(self)})"
