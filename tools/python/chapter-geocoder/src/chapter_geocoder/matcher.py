"""
Chapter Geocoder — Match Selector
==================================
Picks the single best :class:`~chapter_geocoder.providers.GeocodeHit` for a
row, or none at all.

Rules, first match wins:

1. Region given: exact country + exact region, then exact country + region
   contained in either direction ("Michigan" / "State of Michigan").  If
   neither exists every hit is rejected; a same-named town in the wrong
   state is worse than ``not_found``.
2. Only country given: first hit in that country.
3. Otherwise, or when no hit is in that country: the provider's first hit.

All comparisons are trimmed and case-insensitive.
"""

from __future__ import annotations

from typing import Sequence

from chapter_geocoder.providers import GeocodeHit


def _fold(value: str | None) -> str:
    return (value or "").strip().casefold()


def _loose_region_match(actual: str, expected: str) -> bool:
    return bool(actual) and (expected in actual or actual in expected)


def pick_best(
    hits: Sequence[GeocodeHit],
    expected_country: str,
    expected_region: str = "",
) -> GeocodeHit | None:
    """Return the best hit for the expected country / region, or ``None``.

    Args:
        hits: Provider hits in rank order.
        expected_country: Canonical country name of the row (may be empty).
        expected_region: State / region of the row (may be empty).
    """
    if not hits:
        return None

    country = _fold(expected_country)
    region = _fold(expected_region)
    in_country = [h for h in hits if _fold(h.country) == country]

    if region:
        for hit in in_country:
            if _fold(hit.region) == region:
                return hit
        for hit in in_country:
            if _loose_region_match(_fold(hit.region), region):
                return hit
        return None

    if country and in_country:
        return in_country[0]
    return hits[0]
