"""
Chapter Geocoder — Location Normalizer
=======================================
Canonicalizes the free-text ``City`` / ``StateRegion`` / ``Country`` values
of a chapter row before any query is built.

Functions:
    normalize_country         Map country aliases ("USA", "U.K.") to one name.
    country_to_region_code    ISO-3166 alpha-2 code for provider filters.
    normalize_place           Drop noise words ("County", "Station").
    expand_abbreviations      "Mt"/"St"/"Ft" prefixes → spelled-out variants.
    make_cache_key            Stable key for the resolution cache.
    normalize_location        Everything above for one :class:`LocationQuery`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# Keys are lower-case with periods removed, so "U.S.A." and "usa" share one.
COUNTRY_ALIASES: dict[str, str] = {
    "us": "United States",
    "usa": "United States",
    "united states of america": "United States",
    "uk": "United Kingdom",
    "great britain": "United Kingdom",
    "britain": "United Kingdom",
}

REGION_CODES: dict[str, str] = {
    "united states": "US",
    "canada": "CA",
    "australia": "AU",
    "united kingdom": "GB",
    "germany": "DE",
    "ireland": "IE",
    "new zealand": "NZ",
    "mexico": "MX",
    "france": "FR",
    "south africa": "ZA",
}

PREFIX_EXPANSIONS: dict[str, str] = {
    "mt": "Mount",
    "st": "Saint",
    "ft": "Fort",
}

KEY_SEPARATOR = "|"

_NOISE_WORDS = re.compile(r"\b(?:County|Station)\b", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")
_PREFIX = re.compile(r"^(?P<abbr>[A-Za-z]{2})(?:\.\s*|\s+)(?P<rest>\S.*)$")
_KEY_PUNCTUATION = re.compile(r"[^\w\s'-]")


@dataclass(frozen=True)
class LocationQuery:
    """Raw, user-entered location fields of one input row."""

    place: str
    region: str = ""
    country: str = ""


@dataclass(frozen=True)
class NormalizedLocation:
    """A :class:`LocationQuery` after normalization.

    Attributes:
        place: Place name with noise words removed (input spelling).
        variants: Spelling variants to query, ``place`` first.
        region: Trimmed region / state.
        country: Canonical country name.
        country_code: ISO-3166 alpha-2 code, or ``""`` when unknown.
        key: Resolution cache key, ``""`` when no key is derivable.
    """

    place: str
    variants: tuple[str, ...]
    region: str
    country: str
    country_code: str
    key: str


def _collapse(value: str) -> str:
    return _WHITESPACE.sub(" ", value).strip()


def normalize_country(raw: str | None) -> str:
    """Return the canonical country name for *raw*.

    Known aliases are matched case-insensitively; anything else is returned
    trimmed but otherwise unchanged.

    Example::

        normalize_country(" U.S.A. ")   # "United States"
        normalize_country("Canada")     # "Canada"
    """
    value = (raw or "").strip()
    lookup = value.lower().replace(".", "").strip()
    return COUNTRY_ALIASES.get(lookup, value)


def country_to_region_code(country: str | None) -> str:
    """ISO-3166 alpha-2 code for *country*, or ``""`` if not in the table."""
    return REGION_CODES.get(normalize_country(country).lower(), "")


def normalize_place(raw: str | None) -> str:
    """Strip standalone "County" / "Station" words and collapse whitespace."""
    return _collapse(_NOISE_WORDS.sub(" ", raw or ""))


def expand_abbreviations(place: str) -> tuple[str, ...]:
    """Return *place* plus its spelled-out variant when it has a known prefix.

    The input is always the first element.

    Example::

        expand_abbreviations("Mt Pleasant")   # ("Mt Pleasant", "Mount Pleasant")
        expand_abbreviations("St. Louis")     # ("St. Louis", "Saint Louis")
        expand_abbreviations("Boston")        # ("Boston",)
    """
    variants = [place]
    match = _PREFIX.match(place)
    if match:
        expansion = PREFIX_EXPANSIONS.get(match.group("abbr").lower())
        if expansion:
            expanded = f"{expansion} {match.group('rest')}"
            if expanded not in variants:
                variants.append(expanded)
    return tuple(variants)


def _key_part(value: str) -> str:
    return _collapse(_KEY_PUNCTUATION.sub(" ", value.lower()))


def make_cache_key(place: str, region: str, country: str) -> str:
    """Build the resolution cache key for an already normalized location.

    The place is keyed by its fully expanded spelling so "St Louis" and
    "Saint Louis" resolve to one entry. Returns ``""`` when the place or
    the country is empty.
    """
    canonical_place = expand_abbreviations(normalize_place(place))[-1]
    parts = [
        _key_part(canonical_place),
        _key_part(region),
        _key_part(normalize_country(country)),
    ]
    if not parts[0] or not parts[2]:
        return ""
    return KEY_SEPARATOR.join(p for p in parts if p)


def normalize_location(query: LocationQuery) -> NormalizedLocation:
    """Normalize every field of *query* and derive its cache key."""
    place = normalize_place(query.place)
    region = _collapse(query.region or "")
    country = normalize_country(query.country)
    return NormalizedLocation(
        place=place,
        variants=expand_abbreviations(place) if place else (),
        region=region,
        country=country,
        country_code=country_to_region_code(country),
        key=make_cache_key(place, region, country),
    )
