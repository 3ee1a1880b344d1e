"""
Chapter Geocoder — Query Candidates
====================================
Turns a :class:`~chapter_geocoder.normalizer.NormalizedLocation` into the
ordered list of query strings tried against the providers, most specific
first.

For ``Mt Pleasant / Michigan / United States`` the sequence is::

    Mt Pleasant, Michigan, United States
    Mt Pleasant, United States
    Mount Pleasant, Michigan, United States
    Mount Pleasant, United States
    Mt Pleasant                              # bare names, only when enabled
    Mount Pleasant
"""

from __future__ import annotations

from typing import Iterator

from chapter_geocoder.normalizer import NormalizedLocation


def join_parts(*parts: str) -> str:
    """Comma-join the non-empty, stripped *parts*."""
    return ", ".join(p.strip() for p in parts if p and p.strip())


class QueryCandidates:
    """Lazy, restartable sequence of query strings for one location.

    Every ``iter()`` starts a fresh generator, so the pipeline can walk the
    same candidates once per provider.

    Args:
        location: The normalized location.
        include_bare_place: Append the bare place names after all composite
            forms. Open-Meteo searches by place name, so it answers these
            best; Nominatim does not need them.
    """

    def __init__(self, location: NormalizedLocation, *, include_bare_place: bool = True) -> None:
        self.location = location
        self.include_bare_place = include_bare_place

    def __iter__(self) -> Iterator[str]:
        seen: set[str] = set()
        for query in self._generate():
            if query and query not in seen:
                seen.add(query)
                yield query

    def _generate(self) -> Iterator[str]:
        loc = self.location
        for variant in loc.variants:
            yield join_parts(variant, loc.region, loc.country)
            yield join_parts(variant, loc.country)
        if self.include_bare_place:
            yield from loc.variants

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}({self.location.place!r}, "
            f"include_bare_place={self.include_bare_place})"
        )
