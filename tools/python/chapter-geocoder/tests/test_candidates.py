"""
Tests — Query Candidates
=========================
Ordering, separator handling, de-duplication and restartability of
:class:`~chapter_geocoder.candidates.QueryCandidates`.
"""

from __future__ import annotations

from chapter_geocoder.candidates import QueryCandidates, join_parts
from chapter_geocoder.normalizer import LocationQuery, normalize_location


def _candidates(place: str, region: str, country: str, **kwargs) -> list[str]:
    return list(QueryCandidates(normalize_location(LocationQuery(place, region, country)), **kwargs))


class TestJoinParts:
    def test_skips_empty_components(self) -> None:
        assert join_parts("Lansing", "", "United States") == "Lansing, United States"
        assert join_parts("", " ", "") == ""


class TestQueryCandidates:
    def test_most_specific_first_per_variant(self) -> None:
        assert _candidates("Mt Pleasant", "Michigan", "USA") == [
            "Mt Pleasant, Michigan, United States",
            "Mt Pleasant, United States",
            "Mount Pleasant, Michigan, United States",
            "Mount Pleasant, United States",
            "Mt Pleasant",
            "Mount Pleasant",
        ]

    def test_without_bare_place(self) -> None:
        assert _candidates("Lansing", "Michigan", "USA", include_bare_place=False) == [
            "Lansing, Michigan, United States",
            "Lansing, United States",
        ]

    def test_empty_region_does_not_duplicate(self) -> None:
        assert _candidates("Toronto", "", "Canada") == ["Toronto, Canada", "Toronto"]

    def test_no_dangling_separators(self) -> None:
        for query in _candidates("Halton County", "", "Canada"):
            assert not query.startswith(",")
            assert not query.endswith(",")
            assert ", ," not in query

    def test_restartable_and_deterministic(self) -> None:
        candidates = QueryCandidates(normalize_location(LocationQuery("St Paul", "Minnesota", "US")))
        assert list(candidates) == list(candidates)

    def test_lazy(self) -> None:
        candidates = QueryCandidates(normalize_location(LocationQuery("Lansing", "Michigan", "USA")))
        iterator = iter(candidates)
        assert next(iterator) == "Lansing, Michigan, United States"

    def test_no_place_yields_nothing(self) -> None:
        assert _candidates("", "Michigan", "USA") == []
