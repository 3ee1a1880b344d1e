"""Shared fixtures for the chapter geocoder tests."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pandas as pd
import pytest

COLUMNS = [
    "ChapterName",
    "City",
    "StateRegion",
    "Country",
    "PresidentName",
    "PresidentCell",
    "VicePresidentName",
    "VicePresidentCell",
    "LatOverride",
    "LngOverride",
]


@pytest.fixture()
def write_chapters(tmp_path: Path) -> Callable[..., Path]:
    """Return a factory that writes chapter rows to ``chapters.csv``.

    Each row is a dict; missing columns are written blank.
    """

    def _write(rows: list[dict[str, str]], columns: list[str] | None = None) -> Path:
        cols = columns or COLUMNS
        path = tmp_path / "chapters.csv"
        df = pd.DataFrame([{c: row.get(c, "") for c in cols} for row in rows], columns=cols)
        df.to_csv(path, index=False)
        return path

    return _write
