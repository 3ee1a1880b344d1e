"""
Chapter Geocoder — CLI Entry Point
===================================
Installed as the ``geo-chapter-geocode`` command via ``pyproject.toml``.

Usage:
    geo-chapter-geocode --input data/chapters.csv --output data/chapters.json \\
                        --cache data/geocode-cache.json --fallback \\
                        --user-agent "chapter-map/1.0 (contact: you@example.com)"
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from chapter_geocoder.pipeline import ChapterGeocoder, GeocoderSettings
from chapter_geocoder.providers import DEFAULT_USER_AGENT
from shared.python.exceptions import ChapterMapError


@click.command(
    name="geo-chapter-geocode",
    help="Geocode a chapters CSV into a JSON array of map points.",
)
@click.option(
    "--input", "-i", "input_path",
    required=True,
    type=click.Path(file_okay=True, dir_okay=False, path_type=Path),
    help="Path to the chapters CSV (ChapterName, City, StateRegion, Country).",
)
@click.option(
    "--output", "-o", "output_path",
    required=True,
    type=click.Path(file_okay=True, dir_okay=False, path_type=Path),
    help="Path for the output JSON array.",
)
@click.option(
    "--cache", "cache_path",
    default=None,
    type=click.Path(file_okay=True, dir_okay=False, path_type=Path),
    help="Geocode cache file. Defaults to geocode-cache.json next to --output.",
)
@click.option(
    "--geojson", "geojson_path",
    default=None,
    type=click.Path(file_okay=True, dir_okay=False, path_type=Path),
    help="Also write a GeoJSON FeatureCollection to this path.",
)
@click.option(
    "--fallback/--no-fallback",
    default=False,
    show_default=True,
    help="Query Nominatim when Open-Meteo finds no acceptable match.",
)
@click.option(
    "--user-agent",
    default=DEFAULT_USER_AGENT,
    envvar="CHAPTER_GEOCODER_USER_AGENT",
    show_default=True,
    help="User-Agent sent to Nominatim. "
         "Can also be set via the CHAPTER_GEOCODER_USER_AGENT environment variable.",
)
@click.option(
    "--request-delay",
    default=0.6,
    show_default=True,
    type=click.FloatRange(min=0),
    help="Seconds to wait after each row that needed network requests.",
)
@click.option(
    "--fallback-delay",
    default=0.9,
    show_default=True,
    type=click.FloatRange(min=0),
    help="Seconds to wait before each Nominatim request.",
)
@click.option(
    "--timeout",
    default=10.0,
    show_default=True,
    type=click.FloatRange(min=0, min_open=True),
    help="HTTP timeout per request, in seconds.",
)
@click.option(
    "--max-results",
    default=5,
    show_default=True,
    type=click.IntRange(min=1, max=100),
    help="Number of hits requested per provider query.",
)
@click.option(
    "--checkpoint",
    is_flag=True,
    default=False,
    help="Save the cache after every newly resolved row.",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
def main(
    input_path: Path,
    output_path: Path,
    cache_path: Path | None,
    geojson_path: Path | None,
    fallback: bool,
    user_agent: str,
    request_delay: float,
    fallback_delay: float,
    timeout: float,
    max_results: int,
    checkpoint: bool,
    verbose: bool,
) -> None:
    """CLI entry point — wires Click options into ChapterGeocoder."""
    settings = GeocoderSettings(
        request_delay=request_delay,
        fallback_delay=fallback_delay,
        timeout=timeout,
        max_results=max_results,
        use_fallback=fallback,
        user_agent=user_agent,
        checkpoint=checkpoint,
    )
    tool = ChapterGeocoder(
        input_path=input_path,
        output_path=output_path,
        cache_path=cache_path,
        settings=settings,
        geojson_path=geojson_path,
        verbose=verbose,
    )

    try:
        tool.run()
    except ChapterMapError as exc:
        click.echo(f"Error: {exc.message}", err=True)
        sys.exit(1)

    click.echo("\nGeocoding complete.")
    for line in tool.summary.lines():
        click.echo(line)
    click.echo(f"Output written : {output_path}")


if __name__ == "__main__":
    main()
