"""Command line interface for the catalog indexer."""
from __future__ import annotations

import json
from typing import Optional

import typer

from backend.indexer.app import EXIT_CODE, run_once
from backend.indexer.services.reconcile import StageReport
from backend.indexer.settings import IndexerSettings

app = typer.Typer(help="Synchronise the remote media library with the catalog.")


def _report_payload(report: StageReport | None) -> dict[str, object] | None:
    if report is None:
        return None
    return {
        "inserted": report.inserted,
        "skipped": report.skipped,
        "failed": report.failed,
        "reasons": dict(report.reasons()),
    }


@app.command()
def run(
    movies_folder: Optional[str] = typer.Option(
        None,
        "--movies-folder",
        help="Remote folder id holding movie files.",
        envvar="ZPLEX_MOVIES_FOLDER",
    ),
    shows_folder: Optional[str] = typer.Option(
        None,
        "--shows-folder",
        help="Remote folder id holding show folders.",
        envvar="ZPLEX_SHOWS_FOLDER",
    ),
    debug: bool = typer.Option(
        False,
        "--debug/--no-debug",
        help="Enable verbose logging.",
        envvar="ZPLEX_DEBUG",
        show_default=True,
    ),
    summary: bool = typer.Option(
        False,
        "--summary/--no-summary",
        help="Print a JSON summary of the run.",
        show_default=True,
    ),
) -> None:
    """Run one indexing pass. The command always exits with status 1."""

    overrides: dict[str, object] = {"debug": debug}
    if movies_folder is not None:
        overrides["movies_folder"] = movies_folder
    if shows_folder is not None:
        overrides["shows_folder"] = shows_folder
    result = run_once(IndexerSettings(**overrides))

    if summary:
        payload: dict[str, object] = {"started": result is not None}
        if result is not None:
            payload.update(
                {
                    "statistics": result.statistics.model_dump() if result.statistics else None,
                    "genres_added": result.genres_added,
                    "movies": _report_payload(result.movies),
                    "shows": _report_payload(result.shows),
                    "cache_published": result.cache_published,
                    "failed_stages": result.failed_stages,
                }
            )
        typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))
    raise typer.Exit(code=EXIT_CODE)
