# === NAVMAP v1 ===
# {
#   "module": "FeedsToKG.AtomMicroformats.cli",
#   "purpose": "Typer CLI for inspecting microformats in Atom feed files.",
#   "sections": [
#     {
#       "id": "main",
#       "name": "main",
#       "anchor": "function-main",
#       "kind": "function"
#     },
#     {
#       "id": "entries",
#       "name": "entries",
#       "anchor": "function-entries",
#       "kind": "function"
#     },
#     {
#       "id": "json-cmd",
#       "name": "json_cmd",
#       "anchor": "function-json-cmd",
#       "kind": "function"
#     },
#     {
#       "id": "nquads",
#       "name": "nquads",
#       "anchor": "function-nquads",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Typer CLI for inspecting microformats in Atom feed files.

Feed acquisition happens only here: the library core receives the feed
source already loaded.

Example:
    $ atom-microformats json feed.atom --assume hCard --pretty
    $ atom-microformats nquads feed.atom --all-profiles --structural
    $ atom-microformats entries feed.atom
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from . import __version__

from .errors import IngestionError, UnknownVocabularyError
from .feed import Feed, new_feed
from .logging_utils import setup_logging
from .settings import LogFormat, get_settings

app = typer.Typer(
    name="atom-microformats",
    help="Extract microformats embedded in Atom feed entries.",
    no_args_is_help=True,
)

_console = Console()
_err_console = Console(stderr=True)

_VERBOSITY_LEVELS = {1: "INFO"}


@app.callback(invoke_without_command=False)
def main(
    verbosity: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v for INFO, -vv for DEBUG)",
    ),
    log_format: Optional[LogFormat] = typer.Option(
        None,
        "--log-format",
        help="Log output format (console or json)",
    ),
    version: bool = typer.Option(False, "--version", "-V", help="Show version and exit"),
) -> None:
    """Atom microformats CLI."""

    if version:
        typer.echo(f"atom-microformats {__version__}")
        raise typer.Exit(0)

    settings = get_settings()
    if verbosity == 0:
        level = settings.log_level.value
    else:
        level = _VERBOSITY_LEVELS.get(verbosity, "DEBUG")
    setup_logging(level=level, fmt=log_format or settings.log_format)


def _load_feed(
    path: Path,
    base: Optional[str],
    assume: List[str],
    profile: List[str],
    all_profiles: bool,
) -> Feed:
    try:
        feed = new_feed(path.read_bytes(), base or path.resolve().as_uri())
        if profile:
            feed.add_profile(*profile)
        if all_profiles:
            feed.assume_all_profiles()
        if assume:
            feed.assume_profile(*assume)
    except IngestionError as exc:
        _err_console.print(f"[red]Error: {exc}[/red]")
        raise typer.Exit(1)
    except UnknownVocabularyError as exc:
        _err_console.print(f"[red]Error: {exc}[/red]")
        raise typer.Exit(2)
    return feed


_FEED_ARGUMENT = typer.Argument(..., exists=True, dir_okay=False, help="Atom feed file")
_BASE_OPTION = typer.Option(None, "--base", "-b", help="Base URI (defaults to the file URI)")
_ASSUME_OPTION = typer.Option([], "--assume", "-a", help="Assume a vocabulary by name")
_PROFILE_OPTION = typer.Option([], "--profile", "-p", help="Add a profile URI")
_ALL_OPTION = typer.Option(False, "--all-profiles", help="Assume every known vocabulary")
_ENTRY_OPTION = typer.Option(None, "--entry", "-e", help="Restrict output to one entry id")


@app.command()
def entries(
    feed_path: Path = _FEED_ARGUMENT,
    base: Optional[str] = _BASE_OPTION,
) -> None:
    """List entry contexts discovered in the feed."""

    feed = _load_feed(feed_path, base, [], [], False)
    table = Table(title=str(feed_path))
    table.add_column("Entry ID")
    table.add_column("Identity")
    table.add_column("Content type")
    table.add_column("Profiles", justify="right")
    table.add_column("Document")
    for context in feed.contexts:
        table.add_row(
            context.entry_id,
            context.identity,
            context.content_type,
            str(len(context.profiles)),
            "yes" if context.document is not None else "no",
        )
    _console.print(table)


@app.command("json")
def json_cmd(
    feed_path: Path = _FEED_ARGUMENT,
    base: Optional[str] = _BASE_OPTION,
    entry: Optional[str] = _ENTRY_OPTION,
    assume: List[str] = _ASSUME_OPTION,
    profile: List[str] = _PROFILE_OPTION,
    all_profiles: bool = _ALL_OPTION,
    pretty: bool = typer.Option(False, "--pretty", help="Indent the JSON output"),
    canonical: bool = typer.Option(False, "--canonical", help="Sort JSON object keys"),
) -> None:
    """Print extracted objects as JSON keyed by vocabulary."""

    feed = _load_feed(feed_path, base, assume, profile, all_profiles)
    typer.echo(feed.to_json(entry, pretty=pretty, canonical=canonical))


@app.command()
def nquads(
    feed_path: Path = _FEED_ARGUMENT,
    base: Optional[str] = _BASE_OPTION,
    entry: Optional[str] = _ENTRY_OPTION,
    assume: List[str] = _ASSUME_OPTION,
    profile: List[str] = _PROFILE_OPTION,
    all_profiles: bool = _ALL_OPTION,
    structural: Optional[bool] = typer.Option(
        None,
        "--structural/--no-structural",
        help="Include AtomOWL facts for the whole feed (default: ATOMMF_INCLUDE_STRUCTURAL_FACTS)",
    ),
) -> None:
    """Print the merged dataset as N-Quads, one named graph per entry."""

    feed = _load_feed(feed_path, base, assume, profile, all_profiles)
    if entry is None:
        dataset = feed.model(include_structural_facts=structural)
    else:
        dataset = feed.entry_model(entry, include_structural_facts=structural)
    typer.echo(dataset.serialize(format="nquads"))


__all__ = ["app", "main", "entries", "json_cmd", "nquads"]
