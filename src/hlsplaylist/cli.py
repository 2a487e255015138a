"""Command-line interface for hlsplaylist."""

import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import ParserConfig
from .errors import PlaylistError
from .parser import M3U8Parser
from .playlist import Playlist, Uri
from .serializer import dump, dumps
from .tags import tag_keyword


app = typer.Typer(help="Inspect, validate and reformat HLS playlists")
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def load_playlist(m3u8_path: Path, strict: bool) -> Playlist:
    """Parse the file or exit with status 1."""
    config = ParserConfig.from_env()
    if strict:
        config.allow_unknown_tags = False

    try:
        return M3U8Parser(config).parse(str(m3u8_path))
    except (PlaylistError, ValueError, OSError) as e:
        console.print(f"[red]Error parsing M3U8 file: {e}[/red]")
        sys.exit(1)


@app.command()
def show(
    m3u8_path: Path = typer.Argument(..., help="Path to M3U8 playlist file"),
    strict: bool = typer.Option(False, "--strict", "-s", help="Reject unknown tags"),
):
    """List the entries of a playlist."""
    playlist = load_playlist(m3u8_path, strict)

    table = Table(title=f"Entries in {m3u8_path.name}")
    table.add_column("#", style="dim", width=4)
    table.add_column("Kind", style="cyan")
    table.add_column("Tag", style="magenta")
    table.add_column("Value", style="green")

    for i, entry in enumerate(playlist, 1):
        if isinstance(entry, Uri):
            table.add_row(str(i), "uri", "", entry.value)
        else:
            table.add_row(str(i), "tag", tag_keyword(entry), entry.encode_payload() or "")

    console.print(table)

    kind = "master" if playlist.is_master else "media" if playlist.is_media else "unknown"
    console.print(f"\n[cyan]Total entries: {len(playlist)}[/cyan]")
    console.print(f"[cyan]Playlist kind: {kind}, version: {playlist.version or 'not declared'}[/cyan]")
    if playlist.segments:
        console.print(f"[cyan]Segments: {len(playlist.segments)}, duration: {playlist.duration}s[/cyan]")


@app.command()
def validate(
    m3u8_path: Path = typer.Argument(..., help="Path to M3U8 playlist file"),
    strict: bool = typer.Option(False, "--strict", "-s", help="Reject unknown tags"),
):
    """Check a playlist against the structural playlist rules."""
    playlist = load_playlist(m3u8_path, strict)

    try:
        playlist.validate()
    except PlaylistError as e:
        console.print(f"[red]✗ {m3u8_path.name}: {e}[/red]")
        sys.exit(1)

    console.print(f"[green]✓ {m3u8_path.name} is valid ({len(playlist)} entries)[/green]")


@app.command("format")
def format_playlist(
    m3u8_path: Path = typer.Argument(..., help="Path to M3U8 playlist file"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to this file instead of stdout"),
    strict: bool = typer.Option(False, "--strict", "-s", help="Reject unknown tags"),
):
    """Rewrite a playlist in canonical form."""
    playlist = load_playlist(m3u8_path, strict)

    if output is None:
        typer.echo(dumps(playlist), nl=False)
        return

    dump(playlist, str(output))
    console.print(f"[green]Wrote {len(playlist)} entries to {output}[/green]")
