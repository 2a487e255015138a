"""M3U8 playlist parser module."""

import logging
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .config import ParserConfig
from .errors import LineError, TagError
from .playlist import Entry, Playlist, Uri
from .tags import decode_line


log = logging.getLogger(__name__)

PLAYLIST_SUFFIXES = (".m3u8", ".m3u")


class M3U8Parser:
    """Parser for HLS playlists."""

    def __init__(self, config: Optional[ParserConfig] = None):
        self.config = config or ParserConfig()

    def iter_entries(self, lines: Iterable[str]) -> Iterator[Entry]:
        """Classify each line and yield the resulting entries.

        Blank lines and ``#`` comments are skipped. Any ``#EXT`` line is
        decoded as a tag, unknown keywords included.

        Raises:
            LineError: On the first line that fails to decode
        """
        for line_no, raw in enumerate(lines, start=1):
            line = raw.strip()
            if line_no == 1:
                line = line.lstrip("\ufeff")
            if not line:
                continue
            if line.startswith("#"):
                if not line.startswith("#EXT"):
                    continue
                try:
                    yield decode_line(
                        line,
                        allow_unknown=self.config.allow_unknown_tags,
                        reject_duplicates=self.config.reject_duplicate_attributes,
                    )
                except TagError as e:
                    raise LineError(line_no, e) from e
            else:
                yield Uri(line)

    def parse_lines(self, lines: Iterable[str]) -> Playlist:
        playlist = Playlist(self.iter_entries(lines))
        log.debug("Parsed %d entries", len(playlist))
        return playlist

    def parse_text(self, text: str) -> Playlist:
        # Only LF ends a line; the CR of a CRLF pair is stripped with the rest
        return self.parse_lines(text.split("\n"))

    def parse(self, file_path: str) -> Playlist:
        """Parse an M3U8 playlist file.

        Args:
            file_path: Path to the M3U8 file

        Returns:
            Playlist with every entry of the file

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the file is not a .m3u/.m3u8 file
            LineError: If a line fails to decode
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        if path.suffix.lower() not in PLAYLIST_SUFFIXES:
            raise ValueError(f"File must be .m3u or .m3u8, got: {path.suffix}")

        log.debug("Reading %s", path)
        with open(path, "r", encoding=self.config.encoding, newline="\n") as f:
            return self.parse_lines(f)


def loads(text: str, config: Optional[ParserConfig] = None) -> Playlist:
    """Parse playlist text."""
    return M3U8Parser(config).parse_text(text)


def load_lines(lines: Iterable[str], config: Optional[ParserConfig] = None) -> Playlist:
    """Parse an already split sequence of lines."""
    return M3U8Parser(config).parse_lines(lines)


def load(file_path: str, config: Optional[ParserConfig] = None) -> Playlist:
    return M3U8Parser(config).parse(file_path)


def iter_entries(lines: Iterable[str], config: Optional[ParserConfig] = None) -> Iterator[Entry]:
    return M3U8Parser(config).iter_entries(lines)
