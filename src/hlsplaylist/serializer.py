"""Render a Playlist back to text."""

import logging
from pathlib import Path
from typing import Iterator

from .playlist import Playlist, Uri
from .tags import encode


log = logging.getLogger(__name__)


def iter_lines(playlist: Playlist) -> Iterator[str]:
    """Yield one line per entry, without line terminators."""
    for entry in playlist:
        if isinstance(entry, Uri):
            yield entry.value
        else:
            yield encode(entry)


def dumps(playlist: Playlist, newline: str = "\n") -> str:
    return "".join(line + newline for line in iter_lines(playlist))


def dump(playlist: Playlist, file_path: str, encoding: str = "utf-8") -> None:
    """Write ``playlist`` to ``file_path`` with Unix line endings."""
    path = Path(file_path)
    log.debug("Writing %d entries to %s", len(playlist), path)
    with open(path, "w", encoding=encoding, newline="\n") as f:
        for line in iter_lines(playlist):
            f.write(line + "\n")
