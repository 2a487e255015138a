"""Tests for the command-line interface."""

import pytest
from typer.testing import CliRunner

from hlsplaylist.cli import app
from hlsplaylist.parser import loads


runner = CliRunner()

MEDIA_PLAYLIST = """#EXTM3U
#EXT-X-VERSION:7
#EXT-X-TARGETDURATION:6
#EXTINF:5.009,
https://media.example.com/first.ts
#EXT-X-ENDLIST
"""


@pytest.fixture
def playlist_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("HLSPLAYLIST_ALLOW_UNKNOWN_TAGS", raising=False)
    path = tmp_path / "media.m3u8"
    path.write_text(MEDIA_PLAYLIST, encoding="utf-8")
    return path


class TestCli:
    """Test cases for the hlsplaylist commands."""

    def test_show(self, playlist_file):
        """Test that show lists entries and totals."""
        result = runner.invoke(app, ["show", str(playlist_file)])

        assert result.exit_code == 0
        assert "Total entries: 6" in result.output
        assert "media" in result.output

    def test_validate_valid_playlist(self, playlist_file):
        """Test validate on a well-formed playlist."""
        result = runner.invoke(app, ["validate", str(playlist_file)])

        assert result.exit_code == 0
        assert "is valid (6 entries)" in result.output

    def test_validate_invalid_playlist(self, tmp_path, monkeypatch):
        """Test validate on a playlist without a target duration."""
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "broken.m3u8"
        path.write_text("#EXTM3U\n#EXTINF:4,\na.ts\n", encoding="utf-8")

        result = runner.invoke(app, ["validate", str(path)])

        assert result.exit_code == 1
        assert "TARGETDURATION" in result.output

    def test_parse_error_exits_with_status_1(self, tmp_path, monkeypatch):
        """Test that a decode error is reported with its line number."""
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "bad.m3u8"
        path.write_text("#EXTM3U\n#EXT-X-VERSION:x\n", encoding="utf-8")

        result = runner.invoke(app, ["show", str(path)])

        assert result.exit_code == 1
        assert "line 2" in result.output

    def test_strict_rejects_unknown_tags(self, playlist_file):
        """Test the --strict flag."""
        playlist_file.write_text(MEDIA_PLAYLIST + "#EXT-X-FUTURE-TAG:1\n", encoding="utf-8")

        assert runner.invoke(app, ["validate", str(playlist_file)]).exit_code == 0
        assert runner.invoke(app, ["validate", "--strict", str(playlist_file)]).exit_code == 1

    def test_format_to_stdout(self, playlist_file):
        """Test that format echoes the canonical text."""
        result = runner.invoke(app, ["format", str(playlist_file)])

        assert result.exit_code == 0
        assert result.output == MEDIA_PLAYLIST

    def test_format_to_file(self, playlist_file, tmp_path):
        """Test format with --output."""
        target = tmp_path / "out.m3u8"

        result = runner.invoke(app, ["format", str(playlist_file), "-o", str(target)])

        assert result.exit_code == 0
        assert loads(target.read_text(encoding="utf-8")) == loads(MEDIA_PLAYLIST)
