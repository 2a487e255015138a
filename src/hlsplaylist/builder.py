"""Incremental playlist construction with validation deferred to build()."""

import logging
from enum import Enum
from typing import List, Optional, Tuple, Type

from .attributes import HexSequence, Resolution
from .errors import BuilderFinalized, ValidationError
from .playlist import Entry, Playlist, Uri
from .tags import (
    MASTER_TAGS,
    MEDIA_TAGS,
    Bitrate,
    ByteRange,
    DateRange,
    Define,
    Discontinuity,
    DiscontinuitySequence,
    EndList,
    ExtM3U,
    Gap,
    IFrameStreamInf,
    IFramesOnly,
    IndependentSegments,
    Inf,
    Key,
    KeyMethod,
    Map,
    Media,
    MediaPlaylistType,
    MediaSequence,
    MediaType,
    Part,
    PartInf,
    PlaylistType,
    PreloadHint,
    ProgramDateTime,
    RenditionReport,
    ServerControl,
    SessionData,
    SessionKey,
    Skip,
    Start,
    StreamInf,
    Tag,
    TargetDuration,
    Version,
    to_decimal,
)
from .validator import validate


log = logging.getLogger(__name__)


class BuilderState(Enum):
    EMPTY = "empty"
    ACCUMULATING = "accumulating"
    FINALIZED = "finalized"


def _coerce(convert, value):
    """Apply ``convert`` when it accepts ``value``; otherwise keep the raw value for build() to report."""
    if value is None:
        return None
    try:
        return convert(value)
    except (TypeError, ValueError):
        return value


def _resolution(value):
    width, height = value
    return Resolution(int(width), int(height))


class PlaylistBuilder:
    """Accumulates entries one at a time and validates them in build().

    Every insertion method returns the builder so calls can be chained::

        playlist = (
            PlaylistBuilder()
            .header()
            .version(3)
            .target_duration(10)
            .inf(9.009)
            .uri("first.ts")
            .end_list()
            .build()
        )

    Insertions never fail. A failing build() leaves the builder as it was,
    so the caller can correct it and try again.
    """

    def __init__(self):
        self._entries: List[Entry] = []
        self._finalized = False
        self.seen_version = False
        self.seen_master_tag = False
        self.seen_media_tag = False
        self.seen_end_list = False

    @property
    def state(self) -> BuilderState:
        if self._finalized:
            return BuilderState.FINALIZED
        if self._entries:
            return BuilderState.ACCUMULATING
        return BuilderState.EMPTY

    @property
    def entries(self) -> Tuple[Entry, ...]:
        return tuple(self._entries)

    def _refresh_flags(self) -> None:
        kinds = {type(entry) for entry in self._entries}
        self.seen_version = Version in kinds
        self.seen_master_tag = bool(kinds & MASTER_TAGS)
        self.seen_media_tag = bool(kinds & MEDIA_TAGS)
        self.seen_end_list = EndList in kinds

    def _check_open(self) -> None:
        if self._finalized:
            raise BuilderFinalized()

    def add(self, entry: Entry) -> "PlaylistBuilder":
        """Append any tag or Uri as-is."""
        self._check_open()
        self._entries.append(entry)
        kind = type(entry)
        if kind is Version:
            self.seen_version = True
        elif kind in MASTER_TAGS:
            self.seen_master_tag = True
        elif kind in MEDIA_TAGS:
            self.seen_media_tag = True
        if kind is EndList:
            self.seen_end_list = True
        return self

    def pop(self) -> Entry:
        """Remove and return the most recently added entry."""
        self._check_open()
        entry = self._entries.pop()
        self._refresh_flags()
        return entry

    def remove(self, tag_type: Type[Tag]) -> "PlaylistBuilder":
        """Drop every entry of exactly ``tag_type``."""
        self._check_open()
        self._entries = [entry for entry in self._entries if type(entry) is not tag_type]
        self._refresh_flags()
        return self

    def header(self) -> "PlaylistBuilder":
        """Add the #EXTM3U marker. It is always placed first."""
        self._check_open()
        self._entries.insert(0, ExtM3U())
        return self

    def uri(self, uri: str) -> "PlaylistBuilder":
        return self.add(Uri(uri))

    def version(self, number: int) -> "PlaylistBuilder":
        return self.add(Version(number))

    def target_duration(self, seconds: int) -> "PlaylistBuilder":
        return self.add(TargetDuration(seconds))

    def media_sequence(self, number: int) -> "PlaylistBuilder":
        return self.add(MediaSequence(number))

    def discontinuity_sequence(self, number: int) -> "PlaylistBuilder":
        return self.add(DiscontinuitySequence(number))

    def inf(self, duration, title: Optional[str] = None) -> "PlaylistBuilder":
        return self.add(Inf(_coerce(to_decimal, duration), title or None))

    def byte_range(self, length: int, offset: Optional[int] = None) -> "PlaylistBuilder":
        return self.add(ByteRange(length, offset))

    def discontinuity(self) -> "PlaylistBuilder":
        return self.add(Discontinuity())

    def key(
        self,
        method,
        uri: Optional[str] = None,
        iv: Optional[HexSequence] = None,
        keyformat: Optional[str] = None,
        keyformatversions: Optional[str] = None,
    ) -> "PlaylistBuilder":
        return self.add(Key(_coerce(KeyMethod, method), uri, iv, keyformat, keyformatversions))

    def map(self, uri: str, byterange: Optional[str] = None) -> "PlaylistBuilder":
        return self.add(Map(uri, byterange))

    def program_date_time(self, value: str) -> "PlaylistBuilder":
        return self.add(ProgramDateTime(value))

    def date_range(
        self,
        id: str,
        start_date: str,
        end_date: Optional[str] = None,
        duration=None,
        planned_duration=None,
        scte35_cmd: Optional[HexSequence] = None,
        scte35_out: Optional[HexSequence] = None,
        scte35_in: Optional[HexSequence] = None,
        end_on_next: Optional[bool] = None,
        class_: Optional[str] = None,
    ) -> "PlaylistBuilder":
        return self.add(DateRange(
            id,
            start_date,
            class_=class_,
            end_date=end_date,
            duration=_coerce(to_decimal, duration),
            planned_duration=_coerce(to_decimal, planned_duration),
            scte35_cmd=scte35_cmd,
            scte35_out=scte35_out,
            scte35_in=scte35_in,
            end_on_next=end_on_next,
        ))

    def gap(self) -> "PlaylistBuilder":
        return self.add(Gap())

    def bitrate(self, kbps: int) -> "PlaylistBuilder":
        return self.add(Bitrate(kbps))

    def playlist_type(self, value) -> "PlaylistBuilder":
        return self.add(PlaylistType(_coerce(MediaPlaylistType, value)))

    def i_frames_only(self) -> "PlaylistBuilder":
        return self.add(IFramesOnly())

    def independent_segments(self) -> "PlaylistBuilder":
        return self.add(IndependentSegments())

    def start(self, time_offset, precise: Optional[bool] = None) -> "PlaylistBuilder":
        return self.add(Start(_coerce(to_decimal, time_offset), precise))

    def define(self, name: Optional[str] = None, value: Optional[str] = None,
               import_: Optional[str] = None, queryparam: Optional[str] = None) -> "PlaylistBuilder":
        return self.add(Define(name, value, import_, queryparam))

    def media(self, type, group_id: str, name: str, **optional) -> "PlaylistBuilder":
        """Add EXT-X-MEDIA; optional attributes are passed by field name."""
        return self.add(Media(_coerce(MediaType, type), group_id, name, **optional))

    def stream_inf(
        self,
        bandwidth: int,
        codecs: Optional[str] = None,
        resolution: Optional[Tuple[int, int]] = None,
        frame_rate=None,
        **optional,
    ) -> "PlaylistBuilder":
        return self.add(StreamInf(
            bandwidth,
            codecs=codecs,
            resolution=_coerce(_resolution, resolution),
            frame_rate=_coerce(to_decimal, frame_rate),
            **optional,
        ))

    def i_frame_stream_inf(self, bandwidth: int, uri: str, **optional) -> "PlaylistBuilder":
        if "resolution" in optional:
            optional["resolution"] = _coerce(_resolution, optional["resolution"])
        return self.add(IFrameStreamInf(bandwidth, uri, **optional))

    def session_data(self, data_id: str, value: Optional[str] = None,
                     uri: Optional[str] = None, language: Optional[str] = None) -> "PlaylistBuilder":
        return self.add(SessionData(data_id, value, uri, language))

    def session_key(self, method, uri: Optional[str] = None, iv: Optional[HexSequence] = None,
                    keyformat: Optional[str] = None,
                    keyformatversions: Optional[str] = None) -> "PlaylistBuilder":
        return self.add(SessionKey(_coerce(KeyMethod, method), uri, iv, keyformat, keyformatversions))

    def server_control(self, can_skip_until=None, can_skip_dateranges: Optional[bool] = None,
                       hold_back=None, part_hold_back=None,
                       can_block_reload: Optional[bool] = None) -> "PlaylistBuilder":
        return self.add(ServerControl(
            _coerce(to_decimal, can_skip_until),
            can_skip_dateranges,
            _coerce(to_decimal, hold_back),
            _coerce(to_decimal, part_hold_back),
            can_block_reload,
        ))

    def part_inf(self, part_target) -> "PlaylistBuilder":
        return self.add(PartInf(_coerce(to_decimal, part_target)))

    def part(self, duration, uri: str, independent: Optional[bool] = None,
             byterange: Optional[str] = None, gap: Optional[bool] = None) -> "PlaylistBuilder":
        return self.add(Part(_coerce(to_decimal, duration), uri, independent, byterange, gap))

    def preload_hint(self, type: str, uri: str, byterange_start: Optional[int] = None,
                     byterange_length: Optional[int] = None) -> "PlaylistBuilder":
        return self.add(PreloadHint(type, uri, byterange_start, byterange_length))

    def rendition_report(self, uri: str, last_msn: Optional[int] = None,
                         last_part: Optional[int] = None) -> "PlaylistBuilder":
        return self.add(RenditionReport(uri, last_msn, last_part))

    def skip(self, skipped_segments: int,
             recently_removed_dateranges: Optional[str] = None) -> "PlaylistBuilder":
        return self.add(Skip(skipped_segments, recently_removed_dateranges))

    def end_list(self) -> "PlaylistBuilder":
        return self.add(EndList())

    def build(self) -> Playlist:
        """Validate the accumulated entries and return the finished Playlist.

        Raises:
            BuilderFinalized: If build() already succeeded
            ValidationError: The first structural rule that fails; the
                builder keeps its entries and stays open
        """
        self._check_open()
        try:
            validate(self._entries)
        except ValidationError as e:
            log.debug("Build rejected after %d entries: %s", len(self._entries), e)
            raise
        self._finalized = True
        return Playlist(self._entries)
