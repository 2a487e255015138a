"""Whole-playlist rules checked when a builder is finalized."""

import logging
from decimal import Decimal
from typing import Optional, Sequence

from .errors import (
    DanglingSegmentInfo,
    DuplicateTag,
    InvalidDuration,
    InvalidKeyMethod,
    InvalidTagValue,
    InvalidTargetDuration,
    InvalidUri,
    InvalidValue,
    InvalidVersion,
    MissingHeader,
    MissingTargetDuration,
    MixedPlaylistKind,
    ValidationError,
    VersionMismatch,
)
from .tags import (
    MASTER_TAGS,
    MEDIA_SEGMENT_TAGS,
    MEDIA_TAGS,
    SINGLETON_TAGS,
    Bitrate,
    ByteRange,
    DateRange,
    DiscontinuitySequence,
    EndList,
    ExtM3U,
    Inf,
    Key,
    KeyMethod,
    Map,
    Media,
    MediaPlaylistType,
    MediaSequence,
    MediaType,
    PlaylistType,
    PreloadHint,
    ProgramDateTime,
    RenditionReport,
    SessionKey,
    Start,
    StreamInf,
    TargetDuration,
    Tag,
    Version,
    encode,
    required_version,
    to_decimal,
)


log = logging.getLogger(__name__)

# Text fields that must not be empty, by tag type
_REQUIRED_TEXT = {
    Map: (("URI", "uri"),),
    ProgramDateTime: (("value", "value"),),
    DateRange: (("ID", "id"), ("START-DATE", "start_date")),
    PreloadHint: (("URI", "uri"),),
    RenditionReport: (("URI", "uri"),),
}

# Integer fields that must be >= 0, by tag type
_COUNTS = {
    MediaSequence: ("number",),
    DiscontinuitySequence: ("number",),
    Bitrate: ("kbps",),
    ByteRange: ("length", "offset"),
}


def _is_count(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _as_decimal(value) -> Optional[Decimal]:
    try:
        result = to_decimal(value)
    except ValueError:
        return None
    return result if result.is_finite() else None


def _is_member(enum_cls, value) -> bool:
    try:
        enum_cls(value)
    except (TypeError, ValueError):
        return False
    return True


def check_tag_values(tag: Tag, index: Optional[int] = None) -> None:
    """Check the fields of a single tag and raise on the first bad one."""
    kind = type(tag)
    keyword = kind.KEYWORD

    if kind is Version:
        if not _is_count(tag.number) or tag.number < 1:
            raise InvalidVersion(tag.number)
    elif kind is TargetDuration:
        if not _is_count(tag.seconds) or tag.seconds < 1:
            raise InvalidTargetDuration(tag.seconds)
    elif kind is Inf:
        duration = _as_decimal(tag.duration)
        if duration is None or duration <= 0:
            raise InvalidDuration(keyword, "duration", tag.duration)
    elif kind in (Key, SessionKey):
        if not _is_member(KeyMethod, tag.method):
            raise InvalidKeyMethod(keyword, tag.method)
    elif kind is Media:
        if not _is_member(MediaType, tag.type):
            raise InvalidTagValue(keyword, "TYPE", tag.type, index)
    elif kind is PlaylistType:
        if not _is_member(MediaPlaylistType, tag.type):
            raise InvalidTagValue(keyword, "type", tag.type, index)
    elif kind is Start:
        if _as_decimal(tag.time_offset) is None:
            raise InvalidTagValue(keyword, "TIME-OFFSET", tag.time_offset, index)
    elif kind is DateRange:
        for key, value in (("DURATION", tag.duration), ("PLANNED-DURATION", tag.planned_duration)):
            if value is not None:
                number = _as_decimal(value)
                if number is None or number < 0:
                    raise InvalidDuration(keyword, key, value)

    for key, name in _REQUIRED_TEXT.get(kind, ()):
        value = getattr(tag, name)
        if not isinstance(value, str) or not value.strip():
            raise InvalidTagValue(keyword, key, value, index)

    for name in _COUNTS.get(kind, ()):
        value = getattr(tag, name)
        if not _is_count(value) and not (name == "offset" and value is None):
            raise InvalidTagValue(keyword, name, value, index)

    try:
        encode(tag)
    except InvalidValue as e:
        raise InvalidTagValue(e.tag, e.field, e.value, index) from e


def check_uri(entry, index: Optional[int] = None) -> None:
    """A URI line must be non-empty text that the parser would read back as the same URI."""
    value = getattr(entry, "value", None)
    if (
        not isinstance(value, str)
        or not value
        or value != value.strip()
        or value.startswith("#")
        or "\n" in value
        or "\r" in value
    ):
        raise InvalidUri(value if value is not None else entry, index)


def check_header(entries: Sequence) -> None:
    if not entries or type(entries[0]) is not ExtM3U:
        raise MissingHeader()


def check_values(entries: Sequence) -> None:
    for index, entry in enumerate(entries):
        if isinstance(entry, Tag):
            check_tag_values(entry, index)
        else:
            check_uri(entry, index)


def check_singletons(entries: Sequence) -> None:
    seen = set()
    for entry in entries:
        kind = type(entry)
        if kind in SINGLETON_TAGS:
            if kind in seen:
                raise DuplicateTag(kind.KEYWORD)
            seen.add(kind)


def check_playlist_kind(entries: Sequence) -> None:
    master = next((e for e in entries if type(e) in MASTER_TAGS), None)
    media = next((e for e in entries if type(e) in MEDIA_TAGS), None)
    if master is not None and media is not None:
        raise MixedPlaylistKind(master.KEYWORD, media.KEYWORD)


def check_target_duration(entries: Sequence) -> None:
    kinds = {type(entry) for entry in entries}
    if kinds & MEDIA_SEGMENT_TAGS and TargetDuration not in kinds:
        raise MissingTargetDuration()


def check_versions(entries: Sequence) -> None:
    declared = next((e.number for e in entries if type(e) is Version), None)
    if declared is None:
        return
    for entry in entries:
        if isinstance(entry, Tag):
            required = required_version(entry)
            if required > declared:
                raise VersionMismatch(entry.KEYWORD, required, declared)


def check_dangling(entries: Sequence) -> None:
    """EXTINF and EXT-X-STREAM-INF must each be followed by their URI line."""
    pending = None
    for index, entry in enumerate(entries):
        kind = type(entry)
        if kind in (Inf, StreamInf, EndList):
            if pending is not None:
                raise DanglingSegmentInfo(entries[pending].KEYWORD, pending)
            if kind is not EndList:
                pending = index
        elif not isinstance(entry, Tag):
            pending = None
    if pending is not None:
        raise DanglingSegmentInfo(entries[pending].KEYWORD, pending)


RULES = (
    check_header,
    check_values,
    check_singletons,
    check_playlist_kind,
    check_target_duration,
    check_versions,
    check_dangling,
)


def validate(entries: Sequence) -> None:
    """Run every rule in order and raise the first ValidationError."""
    for rule in RULES:
        try:
            rule(entries)
        except ValidationError as exc:
            log.debug("Validation rule %s failed: %s", rule.__name__, exc)
            raise
