"""Tag grammar: one dataclass per playlist directive."""

import re
from dataclasses import dataclass, field, fields
from decimal import Decimal, InvalidOperation
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, ClassVar, Dict, NamedTuple, Optional, Tuple, Type

from . import attributes
from .attributes import (
    AttributeList,
    AttributeValue,
    EnumeratedString,
    HexSequence,
    QuotedString,
    Resolution,
)
from .errors import InvalidValue, MissingRequiredAttribute, TagError, UnknownRequiredTag


_EXTINF_DURATION_RE = re.compile(r"[0-9]+(?:\.[0-9]+)?\Z")
_BYTERANGE_RE = re.compile(r"([0-9]+)(?:@([0-9]+))?\Z")
_INTEGER_RE = re.compile(r"[0-9]+\Z")


class KeyMethod(str, Enum):
    NONE = "NONE"
    AES_128 = "AES-128"
    SAMPLE_AES = "SAMPLE-AES"
    SAMPLE_AES_CTR = "SAMPLE-AES-CTR"


class MediaType(str, Enum):
    AUDIO = "AUDIO"
    VIDEO = "VIDEO"
    SUBTITLES = "SUBTITLES"
    CLOSED_CAPTIONS = "CLOSED-CAPTIONS"


class MediaPlaylistType(str, Enum):
    EVENT = "EVENT"
    VOD = "VOD"


def to_decimal(value: Any) -> Decimal:
    """Coerce ints, floats and numeric strings to Decimal without binary noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not a decimal number: {value!r}")
    if isinstance(value, float):
        value = repr(value)
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError):
        raise ValueError(f"Not a decimal number: {value!r}") from None
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


class Tag:
    """Base class of every decoded directive.

    Subclasses set ``KEYWORD`` to the directive name without the leading ``#``
    and implement ``decode_payload`` / ``encode_payload``.
    """

    KEYWORD: ClassVar[str] = ""

    @classmethod
    def decode_payload(cls, payload: Optional[str], *, reject_duplicates: bool = True) -> "Tag":
        raise NotImplementedError

    def encode_payload(self) -> Optional[str]:
        return None

    def __str__(self) -> str:
        return encode(self)


# Tags without a payload

@dataclass(frozen=True)
class _Marker(Tag):

    @classmethod
    def decode_payload(cls, payload, *, reject_duplicates=True):
        if payload:
            raise InvalidValue(cls.KEYWORD, "payload", payload)
        return cls()


@dataclass(frozen=True)
class ExtM3U(_Marker):
    KEYWORD: ClassVar[str] = "EXTM3U"


@dataclass(frozen=True)
class EndList(_Marker):
    KEYWORD: ClassVar[str] = "EXT-X-ENDLIST"


@dataclass(frozen=True)
class Discontinuity(_Marker):
    KEYWORD: ClassVar[str] = "EXT-X-DISCONTINUITY"


@dataclass(frozen=True)
class IFramesOnly(_Marker):
    KEYWORD: ClassVar[str] = "EXT-X-I-FRAMES-ONLY"


@dataclass(frozen=True)
class IndependentSegments(_Marker):
    KEYWORD: ClassVar[str] = "EXT-X-INDEPENDENT-SEGMENTS"


@dataclass(frozen=True)
class Gap(_Marker):
    KEYWORD: ClassVar[str] = "EXT-X-GAP"


# Tags with a single scalar payload

def _parse_int(keyword: str, field_name: str, payload: Optional[str], minimum: int = 0) -> int:
    text = (payload or "").strip()
    if not _INTEGER_RE.match(text) or int(text) < minimum:
        raise InvalidValue(keyword, field_name, payload)
    return int(text)


@dataclass(frozen=True)
class _IntegerTag(Tag):
    MINIMUM: ClassVar[int] = 0

    @classmethod
    def decode_payload(cls, payload, *, reject_duplicates=True):
        (only,) = fields(cls)
        return cls(_parse_int(cls.KEYWORD, only.name, payload, cls.MINIMUM))

    def encode_payload(self):
        (only,) = fields(self)
        return str(getattr(self, only.name))


@dataclass(frozen=True)
class Version(_IntegerTag):
    KEYWORD: ClassVar[str] = "EXT-X-VERSION"
    MINIMUM: ClassVar[int] = 1
    number: int


@dataclass(frozen=True)
class TargetDuration(_IntegerTag):
    KEYWORD: ClassVar[str] = "EXT-X-TARGETDURATION"
    seconds: int


@dataclass(frozen=True)
class MediaSequence(_IntegerTag):
    KEYWORD: ClassVar[str] = "EXT-X-MEDIA-SEQUENCE"
    number: int


@dataclass(frozen=True)
class DiscontinuitySequence(_IntegerTag):
    KEYWORD: ClassVar[str] = "EXT-X-DISCONTINUITY-SEQUENCE"
    number: int


@dataclass(frozen=True)
class Bitrate(_IntegerTag):
    KEYWORD: ClassVar[str] = "EXT-X-BITRATE"
    kbps: int


@dataclass(frozen=True)
class Inf(Tag):
    """Duration and optional title of the media segment that follows."""
    KEYWORD: ClassVar[str] = "EXTINF"
    duration: Decimal
    title: Optional[str] = None

    @classmethod
    def decode_payload(cls, payload, *, reject_duplicates=True):
        duration, _, title = (payload or "").partition(",")
        duration = duration.strip()
        if not _EXTINF_DURATION_RE.match(duration):
            raise InvalidValue(cls.KEYWORD, "duration", duration)
        return cls(Decimal(duration), title or None)

    def encode_payload(self):
        return f"{attributes.format_decimal(to_decimal(self.duration))},{self.title or ''}"


@dataclass(frozen=True)
class ByteRange(Tag):
    KEYWORD: ClassVar[str] = "EXT-X-BYTERANGE"
    length: int
    offset: Optional[int] = None

    @classmethod
    def decode_payload(cls, payload, *, reject_duplicates=True):
        match = _BYTERANGE_RE.match((payload or "").strip())
        if not match:
            raise InvalidValue(cls.KEYWORD, "length", payload)
        offset = match.group(2)
        return cls(int(match.group(1)), int(offset) if offset is not None else None)

    def encode_payload(self):
        if self.offset is None:
            return str(self.length)
        return f"{self.length}@{self.offset}"


@dataclass(frozen=True)
class ProgramDateTime(Tag):
    KEYWORD: ClassVar[str] = "EXT-X-PROGRAM-DATE-TIME"
    value: str

    @classmethod
    def decode_payload(cls, payload, *, reject_duplicates=True):
        if not payload or not payload.strip():
            raise InvalidValue(cls.KEYWORD, "value", payload)
        return cls(payload.strip())

    def encode_payload(self):
        return self.value


@dataclass(frozen=True)
class PlaylistType(Tag):
    KEYWORD: ClassVar[str] = "EXT-X-PLAYLIST-TYPE"
    type: MediaPlaylistType

    @classmethod
    def decode_payload(cls, payload, *, reject_duplicates=True):
        try:
            return cls(MediaPlaylistType((payload or "").strip()))
        except ValueError:
            raise InvalidValue(cls.KEYWORD, "type", payload) from None

    def encode_payload(self):
        return MediaPlaylistType(self.type).value


# Tags whose payload is an attribute list

class _Kind(NamedTuple):
    decode: Callable[[AttributeValue], Any]
    encode: Callable[[Any], AttributeValue]


def _expect_str(value):
    if not isinstance(value, str):
        raise ValueError(f"expected a string, got {value!r}")
    return str(value)


def _expect_integer(value):
    if not isinstance(value, Decimal) or value < 0 or value != value.to_integral_value():
        raise ValueError(f"expected a non-negative integer, got {value!r}")
    return int(value)


def _expect_decimal(value):
    if not isinstance(value, Decimal):
        raise ValueError(f"expected a decimal number, got {value!r}")
    return value


def _expect_type(kind):
    def check(value):
        if not isinstance(value, kind):
            raise ValueError(f"expected {kind.__name__}, got {value!r}")
        return value
    return check


def _expect_boolean(value):
    if value == "YES":
        return True
    if value == "NO":
        return False
    raise ValueError(f"expected YES or NO, got {value!r}")


def _keep_string(value):
    if not isinstance(value, str):
        raise ValueError(f"expected a string, got {value!r}")
    return value


def _enumeration(enum_cls: Type[Enum]) -> _Kind:
    return _Kind(
        lambda value: enum_cls(_expect_str(value)),
        lambda value: EnumeratedString(enum_cls(value).value),
    )


QUOTED = _Kind(_expect_str, QuotedString)
TOKEN = _Kind(_expect_str, EnumeratedString)
INTEGER = _Kind(_expect_integer, int)
DECIMAL = _Kind(_expect_decimal, to_decimal)
HEX = _Kind(
    _expect_type(HexSequence),
    lambda value: value if isinstance(value, HexSequence) else HexSequence.from_int(value),
)
RESOLUTION = _Kind(_expect_type(Resolution), lambda value: Resolution(*value))
BOOLEAN = _Kind(_expect_boolean, lambda value: EnumeratedString("YES" if value else "NO"))
# Quoted or enumerated depending on the source, e.g. CLOSED-CAPTIONS="cc" vs NONE
STRING = _Kind(
    _keep_string,
    lambda value: value if isinstance(value, (QuotedString, EnumeratedString)) else QuotedString(value),
)


class _Attr(NamedTuple):
    key: str
    field: str
    kind: _Kind
    required: bool = False


@dataclass(frozen=True)
class AttributeTag(Tag):
    """Tag whose payload is an attribute list.

    ``ATTRIBUTES`` maps wire keys to dataclass fields. Keys the tag does not
    know are kept in ``extras`` and written back after the known ones.
    """
    ATTRIBUTES: ClassVar[Tuple[_Attr, ...]] = ()

    extras: AttributeList = field(default_factory=AttributeList, kw_only=True, hash=False)

    @classmethod
    def decode_payload(cls, payload, *, reject_duplicates=True):
        attrs = attributes.decode(payload or "", reject_duplicates=reject_duplicates)
        values: Dict[str, Any] = {}
        for attr in cls.ATTRIBUTES:
            if attr.key not in attrs:
                if attr.required:
                    raise MissingRequiredAttribute(cls.KEYWORD, attr.key)
                continue
            raw = attrs.pop(attr.key)
            try:
                values[attr.field] = attr.kind.decode(raw)
            except ValueError:
                raise InvalidValue(cls.KEYWORD, attr.key, raw) from None
        return cls(**values, extras=attrs)

    def encode_payload(self):
        attrs = AttributeList()
        for attr in self.ATTRIBUTES:
            value = getattr(self, attr.field)
            if value is not None:
                try:
                    attrs[attr.key] = attr.kind.encode(value)
                except (TypeError, ValueError):
                    raise InvalidValue(self.KEYWORD, attr.key, value) from None
        attrs.update(self.extras)
        try:
            return attributes.encode(attrs)
        except InvalidValue as e:
            raise InvalidValue(self.KEYWORD, e.field, e.value) from None


_KEY_ATTRIBUTES = (
    _Attr("METHOD", "method", _enumeration(KeyMethod), required=True),
    _Attr("URI", "uri", QUOTED),
    _Attr("IV", "iv", HEX),
    _Attr("KEYFORMAT", "keyformat", QUOTED),
    _Attr("KEYFORMATVERSIONS", "keyformatversions", QUOTED),
)


@dataclass(frozen=True)
class _EncryptionKey(AttributeTag):
    ATTRIBUTES: ClassVar[Tuple[_Attr, ...]] = _KEY_ATTRIBUTES
    method: KeyMethod
    uri: Optional[str] = None
    iv: Optional[HexSequence] = None
    keyformat: Optional[str] = None
    keyformatversions: Optional[str] = None


@dataclass(frozen=True)
class Key(_EncryptionKey):
    """How to decrypt the media segments that follow."""
    KEYWORD: ClassVar[str] = "EXT-X-KEY"


@dataclass(frozen=True)
class SessionKey(_EncryptionKey):
    KEYWORD: ClassVar[str] = "EXT-X-SESSION-KEY"


@dataclass(frozen=True)
class Map(AttributeTag):
    KEYWORD: ClassVar[str] = "EXT-X-MAP"
    ATTRIBUTES: ClassVar[Tuple[_Attr, ...]] = (
        _Attr("URI", "uri", QUOTED, required=True),
        _Attr("BYTERANGE", "byterange", QUOTED),
    )
    uri: str
    byterange: Optional[str] = None


@dataclass(frozen=True)
class DateRange(AttributeTag):
    """A date range with optional SCTE-35 data; X- client attributes land in extras."""
    KEYWORD: ClassVar[str] = "EXT-X-DATERANGE"
    ATTRIBUTES: ClassVar[Tuple[_Attr, ...]] = (
        _Attr("ID", "id", QUOTED, required=True),
        _Attr("CLASS", "class_", QUOTED),
        _Attr("START-DATE", "start_date", QUOTED, required=True),
        _Attr("END-DATE", "end_date", QUOTED),
        _Attr("DURATION", "duration", DECIMAL),
        _Attr("PLANNED-DURATION", "planned_duration", DECIMAL),
        _Attr("SCTE35-CMD", "scte35_cmd", HEX),
        _Attr("SCTE35-OUT", "scte35_out", HEX),
        _Attr("SCTE35-IN", "scte35_in", HEX),
        _Attr("END-ON-NEXT", "end_on_next", BOOLEAN),
    )
    id: str
    start_date: str
    class_: Optional[str] = None
    end_date: Optional[str] = None
    duration: Optional[Decimal] = None
    planned_duration: Optional[Decimal] = None
    scte35_cmd: Optional[HexSequence] = None
    scte35_out: Optional[HexSequence] = None
    scte35_in: Optional[HexSequence] = None
    end_on_next: Optional[bool] = None


@dataclass(frozen=True)
class Start(AttributeTag):
    KEYWORD: ClassVar[str] = "EXT-X-START"
    ATTRIBUTES: ClassVar[Tuple[_Attr, ...]] = (
        _Attr("TIME-OFFSET", "time_offset", DECIMAL, required=True),
        _Attr("PRECISE", "precise", BOOLEAN),
    )
    time_offset: Decimal
    precise: Optional[bool] = None


@dataclass(frozen=True)
class Define(AttributeTag):
    KEYWORD: ClassVar[str] = "EXT-X-DEFINE"
    ATTRIBUTES: ClassVar[Tuple[_Attr, ...]] = (
        _Attr("NAME", "name", QUOTED),
        _Attr("VALUE", "value", QUOTED),
        _Attr("IMPORT", "import_", QUOTED),
        _Attr("QUERYPARAM", "queryparam", QUOTED),
    )
    name: Optional[str] = None
    value: Optional[str] = None
    import_: Optional[str] = None
    queryparam: Optional[str] = None


@dataclass(frozen=True)
class Media(AttributeTag):
    """An alternative rendition (audio, video, subtitles or captions)."""
    KEYWORD: ClassVar[str] = "EXT-X-MEDIA"
    ATTRIBUTES: ClassVar[Tuple[_Attr, ...]] = (
        _Attr("TYPE", "type", _enumeration(MediaType), required=True),
        _Attr("URI", "uri", QUOTED),
        _Attr("GROUP-ID", "group_id", QUOTED, required=True),
        _Attr("LANGUAGE", "language", QUOTED),
        _Attr("ASSOC-LANGUAGE", "assoc_language", QUOTED),
        _Attr("NAME", "name", QUOTED, required=True),
        _Attr("DEFAULT", "default", BOOLEAN),
        _Attr("AUTOSELECT", "autoselect", BOOLEAN),
        _Attr("FORCED", "forced", BOOLEAN),
        _Attr("INSTREAM-ID", "instream_id", QUOTED),
        _Attr("CHARACTERISTICS", "characteristics", QUOTED),
        _Attr("CHANNELS", "channels", QUOTED),
    )
    type: MediaType
    group_id: str
    name: str
    uri: Optional[str] = None
    language: Optional[str] = None
    assoc_language: Optional[str] = None
    default: Optional[bool] = None
    autoselect: Optional[bool] = None
    forced: Optional[bool] = None
    instream_id: Optional[str] = None
    characteristics: Optional[str] = None
    channels: Optional[str] = None


@dataclass(frozen=True)
class StreamInf(AttributeTag):
    """A variant stream; the URI line that follows names its media playlist."""
    KEYWORD: ClassVar[str] = "EXT-X-STREAM-INF"
    ATTRIBUTES: ClassVar[Tuple[_Attr, ...]] = (
        _Attr("BANDWIDTH", "bandwidth", INTEGER, required=True),
        _Attr("AVERAGE-BANDWIDTH", "average_bandwidth", INTEGER),
        _Attr("CODECS", "codecs", QUOTED),
        _Attr("RESOLUTION", "resolution", RESOLUTION),
        _Attr("FRAME-RATE", "frame_rate", DECIMAL),
        _Attr("HDCP-LEVEL", "hdcp_level", TOKEN),
        _Attr("AUDIO", "audio", QUOTED),
        _Attr("VIDEO", "video", QUOTED),
        _Attr("SUBTITLES", "subtitles", QUOTED),
        _Attr("CLOSED-CAPTIONS", "closed_captions", STRING),
    )
    bandwidth: int
    average_bandwidth: Optional[int] = None
    codecs: Optional[str] = None
    resolution: Optional[Resolution] = None
    frame_rate: Optional[Decimal] = None
    hdcp_level: Optional[str] = None
    audio: Optional[str] = None
    video: Optional[str] = None
    subtitles: Optional[str] = None
    closed_captions: Optional[str] = None


@dataclass(frozen=True)
class IFrameStreamInf(AttributeTag):
    KEYWORD: ClassVar[str] = "EXT-X-I-FRAME-STREAM-INF"
    ATTRIBUTES: ClassVar[Tuple[_Attr, ...]] = (
        _Attr("BANDWIDTH", "bandwidth", INTEGER, required=True),
        _Attr("AVERAGE-BANDWIDTH", "average_bandwidth", INTEGER),
        _Attr("CODECS", "codecs", QUOTED),
        _Attr("RESOLUTION", "resolution", RESOLUTION),
        _Attr("HDCP-LEVEL", "hdcp_level", TOKEN),
        _Attr("VIDEO", "video", QUOTED),
        _Attr("URI", "uri", QUOTED, required=True),
    )
    bandwidth: int
    uri: str
    average_bandwidth: Optional[int] = None
    codecs: Optional[str] = None
    resolution: Optional[Resolution] = None
    hdcp_level: Optional[str] = None
    video: Optional[str] = None


@dataclass(frozen=True)
class SessionData(AttributeTag):
    KEYWORD: ClassVar[str] = "EXT-X-SESSION-DATA"
    ATTRIBUTES: ClassVar[Tuple[_Attr, ...]] = (
        _Attr("DATA-ID", "data_id", QUOTED, required=True),
        _Attr("VALUE", "value", QUOTED),
        _Attr("URI", "uri", QUOTED),
        _Attr("LANGUAGE", "language", QUOTED),
    )
    data_id: str
    value: Optional[str] = None
    uri: Optional[str] = None
    language: Optional[str] = None


@dataclass(frozen=True)
class ServerControl(AttributeTag):
    KEYWORD: ClassVar[str] = "EXT-X-SERVER-CONTROL"
    ATTRIBUTES: ClassVar[Tuple[_Attr, ...]] = (
        _Attr("CAN-SKIP-UNTIL", "can_skip_until", DECIMAL),
        _Attr("CAN-SKIP-DATERANGES", "can_skip_dateranges", BOOLEAN),
        _Attr("HOLD-BACK", "hold_back", DECIMAL),
        _Attr("PART-HOLD-BACK", "part_hold_back", DECIMAL),
        _Attr("CAN-BLOCK-RELOAD", "can_block_reload", BOOLEAN),
    )
    can_skip_until: Optional[Decimal] = None
    can_skip_dateranges: Optional[bool] = None
    hold_back: Optional[Decimal] = None
    part_hold_back: Optional[Decimal] = None
    can_block_reload: Optional[bool] = None


@dataclass(frozen=True)
class PartInf(AttributeTag):
    KEYWORD: ClassVar[str] = "EXT-X-PART-INF"
    ATTRIBUTES: ClassVar[Tuple[_Attr, ...]] = (
        _Attr("PART-TARGET", "part_target", DECIMAL, required=True),
    )
    part_target: Decimal


@dataclass(frozen=True)
class Part(AttributeTag):
    KEYWORD: ClassVar[str] = "EXT-X-PART"
    ATTRIBUTES: ClassVar[Tuple[_Attr, ...]] = (
        _Attr("DURATION", "duration", DECIMAL, required=True),
        _Attr("URI", "uri", QUOTED, required=True),
        _Attr("INDEPENDENT", "independent", BOOLEAN),
        _Attr("BYTERANGE", "byterange", QUOTED),
        _Attr("GAP", "gap", BOOLEAN),
    )
    duration: Decimal
    uri: str
    independent: Optional[bool] = None
    byterange: Optional[str] = None
    gap: Optional[bool] = None


@dataclass(frozen=True)
class PreloadHint(AttributeTag):
    KEYWORD: ClassVar[str] = "EXT-X-PRELOAD-HINT"
    ATTRIBUTES: ClassVar[Tuple[_Attr, ...]] = (
        _Attr("TYPE", "type", TOKEN, required=True),
        _Attr("URI", "uri", QUOTED, required=True),
        _Attr("BYTERANGE-START", "byterange_start", INTEGER),
        _Attr("BYTERANGE-LENGTH", "byterange_length", INTEGER),
    )
    type: str
    uri: str
    byterange_start: Optional[int] = None
    byterange_length: Optional[int] = None


@dataclass(frozen=True)
class RenditionReport(AttributeTag):
    KEYWORD: ClassVar[str] = "EXT-X-RENDITION-REPORT"
    ATTRIBUTES: ClassVar[Tuple[_Attr, ...]] = (
        _Attr("URI", "uri", QUOTED, required=True),
        _Attr("LAST-MSN", "last_msn", INTEGER),
        _Attr("LAST-PART", "last_part", INTEGER),
    )
    uri: str
    last_msn: Optional[int] = None
    last_part: Optional[int] = None


@dataclass(frozen=True)
class Skip(AttributeTag):
    KEYWORD: ClassVar[str] = "EXT-X-SKIP"
    ATTRIBUTES: ClassVar[Tuple[_Attr, ...]] = (
        _Attr("SKIPPED-SEGMENTS", "skipped_segments", INTEGER, required=True),
        _Attr("RECENTLY-REMOVED-DATERANGES", "recently_removed_dateranges", QUOTED),
    )
    skipped_segments: int
    recently_removed_dateranges: Optional[str] = None


@dataclass(frozen=True)
class UnknownTag(Tag):
    """A well-formed directive this grammar does not recognise, kept verbatim."""
    keyword: str
    payload: Optional[str] = None

    def encode_payload(self):
        return self.payload


TAG_TYPES = MappingProxyType({
    tag_type.KEYWORD: tag_type
    for tag_type in (
        ExtM3U, Version, TargetDuration, MediaSequence, DiscontinuitySequence,
        Inf, ByteRange, Discontinuity, Key, Map, ProgramDateTime, DateRange,
        Gap, Bitrate, EndList, PlaylistType, IFramesOnly, IndependentSegments,
        Start, Define, Media, StreamInf, IFrameStreamInf, SessionData,
        SessionKey, ServerControl, PartInf, Part, PreloadHint,
        RenditionReport, Skip,
    )
})

MASTER_TAGS = frozenset({StreamInf, Media, IFrameStreamInf, SessionData, SessionKey})

MEDIA_SEGMENT_TAGS = frozenset({
    Inf, ByteRange, Discontinuity, Key, Map, ProgramDateTime, DateRange, Gap,
    Bitrate, Part,
})

MEDIA_TAGS = MEDIA_SEGMENT_TAGS | frozenset({
    TargetDuration, MediaSequence, DiscontinuitySequence, EndList,
    PlaylistType, IFramesOnly, ServerControl, PartInf, PreloadHint,
    RenditionReport, Skip,
})

SINGLETON_TAGS = frozenset({
    ExtM3U, Version, TargetDuration, MediaSequence, DiscontinuitySequence,
    EndList, PlaylistType, IFramesOnly, IndependentSegments, Start,
    ServerControl, PartInf, Skip,
})

# Lowest protocol version that allows the tag at all
VERSION_GATES = MappingProxyType({
    ByteRange.KEYWORD: 4,
    IFramesOnly.KEYWORD: 4,
    Map.KEYWORD: 5,
    Define.KEYWORD: 8,
    Skip.KEYWORD: 9,
})


def tag_keyword(tag: Tag) -> str:
    if isinstance(tag, UnknownTag):
        return tag.keyword
    return tag.KEYWORD


def required_version(tag: Tag) -> int:
    """Return the lowest EXT-X-VERSION under which ``tag`` is legal."""
    version = VERSION_GATES.get(tag_keyword(tag), 1)
    if isinstance(tag, Inf):
        duration = to_decimal(tag.duration)
        if duration != duration.to_integral_value():
            version = max(version, 3)
    elif isinstance(tag, Key):
        if tag.iv is not None:
            version = max(version, 2)
        if tag.keyformat is not None or tag.keyformatversions is not None:
            version = max(version, 5)
    elif isinstance(tag, Media):
        if isinstance(tag.instream_id, str) and tag.instream_id.startswith("SERVICE"):
            version = max(version, 7)
    return version


def decode_line(line: str, *, allow_unknown: bool = True, reject_duplicates: bool = True) -> Tag:
    """Decode one ``#EXT`` directive line into its tag.

    Raises:
        TagError: If the line is not a directive or its payload is invalid
    """
    line = line.strip()
    if not line.startswith("#EXT"):
        raise TagError(f"Not a directive line: {line!r}")

    keyword, sep, payload = line[1:].partition(":")
    tag_type = TAG_TYPES.get(keyword)
    if tag_type is None:
        if not allow_unknown:
            raise UnknownRequiredTag(keyword)
        return UnknownTag(keyword, payload if sep else None)
    return tag_type.decode_payload(payload if sep else None, reject_duplicates=reject_duplicates)


def encode(tag: Tag) -> str:
    """Render ``tag`` as its canonical directive line.

    Raises:
        InvalidValue: If a field cannot be written, or the line would not
            read back unchanged (line breaks, surrounding whitespace)
    """
    payload = tag.encode_payload()
    if payload is None:
        return f"#{tag_keyword(tag)}"
    line = f"#{tag_keyword(tag)}:{payload}"
    if "\n" in line or "\r" in line or line != line.strip():
        raise InvalidValue(tag_keyword(tag), "payload", payload)
    return line
