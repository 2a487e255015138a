"""Tests for the tag grammar."""

import pytest
from decimal import Decimal

from hlsplaylist.attributes import EnumeratedString, HexSequence, QuotedString
from hlsplaylist.errors import (
    InvalidValue,
    MissingRequiredAttribute,
    TagError,
    UnknownRequiredTag,
)
from hlsplaylist.tags import (
    ByteRange,
    DateRange,
    EndList,
    ExtM3U,
    Inf,
    Key,
    KeyMethod,
    Map,
    Media,
    MediaPlaylistType,
    MediaType,
    PlaylistType,
    ProgramDateTime,
    SessionData,
    Start,
    StreamInf,
    UnknownTag,
    Version,
    decode_line,
    encode,
    required_version,
)


class TestDecodeLine:
    """Test cases for decode_line."""

    def test_marker_tags(self):
        """Test tags without payload."""
        assert decode_line("#EXTM3U") == ExtM3U()
        assert decode_line("#EXT-X-ENDLIST") == EndList()

    def test_marker_with_payload_is_invalid(self):
        """Test that a payload on a marker tag is rejected."""
        with pytest.raises(InvalidValue):
            decode_line("#EXT-X-ENDLIST:now")

    def test_version(self):
        """Test the integer version tag."""
        assert decode_line("#EXT-X-VERSION:7") == Version(7)

    @pytest.mark.parametrize("payload", ["seven", "3.5", "0", "-1", "", "\u0663", "\uff13"])
    def test_invalid_version(self, payload):
        """Test that non-integer or zero versions are rejected."""
        with pytest.raises(InvalidValue) as exc_info:
            decode_line(f"#EXT-X-VERSION:{payload}")

        assert exc_info.value.tag == "EXT-X-VERSION"
        assert exc_info.value.field == "number"

    def test_extinf_without_title(self):
        """Test EXTINF with an empty title."""
        assert decode_line("#EXTINF:5.009,") == Inf(Decimal("5.009"), None)

    def test_extinf_with_title(self):
        """Test EXTINF with a title containing commas."""
        tag = decode_line("#EXTINF:10,Artist, Live - Song")

        assert tag.duration == Decimal(10)
        assert tag.title == "Artist, Live - Song"

    def test_extinf_invalid_duration(self):
        """Test EXTINF whose duration is not a number."""
        with pytest.raises(InvalidValue) as exc_info:
            decode_line("#EXTINF:abc,Title")

        assert exc_info.value.field == "duration"

    def test_numbers_must_use_ascii_digits(self):
        """Test that non-ASCII digits are not read as numbers."""
        with pytest.raises(InvalidValue):
            decode_line("#EXTINF:\u0665.0,")
        with pytest.raises(InvalidValue):
            decode_line("#EXT-X-BYTERANGE:\u0661\u0660\u0660")
        with pytest.raises(InvalidValue):
            decode_line("#EXT-X-STREAM-INF:BANDWIDTH=\u0661\u0660\u0660")

    def test_byterange(self):
        """Test EXT-X-BYTERANGE with and without offset."""
        assert decode_line("#EXT-X-BYTERANGE:1000@200") == ByteRange(1000, 200)
        assert decode_line("#EXT-X-BYTERANGE:1000") == ByteRange(1000)

    def test_playlist_type(self):
        """Test the enumerated playlist type."""
        assert decode_line("#EXT-X-PLAYLIST-TYPE:VOD") == PlaylistType(MediaPlaylistType.VOD)
        with pytest.raises(InvalidValue):
            decode_line("#EXT-X-PLAYLIST-TYPE:LIVE")

    def test_key(self):
        """Test EXT-X-KEY attributes."""
        tag = decode_line('#EXT-X-KEY:METHOD=AES-128,URI="https://priv.example.com/key.php?r=52"')

        assert tag == Key(KeyMethod.AES_128, uri="https://priv.example.com/key.php?r=52")

    def test_key_requires_method(self):
        """Test EXT-X-KEY without METHOD."""
        with pytest.raises(MissingRequiredAttribute) as exc_info:
            decode_line('#EXT-X-KEY:URI="key.bin"')

        assert exc_info.value.tag == "EXT-X-KEY"
        assert exc_info.value.key == "METHOD"

    def test_key_rejects_unknown_method(self):
        """Test that METHOD is a closed vocabulary."""
        with pytest.raises(InvalidValue):
            decode_line("#EXT-X-KEY:METHOD=ROT13")

    def test_media_requires_type_group_and_name(self):
        """Test required EXT-X-MEDIA attributes."""
        with pytest.raises(MissingRequiredAttribute) as exc_info:
            decode_line('#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="aac"')

        assert exc_info.value.key == "NAME"

    def test_media(self):
        """Test a full EXT-X-MEDIA line."""
        tag = decode_line(
            '#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="aac",NAME="English",'
            'LANGUAGE="en",DEFAULT=YES,AUTOSELECT=NO,URI="en/audio.m3u8"'
        )

        assert tag.type is MediaType.AUDIO
        assert tag.group_id == "aac"
        assert tag.name == "English"
        assert tag.default is True
        assert tag.autoselect is False
        assert tag.uri == "en/audio.m3u8"

    def test_stream_inf_bandwidth_must_be_integer(self):
        """Test a non-integer BANDWIDTH."""
        with pytest.raises(InvalidValue) as exc_info:
            decode_line("#EXT-X-STREAM-INF:BANDWIDTH=1.5")

        assert exc_info.value.field == "BANDWIDTH"

    def test_unknown_attributes_are_kept(self):
        """Test that unrecognised keys survive in extras."""
        tag = decode_line('#EXT-X-STREAM-INF:BANDWIDTH=800000,X-VENDOR="abc",SCORE=2.0')

        assert tag.bandwidth == 800000
        assert tag.extras == {"X-VENDOR": "abc", "SCORE": Decimal("2.0")}
        assert encode(tag) == '#EXT-X-STREAM-INF:BANDWIDTH=800000,X-VENDOR="abc",SCORE=2'

    def test_closed_captions_none_stays_unquoted(self):
        """Test CLOSED-CAPTIONS=NONE versus a quoted group id."""
        none = decode_line("#EXT-X-STREAM-INF:BANDWIDTH=1,CLOSED-CAPTIONS=NONE")
        group = decode_line('#EXT-X-STREAM-INF:BANDWIDTH=1,CLOSED-CAPTIONS="cc"')

        assert isinstance(none.closed_captions, EnumeratedString)
        assert isinstance(group.closed_captions, QuotedString)
        assert encode(none).endswith("CLOSED-CAPTIONS=NONE")
        assert encode(group).endswith('CLOSED-CAPTIONS="cc"')

    def test_daterange(self):
        """Test EXT-X-DATERANGE with SCTE-35 and client attributes."""
        tag = decode_line(
            '#EXT-X-DATERANGE:ID="ad-break",START-DATE="2020-01-01T00:00:00Z",'
            'DURATION=60.0,SCTE35-OUT=0xFC002F,X-COM-EXAMPLE-AD-ID="XYZ123"'
        )

        assert tag.id == "ad-break"
        assert tag.duration == Decimal("60.0")
        assert tag.scte35_out == HexSequence("FC002F")
        assert tag.extras == {"X-COM-EXAMPLE-AD-ID": "XYZ123"}

    def test_daterange_requires_start_date(self):
        """Test EXT-X-DATERANGE without START-DATE."""
        with pytest.raises(MissingRequiredAttribute):
            decode_line('#EXT-X-DATERANGE:ID="x"')

    def test_session_data(self):
        """Test EXT-X-SESSION-DATA."""
        tag = decode_line('#EXT-X-SESSION-DATA:DATA-ID="com.example.title",VALUE="Title",LANGUAGE="en"')

        assert tag == SessionData("com.example.title", value="Title", language="en")

    def test_start_allows_negative_offset(self):
        """Test a signed TIME-OFFSET."""
        assert decode_line("#EXT-X-START:TIME-OFFSET=-10.5,PRECISE=YES") == Start(Decimal("-10.5"), True)

    def test_unknown_tag(self):
        """Test forward-compatible decoding of an unknown tag."""
        tag = decode_line("#EXT-X-FUTURE-TAG:123")

        assert tag == UnknownTag("EXT-X-FUTURE-TAG", "123")
        assert encode(tag) == "#EXT-X-FUTURE-TAG:123"

    def test_unknown_tag_without_payload(self):
        """Test an unknown tag with no colon."""
        tag = decode_line("#EXT-X-SOMETHING-NEW")

        assert tag == UnknownTag("EXT-X-SOMETHING-NEW", None)
        assert encode(tag) == "#EXT-X-SOMETHING-NEW"

    def test_unknown_tag_rejected(self):
        """Test that unknown tags can be disallowed."""
        with pytest.raises(UnknownRequiredTag):
            decode_line("#EXT-X-FUTURE-TAG:123", allow_unknown=False)

    def test_not_a_directive(self):
        """Test that URI lines are not tags."""
        with pytest.raises(TagError):
            decode_line("segment.ts")


class TestEncode:
    """Test cases for encoding tags back to lines."""

    @pytest.mark.parametrize("line", [
        "#EXTM3U",
        "#EXT-X-VERSION:3",
        "#EXT-X-TARGETDURATION:10",
        "#EXT-X-MEDIA-SEQUENCE:2680",
        "#EXT-X-DISCONTINUITY-SEQUENCE:4",
        "#EXTINF:9.009,",
        "#EXTINF:10,Intro",
        "#EXT-X-BYTERANGE:75232@0",
        "#EXT-X-DISCONTINUITY",
        "#EXT-X-GAP",
        "#EXT-X-BITRATE:4500",
        "#EXT-X-PROGRAM-DATE-TIME:2020-01-01T00:00:00Z",
        "#EXT-X-PLAYLIST-TYPE:EVENT",
        "#EXT-X-I-FRAMES-ONLY",
        "#EXT-X-INDEPENDENT-SEGMENTS",
        '#EXT-X-KEY:METHOD=AES-128,URI="https://priv.example.com/key.php?r=52"',
        '#EXT-X-KEY:METHOD=SAMPLE-AES,URI="skd://key",IV=0x0123456789ABCDEF0123456789ABCDEF,'
        'KEYFORMAT="com.apple.streamingkeydelivery",KEYFORMATVERSIONS="1"',
        '#EXT-X-MAP:URI="init.mp4",BYTERANGE="720@0"',
        '#EXT-X-DATERANGE:ID="ad-break",START-DATE="2020-01-01T00:00:00Z",DURATION=60.6',
        '#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="aac",NAME="English",DEFAULT=YES',
        '#EXT-X-STREAM-INF:BANDWIDTH=1280000,CODECS="avc1.4d401f,mp4a.40.2",RESOLUTION=640x360',
        '#EXT-X-I-FRAME-STREAM-INF:BANDWIDTH=86000,URI="low/iframe.m3u8"',
        '#EXT-X-SESSION-KEY:METHOD=AES-128,URI="key.bin"',
        "#EXT-X-START:TIME-OFFSET=-10.5,PRECISE=YES",
        '#EXT-X-DEFINE:NAME="base",VALUE="https://example.com"',
        "#EXT-X-SERVER-CONTROL:CAN-SKIP-UNTIL=12,CAN-BLOCK-RELOAD=YES",
        "#EXT-X-PART-INF:PART-TARGET=1.004",
        '#EXT-X-PART:DURATION=1.004,URI="part1.mp4",INDEPENDENT=YES',
        '#EXT-X-PRELOAD-HINT:TYPE=PART,URI="part2.mp4"',
        '#EXT-X-RENDITION-REPORT:URI="../alt/index.m3u8",LAST-MSN=273,LAST-PART=2',
        "#EXT-X-SKIP:SKIPPED-SEGMENTS=3",
        "#EXT-X-ENDLIST",
    ])
    def test_canonical_lines_are_reproduced(self, line):
        """Test that canonical lines encode back byte for byte."""
        assert encode(decode_line(line)) == line

    def test_payload_with_line_break_is_rejected(self):
        """Test that a field holding a line break cannot be written."""
        with pytest.raises(InvalidValue) as exc_info:
            encode(Inf(Decimal(5), "a\nb"))

        assert exc_info.value.tag == "EXTINF"

        with pytest.raises(InvalidValue):
            encode(ProgramDateTime("2020-01-01T00:00:00Z\r"))

    def test_quote_in_quoted_attribute_names_the_tag(self):
        """Test that attribute encode errors report the owning tag."""
        with pytest.raises(InvalidValue) as exc_info:
            encode(SessionData("com.example", value='say "hi"'))

        assert exc_info.value.tag == "EXT-X-SESSION-DATA"
        assert exc_info.value.field == "VALUE"

    def test_extinf_canonical_duration(self):
        """Test that an integral EXTINF duration drops its fraction."""
        assert encode(decode_line("#EXTINF:10.0,")) == "#EXTINF:10,"

    def test_str_renders_line(self):
        """Test str() on a tag."""
        assert str(Map("init.mp4")) == '#EXT-X-MAP:URI="init.mp4"'

    def test_encode_constructed_tags(self):
        """Test tags created in code rather than parsed."""
        assert encode(ProgramDateTime("2020-01-01T00:00:00Z")) == "#EXT-X-PROGRAM-DATE-TIME:2020-01-01T00:00:00Z"
        assert encode(DateRange("x", "2020-01-01", end_on_next=True)) == (
            '#EXT-X-DATERANGE:ID="x",START-DATE="2020-01-01",END-ON-NEXT=YES'
        )
        assert encode(Media(MediaType.SUBTITLES, "subs", "English")) == (
            '#EXT-X-MEDIA:TYPE=SUBTITLES,GROUP-ID="subs",NAME="English"'
        )


class TestRequiredVersion:
    """Test cases for version gates."""

    def test_plain_tags_need_version_one(self):
        """Test tags without a gate."""
        assert required_version(ExtM3U()) == 1
        assert required_version(Inf(Decimal(10))) == 1

    def test_fractional_extinf_needs_three(self):
        """Test the decimal EXTINF gate."""
        assert required_version(Inf(Decimal("9.009"))) == 3

    def test_key_gates(self):
        """Test IV and KEYFORMAT gates."""
        assert required_version(Key(KeyMethod.AES_128, iv=HexSequence("01"))) == 2
        assert required_version(Key(KeyMethod.AES_128, keyformat="identity")) == 5

    def test_table_gates(self):
        """Test tags listed in the gate table."""
        assert required_version(ByteRange(100)) == 4
        assert required_version(Map("init.mp4")) == 5

    def test_instream_service_needs_seven(self):
        """Test the INSTREAM-ID SERVICE gate."""
        media = Media(MediaType.CLOSED_CAPTIONS, "cc", "CC", instream_id="SERVICE1")

        assert required_version(media) == 7

    def test_stream_inf_has_no_gate(self):
        """Test an ungated attribute-list tag."""
        assert required_version(StreamInf(1280000)) == 1
