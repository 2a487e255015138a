"""Exception hierarchy for playlist decoding and validation."""

from typing import Optional


class PlaylistError(ValueError):
    """Base class for every error raised while handling a playlist."""


class TagError(PlaylistError):
    """A single directive line could not be decoded."""


class UnknownRequiredTag(TagError):
    """An unrecognised directive was found while unknown tags are disallowed."""

    def __init__(self, keyword: str):
        self.keyword = keyword
        super().__init__(f"Unknown tag: {keyword}")


class AttributeListError(TagError):
    """Base class for attribute-list syntax errors."""


class MalformedAttribute(AttributeListError):
    def __init__(self, element: str):
        self.element = element
        super().__init__(f"Malformed attribute (expected KEY=VALUE): {element!r}")


class UnterminatedQuote(AttributeListError):
    def __init__(self, payload: str):
        self.payload = payload
        super().__init__(f"Unterminated quoted string in: {payload!r}")


class DuplicateAttributeKey(AttributeListError):
    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Duplicate attribute: {key}")


class InvalidValue(TagError):
    """A field holds a value of the wrong type or outside its vocabulary."""

    def __init__(self, tag: str, field: str, value: object = None):
        self.tag = tag
        self.field = field
        self.value = value
        super().__init__(f"Invalid value for {field} in {tag}: {value!r}")


class MissingRequiredAttribute(TagError):
    def __init__(self, tag: str, key: str):
        self.tag = tag
        self.key = key
        super().__init__(f"{tag} is missing required attribute {key}")


class LineError(PlaylistError):
    """Wraps a TagError with the 1-based line number it was raised for."""

    def __init__(self, line_no: int, cause: TagError):
        self.line_no = line_no
        self.cause = cause
        super().__init__(f"line {line_no}: {cause}")


class ValidationError(PlaylistError):
    """A whole-playlist structural rule was violated."""


class MissingHeader(ValidationError):
    def __init__(self):
        super().__init__("Playlist must start with #EXTM3U")


class DuplicateTag(ValidationError):
    def __init__(self, tag: str):
        self.tag = tag
        super().__init__(f"{tag} must not appear more than once")


class MixedPlaylistKind(ValidationError):
    def __init__(self, master_tag: str, media_tag: str):
        self.master_tag = master_tag
        self.media_tag = media_tag
        super().__init__(
            f"Master playlist tag {master_tag} cannot be mixed with media playlist tag {media_tag}"
        )


class MissingTargetDuration(ValidationError):
    def __init__(self):
        super().__init__("Media playlist requires #EXT-X-TARGETDURATION")


class VersionMismatch(ValidationError):
    def __init__(self, tag: str, required: int, declared: int):
        self.tag = tag
        self.required = required
        self.declared = declared
        super().__init__(
            f"{tag} requires version {required} but the playlist declares version {declared}"
        )


class DanglingSegmentInfo(ValidationError):
    def __init__(self, tag: str, index: Optional[int] = None):
        self.tag = tag
        self.index = index
        where = f" at entry {index}" if index is not None else ""
        super().__init__(f"{tag}{where} is not followed by a URI")


class InvalidVersion(ValidationError):
    def __init__(self, number: object):
        self.number = number
        super().__init__(f"EXT-X-VERSION must be a positive integer, got {number!r}")


class InvalidDuration(ValidationError):
    """A duration outside the range its tag allows."""

    def __init__(self, tag: str, field: str, value: object):
        self.tag = tag
        self.field = field
        self.value = value
        super().__init__(f"Invalid {field} in {tag}: {value!r}")


class InvalidTargetDuration(ValidationError):
    def __init__(self, seconds: object):
        self.seconds = seconds
        super().__init__(f"EXT-X-TARGETDURATION must be a positive integer, got {seconds!r}")


class InvalidKeyMethod(ValidationError):
    def __init__(self, tag: str, method: object):
        self.tag = tag
        self.method = method
        super().__init__(f"Invalid METHOD in {tag}: {method!r}")


class InvalidTagValue(ValidationError):
    """A tag field holds a value that cannot be written as a playlist line."""

    def __init__(self, tag: str, field: str, value: object, index: Optional[int] = None):
        self.tag = tag
        self.field = field
        self.value = value
        self.index = index
        where = f" at entry {index}" if index is not None else ""
        super().__init__(f"Invalid value for {field} in {tag}{where}: {value!r}")


class InvalidUri(ValidationError):
    """A URI entry that would not read back as the same URI line."""

    def __init__(self, value: object, index: Optional[int] = None):
        self.value = value
        self.index = index
        where = f" at entry {index}" if index is not None else ""
        super().__init__(f"Invalid URI{where}: {value!r}")


class BuilderFinalized(PlaylistError):
    def __init__(self):
        super().__init__("Playlist has already been built")
