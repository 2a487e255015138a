"""Attribute-list codec for tag payloads such as ``BANDWIDTH=1280000,CODECS="avc1,mp4a"``."""

import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, NamedTuple, Union

from .errors import (
    DuplicateAttributeKey,
    InvalidValue,
    MalformedAttribute,
    UnterminatedQuote,
)


log = logging.getLogger(__name__)

_DECIMAL_RE = re.compile(r"-?[0-9]+(?:\.[0-9]+)?\Z")
_HEX_RE = re.compile(r"0[xX]([0-9A-Fa-f]+)\Z")
_RESOLUTION_RE = re.compile(r"([0-9]+)x([0-9]+)\Z")


class QuotedString(str):
    """A value written between double quotes."""


class EnumeratedString(str):
    """An unquoted token kept exactly as written."""


@dataclass(frozen=True)
class HexSequence:
    """An unquoted ``0x``-prefixed hexadecimal value.

    The digit string is kept as given so that zero-padded values such as
    128-bit initialization vectors keep their width.
    """
    digits: str

    @classmethod
    def from_int(cls, value: int, width: int = 0) -> "HexSequence":
        return cls(format(value, f"0{width}X"))

    @property
    def value(self) -> int:
        return int(self.digits, 16)

    def __str__(self) -> str:
        return f"0x{self.digits}"


class Resolution(NamedTuple):
    width: int
    height: int

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


AttributeValue = Union[QuotedString, EnumeratedString, Decimal, HexSequence, Resolution]


class AttributeList(Dict[str, AttributeValue]):
    """Insertion-ordered mapping of attribute names to typed values."""

    def __str__(self) -> str:
        return encode(self)


def format_decimal(value: Decimal) -> str:
    """Render a decimal with no fractional part when it is integral."""
    if value == value.to_integral_value():
        return str(int(value))
    return format(value, "f")


def decode_value(raw: str) -> AttributeValue:
    """Infer the kind of a single attribute value from its spelling."""
    if raw.startswith('"'):
        if len(raw) < 2 or not raw.endswith('"') or '"' in raw[1:-1]:
            raise UnterminatedQuote(raw)
        return QuotedString(raw[1:-1])
    if _DECIMAL_RE.match(raw):
        return Decimal(raw)
    match = _HEX_RE.match(raw)
    if match:
        return HexSequence(match.group(1))
    match = _RESOLUTION_RE.match(raw)
    if match:
        return Resolution(int(match.group(1)), int(match.group(2)))
    return EnumeratedString(raw)


def encode_value(value: object) -> str:
    """Render one value using the quoting rule of its kind.

    Plain ``str`` values are treated as quoted strings and plain numbers as
    decimals, so callers can pass ordinary Python values.
    """
    if isinstance(value, EnumeratedString):
        return str.__str__(value)
    if isinstance(value, str):
        if '"' in value or "\n" in value or "\r" in value:
            raise ValueError(f"Quoted string cannot contain quotes or line breaks: {value!r}")
        return f'"{value}"'
    if isinstance(value, bool):
        return "YES" if value else "NO"
    if isinstance(value, Decimal):
        return format_decimal(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return format_decimal(Decimal(repr(value)))
    if isinstance(value, (HexSequence, Resolution)):
        return str(value)
    raise TypeError(f"Unsupported attribute value: {value!r}")


def split_attributes(payload: str) -> List[str]:
    """Split on commas that are not inside a quoted string."""
    elements = []
    current = []
    in_quotes = False
    for char in payload:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            elements.append("".join(current))
            current = []
            continue
        current.append(char)
    if in_quotes:
        raise UnterminatedQuote(payload)
    elements.append("".join(current))
    return elements


def decode(payload: str, *, reject_duplicates: bool = True) -> AttributeList:
    """Decode an attribute-list payload.

    Args:
        payload: Text after the ``:`` of a tag line
        reject_duplicates: Raise on a repeated key instead of keeping the last value

    Returns:
        AttributeList in source order

    Raises:
        MalformedAttribute: If an element has no ``=`` or an empty name
        UnterminatedQuote: If a quoted value is not closed
        DuplicateAttributeKey: If a key repeats and duplicates are rejected
    """
    attrs = AttributeList()
    if not payload.strip():
        return attrs

    for element in split_attributes(payload):
        key, sep, raw = element.partition("=")
        key = key.strip()
        if not sep or not key:
            raise MalformedAttribute(element)
        if key in attrs:
            if reject_duplicates:
                raise DuplicateAttributeKey(key)
            log.debug("Replacing duplicate attribute %s", key)
            del attrs[key]
        attrs[key] = decode_value(raw.strip())
    return attrs


def encode(attrs: Dict[str, object]) -> str:
    """Encode attributes in insertion order."""
    parts = []
    for key, value in attrs.items():
        try:
            parts.append(f"{key}={encode_value(value)}")
        except (TypeError, ValueError):
            raise InvalidValue("attribute-list", key, value) from None
    return ",".join(parts)
