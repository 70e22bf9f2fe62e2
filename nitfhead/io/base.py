"""
The exception types raised while locating and decoding NITF header elements.
"""

__classification__ = "UNCLASSIFIED"
__author__ = "nitfhead contributors"

from typing import Optional

from nitfhead.compliance import NitfHeadError


class NITFHeadIOError(NitfHeadError):
    """A custom exception class for discovered input/output errors."""


class NITFDecodingError(NitfHeadError):
    """
    Base class for failures decoding a header field. Every instance records the
    name of the offending field and its byte offset in the source buffer.
    """

    def __init__(self, message: str, field: Optional[str] = None, offset: Optional[int] = None):
        self.field = field
        self.offset = offset
        super(NITFDecodingError, self).__init__(message)


class UnexpectedEndOfBuffer(NITFDecodingError):
    """A field read would extend past the end of the buffer."""

    def __init__(self, field: Optional[str], offset: int, width: int, available: int):
        self.width = width
        self.available = available
        super(UnexpectedEndOfBuffer, self).__init__(
            'Field {} requires {} bytes at offset {}, but the buffer has length {}'.format(
                _field_label(field), width, offset, available),
            field=field, offset=offset)


class MalformedField(NITFDecodingError):
    """A field expected to hold ASCII decimal digits holds something else."""

    def __init__(self, field: Optional[str], offset: Optional[int], raw: bytes):
        self.raw = raw
        super(MalformedField, self).__init__(
            'Field {} at offset {} must contain only ASCII decimal digits, got {!r}'.format(
                _field_label(field), offset, raw),
            field=field, offset=offset)


class MalformedCountField(MalformedField):
    """The segment count field of a repeating group is not a decimal number."""


class MalformedLengthField(MalformedField):
    """A length field is not a decimal number."""


class CountOverflow(NITFDecodingError):
    """The decoded integer exceeds the range permitted for its field."""

    def __init__(self, field: Optional[str], offset: Optional[int], value: int, maximum: int):
        self.value = value
        self.maximum = maximum
        super(CountOverflow, self).__init__(
            'Field {} at offset {} has value {}, which exceeds the maximum {}'.format(
                _field_label(field), offset, value, maximum),
            field=field, offset=offset)


class UnsupportedVersion(NITFDecodingError):
    """The file profile name and version do not match a known header layout."""


def _field_label(field):
    return '<unnamed>' if field is None else '`{}`'.format(field)
