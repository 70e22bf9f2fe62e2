# -*- coding: utf-8 -*-
"""
Base NITF header decoding functionality: the fixed-field slicer, the ASCII
decimal field interpreters, and the count-driven repeating group (segment
directory) builder.

Every routine here operates on a borrowed view of a complete in-memory buffer.
Nothing is copied except the handful of digits decoded as integers, and no read
is attempted before it has been checked against the buffer length.
"""

from collections import namedtuple, OrderedDict
from typing import Union, Tuple, Optional, Sequence, Iterator

import numpy

from nitfhead.io.base import UnexpectedEndOfBuffer, MalformedField, \
    MalformedCountField, MalformedLengthField, CountOverflow


__classification__ = "UNCLASSIFIED"
__author__ = "nitfhead contributors"


BufferType = Union[bytes, bytearray, memoryview]


def as_buffer_view(buffer) -> memoryview:
    """
    Get a flat, unsigned byte view of the provided buffer without copying.

    Parameters
    ----------
    buffer : bytes|bytearray|memoryview|mmap.mmap|numpy.ndarray
        Any object supporting the buffer protocol.

    Returns
    -------
    memoryview
    """

    if isinstance(buffer, memoryview) and buffer.ndim == 1 and buffer.format == 'B':
        return buffer
    view = memoryview(buffer)
    if view.ndim != 1 or view.format != 'B':
        view = view.cast('B')
    return view


#########
# the fixed field slicer

def slice_field(
        buffer: BufferType,
        cursor: int,
        width: int,
        name: Optional[str] = None) -> Tuple[memoryview, int]:
    """
    Extract the fixed width field starting at `cursor`.

    Parameters
    ----------
    buffer : bytes|bytearray|memoryview
    cursor : int
        The offset of the field in `buffer`.
    width : int
        The field width in bytes.
    name : None|str
        The field name, used only for error reporting.

    Returns
    -------
    field : memoryview
        The view of `buffer[cursor:cursor+width]`.
    cursor : int
        The advanced cursor, `cursor+width`.

    Raises
    ------
    UnexpectedEndOfBuffer
        If the field extends past the end of `buffer`.
    """

    if cursor < 0:
        raise ValueError('cursor must be non-negative, got {}'.format(cursor))
    if width < 0:
        raise ValueError('width must be non-negative, got {}'.format(width))

    view = as_buffer_view(buffer)
    end = cursor + width
    if end > len(view):
        raise UnexpectedEndOfBuffer(name, cursor, width, len(view))
    return view[cursor:end], end


def parse_ascii_integer(
        raw: BufferType,
        name: Optional[str] = None,
        offset: Optional[int] = None,
        error_type=MalformedLengthField,
        maximum: Optional[int] = None) -> int:
    """
    Interpret a fixed width field as an unsigned ASCII decimal integer. Signs,
    whitespace and padding are all rejected - a blank field is never read as 0.

    Parameters
    ----------
    raw : bytes|memoryview
    name : None|str
        The field name, for error reporting.
    offset : None|int
        The field offset in the source buffer, for error reporting.
    error_type : type
        The :class:`MalformedField` subclass raised on a non-digit byte.
    maximum : None|int
        The largest permitted value. Defaults to the largest value representable
        in the field width.

    Returns
    -------
    int

    Raises
    ------
    MalformedField
        Of type `error_type`.
    CountOverflow
    """

    value = bytes(raw)
    if not value.isdigit():
        raise error_type(name, offset, value)

    result = int(value)
    if maximum is None:
        maximum = 10**len(value) - 1
    if result > maximum:
        raise CountOverflow(name, offset, result, maximum)
    return result


class BackgroundColor(namedtuple('BackgroundColor', ('red', 'green', 'blue'))):
    """
    The file background color, the three single byte channel values of the
    FBKGC field in the order red, green, blue.
    """

    __slots__ = ()

    def to_bytes(self) -> bytes:
        return bytes(self)


def parse_background_color(raw: BufferType) -> BackgroundColor:
    """
    Decompose the 3 byte binary background color field.

    Parameters
    ----------
    raw : bytes|memoryview

    Returns
    -------
    BackgroundColor
    """

    if len(raw) != 3:
        raise ValueError('The background color requires exactly 3 bytes, got {}'.format(len(raw)))
    return BackgroundColor(raw[0], raw[1], raw[2])


#########
# the segment directory

class SegmentDescriptor(namedtuple('SegmentDescriptor', ('subheader_length', 'data_length'))):
    """
    The declared sizes of a single segment: the length of its subheader and the
    length of its data field. A zero data length is a valid, header only, segment.
    """

    __slots__ = ()

    @property
    def total_length(self) -> int:
        """
        int: The combined length of subheader and data.
        """

        return self.subheader_length + self.data_length


class SegmentDirectory(object):
    """
    The ordered segment descriptors for one segment family, in file order.
    """

    __slots__ = ('_entries', )

    def __init__(self, entries: Optional[Sequence[SegmentDescriptor]] = None):
        if entries is None:
            entries = ()
        entries = tuple(entries)
        for i, entry in enumerate(entries):
            if not isinstance(entry, SegmentDescriptor):
                raise TypeError(
                    'entries must be of type SegmentDescriptor, got entry {} of type {}'.format(i, type(entry)))
            if entry.subheader_length < 0 or entry.data_length < 0:
                raise ValueError('entry {} has a negative length {}'.format(i, entry))
        self._entries = entries

    @property
    def entries(self) -> Tuple[SegmentDescriptor, ...]:
        """
        Tuple[SegmentDescriptor, ...]: The segment descriptors.
        """

        return self._entries

    @property
    def count(self) -> int:
        """
        int: The number of segments.
        """

        return len(self._entries)

    @property
    def subheader_sizes(self) -> numpy.ndarray:
        """
        numpy.ndarray: The (read only) subheader sizes.
        """

        out = numpy.array([entry.subheader_length for entry in self._entries], dtype=numpy.int64)
        out.setflags(write=False)
        return out

    @property
    def item_sizes(self) -> numpy.ndarray:
        """
        numpy.ndarray: The (read only) data item sizes.
        """

        out = numpy.array([entry.data_length for entry in self._entries], dtype=numpy.int64)
        out.setflags(write=False)
        return out

    def total_length(self) -> int:
        """
        The number of bytes occupied by all segments of this family.

        Returns
        -------
        int
        """

        return sum(entry.total_length for entry in self._entries)

    def __len__(self):
        return len(self._entries)

    def __getitem__(self, item):
        return self._entries[item]

    def __iter__(self) -> Iterator[SegmentDescriptor]:
        return iter(self._entries)

    def __eq__(self, other):
        if not isinstance(other, SegmentDirectory):
            return NotImplemented
        return self._entries == other._entries

    def __hash__(self):
        return hash(self._entries)

    def __repr__(self):
        return '{}({!r})'.format(self.__class__.__name__, list(self._entries))

    def to_json(self):
        return OrderedDict([
            ('subheader_sizes', [entry.subheader_length for entry in self._entries]),
            ('item_sizes', [entry.data_length for entry in self._entries])])


def _entry_name(name, index):
    if name is None:
        return None
    return '{}{:03d}'.format(name, index + 1)


def build_directory(
        buffer: BufferType,
        cursor: int,
        count_field_width: int,
        per_entry_widths: Tuple[int, int],
        names: Optional[Tuple[str, str, str]] = None,
        maximum_count: Optional[int] = None) -> Tuple[SegmentDirectory, int]:
    """
    Decode a count-prefixed repeating group of (subheader length, data length)
    pairs.

    Parameters
    ----------
    buffer : bytes|bytearray|memoryview
    cursor : int
        The offset of the count field.
    count_field_width : int
    per_entry_widths : Tuple[int, int]
        The widths of the subheader length and data length fields.
    names : None|Tuple[str, str, str]
        The count, subheader length and data length field names, for error
        reporting. Entry field names are suffixed with the 1-based entry number.
    maximum_count : None|int
        The largest permitted count, defaults to the largest value representable
        in `count_field_width` digits.

    Returns
    -------
    directory : SegmentDirectory
    cursor : int
        The offset immediately following the final descriptor pair.

    Raises
    ------
    UnexpectedEndOfBuffer
    MalformedCountField
    MalformedLengthField
    CountOverflow
    """

    view = as_buffer_view(buffer)
    subheader_width, data_width = per_entry_widths
    count_name, subheader_name, data_name = (None, None, None) if names is None else names

    raw, loc = slice_field(view, cursor, count_field_width, name=count_name)
    count = parse_ascii_integer(
        raw, name=count_name, offset=cursor, error_type=MalformedCountField, maximum=maximum_count)

    entries = []
    for i in range(count):
        field_name = _entry_name(subheader_name, i)
        raw, end = slice_field(view, loc, subheader_width, name=field_name)
        subheader_length = parse_ascii_integer(raw, name=field_name, offset=loc)
        loc = end

        field_name = _entry_name(data_name, i)
        raw, end = slice_field(view, loc, data_width, name=field_name)
        data_length = parse_ascii_integer(raw, name=field_name, offset=loc)
        loc = end

        entries.append(SegmentDescriptor(subheader_length, data_length))
    return SegmentDirectory(entries), loc


#########
# layout table entries

class FieldSpec(namedtuple('FieldSpec', ('name', 'width', 'depends_on', 'values'))):
    """
    A fixed width header field. A conditional field is only present when the
    earlier field `depends_on` holds one of the raw `values`.
    """

    __slots__ = ()

    def __new__(cls, name, width, depends_on=None, values=None):
        if width < 0:
            raise ValueError('width for field {} must be non-negative'.format(name))
        if (depends_on is None) != (values is None):
            raise ValueError('depends_on and values for field {} must be given together'.format(name))
        if values is not None:
            values = frozenset(values)
        return super(FieldSpec, cls).__new__(cls, name, width, depends_on, values)

    @property
    def conditional(self) -> bool:
        return self.depends_on is not None

    def is_present(self, fields) -> bool:
        """
        Determine whether this field is present, given the fields decoded so far.

        Parameters
        ----------
        fields : dict
            The raw field values decoded so far.

        Returns
        -------
        bool
        """

        if self.depends_on is None:
            return True
        raw = fields.get(self.depends_on, None)
        return raw is not None and bytes(raw) in self.values


class SegmentGroupLayout(namedtuple(
        'SegmentGroupLayout',
        ('name', 'count_field', 'count_width',
         'subheader_field', 'subheader_width',
         'data_field', 'data_width', 'maximum_count'))):
    """
    The parameters of one segment family's count-driven repeating group.
    """

    __slots__ = ()

    def __new__(cls, name, count_field, count_width, subheader_field, subheader_width,
                data_field, data_width, maximum_count=None):
        return super(SegmentGroupLayout, cls).__new__(
            cls, name, count_field, count_width, subheader_field, subheader_width,
            data_field, data_width, maximum_count)

    @property
    def entry_width(self) -> int:
        """
        int: The width of a single (subheader length, data length) pair.
        """

        return self.subheader_width + self.data_width

    def build(self, buffer: BufferType, cursor: int) -> Tuple[SegmentDirectory, int]:
        """
        Decode this family's segment directory starting at `cursor`.

        Parameters
        ----------
        buffer : bytes|bytearray|memoryview
        cursor : int

        Returns
        -------
        directory : SegmentDirectory
        cursor : int
        """

        return build_directory(
            buffer, cursor, self.count_width, (self.subheader_width, self.data_width),
            names=(self.count_field, self.subheader_field, self.data_field),
            maximum_count=self.maximum_count)


class HeaderExtension(namedtuple('HeaderExtension', ('length', 'overflow', 'data'))):
    """
    A user defined or extended header data area. `length` is the declared length,
    including the overflow field. `overflow` is the DES overflow index, and
    `None` when the area is empty. `data` is the unparsed TRE content.
    """

    __slots__ = ()

    @property
    def empty(self) -> bool:
        return self.length == 0


class ExtensionLayout(namedtuple(
        'ExtensionLayout', ('name', 'length_field', 'length_width', 'overflow_field', 'overflow_width'))):
    """
    The layout of a length prefixed header data area, such as UDHDL/UDHOFL/UDHD.
    """

    __slots__ = ()

    def __new__(cls, name, length_field, length_width, overflow_field, overflow_width=3):
        return super(ExtensionLayout, cls).__new__(
            cls, name, length_field, length_width, overflow_field, overflow_width)

    def parse(self, buffer: BufferType, cursor: int) -> Tuple[HeaderExtension, int]:
        """
        Decode the data area starting at `cursor`.

        Parameters
        ----------
        buffer : bytes|bytearray|memoryview
        cursor : int

        Returns
        -------
        extension : HeaderExtension
        cursor : int
        """

        view = as_buffer_view(buffer)
        raw, loc = slice_field(view, cursor, self.length_width, name=self.length_field)
        length = parse_ascii_integer(raw, name=self.length_field, offset=cursor)
        if length == 0:
            return HeaderExtension(0, None, view[loc:loc]), loc
        if length < self.overflow_width:
            raise MalformedLengthField(self.length_field, cursor, bytes(raw))

        raw, end = slice_field(view, loc, self.overflow_width, name=self.overflow_field)
        overflow = parse_ascii_integer(raw, name=self.overflow_field, offset=loc, error_type=MalformedField)
        data, end = slice_field(view, end, length - self.overflow_width, name=self.name)
        return HeaderExtension(length, overflow, data), end
