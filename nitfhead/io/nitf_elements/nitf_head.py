"""
The main NITF header definitions: the versioned field layout tables, and the
decoded header record.
"""

__classification__ = "UNCLASSIFIED"
__author__ = "nitfhead contributors"

from collections import OrderedDict
from types import MappingProxyType
from typing import Union, Tuple, Optional, Dict

from nitfhead.compliance import bytes_to_string
from nitfhead.io.base import UnsupportedVersion
from .base import BufferType, as_buffer_view, slice_field, parse_ascii_integer, \
    parse_background_color, BackgroundColor, FieldSpec, SegmentGroupLayout, \
    SegmentDirectory, ExtensionLayout, HeaderExtension
from .security import NITF_SECURITY_FIELDS, NITF_SECURITY_FIELDS0


LayoutEntry = Union[FieldSpec, SegmentGroupLayout, ExtensionLayout]


class FieldLayoutTable(object):
    """
    The ordered layout of every entry in a NITF file header for one version of
    the standard. A table is constructed once, at import, and never modified.
    """

    __slots__ = ('_name', '_versions', '_entries')

    def __init__(self, name: str, versions: Tuple[Tuple[str, str], ...], entries: Tuple[LayoutEntry, ...]):
        """

        Parameters
        ----------
        name : str
        versions : Tuple[Tuple[str, str], ...]
            The (FHDR, FVER) pairs this layout applies to.
        entries : Tuple[FieldSpec|SegmentGroupLayout|ExtensionLayout, ...]
        """

        names = set()
        for entry in entries:
            if not isinstance(entry, (FieldSpec, SegmentGroupLayout, ExtensionLayout)):
                raise TypeError('Got unhandled layout entry type {}'.format(type(entry)))
            if entry.name in names:
                raise ValueError('Layout {} has duplicate entry {}'.format(name, entry.name))
            names.add(entry.name)
        self._name = name
        self._versions = tuple(versions)
        self._entries = tuple(entries)

    @property
    def name(self) -> str:
        """
        str: The layout name.
        """

        return self._name

    @property
    def versions(self) -> Tuple[Tuple[str, str], ...]:
        """
        Tuple[Tuple[str, str], ...]: The (FHDR, FVER) pairs described by this layout.
        """

        return self._versions

    @property
    def entries(self) -> Tuple[LayoutEntry, ...]:
        """
        Tuple: The layout entries, in file order.
        """

        return self._entries

    @property
    def field_names(self) -> Tuple[str, ...]:
        """
        Tuple[str, ...]: The names of the fixed fields, in file order.
        """

        return tuple(entry.name for entry in self._entries if isinstance(entry, FieldSpec))

    @property
    def group_names(self) -> Tuple[str, ...]:
        """
        Tuple[str, ...]: The segment family names, in file order.
        """

        return tuple(entry.name for entry in self._entries if isinstance(entry, SegmentGroupLayout))

    def group(self, name: str) -> SegmentGroupLayout:
        """
        Fetch the repeating group layout for the given segment family.

        Parameters
        ----------
        name : str

        Returns
        -------
        SegmentGroupLayout
        """

        for entry in self._entries:
            if isinstance(entry, SegmentGroupLayout) and entry.name == name:
                return entry
        raise KeyError('Layout {} has no segment family {}'.format(self._name, name))

    def _check_name(self, name):
        if not any(entry.name == name for entry in self._entries):
            raise KeyError('Layout {} has no entry {}'.format(self._name, name))

    def offset_of(self, name: str) -> int:
        """
        The offset of a fixed field from the start of the header. This is only
        defined when no conditional or repeating entry precedes the field.

        Parameters
        ----------
        name : str

        Returns
        -------
        int
        """

        self._check_name(name)
        offset = 0
        for entry in self._entries:
            if entry.name == name:
                if not isinstance(entry, FieldSpec):
                    raise ValueError('Entry {} is not a fixed field'.format(name))
                return offset
            if not isinstance(entry, FieldSpec) or entry.conditional:
                raise ValueError(
                    'The offset of field {} in layout {} depends on the value of '
                    'entry {}'.format(name, self._name, entry.name))
            offset += entry.width
        raise KeyError('Layout {} has no field {}'.format(self._name, name))

    def prefix_length(self, name: str) -> int:
        """
        The largest possible number of bytes from the start of the header through
        the end of the given fixed field, counting every conditional field as present.

        Parameters
        ----------
        name : str

        Returns
        -------
        int
        """

        self._check_name(name)
        length = 0
        for entry in self._entries:
            if not isinstance(entry, FieldSpec):
                raise ValueError('Field {} does not precede the repeating groups'.format(name))
            length += entry.width
            if entry.name == name:
                return length
        raise KeyError('Layout {} has no field {}'.format(self._name, name))

    def minimum_length(self) -> int:
        """
        The smallest size in bytes of a header following this layout.

        Returns
        -------
        int
        """

        length = 0
        for entry in self._entries:
            if isinstance(entry, FieldSpec):
                length += 0 if entry.conditional else entry.width
            elif isinstance(entry, SegmentGroupLayout):
                length += entry.count_width
            else:
                length += entry.length_width
        return length

    def __repr__(self):
        return '{}({!r})'.format(self.__class__.__name__, self._name)


#############
# NITF 2.1 version

ImageSegmentsType = SegmentGroupLayout('ImageSegments', 'NUMI', 3, 'LISH', 6, 'LI', 10)
GraphicsSegmentsType = SegmentGroupLayout('GraphicsSegments', 'NUMS', 3, 'LSSH', 4, 'LS', 6)
TextSegmentsType = SegmentGroupLayout('TextSegments', 'NUMT', 3, 'LTSH', 4, 'LT', 5)
DataExtensionsType = SegmentGroupLayout('DataExtensions', 'NUMDES', 3, 'LDSH', 4, 'LD', 9)
ReservedExtensionsType = SegmentGroupLayout('ReservedExtensions', 'NUMRES', 3, 'LRESH', 4, 'LRE', 7)
UserHeaderType = ExtensionLayout('UserHeader', 'UDHDL', 5, 'UDHOFL', 3)
ExtendedHeaderType = ExtensionLayout('ExtendedHeader', 'XHDL', 5, 'XHDLOFL', 3)

NITF_LAYOUT = FieldLayoutTable(
    'NITF 2.1',
    (('NITF', '02.10'), ('NSIF', '01.00')),
    (FieldSpec('FHDR', 4), FieldSpec('FVER', 5), FieldSpec('CLEVEL', 2), FieldSpec('STYPE', 4),
     FieldSpec('OSTAID', 10), FieldSpec('FDT', 14), FieldSpec('FTITLE', 80)) +
    NITF_SECURITY_FIELDS +
    (FieldSpec('FSCOP', 5), FieldSpec('FSCPYS', 5), FieldSpec('ENCRYP', 1), FieldSpec('FBKGC', 3),
     FieldSpec('ONAME', 24), FieldSpec('OPHONE', 18), FieldSpec('FL', 12), FieldSpec('HL', 6),
     ImageSegmentsType, GraphicsSegmentsType, FieldSpec('NUMX', 3),
     TextSegmentsType, DataExtensionsType, ReservedExtensionsType,
     UserHeaderType, ExtendedHeaderType))
"""
The main NITF file header for NITF version 2.1 - see standards document
MIL-STD-2500C for more information. NSIF 1.0 shares this layout.
"""


#############
# NITF 2.0 version

SymbolSegmentsType = SegmentGroupLayout('SymbolSegments', 'NUMS', 3, 'LSSH', 4, 'LS', 6)
LabelSegmentsType = SegmentGroupLayout('LabelSegments', 'NUML', 3, 'LLSH', 4, 'LL', 3)

NITF_LAYOUT0 = FieldLayoutTable(
    'NITF 2.0',
    (('NITF', '02.00'), ('NITF', '01.10')),
    (FieldSpec('FHDR', 4), FieldSpec('FVER', 5), FieldSpec('CLEVEL', 2), FieldSpec('STYPE', 4),
     FieldSpec('OSTAID', 10), FieldSpec('FDT', 14), FieldSpec('FTITLE', 80)) +
    NITF_SECURITY_FIELDS0 +
    (FieldSpec('FSCOP', 5), FieldSpec('FSCPYS', 5), FieldSpec('ENCRYP', 1),
     FieldSpec('ONAME', 27), FieldSpec('OPHONE', 18), FieldSpec('FL', 12), FieldSpec('HL', 6),
     ImageSegmentsType, SymbolSegmentsType, LabelSegmentsType,
     TextSegmentsType, DataExtensionsType, ReservedExtensionsType,
     UserHeaderType, ExtendedHeaderType))
"""
The main NITF file header for NITF version 2.0 - see standards document
MIL-STD-2500A for more information.
"""


LAYOUTS = MappingProxyType(OrderedDict(
    (version, layout) for layout in (NITF_LAYOUT, NITF_LAYOUT0) for version in layout.versions))
"""
The layout tables, keyed by (FHDR, FVER).
"""

SEGMENT_FAMILIES = (
    'ImageSegments', 'GraphicsSegments', 'SymbolSegments', 'LabelSegments',
    'TextSegments', 'DataExtensions', 'ReservedExtensions')
"""
The segment family names across all supported versions.
"""


def get_layout(version: str, profile: str = 'NITF', offset: Optional[int] = None) -> FieldLayoutTable:
    """
    Select the field layout table for the given file profile name and version.

    Parameters
    ----------
    version : str
        The FVER value, e.g. `02.10`.
    profile : str
        The FHDR value, `NITF` or `NSIF`.
    offset : None|int
        The offset of the FVER field, for error reporting.

    Returns
    -------
    FieldLayoutTable

    Raises
    ------
    UnsupportedVersion
    """

    layout = LAYOUTS.get((profile, version), None)
    if layout is None:
        raise UnsupportedVersion(
            'Unsupported file profile and version {}{}'.format(profile, version),
            field='FVER', offset=offset)
    return layout


def _decode_label(raw):
    return bytes(raw).decode('ascii', 'replace')


def _select_layout(view, start):
    raw_profile, loc = slice_field(view, start, 4, name='FHDR')
    raw_version, _ = slice_field(view, loc, 5, name='FVER')
    return get_layout(_decode_label(raw_version), profile=_decode_label(raw_profile), offset=loc)


def _decode_entries(view, start, layout, stop_after=None):
    fields = OrderedDict()
    offsets = OrderedDict()
    directories = OrderedDict()
    extensions = OrderedDict()

    loc = start
    for entry in layout.entries:
        if isinstance(entry, FieldSpec):
            if not entry.is_present(fields):
                continue
            offsets[entry.name] = loc
            fields[entry.name], loc = slice_field(view, loc, entry.width, name=entry.name)
            if entry.name == stop_after:
                break
        elif isinstance(entry, SegmentGroupLayout):
            directory, end = entry.build(view, loc)
            offsets[entry.count_field] = loc
            fields[entry.count_field] = view[loc:loc + entry.count_width]
            directories[entry.name] = directory
            loc = end
        else:
            offsets[entry.length_field] = loc
            extension, end = entry.parse(view, loc)
            fields[entry.length_field] = view[loc:loc + entry.length_width]
            extensions[entry.name] = extension
            loc = end
    return fields, offsets, directories, extensions, loc


def read_header_length(
        buffer: BufferType,
        start: int = 0,
        layout: Optional[FieldLayoutTable] = None) -> Tuple[int, FieldLayoutTable]:
    """
    Decode only the fixed fields through the header length field.

    Parameters
    ----------
    buffer : bytes|bytearray|memoryview
        A buffer holding at least the leading fixed fields of the header.
    start : int
        The offset of the header in `buffer`.
    layout : None|FieldLayoutTable
        The layout to use, selected from FHDR/FVER if not provided.

    Returns
    -------
    header_length : int
    layout : FieldLayoutTable
    """

    view = as_buffer_view(buffer)
    if layout is None:
        layout = _select_layout(view, start)
    fields, offsets, _, _, _ = _decode_entries(view, start, layout, stop_after='HL')
    if 'HL' not in fields:
        raise ValueError('Layout {} has no header length field'.format(layout.name))
    return parse_ascii_integer(fields['HL'], name='HL', offset=offsets['HL']), layout


def parse_header(
        buffer: BufferType,
        start: int = 0,
        layout: Optional[FieldLayoutTable] = None) -> 'NITFHeader':
    """
    Decode the NITF file header, including every segment directory.

    Parameters
    ----------
    buffer : bytes|bytearray|memoryview|mmap.mmap
        The buffer containing (at least) the complete file header. The returned
        header borrows from this buffer.
    start : int
        The offset of the header in `buffer`.
    layout : None|FieldLayoutTable
        The layout to use, selected from FHDR/FVER if not provided.

    Returns
    -------
    NITFHeader

    Raises
    ------
    UnexpectedEndOfBuffer
    MalformedCountField
    MalformedLengthField
    CountOverflow
    UnsupportedVersion
    """

    view = as_buffer_view(buffer)
    if layout is None:
        layout = _select_layout(view, start)
    fields, offsets, directories, extensions, loc = _decode_entries(view, start, layout)
    return NITFHeader(layout, fields, offsets, directories, extensions, start, loc)


class NITFHeader(object):
    """
    The decoded NITF file header. Fixed fields are retained as raw views of the
    source buffer, padding included, so the header must not outlive that buffer.
    Instances are constructed by :func:`parse_header`, and are not modified after.
    """

    __slots__ = (
        '_layout', '_fields', '_offsets', '_directories', '_extensions',
        '_background_color', '_start', '_end')

    def __init__(
            self,
            layout: FieldLayoutTable,
            fields: Dict[str, memoryview],
            offsets: Dict[str, int],
            directories: Dict[str, SegmentDirectory],
            extensions: Dict[str, HeaderExtension],
            start: int,
            end: int):
        self._layout = layout
        self._fields = MappingProxyType(OrderedDict(fields))
        self._offsets = MappingProxyType(OrderedDict(offsets))
        self._directories = MappingProxyType(OrderedDict(directories))
        self._extensions = MappingProxyType(OrderedDict(extensions))
        self._background_color = parse_background_color(fields['FBKGC']) if 'FBKGC' in fields else None
        self._start = start
        self._end = end

    @property
    def layout(self) -> FieldLayoutTable:
        """
        FieldLayoutTable: The layout used in decoding.
        """

        return self._layout

    @property
    def fields(self) -> MappingProxyType:
        """
        Mapping[str, memoryview]: The raw fixed fields, including count and length
        fields, in file order.
        """

        return self._fields

    @property
    def directories(self) -> MappingProxyType:
        """
        Mapping[str, SegmentDirectory]: The segment directory of each family, in file order.
        """

        return self._directories

    @property
    def extensions(self) -> MappingProxyType:
        """
        Mapping[str, HeaderExtension]: The user defined and extended header data.
        """

        return self._extensions

    @property
    def start(self) -> int:
        """
        int: The offset of the header in the source buffer.
        """

        return self._start

    @property
    def header_end(self) -> int:
        """
        int: The offset in the source buffer immediately following the header.
        """

        return self._end

    def get_bytes_length(self) -> int:
        """
        Get the number of bytes decoded.

        Returns
        -------
        int
        """

        return self._end - self._start

    def offset_of(self, name: str) -> int:
        """
        The offset of the named field in the source buffer.

        Parameters
        ----------
        name : str

        Returns
        -------
        int
        """

        return self._offsets[name]

    def __getitem__(self, name: str) -> memoryview:
        return self._fields[name]

    def __contains__(self, name):
        return name in self._fields

    def get_string(self, name: str, strip: bool = False, encoding: str = 'latin-1') -> str:
        """
        Get the named field as a string.

        Parameters
        ----------
        name : str
        strip : bool
            Strip surrounding white space?
        encoding : str
            Defaults to `latin-1`, which maps every byte to one character.

        Returns
        -------
        str
        """

        value = bytes_to_string(self._fields[name], encoding=encoding)
        return value.strip() if strip else value

    def get_integer(self, name: str) -> int:
        """
        Get the named field as an unsigned ASCII decimal integer.

        Parameters
        ----------
        name : str

        Returns
        -------
        int

        Raises
        ------
        MalformedLengthField
        """

        return parse_ascii_integer(self._fields[name], name=name, offset=self._offsets[name])

    def get_directory(self, name: str) -> Optional[SegmentDirectory]:
        """
        Get the segment directory for the named family.

        Parameters
        ----------
        name : str

        Returns
        -------
        None|SegmentDirectory
            `None` for a family not defined in this version.
        """

        return self._directories.get(name, None)

    @property
    def version(self) -> str:
        """
        str: The file version.
        """

        return self.get_string('FVER')

    @property
    def FHDR(self) -> str:
        """
        str: File Profile Name. `NITF`, or `NSIF` for the equivalent NSIF 1.0.
        """

        return self.get_string('FHDR')

    @property
    def FVER(self) -> str:
        """
        str: File Version, e.g. `02.10`.
        """

        return self.get_string('FVER')

    @property
    def CLEVEL(self) -> str:
        """
        str: Complexity Level required to interpret fully all components of the file.
        """

        return self.get_string('CLEVEL')

    @property
    def STYPE(self) -> str:
        """
        str: Standard Type. `BF01` for files formatted using ISO/IEC IS 12087-5.
        """

        return self.get_string('STYPE')

    @property
    def OSTAID(self) -> str:
        """
        str: Originating Station ID.
        """

        return self.get_string('OSTAID')

    @property
    def FDT(self) -> str:
        """
        str: File Date and Time, in the format `YYYYMMDDhhmmss` (or `DDhhmmssZMONYY` for 2.0).
        """

        return self.get_string('FDT')

    @property
    def FTITLE(self) -> str:
        """
        str: File Title.
        """

        return self.get_string('FTITLE')

    @property
    def FBKGC(self) -> Optional[BackgroundColor]:
        """
        None|BackgroundColor: File Background Color. Not defined for version 2.0.
        """

        return self._background_color

    @property
    def ONAME(self) -> str:
        """
        str: Originator Name.
        """

        return self.get_string('ONAME')

    @property
    def OPHONE(self) -> str:
        """
        str: Originator Phone Number.
        """

        return self.get_string('OPHONE')

    @property
    def FL(self) -> int:
        """
        int: The declared size in bytes of the entire file.
        """

        return self.get_integer('FL')

    @property
    def HL(self) -> int:
        """
        int: The declared length of this header in bytes.
        """

        return self.get_integer('HL')

    @property
    def UserHeader(self) -> HeaderExtension:
        """
        HeaderExtension: User defined header data.
        """

        return self._extensions['UserHeader']

    @property
    def ExtendedHeader(self) -> HeaderExtension:
        """
        HeaderExtension: Extended header data - the TRE list.
        """

        return self._extensions['ExtendedHeader']

    def __getattr__(self, item):
        if item.startswith('_'):
            raise AttributeError(item)
        if item in SEGMENT_FAMILIES:
            return self._directories.get(item, None)
        if item in self._fields:
            return self.get_string(item)
        raise AttributeError(
            '{} has no attribute {}'.format(self.__class__.__name__, item))

    def __eq__(self, other):
        if not isinstance(other, NITFHeader):
            return NotImplemented
        return self._layout is other._layout and \
            list(self._fields.keys()) == list(other._fields.keys()) and \
            all(self._fields[key] == other._fields[key] for key in self._fields) and \
            dict(self._directories) == dict(other._directories) and \
            dict(self._extensions) == dict(other._extensions)

    __hash__ = None

    def __repr__(self):
        return '<{}({}, {} bytes)>'.format(
            self.__class__.__name__, self._layout.name, self.get_bytes_length())

    def to_json(self):
        """
        Get a json style representation of the header.

        Returns
        -------
        dict
        """

        out = OrderedDict()
        for entry in self._layout.entries:
            if isinstance(entry, FieldSpec):
                if entry.name not in self._fields:
                    continue
                if entry.name == 'FBKGC':
                    out[entry.name] = list(self._background_color)
                else:
                    out[entry.name] = self.get_string(entry.name, strip=True)
            elif isinstance(entry, SegmentGroupLayout):
                out[entry.name] = self._directories[entry.name].to_json()
            else:
                extension = self._extensions[entry.name]
                out[entry.name] = OrderedDict([
                    ('length', extension.length),
                    ('overflow', extension.overflow),
                    ('data', bytes_to_string(extension.data, encoding='latin-1'))])
        return out
