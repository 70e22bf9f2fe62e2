import numpy
import pytest

from nitfhead.io.base import UnexpectedEndOfBuffer, MalformedCountField, \
    MalformedLengthField, UnsupportedVersion
from nitfhead.io.nitf_elements.base import SegmentDescriptor, SegmentDirectory, \
    BackgroundColor, FieldSpec
from nitfhead.io.nitf_elements.nitf_head import NITF_LAYOUT, NITF_LAYOUT0, LAYOUTS, \
    NITFHeader, get_layout, parse_header, read_header_length

from tests.nitf_builder import build_header, NITF21_FIELDS, NITF20_FIELDS, REFERENCE_IMAGES


def test_reference_values(reference_header):
    header = parse_header(reference_header)
    assert header.FHDR == 'NITF'
    assert header.FVER == '02.10'
    assert header.version == '02.10'
    assert header.CLEVEL == '03'
    assert header.STYPE == 'BF01'
    assert header.OSTAID == 'i_3001a   '
    assert header.FDT == '19970924151919'
    assert header.FTITLE.startswith('Checks an uncompressed 1024x1024')
    assert header.ONAME == 'JITC Fort Huachuca, AZ  '
    assert header.OPHONE == '(520) 538-5458    '
    assert header.FSCLAS == 'U'
    assert header.get_string('FSCLSY', strip=True) == ''
    assert header.get_integer('NUMI') == 3
    assert header.HL == len(reference_header)
    assert header.FL == len(reference_header) + sum(sub + dat for sub, dat in REFERENCE_IMAGES)
    assert header.layout is NITF_LAYOUT


def test_image_directory(reference_header):
    header = parse_header(reference_header)
    directory = header.ImageSegments
    assert isinstance(directory, SegmentDirectory)
    assert len(directory) == 3
    assert [tuple(entry) for entry in directory] == list(REFERENCE_IMAGES)
    assert directory[1] == SegmentDescriptor(439, 0)
    assert list(header.directories.keys()) == [
        'ImageSegments', 'GraphicsSegments', 'TextSegments', 'DataExtensions', 'ReservedExtensions']
    for name in ['GraphicsSegments', 'TextSegments', 'DataExtensions', 'ReservedExtensions']:
        assert len(header.get_directory(name)) == 0
    assert header.SymbolSegments is None
    assert header.get_directory('LabelSegments') is None


def test_background_color(reference_header):
    header = parse_header(reference_header)
    assert header.FBKGC == BackgroundColor(0x10, 0x80, 0xff)
    assert header['FBKGC'] == b'\x10\x80\xff'

    for raw in [b'\x00\x00\x00', b'\xff\x00\x7f', b'abc']:
        header = parse_header(build_header(fields={'FBKGC': raw}))
        assert tuple(header.FBKGC) == tuple(raw)


def test_layout_offsets():
    assert NITF_LAYOUT.offset_of('FHDR') == 0
    assert NITF_LAYOUT.offset_of('FBKGC') == 297
    assert NITF_LAYOUT.offset_of('HL') == 354
    assert NITF_LAYOUT.prefix_length('HL') == 360
    assert NITF_LAYOUT.offset_of('HL') == sum(width for name, width in NITF21_FIELDS[:-1])
    assert NITF_LAYOUT0.offset_of('FSDWNG') == 280
    assert NITF_LAYOUT0.prefix_length('HL') == sum(width for name, width in NITF20_FIELDS)
    with pytest.raises(ValueError):
        NITF_LAYOUT0.offset_of('HL')
    with pytest.raises(ValueError):
        NITF_LAYOUT.offset_of('NUMX')
    with pytest.raises(KeyError):
        NITF_LAYOUT.offset_of('FSDWNG')
    assert NITF_LAYOUT.minimum_length() == 360 + 6*3 + 2*5
    assert NITF_LAYOUT.group('TextSegments').entry_width == 9


def test_widths_sum_to_header_length():
    for version in ['02.10', '02.00']:
        data = build_header(version=version, segments={'ImageSegments': REFERENCE_IMAGES, 'TextSegments': ((9, 11), )})
        header = parse_header(data)
        widths = sum(len(value) for value in header.fields.values())
        widths += sum(len(directory)*header.layout.group(name).entry_width
                      for name, directory in header.directories.items())
        widths += sum(len(extension.data) + (0 if extension.empty else 3) for extension in header.extensions.values())
        assert widths == header.get_bytes_length() == header.header_end == header.HL == len(data)


def test_layout_registry():
    assert get_layout('02.10') is NITF_LAYOUT
    assert get_layout('01.00', profile='NSIF') is NITF_LAYOUT
    assert get_layout('02.00') is NITF_LAYOUT0
    assert get_layout('01.10') is NITF_LAYOUT0
    assert set(LAYOUTS.keys()) == {('NITF', '02.10'), ('NSIF', '01.00'), ('NITF', '02.00'), ('NITF', '01.10')}
    with pytest.raises(UnsupportedVersion):
        get_layout('03.00')
    with pytest.raises(TypeError):
        LAYOUTS[('NITF', '03.00')] = NITF_LAYOUT


def test_unsupported_version():
    with pytest.raises(UnsupportedVersion) as info:
        parse_header(build_header(fields={'FVER': '03.00'}))
    assert info.value.field == 'FVER'
    assert info.value.offset == 4

    with pytest.raises(UnsupportedVersion):
        parse_header(build_header(fields={'FHDR': 'XXXX'}))


def test_nsif(reference_header):
    data = build_header(fields={'FHDR': 'NSIF', 'FVER': '01.00'})
    header = parse_header(data)
    assert header.FHDR == 'NSIF'
    assert header.layout is NITF_LAYOUT
    assert header.ImageSegments == parse_header(reference_header).ImageSegments


def test_truncation(reference_header):
    for end in range(len(reference_header)):
        with pytest.raises(UnexpectedEndOfBuffer):
            parse_header(reference_header[:end])


def test_truncation_with_extensions():
    data = build_header(user_data=b'ABCDEF00005xyzab', extended_data=b'GHIJKL00003uvw')
    parse_header(data)
    for end in range(len(data)):
        with pytest.raises(UnexpectedEndOfBuffer):
            parse_header(data[:end])


def test_malformed_count(reference_header):
    numi = NITF_LAYOUT.prefix_length('HL')
    assert reference_header[numi:numi + 3] == b'003'
    for replacement in [b'   ', b'0 3', b'+03', b'\x00\x00\x03']:
        data = reference_header[:numi] + replacement + reference_header[numi + 3:]
        with pytest.raises(MalformedCountField) as info:
            parse_header(data)
        assert info.value.field == 'NUMI'
        assert info.value.offset == numi


def test_malformed_length(reference_header):
    numi = NITF_LAYOUT.prefix_length('HL')
    lish = numi + 3 + 16
    data = reference_header[:lish] + b'    39' + reference_header[lish + 6:]
    with pytest.raises(MalformedLengthField) as info:
        parse_header(data)
    assert info.value.field == 'LISH002'
    assert info.value.offset == lish


def test_uninterpreted_fields_are_not_validated():
    data = build_header(fields={'CLEVEL': 'zz', 'FSCOP': 'abcde'})
    header = parse_header(data)
    assert header.CLEVEL == 'zz'
    with pytest.raises(MalformedLengthField):
        header.get_integer('FSCOP')


def test_idempotent(reference_header):
    first = parse_header(reference_header)
    second = parse_header(reference_header)
    assert first == second
    assert first is not second
    assert first.to_json() == second.to_json()
    assert first.directories == second.directories
    for name in first.fields:
        assert first[name].tobytes() == second[name].tobytes()

    other = parse_header(build_header(fields={'FTITLE': 'something else'}))
    assert first != other


def test_zero_copy(reference_header):
    buffer = bytearray(reference_header)
    header = parse_header(buffer)
    assert header['FTITLE'].obj is buffer
    buffer[header.offset_of('OSTAID')] = ord('I')
    assert header.OSTAID == 'I_3001a   '


def test_buffer_types_and_start(reference_header):
    prefix = b'\x00'*7
    for buffer in [
            reference_header,
            memoryview(reference_header),
            numpy.frombuffer(reference_header, dtype=numpy.uint8)]:
        assert parse_header(buffer) == parse_header(reference_header)

    header = parse_header(prefix + reference_header + b'trailing data', start=7)
    assert header.start == 7
    assert header.header_end == 7 + len(reference_header)
    assert header.offset_of('HL') == 7 + 354
    assert header.ImageSegments == parse_header(reference_header).ImageSegments


def test_immutable(reference_header):
    header = parse_header(reference_header)
    with pytest.raises(AttributeError):
        header.FTITLE = 'new title'
    with pytest.raises(TypeError):
        header.fields['FTITLE'] = b'new title'
    with pytest.raises(TypeError):
        header.directories['ImageSegments'] = SegmentDirectory()
    with pytest.raises(TypeError):
        hash(header)


def test_all_segment_families():
    segments = {
        'ImageSegments': ((439, 1048576), ),
        'GraphicsSegments': ((258, 1234), (258, 4321)),
        'TextSegments': ((285, 99999), ),
        'DataExtensions': ((200, 123456789), ),
        'ReservedExtensions': ((177, 1234567), )}
    header = parse_header(build_header(segments=segments))
    for name, entries in segments.items():
        assert [tuple(entry) for entry in header.get_directory(name)] == list(entries)
    assert header.get_integer('NUMS') == 2
    assert header.NUMX == '000'


def test_extensions():
    header = parse_header(build_header(user_data=b'ABCDEF00005xyzab', extended_data=None))
    assert header.UserHeader.length == 19
    assert header.UserHeader.overflow == 0
    assert header.UserHeader.data.tobytes() == b'ABCDEF00005xyzab'
    assert header.ExtendedHeader.empty
    assert header.get_integer('UDHDL') == 19
    assert header.get_integer('XHDL') == 0
    as_json = header.to_json()
    assert as_json['UserHeader']['data'] == 'ABCDEF00005xyzab'
    assert as_json['ExtendedHeader']['overflow'] is None


def test_to_json(reference_header):
    as_json = parse_header(reference_header).to_json()
    assert list(as_json.keys())[:4] == ['FHDR', 'FVER', 'CLEVEL', 'STYPE']
    assert as_json['ONAME'] == 'JITC Fort Huachuca, AZ'
    assert as_json['FBKGC'] == [0x10, 0x80, 0xff]
    assert as_json['ImageSegments'] == {
        'subheader_sizes': [entry[0] for entry in REFERENCE_IMAGES],
        'item_sizes': [entry[1] for entry in REFERENCE_IMAGES]}
    assert as_json['NUMX'] == '000'


def test_version_20():
    segments = {'ImageSegments': ((439, 1048576), ), 'SymbolSegments': ((300, 1000), ), 'LabelSegments': ((320, 80), )}
    data = build_header(version='02.00', segments=segments)
    header = parse_header(data)
    assert header.layout is NITF_LAYOUT0
    assert header.FBKGC is None
    assert 'FSDEVT' not in header
    assert header.ONAME == 'JITC Fort Huachuca, AZ     '
    assert header.offset_of('HL') == 354
    assert list(header.directories.keys()) == [
        'ImageSegments', 'SymbolSegments', 'LabelSegments', 'TextSegments', 'DataExtensions', 'ReservedExtensions']
    assert header.GraphicsSegments is None
    assert header.LabelSegments[0] == SegmentDescriptor(320, 80)
    assert header.header_end == header.HL == len(data)
    assert 'FBKGC' not in header.to_json()


def test_version_20_downgrade_event():
    event = 'Declassify on release of event XYZ'
    data = build_header(version='02.00', fields={'FSDWNG': '999998', 'FSDEVT': event})
    header = parse_header(data)
    assert header.get_string('FSDEVT', strip=True) == event
    assert header.offset_of('HL') == 394
    assert header.header_end == len(data)
    assert header.ImageSegments == parse_header(build_header()).ImageSegments

    with pytest.raises(ValueError):
        NITF_LAYOUT0.offset_of('FSCOP')


def test_read_header_length(reference_header):
    prefix = reference_header[:NITF_LAYOUT.prefix_length('HL')]
    header_length, layout = read_header_length(prefix)
    assert header_length == len(reference_header)
    assert layout is NITF_LAYOUT

    with pytest.raises(UnexpectedEndOfBuffer):
        read_header_length(prefix[:-1])

    data = build_header(version='02.00', fields={'FSDWNG': '999998', 'FSDEVT': 'event'})
    header_length, layout = read_header_length(data[:400])
    assert header_length == len(data)
    assert layout is NITF_LAYOUT0


def test_explicit_layout(reference_header):
    header = parse_header(reference_header, layout=NITF_LAYOUT)
    assert header == parse_header(reference_header)
    assert isinstance(header, NITFHeader)
    assert all(isinstance(entry, FieldSpec) for entry in NITF_LAYOUT.entries[:31])


def test_extended_characters():
    header = parse_header(build_header(
        fields={'FTITLE': b'Caf\xe9 image', 'ONAME': b'M\xfcller'}, user_data=b'\x00\xff\x80'))
    assert header.FTITLE == 'Caf\xe9 image' + ' '*70
    assert len(header.FTITLE) == 80
    assert header.ONAME.rstrip() == 'M\xfcller'
    assert header.get_string('FTITLE', strip=True) == 'Caf\xe9 image'
    assert header.to_json()['FTITLE'] == header.get_string('FTITLE', strip=True)
    assert header.to_json()['UserHeader']['data'] == '\x00\xff\x80'
    assert header.get_string('OSTAID', encoding='utf-8') == 'i_3001a   '
