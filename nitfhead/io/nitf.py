"""
Module laying out basic functionality for locating the segments of a NITF file
from the directories declared in its file header.
"""

__classification__ = "UNCLASSIFIED"
__author__ = "nitfhead contributors"


import logging
import os
from collections import OrderedDict, namedtuple
from io import BytesIO
from typing import Union, Tuple, BinaryIO, Optional

import numpy

from nitfhead.io.base import NITFHeadIOError, MalformedLengthField
from nitfhead.io.nitf_elements.base import SegmentDirectory
from nitfhead.io.nitf_elements.nitf_head import NITFHeader, LAYOUTS, \
    read_header_length, parse_header
from nitfhead.io.utils import is_file_like, is_nitf


logger = logging.getLogger(__name__)

_UNKNOWN_FILE_LENGTH = 999999999999

# the most bytes that could precede the end of the header length field, in any layout
_HEADER_PREFIX_SIZE = max(layout.prefix_length('HL') for layout in LAYOUTS.values())


class SegmentOffsets(namedtuple(
        'SegmentOffsets', ('subheader_offsets', 'subheader_sizes', 'item_offsets', 'item_sizes'))):
    """
    The absolute file offsets and sizes of the segments of one family, as
    int64 numpy arrays.
    """

    __slots__ = ()

    @property
    def count(self) -> int:
        return int(self.subheader_offsets.size)


def element_offsets(cur_loc: int, directory: SegmentDirectory) -> Tuple[int, SegmentOffsets]:
    """
    Convert the relative lengths of a segment directory into absolute offsets by
    running prefix sums.

    Parameters
    ----------
    cur_loc : int
        The offset of the first segment of this family.
    directory : SegmentDirectory

    Returns
    -------
    cur_loc : int
        The offset immediately following the last segment of this family.
    offsets : SegmentOffsets
    """

    subhead_sizes = directory.subheader_sizes
    item_sizes = directory.item_sizes
    if subhead_sizes.size == 0:
        empty = numpy.zeros((0, ), dtype=numpy.int64)
        return cur_loc, SegmentOffsets(empty, subhead_sizes, empty, item_sizes)

    subhead_offsets = numpy.full(subhead_sizes.shape, cur_loc, dtype=numpy.int64)
    subhead_offsets[1:] += numpy.cumsum(subhead_sizes[:-1]) + numpy.cumsum(item_sizes[:-1])
    item_offsets = subhead_offsets + subhead_sizes
    cur_loc = int(item_offsets[-1] + item_sizes[-1])
    return cur_loc, SegmentOffsets(subhead_offsets, subhead_sizes, item_offsets, item_sizes)


class NITFDetails(object):
    """
    This class allows for somewhat general parsing of the header information in
    a NITF 2.0 or 2.1 file, and fetching of the raw segment subheaders and data.
    """

    __slots__ = (
        '_file_name', '_file_object', '_close_after', '_file_size',
        '_nitf_version', '_header_bytes', '_nitf_header', '_segments')

    def __init__(self, file_object: Union[str, bytes, bytearray, BinaryIO]):
        """

        Parameters
        ----------
        file_object : str|bytes|BinaryIO
            file name for a NITF file, the bytes of a NITF file, or file like
            object opened in binary mode.
        """

        self._file_name = None
        self._file_object = None
        self._close_after = False
        self._segments = OrderedDict()

        if isinstance(file_object, str):
            if not os.path.isfile(file_object):
                raise NITFHeadIOError('Path {} is not a file'.format(file_object))
            self._file_name = file_object
            self._file_object = open(file_object, 'rb')
            self._close_after = True
        elif isinstance(file_object, (bytes, bytearray, memoryview)):
            self._file_name = '<bytes>'
            self._file_object = BytesIO(file_object)
            self._close_after = True
        elif is_file_like(file_object):
            self._file_object = file_object
            if hasattr(file_object, 'name') and isinstance(file_object.name, str):
                self._file_name = file_object.name
            else:
                self._file_name = '<file like object>'
        else:
            raise TypeError('file_object is required to be a file like object, or string path to a file.')

        try:
            self._initialize()
        except Exception:
            self.close()
            raise

    def _initialize(self) -> None:
        is_nitf_file, vers_string = is_nitf(self._file_object, return_version=True)
        if not is_nitf_file:
            raise NITFHeadIOError('File {} is not a NITF file'.format(self._file_name))
        self._nitf_version = vers_string

        self._file_object.seek(0, os.SEEK_END)
        self._file_size = self._file_object.tell()

        # fetch the fixed prefix, to find out how long the header is
        self._file_object.seek(0, os.SEEK_SET)
        prefix = self._file_object.read(_HEADER_PREFIX_SIZE)
        header_length, layout = read_header_length(prefix)
        logger.debug('File {} uses layout {} with header length {}'.format(self._file_name, layout.name, header_length))

        # go back to the beginning of the file, and parse the whole header
        self._file_object.seek(0, os.SEEK_SET)
        self._header_bytes = self._file_object.read(header_length)
        self._nitf_header = parse_header(self._header_bytes, 0, layout=layout)

        if self._nitf_header.header_end != header_length:
            logger.critical(
                'Stated header length of file {} is {},\n\t'
                'while the interpreted header length is {}.\n\t'
                'This will likely be accompanied by serious parsing failures.'.format(
                    self._file_name, header_length, self._nitf_header.header_end))
        self._check_file_length()

        cur_loc = header_length
        for name, directory in self._nitf_header.directories.items():
            cur_loc, offsets = element_offsets(cur_loc, directory)
            self._segments[name] = offsets
            self._check_segment_bounds(name, offsets)

    def _check_file_length(self) -> None:
        try:
            file_length = self._nitf_header.FL
        except MalformedLengthField as e:
            logger.warning('File {} has an uninterpretable file length field.\n\t{}'.format(self._file_name, e))
            return

        if file_length == _UNKNOWN_FILE_LENGTH:
            logger.info('File {} declares an unknown file length'.format(self._file_name))
        elif file_length != self._file_size:
            logger.warning(
                'File {} declares file length {}, but has size {}'.format(
                    self._file_name, file_length, self._file_size))

    def _check_segment_bounds(self, name: str, offsets: SegmentOffsets) -> None:
        if offsets.count == 0:
            return
        segment_ends = offsets.item_offsets + offsets.item_sizes
        beyond = numpy.nonzero(segment_ends > self._file_size)[0]
        if beyond.size > 0:
            index = int(beyond[0])
            raise NITFHeadIOError(
                '{} entry {} of file {} extends to byte {}, but the file has size {}. '
                'The file is truncated or corrupt.'.format(
                    name, index, self._file_name, int(segment_ends[index]), self._file_size))

    @property
    def file_name(self) -> Optional[str]:
        """
        None|str: the file name, which may not be useful if the input was based
        on a file like object
        """

        return self._file_name

    @property
    def file_object(self) -> BinaryIO:
        """
        BinaryIO: The binary file object
        """

        return self._file_object

    @property
    def file_size(self) -> int:
        """
        int: The actual size of the file in bytes.
        """

        return self._file_size

    @property
    def nitf_header(self) -> NITFHeader:
        """
        NITFHeader: the nitf header object
        """

        return self._nitf_header

    @property
    def nitf_version(self) -> str:
        """
        str: The NITF version number.
        """

        return self._nitf_version

    @property
    def segment_families(self) -> Tuple[str, ...]:
        """
        Tuple[str, ...]: The segment families defined for this version, in file order.
        """

        return tuple(self._segments.keys())

    def get_segment_offsets(self, family: str) -> SegmentOffsets:
        """
        Gets the offsets and sizes for the given segment family.

        Parameters
        ----------
        family : str
            One of the family names, e.g. `ImageSegments`.

        Returns
        -------
        SegmentOffsets
        """

        if family not in self._segments:
            raise KeyError(
                'Segment family {} is not defined for NITF version {}'.format(family, self._nitf_version))
        return self._segments[family]

    def _image_attribute(self, attribute):
        offsets = self._segments['ImageSegments']
        if offsets.count == 0:
            return None
        return getattr(offsets, attribute)

    @property
    def img_subheader_offsets(self) -> Optional[numpy.ndarray]:
        """
        None|numpy.ndarray: The image subheader offsets, `None` if there are no image segments.
        """

        return self._image_attribute('subheader_offsets')

    @property
    def img_subheader_sizes(self) -> Optional[numpy.ndarray]:
        """
        None|numpy.ndarray: The image subheader sizes, `None` if there are no image segments.
        """

        return self._image_attribute('subheader_sizes')

    @property
    def img_segment_offsets(self) -> Optional[numpy.ndarray]:
        """
        None|numpy.ndarray: The image data offsets, `None` if there are no image segments.
        """

        return self._image_attribute('item_offsets')

    @property
    def img_segment_sizes(self) -> Optional[numpy.ndarray]:
        """
        None|numpy.ndarray: The image data sizes, `None` if there are no image segments.
        """

        return self._image_attribute('item_sizes')

    def _fetch_item(
            self,
            name: str,
            index: int,
            offsets: numpy.ndarray,
            sizes: numpy.ndarray) -> bytes:
        if not (0 <= index < offsets.size):
            raise IndexError(
                'There are only {0:d} {1:s}, invalid {1:s} position {2:d}'.format(
                    offsets.size, name, index))
        the_offset = offsets[index]
        the_size = sizes[index]
        self._file_object.seek(int(the_offset), os.SEEK_SET)
        the_item = self._file_object.read(int(the_size))
        return the_item

    def get_subheader_bytes(self, family: str, index: int) -> bytes:
        """
        Fetches the subheader of the given segment.

        Parameters
        ----------
        family : str
        index : int

        Returns
        -------
        bytes
        """

        offsets = self.get_segment_offsets(family)
        return self._fetch_item(
            '{} subheaders'.format(family), index, offsets.subheader_offsets, offsets.subheader_sizes)

    def get_item_bytes(self, family: str, index: int) -> bytes:
        """
        Fetches the data of the given segment.

        Parameters
        ----------
        family : str
        index : int

        Returns
        -------
        bytes
        """

        offsets = self.get_segment_offsets(family)
        return self._fetch_item(
            '{} items'.format(family), index, offsets.item_offsets, offsets.item_sizes)

    def get_image_subheader_bytes(self, index: int) -> bytes:
        """
        Fetches the image segment subheader at the given index.

        Parameters
        ----------
        index : int

        Returns
        -------
        bytes
        """

        return self.get_subheader_bytes('ImageSegments', index)

    def get_image_bytes(self, index: int) -> bytes:
        """
        Fetches the image bytes at the given index.

        Parameters
        ----------
        index : int

        Returns
        -------
        bytes
        """

        return self.get_item_bytes('ImageSegments', index)

    def get_headers_json(self) -> dict:
        """
        Get a json (i.e. dict) representation of the NITF header, and the
        location of every segment.

        Returns
        -------
        dict
        """

        out = OrderedDict([('header', self._nitf_header.to_json()), ])
        for name, offsets in self._segments.items():
            out[name] = [
                OrderedDict([
                    ('subheader_offset', int(offsets.subheader_offsets[i])),
                    ('subheader_size', int(offsets.subheader_sizes[i])),
                    ('item_offset', int(offsets.item_offsets[i])),
                    ('item_size', int(offsets.item_sizes[i]))])
                for i in range(offsets.count)]
        return out

    def close(self) -> None:
        """
        Close the file object, if it was opened by this instance.
        """

        if self._close_after:
            self._close_after = False
            self._file_object.close()

    def __enter__(self):
        return self

    def __exit__(self, exception_type, exception_value, traceback):
        self.close()

    def __del__(self):
        # noinspection PyBroadException
        try:
            self.close()
        except Exception:
            pass
