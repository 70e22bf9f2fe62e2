"""
A utility for dumping a NITF file header and its segment directory to the console.

To dump NITF header information to a text file from the command-line

>>> python -m nitfhead.utils.nitf_utils <path to nitf file>

For a basic help on the command-line, check

>>> python -m nitfhead.utils.nitf_utils --help

"""

__classification__ = "UNCLASSIFIED"
__author__ = "nitfhead contributors"


import argparse
import functools
import logging
import os
import sys
from io import StringIO
from typing import Union

from nitfhead.io.nitf import NITFDetails
from nitfhead.io.nitf_elements.base import FieldSpec, SegmentGroupLayout
from nitfhead.io.nitf_elements.nitf_head import NITFHeader


logger = logging.getLogger(__name__)

# Custom print function
print_func = print


############
# helper methods

def _filter_files(input_path):
    """
    Determine if a given input path corresponds to a NITF 2.1 or 2.0 file.

    Parameters
    ----------
    input_path : str

    Returns
    -------
    bool
    """

    if not os.path.isfile(input_path):
        return False
    with open(input_path, 'rb') as fi:
        check = fi.read(9)
    return check in [b'NITF02.10', b'NITF02.00', b'NITF01.10', b'NSIF01.00']


def _create_default_output_file(input_file, output_directory=None):
    if not isinstance(input_file, str):
        if output_directory is None:
            return os.path.expanduser('~/Desktop/header_dump.txt')
        else:
            return os.path.join(output_directory, 'header_dump.txt')

    if output_directory is None:
        return os.path.splitext(input_file)[0] + '.header_dump.txt'
    else:
        return os.path.join(output_directory, os.path.splitext(os.path.split(input_file)[1])[0] + '.header_dump.txt')


def _decode_effort(value):
    # type: (bytes) -> Union[bytes, str]

    # noinspection PyBroadException
    try:
        return value.decode()
    except Exception:
        return value


############
# printing methods

def _print_file_header(hdr):
    # type: (NITFHeader) -> None

    for entry in hdr.layout.entries:
        if isinstance(entry, FieldSpec):
            if entry.name not in hdr:
                continue
            if entry.name == 'FBKGC':
                value = hdr.FBKGC
                print_func('FBKGC = {} {} {}'.format(value.red, value.green, value.blue))
            else:
                print_func('{} = {}'.format(entry.name, _decode_effort(bytes(hdr[entry.name]))))
        elif isinstance(entry, SegmentGroupLayout):
            print_func('{} = {}'.format(entry.count_field, hdr.get_directory(entry.name).count))
        else:
            extension = hdr.extensions[entry.name]
            print_func('{} = {}'.format(entry.length_field, extension.length))
            if not extension.empty:
                print_func('{} = {}'.format(entry.overflow_field, extension.overflow))
                print_func('{}.data = {}'.format(entry.name, _decode_effort(bytes(extension.data))))


def _print_segments(details):
    # type: (NITFDetails) -> None
    layout = details.nitf_header.layout
    for family in details.segment_families:
        offsets = details.get_segment_offsets(family)
        if offsets.count == 0:
            continue
        group = layout.group(family)
        print_func('----- {} -----'.format(family))
        for i in range(offsets.count):
            print_func(
                '[{0:d}] {1:s}{0:03d} = {2:d} @ {3:d}, {4:s}{0:03d} = {5:d} @ {6:d}'.format(
                    i + 1,
                    group.subheader_field, int(offsets.subheader_sizes[i]), int(offsets.subheader_offsets[i]),
                    group.data_field, int(offsets.item_sizes[i]), int(offsets.item_offsets[i])))
        print_func('')


def print_nitf(file_name, dest=sys.stdout):
    """
    Worker function to dump the NITF header and segment locations to the
    provided destination.

    Parameters
    ----------
    file_name : str|BinaryIO
    dest : TextIO
    """

    # Configure print function for desired destination
    #    - e.g., stdout, string buffer, file
    global print_func
    print_func = functools.partial(print, file=dest)

    with NITFDetails(file_name) as details:
        if isinstance(file_name, str):
            print_func('')
            print_func('Details for file {}'.format(file_name))
            print_func('')

        print_func('----- File Header -----')
        _print_file_header(details.nitf_header)
        print_func('')
        _print_segments(details)


##########
# method for dumping file using the print method(s)

def dump_nitf_file(file_name, dest, over_write=True):
    """
    Utility to dump the NITF header and segment locations to a configurable
    destination.

    Parameters
    ----------
    file_name : str|BinaryIO
        The path to or file-like object containing a NITF 2.1 or 2.0 file.
    dest : str
        'stdout', 'string', 'default' (will use `file_name+'.header_dump.txt'`),
        or the path to an output file.
    over_write : bool
        If `True`, then overwrite the destination file, otherwise append to the
        file.

    Returns
    -------
    None|str
        There is only a return value if `dest=='string'`.
    """

    if dest == 'stdout':
        print_nitf(file_name, dest=sys.stdout)
        return
    if dest == 'string':
        out = StringIO()
        print_nitf(file_name, dest=out)
        value = out.getvalue()
        out.close()  # free the buffer
        return value

    the_out_file = _create_default_output_file(file_name) if dest == 'default' else dest
    if not os.path.exists(the_out_file) or over_write:
        with open(the_out_file, 'w') as the_file:
            print_nitf(file_name, dest=the_file)
    else:
        with open(the_out_file, 'a') as the_file:
            print_nitf(file_name, dest=the_file)


def main(args=None):
    parser = argparse.ArgumentParser(
        description='Utility to dump NITF 2.1 or 2.0 file headers and segment locations.',
        formatter_class=argparse.RawTextHelpFormatter)
    parser.add_argument(
        'input_file',
        help='The path to a nitf file, or directory to search for NITF files.')
    parser.add_argument(
        '-o', '--output', default='default',
        help="'default', 'stdout', or the path for an output file.\n"
             "* 'default', the output will be at '<input path>.header_dump.txt' \n"
             "   This will be overwritten, if it exists.\n"
             "* 'stdout' will print the information to standard out.\n"
             "* Otherwise, "
             "     if `input_file` is a directory, this is expected to be the path to\n"
             "       an output directory for the output following the default naming scheme.\n"
             "*    if `input_file` a file path, this is expected to be the path to a file \n"
             "       and output will be written there.\n"
             "  In either case, existing output files will be overwritten.")
    args = parser.parse_args(args)

    if os.path.isdir(args.input_file):
        entries = [os.path.join(args.input_file, part) for part in os.listdir(args.input_file)]
        for entry in filter(_filter_files, entries):
            if args.output == 'stdout':
                output = args.output
            elif args.output == 'default':
                output = _create_default_output_file(entry, output_directory=None)
            else:
                if not os.path.isdir(args.output):
                    raise IOError(
                        'Provided input is a directory, so provided output must '
                        'be a directory, `stdout`, or `default`.')
                output = _create_default_output_file(entry, output_directory=args.output)
            logger.info('Dumping {} to {}'.format(entry, output))
            dump_nitf_file(entry, output)
    else:
        dump_nitf_file(args.input_file, args.output)


if __name__ == '__main__':
    main()
