import pathlib

import pytest

from tests.nitf_builder import build_header, build_file


@pytest.fixture()
def tests_path():
    return pathlib.Path(__file__).parent


@pytest.fixture()
def reference_header():
    return build_header()


@pytest.fixture()
def segments():
    return {
        'ImageSegments': ((20, 100), (15, 0), (30, 64)),
        'GraphicsSegments': ((12, 7), ),
        'TextSegments': ((9, 11), (9, 0)),
        'DataExtensions': ((25, 40), ),
    }


@pytest.fixture()
def nitf_file(tmp_path, segments):
    the_file = tmp_path / 'example.ntf'
    the_file.write_bytes(build_file(segments=segments))
    return the_file
