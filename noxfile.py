import os

import nox

_PYTHON_VERSIONS = ['3.6', '3.11']
_LOCATIONS = ["tests"]


# Run only test session when no arguments are specified
nox.options.sessions = ["test"]


@nox.session(venv_backend="conda")
@nox.parametrize('version', _PYTHON_VERSIONS)
def test(session, version):
    args = session.posargs or _LOCATIONS
    env = {}
    # real NITF files for tests/io/test_nitf_headers.py, those tests are skipped without it
    if 'NITFHEAD_TEST_PATH' in os.environ:
        env['NITFHEAD_TEST_PATH'] = os.environ['NITFHEAD_TEST_PATH']
    session.conda_install(f'python={version}')
    session.install('.[all]')
    session.run("pytest", *args, env=env)
