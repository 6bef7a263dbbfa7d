"""
Top level of the testing suites!

"""
from __future__ import annotations

import pytest
import qscodec


def pytest_addoption(
    parser: pytest.Parser,
):
    parser.addoption(
        "--ll",
        action="store",
        dest='loglevel',
        default='ERROR', help="logging level to set when testing"
    )


@pytest.fixture(scope='session', autouse=True)
def loglevel(request):
    orig = qscodec.log._default_loglevel
    level = qscodec.log._default_loglevel = request.config.option.loglevel
    qscodec.log.get_console_log(level)
    yield level
    qscodec.log._default_loglevel = orig


@pytest.fixture
def cache() -> qscodec.SchemaCache:
    '''
    A fresh, per-test schema cache applied as the current one such
    that no test sees another's cached schemas.

    '''
    with qscodec.apply_cache(
        qscodec.SchemaCache()
    ) as cache:
        yield cache
