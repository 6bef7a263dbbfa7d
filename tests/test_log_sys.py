'''
`qscodec.log`-wrapping unit tests.

'''
import logging

import trio

import qscodec
from qscodec.log import (
    CallContextInfo,
    StackLevelAdapter,
    get_console_log,
    get_logger,
)


def test_root_pkg_not_duplicated_in_logger_name():
    '''
    When both `_root_name` and `name` are passed and they have
    a common `<root_name>.< >` prefix, ensure that it is not
    duplicated in the child's `StackLevelAdapter.name: str`.

    '''
    project_name: str = 'pylib'
    pkg_path: str = 'pylib.subpkg.mod'

    proj_log = get_logger(
        _root_name=project_name,
    )
    sublog = get_logger(
        _root_name=project_name,
        name=pkg_path,
    )

    assert proj_log is not sublog
    assert sublog.name.count(proj_log.name) == 1
    assert 'mod' not in sublog.name


def test_module_loggers_share_root():
    log = get_logger('qscodec._schema')
    assert isinstance(log, StackLevelAdapter)
    assert log.logger is logging.getLogger('qscodec')


def test_custom_levels_registered():
    get_logger()
    assert logging.getLevelName(5) == 'WIRE'
    assert logging.getLevelName(15) == 'RUNTIME'


def test_context_info_outside_and_inside_trio():
    info = CallContextInfo()
    assert set(info) == {'task', 'thread_name'}
    assert info['task'] == 'no task context'
    assert info['thread_name']

    async def main():
        return info['task']

    task_str: str = trio.run(main)
    assert 'main' in task_str


def test_runtime_level_reports_schema_builds(caplog):
    log = get_console_log(
        'runtime',
        name='qscodec._schema',
    )

    class Pt(qscodec.Struct):
        x: int = 0

    try:
        with caplog.at_level(15, logger='qscodec'):
            with qscodec.apply_cache(qscodec.SchemaCache()):
                qscodec.encode(Pt(x=1))

        assert any(
            'Cached query schema' in rec.getMessage()
            for rec in caplog.records
        )
    finally:
        log.setLevel(qscodec.log.get_loglevel())
