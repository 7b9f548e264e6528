import functools
import logging

import click.testing
import pytest

from inreq.cli import main


@pytest.fixture(autouse=True)
def _restored_loggers():
    # The commands reconfigure the loggers with the runner's temporary streams.
    root = logging.getLogger()
    lowlevel = logging.getLogger('asyncio')
    root_handlers, root_level = root.handlers[:], root.level
    lowlevel_handlers, lowlevel_propagate = lowlevel.handlers[:], lowlevel.propagate
    try:
        yield
    finally:
        root.handlers[:] = root_handlers
        root.setLevel(root_level)
        lowlevel.handlers[:] = lowlevel_handlers
        lowlevel.propagate = lowlevel_propagate


@pytest.fixture()
def runner():
    runner = click.testing.CliRunner()
    return runner


@pytest.fixture()
def invoke(runner):
    return functools.partial(runner.invoke, main)


@pytest.fixture()
def real_run(mocker):
    return mocker.patch('inreq.reactor.running.run', return_value=0)
