"""
Shared fixtures for the linkhunterx test suite.

The registry is compiled once per session; compiling every builtin grammar
is the slowest step of the whole suite.
"""

import io

import pytest
from rich.console import Console

from linkhunterx.config import MatcherSettings
from linkhunterx.console import RichLogger
from linkhunterx.registry import BuiltinRegistry


def make_logger(verbose: bool = True) -> RichLogger:
    """Logger writing to an in-memory console."""
    return RichLogger(console=Console(file=io.StringIO(), width=300), verbose=verbose)


def logged_text(logger: RichLogger) -> str:
    return logger.console.file.getvalue()


@pytest.fixture
def logger():
    return make_logger()


@pytest.fixture
def settings():
    return MatcherSettings()


@pytest.fixture(scope="session")
def registry():
    reg = BuiltinRegistry.build(settings=MatcherSettings(), logger=make_logger())
    yield reg
    reg.close()
