"""Provide pytest fixtures for test setup.

The setup fixture runs against the in-memory document store.  The sql_setup fixture runs the same
factories against a SQLite database in the test's temporary directory, and must close its
database session after each test.

This file is automatically loaded by pytest and injects available fixtures into every test without
requiring the flake8 noqa annotations normally needed by explicit fixture imports.
"""

from contextlib import closing
from typing import TYPE_CHECKING

import pytest

from tests.setup import SetupTest

if TYPE_CHECKING:
    from py._path.local import LocalPath
    from typing import Iterator


@pytest.fixture
def setup(tmpdir):
    # type: (LocalPath) -> Iterator[SetupTest]
    with closing(SetupTest(tmpdir)) as test_setup:
        yield test_setup


@pytest.fixture
def sql_setup(tmpdir):
    # type: (LocalPath) -> Iterator[SetupTest]
    with closing(SetupTest(tmpdir, use_database=True)) as test_setup:
        yield test_setup
