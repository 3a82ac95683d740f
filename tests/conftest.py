"""
Shared pytest fixtures for changetest tests.

Provides a debug-level reporter, a capturing Rich console and helpers
for laying out compiled output on disk.
"""

import io
import logging
from pathlib import Path
from typing import Callable, Optional

import pytest
from rich.console import Console

from changetest.reporter.system_reporter import SystemReporter
from tests.helpers.class_files import OBJECT, write_class


@pytest.fixture
def reporter():
    """Reporter logging everything, closed after the test."""
    test_reporter = SystemReporter(
        name="changetest_test", level=logging.DEBUG, verbose=3
    )
    yield test_reporter
    test_reporter.close()


@pytest.fixture
def console() -> Console:
    """Console rendering into a buffer instead of the terminal."""
    return Console(file=io.StringIO(), width=120, force_terminal=False)


@pytest.fixture
def classes_dir(tmp_path: Path) -> Path:
    """Empty compiled test output directory."""
    path = tmp_path / "target" / "test-classes"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def add_class(classes_dir: Path) -> Callable[..., Path]:
    """Factory writing a class file into classes_dir."""

    def _add(
        name: str, super_name: Optional[str] = OBJECT, abstract: bool = False
    ) -> Path:
        return write_class(classes_dir, name, super_name, abstract=abstract)

    return _add
