"""
Shared pytest fixtures for Strata tests.

This file is automatically loaded by pytest. Fixtures defined here are
available to all test files without explicit imports.
"""

import os as _os
import pathlib as _pathlib
import textwrap as _textwrap
import typing as _typing

import click.testing as _click_testing
import pytest as _pytest

# Prefixes used by environment-variable tests; cleared for every test so
# variables from the developer's shell cannot leak in.
TEST_ENV_PREFIXES = ("APP", "MYAPP", "TESTAPP", "STRATA_")


@_pytest.fixture(autouse=True)
def clean_env(monkeypatch: _pytest.MonkeyPatch) -> None:
    """Remove environment variables that tests set or read."""
    for key in list(_os.environ):
        if key.startswith(TEST_ENV_PREFIXES):
            monkeypatch.delenv(key, raising=False)


@_pytest.fixture
def write_config(tmp_path: _pathlib.Path) -> _typing.Callable[[str, str], _pathlib.Path]:
    """
    Write a config file into the test's temporary directory.

    Usage:
        def test_something(write_config):
            path = write_config("app.toml", '''
                [server]
                port = 8080
            ''')
    """

    def _write(name: str, content: str) -> _pathlib.Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(_textwrap.dedent(content).lstrip(), encoding="utf-8")
        return path

    return _write


@_pytest.fixture
def cli_runner() -> _click_testing.CliRunner:
    """Click test runner."""
    return _click_testing.CliRunner()
