"""
Shared test fixtures: project folders, a captured log writer and environments.
"""

import io
from pathlib import Path

import pytest

from dnaweb.config import DnaConfiguration
from dnaweb.environment import DnaEnvironment
from dnaweb.logger import Logger, LogLevel


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def logger(log_stream) -> Logger:
    """A log writer that prints everything into log_stream."""
    return Logger(LogLevel.ALL, stream=log_stream)


@pytest.fixture
def site(tmp_path: Path) -> Path:
    """An empty monitor folder."""
    folder = tmp_path / "site"
    folder.mkdir()
    return folder


@pytest.fixture
def make_environment(site, logger):
    """Build an environment with the default engines watching site."""

    def _make(**settings) -> DnaEnvironment:
        configuration = DnaConfiguration(monitor_path=str(site), **settings)
        environment = DnaEnvironment(configuration, logger)
        environment.add_default_engines()
        return environment

    return _make


@pytest.fixture
def environment(make_environment) -> DnaEnvironment:
    return make_environment()


@pytest.fixture
def html_engine(environment):
    return environment.engines[0]


@pytest.fixture
def csharp_engine(environment):
    return environment.engines[1]


def write(folder: Path, name: str, contents: str) -> Path:
    path = folder / name
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(contents)
    return path


def read(path: Path) -> str:
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()
