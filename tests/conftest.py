"""Shared fixtures and helpers for tests."""

import logging
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

_REPO_ROOT = Path(__file__).parent.parent

SOLUTION_TEMPLATE = """
Microsoft Visual Studio Solution File, Format Version 12.00
# Visual Studio Version 16
VisualStudioVersion = {version}
MinimumVisualStudioVersion = 10.0.40219.1
Project("{{B1E792BE-AA5F-4E3C-8C82-674BF9C0715B}}") = "TcProject", "TcProject\\TcProject.tsproj", "{{0E4B3A5C}}"
EndProject
"""

PROJECT_TEMPLATE = """<?xml version="1.0"?>
<TcSmProject xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance" TcSmVersion="1.0" TcVersion="{version}">
  <Project ProjectGUID="{{0E4B3A5C}}" TargetNetId="127.0.0.1.1.1" ShowHideConfigurations="#x106"/>
</TcSmProject>
"""


# ---------------------------------------------------------------------------
# Auto-marker: tag tests as "unit" or "integration" based on directory
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        test_path = Path(str(item.fspath))
        rel = test_path.relative_to(_REPO_ROOT / "tests")
        parts = rel.parts
        if parts and parts[0] == "integration":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# Shared unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _restore_root_logging() -> Iterator[None]:
    """Drop the stdout handler the CLI installs on the root logger."""
    root = logging.getLogger()
    before = set(root.handlers)
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in before and type(handler) is logging.StreamHandler:
            root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture
def write_solution(tmp_path: Path) -> Callable[..., Path]:
    def _write(version: str = "16.0.28729.10", name: str = "TcProject.sln") -> Path:
        path = tmp_path / name
        path.write_text(SOLUTION_TEMPLATE.format(version=version), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def write_project(tmp_path: Path) -> Callable[..., Path]:
    def _write(version: str = "3.1.4024.1", name: str = "TcProject.tsproj") -> Path:
        path = tmp_path / name
        path.write_text(PROJECT_TEMPLATE.format(version=version), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def solution_file(write_solution: Callable[..., Path]) -> Path:
    return write_solution()


@pytest.fixture
def project_file(write_project: Callable[..., Path]) -> Path:
    return write_project()
