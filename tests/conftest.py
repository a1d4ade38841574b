"""Pytest configuration and fixtures for RegenGraph tests."""

import json
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, Generator

import pytest

from regengraph_cli.dependency_graph import DependencyGraph, build_dependency_graph

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch):
    """Point the config file at a per-test location so a user's ~/.regengraph never leaks in."""
    home = tmp_path / "regengraph_home"
    monkeypatch.setattr("regengraph_cli.config.BASE_DIR", home)
    monkeypatch.setattr("regengraph_cli.config.CONFIG_FILE", home / "config.toml")
    return home


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def analysis_path() -> Path:
    return FIXTURES_DIR / "analysis.json"


@pytest.fixture
def structure_path() -> Path:
    return FIXTURES_DIR / "structure.json"


@pytest.fixture
def analysis_record(analysis_path: Path) -> Dict[str, Any]:
    """Analysis record for a two-section TypeScript course (fresh copy per test)."""
    return json.loads(analysis_path.read_text(encoding="utf-8"))


@pytest.fixture
def course_structure(structure_path: Path) -> Dict[str, Any]:
    """Course structure: section 0 has two lessons, section 1 has one."""
    return json.loads(structure_path.read_text(encoding="utf-8"))


@pytest.fixture
def dependency_graph(analysis_record, course_structure) -> DependencyGraph:
    return build_dependency_graph(analysis_record, course_structure)


@pytest.fixture
def make_structure():
    """Build a structure with ``lessons_per_section[i]`` lessons in section i."""

    def _make(*lessons_per_section: int) -> Dict[str, Any]:
        return {
            "course_title": "Generated Course",
            "sections": [
                {
                    "section_title": f"Section {s + 1}",
                    "learning_objectives": [f"Understand topic {s + 1}"],
                    "lessons": [
                        {"lesson_title": f"Lesson {s + 1}.{l + 1}", "key_topics": [f"Topic {l + 1}"]}
                        for l in range(count)
                    ],
                }
                for s, count in enumerate(lessons_per_section)
            ],
        }

    return _make
