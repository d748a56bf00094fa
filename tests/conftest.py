"""
tests/conftest.py
Shared fixtures for the modulegen test suite.

All fixtures are session-scoped or function-scoped as appropriate.
No external mocking libraries are used; real file I/O is performed
inside temporary directories managed by pytest's tmp_path fixtures.
"""

from __future__ import annotations

import copy
import pathlib
from datetime import datetime
from typing import Any, Callable, Dict

import pytest
import yaml

from modulegen.configuration import build_configurations
from modulegen.models import GeneratorSettings, ModelConfiguration
from modulegen.validators import parse_entities


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

ROOT_DIR: pathlib.Path = pathlib.Path(__file__).resolve().parent.parent
SCHEMA_EXAMPLE_PATH: pathlib.Path = ROOT_DIR / "schema_example.yaml"

FIXED_MOMENT: datetime = datetime(2024, 5, 1, 12, 30, 0)


# ---------------------------------------------------------------------------
# Raw schema data fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def raw_schema_dict() -> Dict[str, Any]:
    """Load the reference schema_example.yaml once per session and return as dict."""
    assert SCHEMA_EXAMPLE_PATH.exists(), (
        f"Reference schema not found at {SCHEMA_EXAMPLE_PATH}. "
        "Make sure schema_example.yaml is in the project root."
    )
    with open(SCHEMA_EXAMPLE_PATH, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    assert isinstance(data, dict), "Top-level YAML must be a mapping."
    return data


@pytest.fixture()
def schema_dict(raw_schema_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Return a deep copy so each test can mutate freely."""
    return copy.deepcopy(raw_schema_dict)


@pytest.fixture()
def schema_yaml_path(schema_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    """Write the schema dict to a temporary YAML file and return its path."""
    path = tmp_path / "schema.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(schema_dict, fh, default_flow_style=False, allow_unicode=True)
    return path


@pytest.fixture()
def minimal_schema_dict() -> Dict[str, Any]:
    """Smallest useful schema: one entity, two columns, no relations."""
    return {
        "Post": {
            "fields": {
                "title": "string",
                "body": "text:nullable",
            },
        },
    }


# ---------------------------------------------------------------------------
# Project fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def project_root(tmp_path: pathlib.Path) -> pathlib.Path:
    """Empty directory standing in for a Laravel project root."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture()
def settings(project_root: pathlib.Path) -> GeneratorSettings:
    """Default settings rooted at the temporary project."""
    return GeneratorSettings(base_path=str(project_root))


@pytest.fixture()
def fixed_clock() -> Callable[[], datetime]:
    """Clock that always returns the same moment."""
    return lambda: FIXED_MOMENT


@pytest.fixture()
def configs(schema_dict: Dict[str, Any]) -> Dict[str, ModelConfiguration]:
    """Configurations of the example schema keyed by entity name."""
    built = build_configurations(parse_entities(schema_dict))
    return {config.studly_name: config for config in built}
