# File: tests/conftest.py
# Contains pytest fixtures shared by the pipeline, builder and CLI tests.

import pytest
from pathlib import Path
from typing import Any, Generator

# Jinja for rendering test config
from jinja2 import Environment, FileSystemLoader

from m3l_codegen.pipeline import M3LPipeline


# --- Constants ---
# Assumes conftest.py is in tests/ subdirectory relative to project root
GENERATOR_PROJECT_ROOT = Path(__file__).parent.parent
TEST_SCHEMAS_DIR = GENERATOR_PROJECT_ROOT / "tests" / "schemas"
TEST_CONFIG_TEMPLATES_DIR = GENERATOR_PROJECT_ROOT / "tests" / "config_templates"


# --- Fixtures for the sample model file ---
@pytest.fixture(scope="session")
def store_model_path() -> Path:
    """Path of the sample store model definitions."""
    model_file = TEST_SCHEMAS_DIR / "store.m3l"
    if not model_file.is_file():
        pytest.fail(f"Test model file not found: {model_file}")
    return model_file


@pytest.fixture(scope="session")
def store_model_text(store_model_path: Path) -> str:
    return store_model_path.read_text(encoding="utf-8")


@pytest.fixture
def store_document(store_model_text: str):
    """A completed EnrichedDocument for the sample store, built fresh per test."""
    return M3LPipeline().run(store_model_text)


# --- Fixture for Temporary Output Directory ---
@pytest.fixture
def test_output_dir(tmp_path: Path) -> Generator[Path, Any, Any]:
    """
    Provides a unique temporary output directory per test function,
    managed by pytest's tmp_path fixture.
    """
    output_path = tmp_path / "generated"
    yield output_path
    # Cleanup handled automatically by pytest


# --- Fixture to Create Test Configuration File ---
@pytest.fixture
def generator_config_file(store_model_path: Path, test_output_dir: Path) -> Path:
    """
    Creates a temporary settings file from a Jinja2 template, pointing at
    the sample model file and the temporary output directory.
    """
    if not TEST_CONFIG_TEMPLATES_DIR.is_dir():
        pytest.fail(f"Test config templates directory not found: {TEST_CONFIG_TEMPLATES_DIR}")

    env = Environment(loader=FileSystemLoader(str(TEST_CONFIG_TEMPLATES_DIR)), autoescape=False)
    template = env.get_template("test_config.yaml.j2")
    rendered_config = template.render(
        model_file=str(store_model_path),
        schema_name="store",
        output_dir=str(test_output_dir),
    )

    config_file = test_output_dir.parent / "test_run_config.yaml"
    config_file.write_text(rendered_config, encoding="utf-8")
    return config_file
