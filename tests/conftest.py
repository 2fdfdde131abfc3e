from __future__ import annotations

import logging
from pathlib import Path

import pytest

from tests._fixtures.project_builder import ProjectBuilder

PUBLISHED_TEMPLATES = Path(__file__).resolve().parents[1] / "templates"


@pytest.fixture
def project_builder(tmp_path: Path) -> ProjectBuilder:
    """Provide a reusable project builder rooted at the pytest tmp_path."""
    return ProjectBuilder(tmp_path)


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """A minimal local template set for the test packs."""
    root = tmp_path / "templates"
    root.mkdir()
    for name in ("alpha", "beta", "x"):
        (root / f"{name}.dockerfile.template").write_text(
            f"FROM {name}:{{{{ language_version }}}}\nCMD {{{{ start_command }}}}\n",
            encoding="utf-8",
        )
    return root


@pytest.fixture
def published_templates() -> Path:
    """The template set shipped in the repository."""
    return PUBLISHED_TEMPLATES


@pytest.fixture(autouse=True)
def reset_starter_logging():
    """Drop handlers a test attached so later tests do not write to closed streams."""
    yield
    for name in ("starter", "uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.propagate = True
        logger.setLevel(logging.NOTSET)
