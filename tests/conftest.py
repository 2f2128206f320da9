"""Shared fixtures for the sfpublish test suite."""

import logging

import pytest
import structlog

from sfpublish.core.config import build_config


@pytest.fixture
def options() -> dict:
    """Minimal valid options with one resource."""
    return {
        "salesforce": {"username": "dev@example.com", "password": "hunter2", "token": "TOKEN"},
        "resources": [{"name": "styles", "files": ["css/*.css"], "basePath": "css/"}],
    }


@pytest.fixture
def config(options):
    return build_config(options)


@pytest.fixture
def build_dir(tmp_path, monkeypatch):
    """A fake build output tree; the working directory is moved into it."""
    (tmp_path / "css").mkdir()
    (tmp_path / "css" / "a.css").write_text("body { color: red; }\n", encoding="utf-8")
    (tmp_path / "css" / "b.css").write_text("p { margin: 0; }\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def restore_logging():
    """Undo configure_structlog so later tests see the default setup."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()
