"""Shared fixtures for microapp tests."""

import json
import tempfile
from pathlib import Path

import pytest
from loguru import logger

from microapp.config.settings import Settings


@pytest.fixture
def log_records():
    """Capture loguru records as (level, message) tuples."""
    records: list[tuple[str, str]] = []
    handler_id = logger.add(
        lambda message: records.append(
            (message.record["level"].name, message.record["message"])
        ),
        level="DEBUG",
    )
    yield records
    logger.remove(handler_id)


@pytest.fixture
def temp_root():
    """Create temporary root application directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def write_app():
    """Return a helper writing a micro-app config (and package.json) into a directory."""

    def _write(path: Path, config: dict, package: dict | None = None) -> Path:
        path.mkdir(parents=True, exist_ok=True)
        with open(path / "micro-app.config.json", "w", encoding="utf-8") as f:
            json.dump(config, f)
        if package is not None:
            with open(path / "package.json", "w", encoding="utf-8") as f:
                json.dump(package, f)
        return path

    return _write


@pytest.fixture
def settings(temp_root):
    """Settings rooted at the temporary directory."""
    return Settings(root=temp_root)


@pytest.fixture
def micro_path(temp_root):
    """Return a helper giving the scoped install path of a micro id."""

    def _path(micro_id: str) -> Path:
        return temp_root / "node_modules" / "@micro-app" / micro_id

    return _path
