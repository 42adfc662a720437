"""Shared test fixtures for SyncNest."""

import logging
import sys
from pathlib import Path
from typing import List

import pytest

# Allow running the tests from a checkout without installing the package
src_path = Path(__file__).parent.parent / "src"
if src_path.exists():
    sys.path.insert(0, str(src_path))


@pytest.fixture
def source(tmp_path: Path) -> Path:
    path = tmp_path / "source"
    path.mkdir()
    return path


@pytest.fixture
def backup(tmp_path: Path) -> Path:
    path = tmp_path / "backup"
    path.mkdir()
    return path


@pytest.fixture
def lines() -> List[str]:
    """Collects log lines; pass ``lines.append`` as the log sink."""
    return []


@pytest.fixture(autouse=True)
def reset_syncnest_logger():
    """Drop handlers installed by setup_logging so they do not outlive a test."""
    logger = logging.getLogger("syncnest")
    level = logger.level
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(level)
