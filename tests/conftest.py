"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def reset_logging_state() -> None:
    """Let each test start from an unconfigured logging module."""
    import mindgraph.observability.logging as log_module

    log_module.close_file_logging()
    log_module._configured = False


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent
