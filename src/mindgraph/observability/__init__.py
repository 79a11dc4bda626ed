"""Observability module for mindgraph.

Provides structured logging.
"""

from mindgraph.observability.logging import (
    close_file_logging,
    configure_logging,
    get_logger,
    get_logs_dir,
)

__all__ = [
    "close_file_logging",
    "configure_logging",
    "get_logger",
    "get_logs_dir",
]
