"""
Shared pytest configuration.

Langfuse tracing is switched off before any service module imports it, so
``@observe()`` decorated calls never try to export spans during tests.
"""

import logging
import os

import pytest

# Must be set BEFORE langfuse is imported
os.environ["LANGFUSE_TRACING_ENABLED"] = "false"

_langfuse_logger = logging.getLogger("langfuse")
_langfuse_logger.setLevel(logging.CRITICAL)
_langfuse_logger.propagate = False


@pytest.fixture
def logger() -> logging.Logger:
    """Logger handed to services under test."""
    return logging.getLogger("gemdesk.tests")
