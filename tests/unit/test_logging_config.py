"""Tests for console logging setup."""

from __future__ import annotations

import logging

import pytest

from dumpsight.logging_config import configure_logging


def test_configure_logging_installs_single_handler() -> None:
    configure_logging("DEBUG")
    configure_logging("info")

    logger = logging.getLogger("dumpsight")
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1


def test_configure_logging_rejects_unknown_level() -> None:
    with pytest.raises(ValueError, match="unknown log level"):
        configure_logging("LOUD")
