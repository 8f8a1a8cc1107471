"""Tests for loguru setup."""

import pytest
from loguru import logger

from storyline.core.output import setup_loguru


@pytest.fixture(autouse=True)
def restore_logger():
    yield
    logger.remove()


def test_writes_to_log_file(tmp_path):
    log_file = tmp_path / "logs" / "storyline.log"

    setup_loguru(log_file, level="DEBUG")
    logger.debug("position saved at 120.0s")

    text = log_file.read_text()
    assert "Loguru initialized" in text
    assert "position saved at 120.0s" in text


def test_level_filters_records(tmp_path):
    log_file = tmp_path / "storyline.log"

    setup_loguru(log_file, level="WARNING")
    logger.info("not written")
    logger.warning("written")

    text = log_file.read_text()
    assert "not written" not in text
    assert "written" in text
