"""Test logging setup and the load failure report"""

import logging

import pytest

from playlist_finder.core.logger import (
    get_logger,
    log_load_failure,
    setup_logging,
    shutdown_logging,
)


@pytest.fixture
def configured_logging(temp_dir):
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    logs_dir = setup_logging(temp_dir)
    yield logs_dir
    shutdown_logging()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


class TestLogging:
    """Test log file creation and routing"""

    def test_creates_log_files(self, configured_logging):
        names = sorted(p.name.split("_20")[0] for p in configured_logging.iterdir())

        assert names == ["load_failures", "log_errors", "log_full"]

    def test_load_failure_reaches_report(self, configured_logging):
        logger = get_logger("playlist_finder.test")
        logger.info("routine message")
        log_load_failure(
            logger,
            container_name="Road Trip",
            owner_id="alice",
            external_url="https://open.spotify.com/playlist/pl1",
            reason="HTTP 500",
        )
        shutdown_logging()

        report = next(configured_logging.glob("load_failures_*.log")).read_text(encoding="utf-8")
        errors = next(configured_logging.glob("log_errors_*.log")).read_text(encoding="utf-8")
        full = next(configured_logging.glob("log_full_*.log")).read_text(encoding="utf-8")

        assert report == "Road Trip (owner: alice)\nhttps://open.spotify.com/playlist/pl1\nHTTP 500\n\n"
        assert "routine message" not in errors
        assert "Road Trip" in errors
        assert "routine message" in full
