"""Test logging setup"""

import logging

import pytest

from spot_reshuffle.core.logger import (
    get_logger,
    log_rejected_track,
    setup_logging,
    shutdown_logging,
)


@pytest.fixture
def log_dir(temp_dir):
    yield temp_dir / "logs"
    shutdown_logging()


def read_log(directory, prefix):
    files = list(directory.glob(f"{prefix}_*.log"))
    assert len(files) == 1
    return files[0].read_text(encoding="utf-8")


class TestLogging:
    """Test setup_logging outputs"""

    def test_console_only(self):
        """Test no file handler without a directory"""
        setup_logging()
        try:
            handlers = logging.getLogger().handlers
            assert len(handlers) == 1
            assert not any(isinstance(h, logging.FileHandler) for h in handlers)
            assert logging.getLogger("spotipy").level == logging.WARNING
        finally:
            shutdown_logging()

    def test_log_files(self, log_dir):
        """Test full, error and rejected-track logs"""
        setup_logging(log_dir)
        logger = get_logger("spot_reshuffle.test")

        logger.info("collecting sources")
        logger.error("sync failed")
        log_rejected_track(
            logger, "spotify:local:Artist:Album:Title:215", "local_file", origin="Liked Songs"
        )
        log_rejected_track(logger, None, "empty")
        shutdown_logging()

        full = read_log(log_dir, "log_full")
        assert "collecting sources" in full
        assert "sync failed" in full

        errors = read_log(log_dir, "log_errors")
        assert "sync failed" in errors
        assert "collecting sources" not in errors

        rejected = read_log(log_dir, "rejected_tracks").splitlines()
        assert rejected == [
            "local_file    spotify:local:Artist:Album:Title:215    (Liked Songs)",
            "empty         <empty>",
        ]

    def test_shutdown_removes_handlers(self, log_dir):
        """Test shutdown leaves the root logger without handlers"""
        setup_logging(log_dir)
        shutdown_logging()
        assert logging.getLogger().handlers == []
