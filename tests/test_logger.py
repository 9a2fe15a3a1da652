"""
Tests for run log files and worker log capture.
"""
import logging
import os

import pytest

from kbdocx.utils.logger import (
    LOGGER_NAME, capture_worker_logs, prune_old_logs, setup_main_logger,
)


@pytest.fixture
def logger():
    logger = logging.getLogger(LOGGER_NAME)
    yield logger
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


class TestPruneOldLogs:

    def test_keeps_newest(self, tmp_path):
        paths = []
        for i in range(5):
            path = tmp_path / f"kbdocx_2024010{i}_000000.log"
            path.write_text("x")
            os.utime(path, (1_000_000 + i, 1_000_000 + i))
            paths.append(path)
        (tmp_path / "other.log").write_text("x")

        deleted = prune_old_logs(tmp_path, keep=2)
        assert deleted == paths[:3]
        assert sorted(tmp_path.iterdir()) == sorted([*paths[3:], tmp_path / "other.log"])

    def test_nothing_to_prune(self, tmp_path):
        (tmp_path / "kbdocx_20240101_000000.log").write_text("x")
        assert prune_old_logs(tmp_path, keep=5) == []


class TestSetupMainLogger:

    def test_writes_run_log(self, tmp_path, logger):
        setup_main_logger(logging.ERROR, tmp_path / "logs")
        logger.debug("details for the file")
        for handler in logger.handlers:
            handler.flush()

        (path,) = (tmp_path / "logs").glob("kbdocx_*.log")
        assert "details for the file" in path.read_text(encoding="utf-8")

    def test_console_level(self, tmp_path, logger, capsys):
        setup_main_logger(logging.WARNING, tmp_path)
        logger.info("quiet")
        logger.warning("loud")
        out = capsys.readouterr().out
        assert "WARNING: loud" in out
        assert "quiet" not in out

    def test_repeated_setup_replaces_handlers(self, tmp_path, logger):
        setup_main_logger(logging.ERROR, tmp_path)
        setup_main_logger(logging.ERROR, tmp_path)
        assert len(logger.handlers) == 2


class TestCaptureWorkerLogs:

    def test_captures_records(self, logger):
        with capture_worker_logs() as buffer:
            logger.debug("converting a.html")
            assert "converting a.html" in buffer.getvalue()

    def test_handler_is_removed_on_exit(self, logger):
        with capture_worker_logs() as buffer:
            pass
        logger.info("after the worker")
        assert logger.handlers == []
        assert "after the worker" not in buffer.getvalue()
