"""Unit tests for logging utilities."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import orjson
import pytest
from pyfakefs.fake_filesystem import FakeFilesystem

from fleetwarden.utils import create_logger, create_null_logger
from fleetwarden.utils._logging import _create_logger, _log_level_from_string


class TestCreateLogger:
    def test_creates_log_directory_if_missing(self, fs: FakeFilesystem) -> None:  # noqa: ARG002
        log_path = Path("/var/log/fleetwarden/daemon.log")
        assert not log_path.parent.exists()

        _ = create_logger(log_file=str(log_path))

        assert log_path.parent.exists()

    def test_json_format(self, fs: FakeFilesystem) -> None:  # noqa: ARG002
        logger = create_logger(log_file="/logs/daemon.log")

        logger.info("service_started", service="db")

        entry = orjson.loads(Path("/logs/daemon.log").read_text().splitlines()[0])
        assert entry["event"] == "service_started"
        assert entry["service"] == "db"
        assert entry["level"] == "info"
        assert "timestamp" in entry

    def test_text_format(self, fs: FakeFilesystem) -> None:  # noqa: ARG002
        logger = create_logger(log_file="/logs/daemon.log", log_format="text")

        logger.info("service_started", service="db")

        content = Path("/logs/daemon.log").read_text()
        assert "service_started" in content
        assert "service=db" in content

    def test_component_is_bound(self, fs: FakeFilesystem) -> None:  # noqa: ARG002
        logger = create_logger(log_file="/logs/daemon.log", component="controller")

        logger.warning("stop_refused")

        entry = orjson.loads(Path("/logs/daemon.log").read_text())
        assert entry["component"] == "controller"

    def test_level_filters_events(self, fs: FakeFilesystem) -> None:  # noqa: ARG002
        logger = create_logger(level="warning", log_file="/logs/daemon.log")

        logger.info("dropped")
        logger.error("kept")

        content = Path("/logs/daemon.log").read_text()
        assert "dropped" not in content
        assert "kept" in content

    def test_debug_env_overrides_level(
        self, fs: FakeFilesystem, monkeypatch: pytest.MonkeyPatch  # noqa: ARG002
    ) -> None:
        monkeypatch.setenv("FLEETWARDEN_DEBUG", "1")
        logger = create_logger(level="error", log_file="/logs/daemon.log")

        logger.debug("verbose")

        assert "verbose" in Path("/logs/daemon.log").read_text()


class TestRotation:
    def test_with_rotation_uses_stdlib_handler(self, fs: FakeFilesystem) -> None:  # noqa: ARG002
        logger = _create_logger(
            "/logs/rotating.log", log_level=logging.INFO, max_bytes=1000, backup_count=2
        )

        logger.info("rotated_event")

        handlers = [
            h
            for name in logging.root.manager.loggerDict
            if name.startswith("fleetwarden.rotating.")
            for h in logging.getLogger(name).handlers
        ]
        assert any(isinstance(h, RotatingFileHandler) for h in handlers)
        for handler in handlers:
            handler.flush()
        assert "rotated_event" in Path("/logs/rotating.log").read_text()

    def test_rotation_requires_both_params(self, fs: FakeFilesystem) -> None:  # noqa: ARG002
        logger = _create_logger("/logs/plain.log", log_level=logging.INFO, max_bytes=1000)

        logger.info("plain_event")

        assert "plain_event" in Path("/logs/plain.log").read_text()


class TestLogLevels:
    @pytest.mark.parametrize(
        ("name", "level"),
        [
            ("debug", logging.DEBUG),
            ("INFO", logging.INFO),
            ("warning", logging.WARNING),
            ("error", logging.ERROR),
            ("nonsense", logging.INFO),
        ],
    )
    def test_from_string(self, name: str, level: int) -> None:
        assert _log_level_from_string(name) == level

    def test_null_logger_accepts_events(self) -> None:
        logger = create_null_logger().bind(component="test")

        logger.critical("ignored", value=1)
