"""
Tests for the time, path and logging helpers.
"""
import logging
from datetime import datetime, timezone

import pytest

from chatstore import paths, timeutil
from chatstore.logger import TruncatingFileHandler, init_logging


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    """Point the data directory at a temporary path."""
    home = tmp_path / "chatstore-home"
    monkeypatch.setenv("CHATSTORE_HOME", str(home))
    paths.get_base_path.cache_clear()
    yield home
    paths.get_base_path.cache_clear()


class TestTimeutil:
    """Tests for timestamp helpers."""

    def test_parse_naive_string(self):
        """Test that naive ISO strings are kept as UTC."""
        assert timeutil.parse_timestamp("2024-05-01T12:00:00") == datetime(2024, 5, 1, 12)

    def test_parse_offset_string(self):
        """Test conversion of an offset to naive UTC."""
        assert timeutil.parse_timestamp("2024-05-01T12:00:00+02:00") == datetime(2024, 5, 1, 10)

    def test_parse_aware_datetime(self):
        """Test conversion of an aware datetime."""
        value = datetime(2024, 5, 1, 12, tzinfo=timezone.utc)
        parsed = timeutil.parse_timestamp(value)
        assert parsed == datetime(2024, 5, 1, 12)
        assert parsed.tzinfo is None

    def test_parse_rejects_other_types(self):
        """Test that numbers are not accepted."""
        with pytest.raises(TypeError):
            timeutil.parse_timestamp(1714564800)

    def test_tz_time_uses_configured_zone(self, monkeypatch):
        """Test the display timezone override."""
        monkeypatch.setenv("CHATSTORE_TIMEZONE", "UTC")
        assert timeutil.tz_time().utcoffset().total_seconds() == 0

    def test_epoch_helpers(self):
        """Test that seconds and milliseconds agree."""
        seconds = timeutil.tz_time_s()
        millis = timeutil.tz_time_ms()
        assert seconds > 0
        assert abs(millis // 1000 - seconds) <= 1


class TestPaths:
    """Tests for the data directory helpers."""

    def test_base_path_created(self, data_dir):
        """Test that the data directory is created on first use."""
        assert paths.get_base_path() == data_dir
        assert data_dir.is_dir()

    def test_get_path_to_strips_leading_slash(self, data_dir):
        """Test joining relative fragments."""
        assert paths.get_path_to("/logs.txt") == data_dir / "logs.txt"
        assert paths.get_path_to("nested/file") == data_dir / "nested" / "file"

    def test_default_database_url(self, data_dir):
        """Test the default SQLite location."""
        assert paths.default_database_url() == f"sqlite:///{data_dir / 'database.sqlite3'}"


class TestLogging:
    """Tests for the log file handler."""

    def test_truncates_to_max_lines(self, tmp_path):
        """Test that the file is cut back once it passes the threshold."""
        log_file = tmp_path / "logs.txt"
        handler = TruncatingFileHandler(log_file, max_lines=4)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger = logging.getLogger("chatstore.tests.truncate")
        logger.propagate = False
        logger.setLevel(logging.INFO)
        logger.addHandler(handler)
        try:
            for i in range(6):
                logger.info("line %d", i)
        finally:
            logger.removeHandler(handler)
            handler.close()

        lines = log_file.read_text(encoding="utf-8").splitlines()
        assert lines == ["line 2", "line 3", "line 4", "line 5"]

    def test_counts_existing_lines(self, tmp_path):
        """Test that an existing file's lines count toward the limit."""
        log_file = tmp_path / "logs.txt"
        log_file.write_text("a\nb\nc\n", encoding="utf-8")
        handler = TruncatingFileHandler(log_file, max_lines=10)
        try:
            assert handler.line_count == 3
        finally:
            handler.close()

    def test_init_logging_writes_banner(self, data_dir):
        """Test that init_logging installs handlers and writes to the data directory."""
        root = logging.getLogger()
        previous_level = root.level
        handler = init_logging("debug")
        try:
            logging.getLogger("chatstore.tests").debug("hello file")
            handler.flush()
            content = (data_dir / "logs.txt").read_text(encoding="utf-8")
            assert content.startswith("=============================[ ")
            assert "Logger initialized successfully with level: DEBUG" in content
            assert "chatstore.tests > hello file" in content
        finally:
            for installed in [h for h in root.handlers if getattr(h, "chatstore", False)]:
                root.removeHandler(installed)
                installed.close()
            root.setLevel(previous_level)
