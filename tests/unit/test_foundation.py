"""
Foundation Tests for BlogFeed
=============================

Test suite for core foundation components including the cache database,
configuration, logging, and exception systems.
"""

import json
import logging
import logging.handlers
import sqlite3

import pytest
from pydantic import ValidationError

from blogfeed.database.connection import DatabaseConnection
from blogfeed.config.settings import (
    BlogFeedSettings,
    CacheBackend,
    LimitsSettings,
    ServerSettings,
    get_settings,
)
from blogfeed.utils.logging import (
    StructuredFormatter,
    setup_logger,
    get_logger_for_component,
    PerformanceLogger,
)
from blogfeed.utils.exceptions import (
    BlogFeedError,
    CacheError,
    ConfigurationError,
    ErrorCode,
    FeedFetchError,
    get_user_friendly_message,
    handle_exception,
    is_retryable_error,
)


class TestDatabaseConnection:
    """Test the pooled SQLite connection used by the cache."""

    def test_connection_creation(self, tmp_path):
        db = DatabaseConnection(str(tmp_path / "test.db"))

        with db.get_connection() as conn:
            assert conn.execute("SELECT 1").fetchone()[0] == 1

        db.close_all_connections()

    def test_update_and_select(self, tmp_path):
        db = DatabaseConnection(str(tmp_path / "test.db"))

        changed = db.execute_update(
            "INSERT INTO cache_entries (key, value, expires_at) VALUES (?, ?, ?)",
            ("k", "v", 1.0),
        )
        row = db.execute_one("SELECT value FROM cache_entries WHERE key = ?", ("k",))

        assert changed == 1
        assert row["value"] == "v"
        db.close_all_connections()

    def test_failed_statement_rolls_back(self, tmp_path):
        db = DatabaseConnection(str(tmp_path / "test.db"))

        with pytest.raises(sqlite3.Error):
            with db.get_connection() as conn:
                conn.execute(
                    "INSERT INTO cache_entries (key, value, expires_at) VALUES ('a', 'b', 1.0)"
                )
                conn.execute("INSERT INTO missing_table VALUES (1)")

        assert db.execute_one("SELECT * FROM cache_entries WHERE key = 'a'") is None
        db.close_all_connections()


class TestConfiguration:
    """Test configuration system."""

    def test_defaults(self):
        settings = BlogFeedSettings(cache={"backend": "memory"})

        assert str(settings.feed.url).startswith("https://dreamthewilderness.substack.com/feed")
        assert settings.feed.site_author == "Dream the Wilderness"
        assert settings.feed.description_limit == 200
        assert settings.cache.backend == CacheBackend.MEMORY
        assert settings.cache.key == "blog_feed_cache"
        assert settings.cache.ttl_seconds == 600
        assert settings.server.route == "/api/blog"

    def test_environment_overrides(self, monkeypatch):
        """Test nested settings read from prefixed environment variables."""
        monkeypatch.setenv("BLOGFEED_CACHE__TTL_SECONDS", "120")
        monkeypatch.setenv("BLOGFEED_SERVER__PORT", "9000")

        try:
            settings = get_settings(reload=True)

            assert settings.cache.ttl_seconds == 120
            assert settings.server.port == 9000
        finally:
            monkeypatch.delenv("BLOGFEED_CACHE__TTL_SECONDS")
            monkeypatch.delenv("BLOGFEED_SERVER__PORT")
            get_settings(reload=True)

    def test_handler_timeout_must_cover_request_timeout(self):
        with pytest.raises(ValidationError):
            LimitsSettings(request_timeout=8.0, handler_timeout=5.0)

    def test_route_must_be_absolute(self):
        with pytest.raises(ValidationError):
            ServerSettings(route="api/blog")

    def test_invalid_feed_url(self):
        with pytest.raises(ValidationError):
            BlogFeedSettings(feed={"url": "not a url"})

    def test_sqlite_directory_created(self, tmp_path):
        cache_path = tmp_path / "nested" / "cache.db"
        settings = BlogFeedSettings(
            cache={"backend": "sqlite", "sqlite_path": str(cache_path)},
            logging={"file_path": ""},
        )

        settings.validate_configuration()

        assert cache_path.parent.is_dir()

    def test_unusable_log_path(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        settings = BlogFeedSettings(logging={"file_path": str(blocker / "logs" / "app.log")})

        with pytest.raises(ConfigurationError):
            settings.validate_configuration()

    def test_debug_forces_debug_level(self):
        assert BlogFeedSettings(debug=True).get_effective_log_level() == "DEBUG"
        assert BlogFeedSettings(debug=False, logging={"level": "WARNING"}).get_effective_log_level() == "WARNING"


class TestLogging:
    """Test logging system."""

    def test_logger_setup(self, tmp_path):
        """Test logger configuration."""
        log_file = tmp_path / "test.log"
        logger = setup_logger(
            name="test_logger",
            level="INFO",
            log_file=str(log_file),
            console=False,
            structured=True,
        )

        logger.info("Test message")
        logger.error("Test error message")

        log_content = log_file.read_text()
        assert "Test message" in log_content
        assert "Test error message" in log_content

    def test_rotation_settings_reach_file_handler(self, tmp_path):
        """Log rotation limits come from the logging settings."""
        from main import _configure_logging

        settings = BlogFeedSettings(
            debug=False,
            logging={
                "file_path": str(tmp_path / "blogfeed.log"),
                "console_logging": False,
                "max_file_size_mb": 2,
                "backup_count": 3,
            },
        )

        root = logging.getLogger("blogfeed")
        try:
            _configure_logging(settings, debug=False)

            file_handlers = [
                h for h in root.handlers if isinstance(h, logging.handlers.RotatingFileHandler)
            ]
            assert len(file_handlers) == 1
            assert file_handlers[0].maxBytes == 2 * 1024 * 1024
            assert file_handlers[0].backupCount == 3
        finally:
            for handler in list(root.handlers):
                root.removeHandler(handler)
                handler.close()
            root.setLevel(logging.NOTSET)

    def test_structured_formatter_emits_json(self):
        record = logging.LogRecord(
            name="blogfeed.test",
            level=logging.WARNING,
            pathname=__file__,
            lineno=1,
            msg="cache read failed: %s",
            args=("timeout",),
            exc_info=None,
        )
        record.cache_key = "blog_feed_cache"

        data = json.loads(StructuredFormatter().format(record))

        assert data["level"] == "WARNING"
        assert data["message"] == "cache read failed: timeout"
        assert data["extra"]["cache_key"] == "blog_feed_cache"

    def test_component_logger(self, caplog):
        """Test component-specific logger carries its context."""
        caplog.set_level(logging.INFO)
        logger = get_logger_for_component("cache_gateway", cache_key="blog_feed_cache")

        logger.info("Component test message", extra={"cached": True})

        record = caplog.records[-1]
        assert record.name == "blogfeed.cache_gateway"
        assert record.component == "cache_gateway"
        assert record.cache_key == "blog_feed_cache"
        assert record.cached is True

    def test_performance_logger(self, caplog):
        """Test performance logging context manager."""
        caplog.set_level(logging.INFO)
        logger = logging.getLogger("test")

        with PerformanceLogger(logger, "test_operation", param1="value1"):
            pass

        assert "Completed test_operation" in caplog.text

    def test_performance_logger_failure(self, caplog):
        caplog.set_level(logging.INFO)
        logger = logging.getLogger("test")

        with pytest.raises(RuntimeError):
            with PerformanceLogger(logger, "feed fetch"):
                raise RuntimeError("boom")

        assert "Failed feed fetch" in caplog.text


class TestExceptions:
    """Test exception handling system."""

    def test_blogfeed_error(self):
        """Test BlogFeed error creation and serialization."""
        error = BlogFeedError(
            message="Test error",
            error_code=ErrorCode.CONFIG_INVALID,
            context={"key": "value"},
            user_message="User-friendly message",
            recoverable=True,
        )

        assert str(error) == "[C001] Test error"
        assert error.user_message == "User-friendly message"

        error_dict = error.to_dict()
        assert error_dict["error_code"] == "C001"
        assert error_dict["context"]["key"] == "value"
        assert error_dict["error_type"] == "BlogFeedError"

    def test_specific_errors(self):
        fetch_error = FeedFetchError("HTTP 502: Bad Gateway", status=502, feed_url="https://x.test/feed")
        assert fetch_error.status == 502
        assert fetch_error.context["http_status"] == 502
        assert fetch_error.context["feed_url"] == "https://x.test/feed"
        assert fetch_error.user_message == "Unable to fetch blog posts"

        cache_error = CacheError("locked", cache_key="blog_feed_cache", error_code=ErrorCode.CACHE_WRITE_FAILED)
        assert cache_error.context["cache_key"] == "blog_feed_cache"
        assert str(cache_error) == "[K003] locked"

        config_error = ConfigurationError(message="Invalid config", config_key="cache.ttl_seconds")
        assert config_error.context["config_key"] == "cache.ttl_seconds"

    def test_exception_handling(self):
        """Test exception handling utility."""
        logger = logging.getLogger("test")

        handled_error = handle_exception(
            ValueError("Test value error"),
            logger,
            "test_operation",
            {"context_key": "context_value"},
        )

        assert isinstance(handled_error, BlogFeedError)
        assert handled_error.context["operation"] == "test_operation"
        assert handled_error.context["context_key"] == "context_value"
        assert handled_error.context["original_exception_type"] == "ValueError"
        assert handled_error.error_code == ErrorCode.SYSTEM_UNEXPECTED

    def test_timeout_is_categorized(self):
        handled_error = handle_exception(TimeoutError(), logging.getLogger("test"), "serve_blog_feed")

        assert handled_error.error_code == ErrorCode.SYSTEM_TIMEOUT
        assert is_retryable_error(handled_error)

    def test_blogfeed_error_passes_through(self):
        original = FeedFetchError("down")
        assert handle_exception(original, logging.getLogger("test"), "fetch") is original

    def test_retryable_errors(self):
        assert is_retryable_error(FeedFetchError("down", error_code=ErrorCode.FEED_NETWORK_ERROR))
        assert not is_retryable_error(ConfigurationError("bad"))
        assert not is_retryable_error(
            BlogFeedError("gone", error_code=ErrorCode.FEED_NOT_FOUND, recoverable=True)
        )

    def test_user_friendly_message(self):
        assert get_user_friendly_message(FeedFetchError("x")) == "Unable to fetch blog posts"
        assert get_user_friendly_message(KeyError("x")).startswith("An unexpected error")

    def test_error_code_catalogue(self):
        assert {code.value for code in ErrorCode} == {
            "C001",
            "F002", "F004", "F005", "F006", "F007",
            "K001", "K002", "K003", "K004",
            "S001", "S005",
        }
