import logging

import structlog

from valet.config import Settings, get_settings
from valet.logging import (
    LoggerRegistry,
    _censor_sensitive_keys,
    bind_context,
    clear_context,
    configure_from_settings,
    configure_logging,
    dispatch_logger,
    unbind_context,
    validation_logger,
)


# =============================================================================
# Settings
# =============================================================================

def test_defaults():
    settings = get_settings()
    assert settings.LOG_LEVEL == "INFO"
    assert settings.DISPATCH_MAX_CONCURRENCY == 0
    assert settings.DISPATCH_TIMEOUT_SECONDS is None
    assert settings.DATABASE_URL is None
    assert not settings.dispatch_bounded


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("VALET_DISPATCH_MAX_CONCURRENCY", "4")
    monkeypatch.setenv("VALET_DISPATCH_TIMEOUT_SECONDS", "1.5")
    monkeypatch.setenv("VALET_LOG_JSON", "true")
    get_settings.cache_clear()

    settings = get_settings()
    assert settings.DISPATCH_MAX_CONCURRENCY == 4
    assert settings.DISPATCH_TIMEOUT_SECONDS == 1.5
    assert settings.LOG_JSON is True
    assert settings.dispatch_bounded


def test_settings_are_cached():
    assert get_settings() is get_settings()
    assert isinstance(get_settings(), Settings)


# =============================================================================
# Logging
# =============================================================================

def test_sensitive_keys_are_redacted():
    event = {
        "event": "existence_query",
        "password": "hunter2",
        "config": {"DATABASE_URL": "postgresql://u:p@db/app", "pool": 5},
        "headers": [{"Authorization": "Bearer x"}],
    }
    redacted = _censor_sensitive_keys(None, "info", event)
    assert redacted["password"] == "[REDACTED]"
    assert redacted["config"] == {"DATABASE_URL": "[REDACTED]", "pool": 5}
    assert redacted["headers"] == [{"Authorization": "[REDACTED]"}]
    assert redacted["event"] == "existence_query"


def test_logger_registry_caches_per_domain():
    assert LoggerRegistry.get("validation") is validation_logger()
    assert dispatch_logger() is dispatch_logger()
    assert dispatch_logger() is not validation_logger()


def test_configure_logging_installs_one_root_handler(monkeypatch):
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        configure_logging("debug", json_logs=True, log_sql=True)
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG
        assert logging.getLogger("sqlalchemy.engine").level == logging.DEBUG

        monkeypatch.setenv("VALET_LOG_LEVEL", "WARNING")
        get_settings.cache_clear()
        configure_from_settings()
        assert root.level == logging.WARNING
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
    finally:
        root.handlers = saved_handlers
        root.setLevel(saved_level)
        structlog.reset_defaults()


def test_context_helpers_proxy_structlog_contextvars():
    clear_context()
    try:
        bind_context(request_id="r-1", tenant="acme")
        assert structlog.contextvars.get_contextvars() == {"request_id": "r-1", "tenant": "acme"}
        unbind_context("tenant")
        assert structlog.contextvars.get_contextvars() == {"request_id": "r-1"}
    finally:
        clear_context()
    assert structlog.contextvars.get_contextvars() == {}
