"""Logging configuration tests."""

import logging
import logging.config

from userhub.api.middleware import RequestContextFilter, request_id_var
from userhub.logging import PROD_FORMAT, build_log_config, get_uvicorn_log_config


def _record() -> logging.LogRecord:
    return logging.LogRecord("userhub.test", logging.INFO, __file__, 1, "hello", None, None)


def test_filter_tags_records_with_request_id():
    token = request_id_var.set("req-123")
    try:
        record = _record()
        assert RequestContextFilter().filter(record) is True
        assert record.request_id == "req-123"
    finally:
        request_id_var.reset(token)


def test_filter_outside_request_uses_placeholder():
    record = _record()
    RequestContextFilter().filter(record)
    assert record.request_id == "-"


def test_prod_format_renders_request_id():
    record = _record()
    record.request_id = "req-456"

    line = logging.Formatter(PROD_FORMAT).format(record)

    assert "[req-456]" in line
    assert "hello" in line


def test_app_config_routes_through_request_filter():
    config = build_log_config()

    assert config["handlers"]["app"]["filters"] == ["request_context"]
    assert config["root"]["handlers"] == ["app"]
    assert "uvicorn.access" not in config["loggers"]
    assert config["loggers"]["aiosmtplib"]["level"] == "WARNING"


def test_uvicorn_config_is_loadable():
    config = get_uvicorn_log_config()

    assert config["loggers"]["uvicorn.access"]["handlers"] == ["access"]
    assert config["loggers"]["uvicorn.error"]["handlers"] == ["app"]
    logging.config.dictConfig(config)
    assert logging.getLogger("uvicorn.access").propagate is False
