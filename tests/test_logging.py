import json
import logging

import pytest
import structlog

from backend.core.logging import setup_logging


def test_json_logs_carry_bound_request_id(capsys):
    setup_logging("INFO", json_logs=True)
    with structlog.contextvars.bound_contextvars(request_id="rid-1"):
        structlog.get_logger("t").info("entitlement_denied", code="ADMIN_REQUIRED")
    event = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert event["event"] == "entitlement_denied"
    assert event["request_id"] == "rid-1"
    assert event["level"] == "info"


def test_level_filters_events_and_stdlib_loggers(capsys):
    setup_logging("warning", json_logs=True)
    structlog.get_logger("t").info("hidden")
    assert "hidden" not in capsys.readouterr().out
    assert logging.getLogger("sqlalchemy").level == logging.WARNING
    setup_logging("INFO")


def test_unknown_level_rejected():
    with pytest.raises(ValueError):
        setup_logging("LOUD")
