"""Functional tests for logging setup."""

from __future__ import annotations

import logging

from dynaform.logging_setup import REQUEST_ID, RequestIdFilter, configure_logging


def test_request_id_filter_stamps_records():
    record = logging.LogRecord("dynaform.test", logging.INFO, __file__, 1, "msg", None, None)
    token = REQUEST_ID.set("req-42")
    try:
        assert RequestIdFilter().filter(record) is True
    finally:
        REQUEST_ID.reset(token)
    assert record.request_id == "req-42"


def test_request_id_defaults_outside_requests():
    record = logging.LogRecord("dynaform.test", logging.INFO, __file__, 1, "msg", None, None)
    RequestIdFilter().filter(record)
    assert record.request_id == "-"


def test_configure_logging_leaves_existing_handlers_alone(mocker):
    """Verifies an already configured root logger is not reconfigured."""
    dict_config = mocker.patch("dynaform.logging_setup.dictConfig")
    mocker.patch.object(logging.getLogger(), "handlers", [logging.NullHandler()])
    configure_logging("debug")
    dict_config.assert_not_called()


def test_configure_logging_applies_level_from_environment(mocker, monkeypatch):
    dict_config = mocker.patch("dynaform.logging_setup.dictConfig")
    mocker.patch.object(logging.getLogger(), "handlers", [])
    monkeypatch.setenv("DYNAFORM_LOG_LEVEL", "warning")
    configure_logging()
    config = dict_config.call_args.args[0]
    assert config["loggers"]["dynaform"]["level"] == "WARNING"
