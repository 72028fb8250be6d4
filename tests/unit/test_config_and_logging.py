"""Unit tests for settings validation and log formatting."""

from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from aso_engine.config import Settings
from aso_engine.core.logging import ROOT_LOGGER_NAME, JSONExtrasFormatter, setup_logging


def test_settings_defaults() -> None:
    config = Settings()

    assert config.kpi_registry_version == "v1"
    assert config.get_char_limits("primary") == (30, 30)
    assert config.get_char_limits("secondary") == (50, 80)
    assert config.locale_char_budget == 160


def test_settings_read_environment(monkeypatch) -> None:
    monkeypatch.setenv("MAX_COMBOS_PER_SOURCE", "42")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = Settings()

    assert config.max_combos_per_source == 42
    assert config.log_level == "DEBUG"


@pytest.mark.parametrize(
    "overrides",
    [
        {"combo_min_length": 3, "combo_max_length": 2},
        {"combo_max_length": 5},
        {"max_combos_per_source": 0},
        {"log_level": "chatty"},
    ],
)
def test_invalid_settings_are_rejected(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        Settings(**overrides)


def test_formatter_appends_extras_as_json() -> None:
    record = logging.makeLogRecord(
        {
            "name": "aso_engine.test",
            "levelname": "INFO",
            "levelno": logging.INFO,
            "msg": "Generated %s combos",
            "args": (3,),
            "locale": "en-US",
        }
    )

    line = JSONExtrasFormatter().format(record)

    assert line.endswith('| INFO     | aso_engine.test | Generated 3 combos {"locale": "en-US"}')


def test_setup_logging_is_idempotent() -> None:
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    saved = (list(logger.handlers), logger.level, logger.propagate)
    logger.handlers = []
    try:
        setup_logging("warning")
        setup_logging("debug")

        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG
        assert isinstance(logger.handlers[0].formatter, JSONExtrasFormatter)
    finally:
        logger.handlers, logger.level, logger.propagate = saved
