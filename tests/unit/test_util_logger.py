import json
import logging

import pytest

from util_logger import ComponentType, JSONFormatter, LoggerFactory, LogLevel, log_exceptions


def _record(message="hello", **attrs):
    record = logging.LogRecord("service.Test", logging.INFO, __file__, 10, message, None, None)
    for key, value in attrs.items():
        setattr(record, key, value)
    return record


def test_json_formatter_emits_custom_dimensions():
    payload = json.loads(JSONFormatter().format(_record(custom_dimensions={"run_id": "abc"})))

    assert payload["level"] == "INFO"
    assert payload["message"] == "hello"
    assert payload["customDimensions"] == {"run_id": "abc"}


def test_context_logger_merges_run_fields():
    logger = LoggerFactory.create_with_context(
        ComponentType.SERVICE, "MapFeaturesService", run_id="r1", stage="regenerate"
    )

    _, kwargs = logger.process("msg", {"extra": {"custom_dimensions": {"lines": 3}}})

    assert kwargs["extra"]["custom_dimensions"] == {
        "run_id": "r1",
        "stage": "regenerate",
        "component_type": "service",
        "component_name": "MapFeaturesService",
        "lines": 3,
    }


def test_log_exceptions_logs_and_reraises(caplog):
    @log_exceptions(ComponentType.PIPELINE, "Failing")
    def explode():
        raise KeyError("feeder")

    with caplog.at_level(logging.ERROR, logger="pipeline.Failing"):
        with pytest.raises(KeyError):
            explode()

    assert any(r.message == "Exception in explode" for r in caplog.records)


def test_level_override_maps_to_python_level():
    adapter = LoggerFactory.create_logger(ComponentType.REPOSITORY, "LevelCheck", level=LogLevel.DEBUG)

    assert adapter.logger.level == logging.DEBUG
    assert [level.to_python_level() for level in LogLevel] == [
        logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL,
    ]
