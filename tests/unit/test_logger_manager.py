from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import pytest

from toolplan.utilities.logger_manager import (
    LoggerConfig,
    LoggerManager,
    MetricType,
    StructuredFormatter,
)


def test_counter_gauge_histogram() -> None:
    manager = LoggerManager(LoggerConfig())
    manager.log_metric("plans", 1)
    manager.log_metric("plans", 2)
    manager.log_metric("groups", 5, MetricType.GAUGE)
    manager.log_metric("groups", 3, MetricType.GAUGE)
    manager.log_metric("latency", 0.003, MetricType.HISTOGRAM)
    metrics = manager.get_metrics()
    assert metrics["plans"]["value"] == 3
    assert metrics["plans"]["count"] == 2
    assert metrics["groups"]["value"] == 3
    assert metrics["latency"]["histogram"] == {"le_0.005": 1}
    manager.reset_metrics()
    assert manager.get_metrics() == {}


def test_timed_records_histogram_even_on_error() -> None:
    manager = LoggerManager(LoggerConfig())
    with pytest.raises(RuntimeError):
        with manager.timed("work", tags={"stage": "closure"}):
            raise RuntimeError("boom")
    metric = manager.get_metrics()["work"]
    assert metric["type"] == "histogram"
    assert metric["tags"] == {"stage": "closure"}


def test_telemetry_can_be_disabled() -> None:
    manager = LoggerManager(LoggerConfig(telemetry_enabled=False))
    manager.log_metric("plans", 1)
    assert manager.get_metrics() == {}


def test_export_callback_receives_snapshot() -> None:
    received: list[dict[str, Any]] = []
    manager = LoggerManager(LoggerConfig(metric_export_callback=received.append))
    manager.log_metric("plans", 4, tags={"code": "ok"})
    assert received[0]["name"] == "plans"
    assert received[0]["value"] == 4
    assert received[0]["tags"] == {"code": "ok"}


def test_failing_export_callback_is_logged() -> None:
    def explode(_: dict[str, Any]) -> None:
        raise RuntimeError("exporter down")

    manager = LoggerManager(LoggerConfig(metric_export_callback=explode))
    manager.log_metric("plans", 1)
    assert manager.get_metrics()["plans"]["value"] == 1


def test_export_metrics_to_file(tmp_path: Path) -> None:
    manager = LoggerManager(LoggerConfig())
    manager.log_metric("plans", 2)
    target = tmp_path / "metrics.json"
    manager.export_metrics_to_file(target)
    assert json.loads(target.read_text(encoding="utf-8"))["plans"]["value"] == 2


def test_context_is_attached_to_records(caplog: pytest.LogCaptureFixture) -> None:
    manager = LoggerManager("planner_test_context", LoggerConfig(log_level="DEBUG"))
    manager._logger.propagate = True
    logger = manager.get_logger(component="unit")
    with caplog.at_level(logging.INFO, logger=manager.logger_name):
        with logger.context(signature=["a"]) as bound:
            bound.info("planning %s", "a")
    record = caplog.records[-1]
    assert record.getMessage() == "planning a"
    assert record.context == {"component": "unit", "signature": ["a"]}


def test_structured_formatter_emits_json() -> None:
    record = logging.LogRecord(
        "toolplan", logging.WARNING, __file__, 1, "cycle %s", ("a",), None
    )
    record.context = {"signature": ["a"]}
    payload = json.loads(StructuredFormatter().format(record))
    assert payload["message"] == "cycle a"
    assert payload["level"] == "WARNING"
    assert payload["context"] == {"signature": ["a"]}


def test_file_handler_writes_to_log_dir(tmp_path: Path) -> None:
    manager = LoggerManager(
        "planner_test_file", LoggerConfig(log_dir=tmp_path / "logs")
    )
    manager.get_logger().info("hello")
    manager.flush()
    assert (tmp_path / "logs" / "toolplan.log").read_text(encoding="utf-8").strip()


def test_managers_with_different_configs_keep_their_own_output() -> None:
    colored = LoggerManager("planner_test_split", LoggerConfig())
    structured = LoggerManager(
        "planner_test_split", LoggerConfig(log_level="DEBUG", structured_logging=True)
    )
    same = LoggerManager("planner_test_split", LoggerConfig())

    assert colored.logger_name == "planner_test_split"
    assert structured.logger_name == "planner_test_split.debug.structured"
    assert same._logger is colored._logger
    assert len(colored._logger.handlers) == 1

    def formatters(manager: LoggerManager) -> list[logging.Formatter | None]:
        return [handler.formatter for handler in manager._logger.handlers]

    assert not any(isinstance(f, StructuredFormatter) for f in formatters(colored))
    assert all(isinstance(f, StructuredFormatter) for f in formatters(structured))
    assert colored._logger.level == logging.INFO
    assert structured._logger.level == logging.DEBUG
