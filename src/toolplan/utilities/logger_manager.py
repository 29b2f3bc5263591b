"""Logger manager with colored console output, structured records and metrics.

Planner services log through a :class:`CustomLogger` obtained from a
:class:`LoggerManager` and record timings and counters with
:meth:`LoggerManager.log_metric`. Metrics are kept in process and can be
forwarded to an exporter callback.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
import datetime
from enum import Enum
import hashlib
import json
import logging
from logging import Handler, Logger, LogRecord, getLevelName
from logging.handlers import RotatingFileHandler
from pathlib import Path
import sys
import threading
import time
from typing import Any, ClassVar

import colorlog


class MetricType(Enum):
    """Enum for supported metric types."""

    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"


@dataclass
class LoggerConfig:
    """Configuration for LoggerManager.

    ``log_dir=None`` keeps logging on the console only, which is what the
    library does unless an application opts into file output.
    """

    log_dir: Path | None = None
    log_level: str = "INFO"
    log_file_name: str = "toolplan.log"
    max_file_size_mb: int = 10
    backup_count: int = 3
    structured_logging: bool = False
    telemetry_enabled: bool = True
    log_colors: dict[str, str] | None = None
    metric_export_callback: Callable[[dict[str, Any]], None] | None = None
    histogram_buckets: list[float] | None = None

    DEFAULT_LOG_COLORS: ClassVar[dict[str, str]] = {
        "DEBUG": "cyan",
        "INFO": "green",
        "WARNING": "yellow",
        "ERROR": "red",
        "CRITICAL": "red,bg_white",
    }
    DEFAULT_HISTOGRAM_BUCKETS: ClassVar[list[float]] = [
        0.001,
        0.005,
        0.01,
        0.05,
        0.1,
        0.5,
        1.0,
        float("inf"),
    ]

    def __post_init__(self) -> None:
        """Normalize and validate configuration."""
        self.log_level = self.log_level.upper()
        if self.log_dir is not None:
            self.log_dir = Path(self.log_dir).resolve()
            self.log_dir.mkdir(parents=True, exist_ok=True)
        self.log_colors = self.log_colors or self.DEFAULT_LOG_COLORS
        self.histogram_buckets = (
            self.histogram_buckets or self.DEFAULT_HISTOGRAM_BUCKETS
        )


class StructuredFormatter(logging.Formatter):
    """JSON formatter carrying the ``context`` attached to a record."""

    def format(self, record: LogRecord) -> str:
        log_data = {
            "timestamp": datetime.datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
            "context": getattr(record, "context", {}),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, ensure_ascii=False, default=str)


class LoggerSettings:
    """Builds console and file handlers from a LoggerConfig."""

    def __init__(self, config: LoggerConfig) -> None:
        self.config = config

    def get_handlers(self) -> tuple[Handler, Handler | None]:
        return self._get_console_handler(), self._get_file_handler()

    def _get_console_handler(self) -> Handler:
        handler = colorlog.StreamHandler()
        formatter: logging.Formatter = (
            StructuredFormatter()
            if self.config.structured_logging
            else colorlog.ColoredFormatter(
                "%(log_color)s%(asctime)s - [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
                log_colors=self.config.log_colors,
            )
        )
        handler.setFormatter(formatter)
        return handler

    def _get_file_handler(self) -> RotatingFileHandler | None:
        if self.config.log_dir is None:
            return None
        file_path = self.config.log_dir / self.config.log_file_name
        try:
            handler = RotatingFileHandler(
                file_path,
                maxBytes=self.config.max_file_size_mb * 1024 * 1024,
                backupCount=self.config.backup_count,
            )
        except OSError as e:
            print(f"Failed to create RotatingFileHandler: {e}", file=sys.stderr)
            return None
        handler.setFormatter(
            StructuredFormatter()
            if self.config.structured_logging
            else logging.Formatter(
                "%(asctime)s - [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        return handler


class CustomLogger:
    """Logger wrapper that merges a bound context into every record."""

    def __init__(
        self,
        logger: Logger,
        manager: LoggerManager,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        self.logger = logger
        self.manager = manager
        self._context: dict[str, Any] = dict(context or {})

    def _merge(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        extra = dict(kwargs.pop("extra", None) or {})
        extra["context"] = {**self._context, **extra.get("context", {})}
        kwargs["extra"] = extra
        return kwargs

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.debug(msg, *args, **self._merge(kwargs))

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.info(msg, *args, **self._merge(kwargs))

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.warning(msg, *args, **self._merge(kwargs))

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.error(msg, *args, **self._merge(kwargs))

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.exception(msg, *args, **self._merge(kwargs))

    def log(self, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.log(level, msg, *args, **self._merge(kwargs))

    def isEnabledFor(self, level: int) -> bool:  # noqa: N802
        return self.logger.isEnabledFor(level)

    @contextmanager
    def context(self, **context_kwargs: Any) -> Iterator[CustomLogger]:
        """Yield a logger whose records also carry ``context_kwargs``."""
        yield CustomLogger(
            self.logger, self.manager, {**self._context, **context_kwargs}
        )


class LoggerManager:
    """Owns a configured logger and an in-process metric registry."""

    def __init__(
        self,
        name: str | LoggerConfig = "toolplan",
        config: LoggerConfig | None = None,
    ) -> None:
        if isinstance(name, LoggerConfig):
            config = name
            name = "toolplan"
        self.name = name
        self.config = config or LoggerConfig()
        self.settings = LoggerSettings(self.config)
        self._telemetry_metrics: dict[str, dict[str, Any]] = defaultdict(
            lambda: {"type": MetricType.COUNTER.value, "value": 0, "count": 0}
        )
        self._metrics_lock = threading.Lock()
        self._logger = self._configure_logger()

    def get_logger(self, **context: Any) -> CustomLogger:
        """Return the configured logger, optionally bound to ``context``."""
        return CustomLogger(self._logger, self, context)

    @property
    def logger_name(self) -> str:
        """Name of the logger backing this manager.

        Managers sharing ``name`` and the same level, formatter and log file
        share one logger; any other configuration gets its own child logger,
        so one manager never changes the output of another.
        """
        parts = [self.name]
        if self.config.log_level != "INFO":
            parts.append(self.config.log_level.lower())
        if self.config.structured_logging:
            parts.append("structured")
        if self.config.log_dir is not None:
            target = str(self.config.log_dir / self.config.log_file_name)
            digest = hashlib.sha1(target.encode("utf-8")).hexdigest()[:8]
            parts.append(f"file_{digest}")
        return ".".join(parts)

    def _configure_logger(self) -> Logger:
        logger = logging.getLogger(self.logger_name)
        if getattr(logger, "_toolplan_configured", False):
            return logger
        logger.setLevel(getLevelName(self.config.log_level))
        console_handler, file_handler = self.settings.get_handlers()
        logger.addHandler(console_handler)
        if file_handler:
            logger.addHandler(file_handler)
        logger.propagate = False
        logger._toolplan_configured = True  # type: ignore[attr-defined]
        return logger

    def log_metric(
        self,
        metric_name: str,
        value: int | float,
        metric_type: MetricType = MetricType.COUNTER,
        tags: Mapping[str, str] | None = None,
    ) -> None:
        """Record a counter increment, gauge value or histogram observation."""
        if not self.config.telemetry_enabled:
            return

        tags_dict: dict[str, str] = dict(tags or {})
        with self._metrics_lock:
            metric = self._telemetry_metrics[metric_name]
            metric["type"] = metric_type.value
            metric["tags"] = tags_dict
            metric["count"] += 1

            if metric_type == MetricType.COUNTER:
                metric["value"] += value
            elif metric_type == MetricType.GAUGE:
                metric["value"] = value
            elif metric_type == MetricType.HISTOGRAM:
                metric["value"] += value
                histogram = metric.setdefault("histogram", {})
                for bucket in self.config.histogram_buckets or []:
                    if value <= bucket:
                        key = f"le_{bucket}"
                        histogram[key] = histogram.get(key, 0) + 1
                        break
            snapshot = {
                "name": metric_name,
                "type": metric_type.value,
                "value": metric["value"],
                "tags": tags_dict,
                "histogram": dict(metric.get("histogram", {})) or None,
                "timestamp": datetime.datetime.now().isoformat(),
            }

        self._logger.debug(
            "Metric recorded: %s = %s",
            metric_name,
            value,
            extra={"context": {"metric": metric_name, "tags": tags_dict}},
        )
        callback = self.config.metric_export_callback
        if callback is not None:
            try:
                callback(snapshot)
            except Exception as e:
                self._logger.error(
                    f"Metric export failed: {e}",
                    extra={"context": {"metric": metric_name, "error": str(e)}},
                )

    @contextmanager
    def timed(
        self, metric_name: str, tags: Mapping[str, str] | None = None
    ) -> Iterator[None]:
        """Record the duration of the enclosed block as a histogram sample."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.log_metric(
                metric_name,
                time.perf_counter() - start,
                MetricType.HISTOGRAM,
                tags=tags,
            )

    def get_metrics(self) -> dict[str, dict[str, Any]]:
        """Return a copy of collected telemetry metrics."""
        with self._metrics_lock:
            return {name: dict(data) for name, data in self._telemetry_metrics.items()}

    def reset_metrics(self) -> None:
        with self._metrics_lock:
            self._telemetry_metrics.clear()

    def flush(self) -> None:
        for handler in self._logger.handlers:
            handler.flush()

    def export_metrics_to_file(self, file_path: str | Path) -> None:
        """Write collected metrics as JSON."""
        metrics = self.get_metrics()
        try:
            with open(file_path, "w", encoding="utf-8") as f:
                json.dump(metrics, f, indent=2)
        except OSError as e:
            self._logger.error(
                f"Metrics export to file failed: {e}",
                extra={"context": {"file_path": str(file_path), "error": str(e)}},
            )
