"""Utility helpers for logging and telemetry."""

from __future__ import annotations

from .logger_manager import (
    CustomLogger,
    LoggerConfig,
    LoggerManager,
    LoggerSettings,
    MetricType,
)

__all__ = [
    "CustomLogger",
    "LoggerConfig",
    "LoggerManager",
    "LoggerSettings",
    "MetricType",
]
