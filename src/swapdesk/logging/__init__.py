"""Logging helpers."""

from .alerts import Alert, AlertQueue, AlertType
from .logger import HumanLogger
from .report import generate_series_report

__all__ = ["Alert", "AlertQueue", "AlertType", "HumanLogger", "generate_series_report"]
