"""
Operational helpers.

Provides:
- Best-effort background queue for remote mirror writes
- structlog logging configuration
"""

from .background import BackgroundQueue, TaskRecord
from .telemetry import configure_logging

__all__ = ["BackgroundQueue", "TaskRecord", "configure_logging"]
