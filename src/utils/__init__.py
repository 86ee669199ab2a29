"""
AntiSpam - Utils Package
========================

Stateless helpers shared by the core and the service layer.

Available Utilities:
    Async: gather/safe-call/background-task wrappers that log failures
    Time: Compact duration formatting for incident content
"""

from .async_utils import create_safe_task, gather_with_logging, safe_async_operation
from .time_format import format_duration


__all__ = [
    "create_safe_task",
    "gather_with_logging",
    "safe_async_operation",
    "format_duration",
]
