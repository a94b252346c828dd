"""
Utility modules for the Travis status service.
"""

from travis_status.utils.logging import (
    get_logger,
    setup_logging,
    JSONFormatter,
    ContextLoggerAdapter,
    log_api_call,
    log_update_result,
)
from travis_status.utils.metrics import (
    UpdateTimer,
    track_api_call,
    emit_metric,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "JSONFormatter",
    "ContextLoggerAdapter",
    "log_api_call",
    "log_update_result",
    "UpdateTimer",
    "track_api_call",
    "emit_metric",
]
