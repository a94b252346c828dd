"""
Metrics emission for observability.

This module provides metrics tracking for:
- Travis API call latency and status codes
- Update cycle duration and outcome
"""

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from travis_status.utils.logging import get_logger, log_api_call

logger = get_logger(__name__)


class UpdateTimer:
    """Measures one status update cycle."""

    def __init__(self, request_seq: int):
        self.request_seq = request_seq
        self.start_time = time.monotonic()
        self.duration_ms: Optional[float] = None

    def stop(self, outcome: str) -> float:
        """
        Stop the timer and emit the cycle metrics.

        Args:
            outcome: Display state the cycle ended in

        Returns:
            Cycle duration in milliseconds
        """
        self.duration_ms = (time.monotonic() - self.start_time) * 1000
        emit_metric(
            "status_update.duration_ms",
            self.duration_ms,
            request_seq=self.request_seq,
            outcome=outcome,
        )
        return self.duration_ms


@asynccontextmanager
async def track_api_call(
    service: str,
    logger_adapter,
    endpoint: str = "",
    method: str = "GET",
) -> AsyncIterator[Dict[str, Any]]:
    """
    Context manager to track API call timing.

    Usage:
        async with track_api_call("travis", logger, endpoint=path) as call:
            response = await client.get(path)
            call["status_code"] = response.status_code

    Args:
        service: Service name
        logger_adapter: Logger for logging API calls
        endpoint: Endpoint path
        method: HTTP method

    Yields:
        Mutable dict the caller fills with the response status code
    """
    call: Dict[str, Any] = {"status_code": None}
    start_time = time.monotonic()
    error = None

    try:
        yield call
    except Exception as e:
        error = e
        raise
    finally:
        duration_ms = (time.monotonic() - start_time) * 1000
        log_api_call(
            logger_adapter,
            service=service,
            endpoint=endpoint,
            method=method,
            status_code=call["status_code"],
            duration_ms=duration_ms,
            error=(str(error) or type(error).__name__) if error else None
        )


def emit_metric(metric_name: str, value: float, **tags: Any) -> None:
    """
    Emit a metric.

    Metrics are written to the structured log; a log shipper can turn
    them into time series.

    Args:
        metric_name: Metric name
        value: Metric value
        **tags: Metric tags/labels
    """
    logger.info(
        f"Metric: {metric_name}",
        extra={
            "metric_name": metric_name,
            "metric_value": value,
            "metric_tags": tags,
        }
    )
