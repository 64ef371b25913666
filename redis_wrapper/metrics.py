"""
Prometheus metrics for commands and pool acquisitions.
Getters create each metric once so repeated imports never register duplicates.
"""
import logging

from prometheus_client import Counter, Histogram

logger = logging.getLogger(__name__)


def get_command_duration_histogram():
    if not hasattr(get_command_duration_histogram, "_metric"):
        get_command_duration_histogram._metric = Histogram(
            'redis_wrapper_command_duration_seconds',
            'Redis command duration',
            ['command']
        )
    return get_command_duration_histogram._metric


def get_command_error_counter():
    if not hasattr(get_command_error_counter, "_metric"):
        get_command_error_counter._metric = Counter(
            'redis_wrapper_command_errors_total',
            'Total Redis command errors',
            ['command', 'error_type']
        )
    return get_command_error_counter._metric


def get_acquisition_counter():
    if not hasattr(get_acquisition_counter, "_metric"):
        get_acquisition_counter._metric = Counter(
            'redis_wrapper_pool_acquisitions_total',
            'Connection pool acquisitions by outcome',
            ['outcome']
        )
    return get_acquisition_counter._metric


def record_command(command: str, duration: float, error: BaseException | None = None) -> None:
    """
    * Record one command round trip
    Args:
        command (str): Redis command name, e.g. "GET"
        duration (float): Seconds spent waiting for the reply
        error: Exception raised by the command, if any
    """
    get_command_duration_histogram().labels(command=command).observe(duration)
    if error is not None:
        get_command_error_counter().labels(command=command, error_type=type(error).__name__).inc()
        logger.debug(f"[metrics] {command} failed after {duration:.4f}s: {error}")


def record_acquisition(outcome: str) -> None:
    """Count a pool acquisition by outcome: ok, redialed, expired, exhausted, failed or rejected."""
    get_acquisition_counter().labels(outcome=outcome).inc()
