"""structlog setup for the visitor filter.

Evaluation ids are bound through ``structlog.contextvars``; every entry logged
while ``evaluation_context()`` is active carries ``evaluation_id``, including
entries from the analytics client.
"""

import logging
import sys
import time
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import structlog
from structlog.types import EventDict, Processor


def add_timestamp(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add epoch timestamp to log entries."""
    event_dict["timestamp"] = time.time()
    return event_dict


def configure_logging(log_level: str = "INFO", json_output: bool = True) -> None:
    """Configure structured logging.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_output: JSON lines when True, coloured console output otherwise.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_timestamp,
        structlog.processors.add_log_level,
        structlog.processors.format_exc_info,
    ]
    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = "visitor_filter") -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def evaluation_context(evaluation_id: str) -> Iterator[None]:
    """Bind ``evaluation_id`` to every entry logged inside the block.

    Restores whatever was bound before on exit, so nested or concurrent
    evaluations never see each other's id.
    """
    with structlog.contextvars.bound_contextvars(evaluation_id=evaluation_id):
        yield


class PerformanceLogger:
    """Time one outbound call and log its round trip.

    Logs ``<operation> failed`` on an exception, a warning when the call took
    longer than ``warn_above_ms``, and a debug entry otherwise.
    """

    def __init__(
        self,
        operation: str,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
        warn_above_ms: float = 50.0,
    ):
        self.operation = operation
        self.logger = logger or get_logger()
        self.warn_above_ms = warn_above_ms
        self._started = 0.0

    def __enter__(self) -> "PerformanceLogger":
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        elapsed_ms = round((time.perf_counter() - self._started) * 1000, 2)
        if exc_type is not None:
            self.logger.error(
                f"{self.operation} failed",
                duration_ms=elapsed_ms,
                error_type=exc_type.__name__,
            )
            return
        if elapsed_ms > self.warn_above_ms:
            self.logger.warning(f"{self.operation} slow", duration_ms=elapsed_ms)
        else:
            self.logger.debug(f"{self.operation} completed", duration_ms=elapsed_ms)


# Defaults until the host service reconfigures (see visitor_filter.main).
configure_logging()
