"""
Structured Logging

structlog setup shared by the API process, the scheduler and the scripts.

Every event carries the service name and, when one is set, the correlation
id of the HTTP request or pipeline run that produced it. Inside a pipeline
run the pipeline name and run id are bound as context variables, so log
lines from the sync, scoring and leaderboard services called by the run can
be joined to its PipelineRun row.
"""

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator, Optional

import structlog


correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

# Libraries that log every connection or job tick at INFO
_NOISY_LOGGERS = ("apscheduler", "peewee", "urllib3")


def get_correlation_id() -> str:
    return correlation_id_var.get()


def set_correlation_id(cid: str) -> None:
    correlation_id_var.set(cid)


def add_correlation_id(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Processor: copy the current correlation id onto the event."""
    cid = correlation_id_var.get()
    if cid:
        event_dict["correlation_id"] = cid
    return event_dict


def add_service_name(service_name: str) -> structlog.typing.Processor:
    """Processor factory: stamp every event with the service name."""

    def processor(
        logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        event_dict["service"] = service_name
        return event_dict

    return processor


@contextmanager
def pipeline_log_context(pipeline: str, run_id: str, trigger: str) -> Iterator[None]:
    """
    Bind a pipeline run to every event logged inside the block.

    Uses structlog's context variables, so the binding follows the run into
    the worker thread it executes in and is removed when the block exits.
    """
    with structlog.contextvars.bound_contextvars(
        pipeline=pipeline, run_id=run_id, trigger=trigger
    ):
        yield


def setup_logging(
    log_level: str = "INFO",
    json_format: bool = True,
    service_name: str = "predictor-league-engine",
) -> None:
    """
    Configure structlog and the standard library root logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        json_format: JSON lines when True, coloured console output otherwise
        service_name: Value of the "service" key on every event
    """
    level = getattr(logging, log_level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_service_name(service_name),
        add_correlation_id,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if json_format:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """
    Get a logger, optionally named after the component using it.

    Example:
        log = get_logger("sync")
        log.info("competition_synced", competition="premier_league", matches=380)
    """
    return structlog.get_logger(name)
