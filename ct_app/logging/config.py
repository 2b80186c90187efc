"""
Structured logging setup.

Everything in ct_app logs through structlog on top of the stdlib
``logging`` module, so uvicorn's and our own records end up on the same
stream. Call ``configure_logging`` once at process start (``scripts/run_api.py``
does this from the ``logging`` settings section); modules only ever call
``get_logger(__name__)``.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger, Processor

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _shared_processors(include_timestamp: bool, include_caller: bool) -> list[Processor]:
    chain: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
    ]
    if include_timestamp:
        chain.append(structlog.processors.TimeStamper(fmt="iso", utc=True))
    if include_caller:
        chain.append(structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.MODULE,
                structlog.processors.CallsiteParameter.LINENO,
            ]
        ))
    chain += [
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    return chain


def _renderer(format_json: bool) -> Processor:
    if format_json:
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    include_caller: bool = False,
    extra_processors: Optional[list] = None
) -> None:
    """
    Route structlog through stdlib logging at ``level``.

    ``format_json`` switches the final renderer from the console renderer
    to one JSON object per line, which is what the service uses when its
    output is shipped somewhere. ``extra_processors`` run just before the
    renderer.

    Raises:
        ValueError: If ``level`` is not a known level name
    """
    name = level.upper()
    if name not in LEVELS:
        raise ValueError(f"Unknown log level {level!r}, expected one of {', '.join(LEVELS)}")

    logging.basicConfig(stream=sys.stdout, format="%(message)s")
    logging.getLogger().setLevel(getattr(logging, name))

    processors = _shared_processors(include_timestamp, include_caller)
    processors.extend(extra_processors or [])
    processors.append(_renderer(format_json))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    return structlog.get_logger(name)


def get_audit_logger(name: str) -> FilteringBoundLogger:
    """Logger for registry mutations; every event carries ``subsystem`` and ``audit_trail``."""
    return get_logger(name).bind(subsystem="registry", audit_trail=True)


def log_status_transition(
    logger: FilteringBoundLogger,
    strategy_id: str,
    from_status: str,
    to_status: str,
    trigger: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Emit a ``status_transition`` event for a strategy lifecycle change.

    ``trigger`` names what caused the change (``api``, ``script``...);
    ``context`` is bound as a single nested field when given.
    """
    event_logger = logger.bind(
        strategy_id=strategy_id,
        from_status=from_status,
        to_status=to_status,
        trigger=trigger,
    )
    if context:
        event_logger = event_logger.bind(context=context)
    event_logger.info("status_transition")
