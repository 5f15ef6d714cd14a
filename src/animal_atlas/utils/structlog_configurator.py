"""Structlog-based logging configuration for Animal Atlas.

This module provides structured logging configuration using structlog on top
of the standard logging system, so that modules logging through
``logging.getLogger(__name__)`` and structlog loggers share one output.

Supports different deployment targets:
- Docker: JSON output on stderr
- Development: human-readable output with debug detail for source failures
- Library/CLI use: configurable JSON or human-readable output
"""

import logging
import os
import sys
from collections.abc import Callable
from importlib import metadata
from typing import Any

import structlog

from animal_atlas.config.models import AtlasConfig

ENV_VARIABLE = "ANIMAL_ATLAS_ENV"


def is_docker_environment() -> bool:
    """Check if running in a Docker container."""
    return os.path.exists("/.dockerenv") or os.environ.get("DOCKER_CONTAINER") == "true"


def is_development() -> bool:
    """Check if running as a development build."""
    return os.environ.get(ENV_VARIABLE, "production") == "development"


def get_package_version() -> str:
    """Get the installed animal-atlas version, or 'unknown' when running from a checkout."""
    try:
        return metadata.version("animal-atlas")
    except metadata.PackageNotFoundError:
        return "unknown"


def get_deployment_environment() -> str:
    """Get deployment environment with 'unknown' fallback."""
    if is_docker_environment():
        return "docker"
    elif is_development():
        return "development"
    else:
        return "unknown"


def _add_static_context(extra_fields: dict[str, str]) -> Callable:
    """Processor to add static context fields to all log entries."""

    def processor(
        logger: structlog.BoundLogger, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        event_dict.update(extra_fields)
        return event_dict

    return processor


def _configure_processors(config: AtlasConfig, is_docker: bool, development: bool) -> list:
    """Configure structlog processors based on environment."""
    extra_fields = {
        "service": "animal-atlas",
        "version": get_package_version(),
        "deployment": get_deployment_environment(),
        **config.logging.extra_fields,
    }

    processors = [
        structlog.contextvars.merge_contextvars,
        _add_static_context(extra_fields),
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="ISO"),
    ]

    if config.logging.include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder())

    use_json = config.logging.json_logs
    if use_json is None:
        # Auto-detect: JSON in containers, human-readable elsewhere
        use_json = is_docker and not development

    if use_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    return processors


def _resolve_level(config: AtlasConfig, development: bool) -> int:
    """Resolve the effective level; development builds always log debug detail."""
    if development:
        return logging.DEBUG
    return getattr(logging, config.logging.level.upper(), logging.INFO)


def _build_formatter(processors: list) -> structlog.stdlib.ProcessorFormatter:
    """Formatter that renders stdlib records through the structlog chain.

    Records from ``logging.getLogger(__name__)`` run the shared processors plus
    ``ExtraAdder``, so their ``extra={...}`` fields become event keys. Events
    from structlog loggers arrive already processed and are only rendered.
    """
    *shared, renderer = processors
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[*shared, structlog.stdlib.ExtraAdder()],
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )


def _configure_handlers(log_level: int, formatter: logging.Formatter) -> None:
    """Route stdlib logging through a single stderr handler."""
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(log_level)

    # stdout is reserved for command output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(log_level, logging.WARNING))


def configure_structlog(config: AtlasConfig) -> None:
    """Configure structlog-based logging system.

    Args:
        config: The AtlasConfig instance containing logging settings.
    """
    is_docker = is_docker_environment()
    development = is_development()
    log_level = _resolve_level(config, development)

    processors = _configure_processors(config, is_docker, development)

    # The renderer runs in the handler formatter, shared with stdlib records
    structlog.configure(
        processors=[*processors[:-1], structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _configure_handlers(log_level, _build_formatter(processors))

    logger = structlog.get_logger(__name__)
    logger.debug(
        "Structured logging configured",
        version=get_package_version(),
        log_level=logging.getLevelName(log_level),
        environment=get_deployment_environment(),
        json_output=config.logging.json_logs,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structlog logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog BoundLogger instance
    """
    return structlog.get_logger(name)
