"""Structured logging via structlog.

Configures structlog once at startup. All subsequent calls to
`structlog.get_logger()` (or `logging.getLogger()` via the stdlib bridge)
use this configuration.

Renderer selection:
  debug=True  : `ConsoleRenderer` with colours for local runs.
  debug=False : `JSONRenderer` for machine-parseable CI logs.

ContextVar injection:
  The `artifact` field is injected into every structlog event while an upload is
  in flight (see `artifact_context`), so nested components never need to
  pass the artifact name around just for logging.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

import structlog

_artifact_var: ContextVar[str] = ContextVar("artifact", default="")


def get_artifact_name() -> str:
    """Return the artifact currently being uploaded, or empty string."""
    return _artifact_var.get()


@contextmanager
def artifact_context(name: str) -> Iterator[None]:
    """Bind `name` as the current artifact for the duration of the block."""
    token = _artifact_var.set(name)
    try:
        yield
    finally:
        _artifact_var.reset(token)


def _inject_context_vars(
    logger: logging.Logger,
    method: str,
    event_dict: dict,
) -> dict:
    """Structlog processor: inject the artifact name from its ContextVar."""
    artifact = get_artifact_name()
    if artifact:
        event_dict["artifact"] = artifact
    return event_dict


def configure_logging(debug: bool = False) -> None:
    """Configure structlog for the process lifetime.

    Calling multiple times is safe; structlog is idempotent.
    """
    shared_processors: list = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _inject_context_vars,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if debug:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if debug else logging.INFO
        ),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    # Bridge stdlib logging so boto3/httpx and our own module loggers
    # share the stream.
    logging.basicConfig(
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
        level=logging.DEBUG if debug else logging.INFO,
    )
