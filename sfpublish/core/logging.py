"""Structured logging via structlog.

Configures structlog once per process. Pipeline modules log through
`logging.getLogger(__name__)`; the orchestrator uses `structlog.get_logger()`
for run-level events.

Renderer selection:
  json_output=False — `ConsoleRenderer` for a developer terminal.
  json_output=True  — `JSONRenderer` for CI log collectors.

ContextVar injection:
  `run_id` is injected into every structlog line from `_run_id_var`. The
  orchestrator sets it at the start of each run so all lines of one build
  hook invocation can be correlated.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar, Token

import structlog

_run_id_var: ContextVar[str] = ContextVar("run_id", default="")


def get_run_id() -> str:
    """Return the current run ID, or empty string outside a run."""
    return _run_id_var.get()


def bind_run_id(run_id: str) -> Token[str]:
    return _run_id_var.set(run_id)


def reset_run_id(token: Token[str]) -> None:
    _run_id_var.reset(token)


def _inject_run_id(
    logger: logging.Logger,
    method: str,
    event_dict: dict,
) -> dict:
    """Structlog processor: inject run_id from the ContextVar."""
    run_id = get_run_id()
    if run_id:
        event_dict["run_id"] = run_id
    return event_dict


def configure_structlog(debug: bool = False, json_output: bool = False) -> None:
    """Configure structlog and the stdlib root logger.

    Safe to call more than once; the last call wins.
    """
    shared_processors: list = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _inject_run_id,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    level = logging.DEBUG if debug else logging.INFO

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    # Stdlib loggers (pipeline modules, httpx) write to the same stream.
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
        level=level,
        force=True,
    )
