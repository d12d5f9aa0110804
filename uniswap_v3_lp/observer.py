"""
Event observers.

The core never touches a global logger: every component takes an
``EventObserver`` and reports ``on_event(kind, **fields)`` synchronously.
``StructlogObserver`` is the production implementation; ``RecordingObserver``
keeps events in memory for tests.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol, Tuple

import structlog

# event kinds that are not errors but need attention
WARNING_EVENTS = {
    "out_of_range",
    "extra_positions_ignored",
    "position_missing",
    "hedge_skipped",
    "state_inconsistency",
}


class EventObserver(Protocol):
    def on_event(self, kind: str, **fields: Any) -> None:
        ...


def _level_for(kind: str) -> str:
    if kind.endswith("_failed") or kind.endswith("_error"):
        return "error"
    if kind.endswith("_warning") or kind in WARNING_EVENTS:
        return "warning"
    if kind.endswith("_debug") or kind in ("in_range", "cycle_started"):
        return "debug"
    return "info"


class StructlogObserver:
    """Forwards events to structlog, picking the level from the event kind."""

    def __init__(self, logger: Optional[Any] = None, **context: Any) -> None:
        self._logger = logger or structlog.get_logger("uniswap_v3_lp")
        if context:
            self._logger = self._logger.bind(**context)

    def on_event(self, kind: str, **fields: Any) -> None:
        getattr(self._logger, _level_for(kind))(kind, **fields)


class RecordingObserver:
    """Keeps every event in order. Used by tests and dry runs."""

    def __init__(self) -> None:
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def on_event(self, kind: str, **fields: Any) -> None:
        self.events.append((kind, fields))

    def kinds(self) -> List[str]:
        return [kind for kind, _ in self.events]

    def count(self, kind: str) -> int:
        return sum(1 for k, _ in self.events if k == kind)


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """Configure structlog once, from the process harness."""
    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        cache_logger_on_first_use=True,
    )
