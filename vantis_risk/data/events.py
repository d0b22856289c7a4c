"""Event sinks."""

from __future__ import annotations

import logging
from typing import Any

from vantis_risk.data.interfaces import EventSink

logger = logging.getLogger(__name__)


class LoggingEventSink(EventSink):
    """Writes every event to the log at INFO."""

    def publish(self, topic: tuple[str, ...], payload: dict[str, Any]) -> None:
        logger.info("event %s %s", ".".join(topic), payload)


class RecordingEventSink(EventSink):
    """Keeps events in memory, in publication order."""

    def __init__(self) -> None:
        self.events: list[tuple[tuple[str, ...], dict[str, Any]]] = []

    def publish(self, topic: tuple[str, ...], payload: dict[str, Any]) -> None:
        self.events.append((topic, dict(payload)))

    def topics(self) -> list[tuple[str, ...]]:
        return [topic for topic, _ in self.events]


def publish_safely(sink: EventSink, topic: tuple[str, ...], payload: dict[str, Any]) -> None:
    """Publish without letting a sink failure reach the caller."""
    try:
        sink.publish(topic, payload)
    except Exception:
        logger.warning("Event sink failed for %s", ".".join(topic), exc_info=True)
