from __future__ import annotations

import logging
import os

from comanda.application.ports.publisher import EventPublisher

logger = logging.getLogger(__name__)


def events_channel() -> str:
    return os.getenv("COMANDA_EVENTS_CHANNEL", "events:comanda")


def publish_event(publisher: EventPublisher, message: str) -> None:
    """Publish after commit. Subscribers also poll, so a lost event is only logged."""
    try:
        publisher.publish(channel=events_channel(), message=message)
    except Exception:
        logger.warning("event_publish_failed", exc_info=True, extra={"channel": events_channel()})
