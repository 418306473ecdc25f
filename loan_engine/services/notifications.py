"""Notification collaborator seam; events are published only after commit"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Tuple

from loan_engine.infrastructure.clients.notifications import NotificationClient

logger = logging.getLogger(__name__)

Event = Tuple[str, Dict[str, Any]]


class Notifier(ABC):
    """Receives (event_kind, payload) after each committed transition"""

    @abstractmethod
    def notify(self, event_kind: str, payload: Dict[str, Any]) -> None:
        ...


class LoggingNotifier(Notifier):
    """Default collaborator: records the event in the service log only"""

    def notify(self, event_kind: str, payload: Dict[str, Any]) -> None:
        logger.info("Notification event", extra={"event": event_kind, **payload})


class WebhookNotifier(Notifier):
    """Hands events to a scheduler (e.g. FastAPI BackgroundTasks.add_task) for async webhook delivery"""

    def __init__(self, schedule: Callable[..., None], client: NotificationClient | None = None):
        self.schedule = schedule
        self.client = client or NotificationClient()

    def notify(self, event_kind: str, payload: Dict[str, Any]) -> None:
        self.schedule(self.client.send_event, event_kind, payload)


def publish(notifier: Notifier, events: List[Event]) -> None:
    """Fire-and-forget dispatch: a failing collaborator never fails the committed operation"""
    for event_kind, payload in events:
        try:
            notifier.notify(event_kind, payload)
        except Exception:
            logger.exception("Notifier raised while publishing %s", event_kind)
