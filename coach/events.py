import logging
from datetime import datetime
from typing import Callable, Dict, List, NamedTuple

logger = logging.getLogger(__name__)

__all__ = [
    'Event', 'EventBus', 'TRANSACTION_ADDED', 'TRANSACTION_DELETED', 'GOAL_UPDATED',
    'ANALYSIS_COMPLETED', 'NOTIFICATION', 'notification_log',
]

TRANSACTION_ADDED = "TRANSACTION_ADDED"
TRANSACTION_DELETED = "TRANSACTION_DELETED"
GOAL_UPDATED = "GOAL_UPDATED"
ANALYSIS_COMPLETED = "ANALYSIS_COMPLETED"
NOTIFICATION = "NOTIFICATION"


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


Handler = Callable[[Event, dict], dict]


class EventBus:
    def __init__(self):
        self._subscribers: Dict[str, List[Handler]] = {}

    def subscribe(self, name: str, handler: Handler) -> None:
        self._subscribers.setdefault(name, []).append(handler)

    def unsubscribe(self, name: str, handler: Handler) -> None:
        handlers = self._subscribers.get(name, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, name: str, payload: dict) -> List[dict]:
        handlers = list(self._subscribers.get(name, []))
        if not handlers:
            return []

        event = Event(name=name, ts=datetime.now().isoformat(), payload=payload)
        results = []
        for handler in handlers:
            result = handler(event, payload)
            results.append(result if result is not None else {})
        return results

    def notify(self, message: str, level: str = "success") -> List[dict]:
        log = logger.warning if level == "error" else logger.info
        log("%s", message)
        return self.publish(NOTIFICATION, {"message": message, "level": level})


def notification_log(sink: list) -> Handler:
    """Handler that appends every notification to ``sink``."""
    def _handler(event: Event, payload: dict) -> dict:
        sink.append({"ts": event.ts, **payload})
        return {"logged": True}

    return _handler
