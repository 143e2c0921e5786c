"""
Change notification for committed board mutations.

Subscribers register per topic and are called synchronously after the
persistence gateway has accepted a change. A failing subscriber is logged
and skipped; it never undoes the committed mutation.
"""

import logging
from collections import defaultdict
from typing import Any, Callable, DefaultDict, Dict, List

logger = logging.getLogger(__name__)

COURTS_CHANGED = "courts-changed"
WAITLIST_CHANGED = "waitlist-changed"
BLOCKS_CHANGED = "blocks-changed"

TOPICS = (COURTS_CHANGED, WAITLIST_CHANGED, BLOCKS_CHANGED)

Subscriber = Callable[[str, Dict[str, Any]], None]


class ChangeNotifier:
    def __init__(self):
        self._subscribers: DefaultDict[str, List[Subscriber]] = defaultdict(list)

    def subscribe(self, topic: str, callback: Subscriber) -> None:
        if topic not in TOPICS:
            raise ValueError(f"Unknown topic: {topic}")
        if callback not in self._subscribers[topic]:
            self._subscribers[topic].append(callback)

    def unsubscribe(self, topic: str, callback: Subscriber) -> None:
        if callback in self._subscribers.get(topic, []):
            self._subscribers[topic].remove(callback)

    def publish(self, topic: str, payload: Dict[str, Any]) -> int:
        """Deliver to every subscriber of topic; returns how many succeeded."""
        delivered = 0
        for callback in list(self._subscribers.get(topic, [])):
            try:
                callback(topic, payload)
                delivered += 1
            except Exception:
                logger.exception("Subscriber %r failed for topic %s", callback, topic)
        return delivered
