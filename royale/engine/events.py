# royale/engine/events.py
import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

Subscriber = Callable[[str, Dict[str, Any]], None]

MATCH_INIT = "match_init"
ARCHETYPE_CHOSEN = "archetype_chosen"
MATCH_START = "match_start"
TURN_START = "turn_start"
ACTION_EXECUTED = "action_executed"
ZONE_DAMAGE = "zone_damage"
AGENT_ELIMINATED = "agent_eliminated"
ITEM_SPAWNED = "item_spawned"
ZONE_SHRINK = "zone_shrink"
TURN_END = "turn_end"
MATCH_OVER = "match_over"
STATE_SYNC = "state_sync"


class EventBus:
    """Fan engine events out to observers. A failing subscriber never reaches the match."""

    def __init__(self) -> None:
        self.subscribers: List[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> Subscriber:
        self.subscribers.append(subscriber)
        return subscriber

    def unsubscribe(self, subscriber: Subscriber) -> None:
        if subscriber in self.subscribers:
            self.subscribers.remove(subscriber)

    def publish(self, event: str, payload: Dict[str, Any]) -> None:
        for subscriber in list(self.subscribers):
            try:
                subscriber(event, payload)
            except Exception:
                logger.debug("dropping %s for a failed subscriber", event, exc_info=True)
