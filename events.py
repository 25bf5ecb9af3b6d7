"""
Diplomatic event sink.
An append-only log of immutable, timestamped notifications for presentation layers.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Dict, List, Tuple, Any
import itertools
import logging

logger = logging.getLogger(__name__)


class DiplomaticEventType(Enum):
    WAR_DECLARED = auto()
    PEACE_TREATY = auto()
    ANNEXATION = auto()
    LIBERATION = auto()
    ALLIANCE = auto()
    DIPLOMACY = auto()
    REVANCHISM = auto()
    TERRITORY_DEMANDED = auto()
    CRISIS = auto()
    UN_RESOLUTION = auto()
    SUMMIT = auto()
    INFLUENCE = auto()
    ARTICLE_FIVE = auto()


@dataclass(frozen=True)
class DiplomaticEvent:
    id: str
    type: DiplomaticEventType
    severity: int  # 1 minor, 2 major, 3 critical
    title: str
    description: str
    affected: Tuple[str, ...]
    timestamp: int  # tick

    def __str__(self):
        return f"{self.type.name}: {self.title}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.name,
            "severity": self.severity,
            "title": self.title,
            "description": self.description,
            "affected": list(self.affected),
            "timestamp": self.timestamp,
        }


class EventLog:
    """Append-only event sequence. Insertion order is delivery order."""

    def __init__(self):
        self._events: List[DiplomaticEvent] = []
        self._listeners: List[Callable[[DiplomaticEvent], None]] = []
        self._ids = itertools.count(1)
        self.tick = 0

    def __len__(self):
        return len(self._events)

    def __iter__(self):
        return iter(list(self._events))

    def subscribe(self, listener: Callable[[DiplomaticEvent], None]):
        self._listeners.append(listener)

    def emit(self, event_type: DiplomaticEventType, title: str, description: str = "",
             affected=(), severity: int = 1) -> DiplomaticEvent:
        severity = max(1, min(3, int(severity)))
        event = DiplomaticEvent(
            id=f"{event_type.name.lower()}-{next(self._ids)}",
            type=event_type,
            severity=severity,
            title=title,
            description=description or title,
            affected=tuple(affected),
            timestamp=self.tick,
        )
        self._events.append(event)
        logger.debug(f"EVENT [{severity}] {title}")
        for listener in self._listeners:
            listener(event)
        return event

    def since(self, index: int) -> List[DiplomaticEvent]:
        return self._events[index:]

    def for_tick(self, tick: int) -> List[DiplomaticEvent]:
        return [e for e in self._events if e.timestamp == tick]

    def of_type(self, event_type: DiplomaticEventType) -> List[DiplomaticEvent]:
        return [e for e in self._events if e.type == event_type]
