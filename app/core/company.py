"""
Company & Event
===============
Company = current stage + its event log
Event = immutable fact (append-only)
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from app.core.stages import EventType, Stage


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Event:
    """Something that happened to a company. Never updated or deleted."""
    id: int
    company_id: int
    event_type: EventType
    event_data: dict = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class StageTransition:
    """Audit row: one per accepted advance"""
    company_id: int
    from_stage: Stage
    to_stage: Stage
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Company:
    """
    A company moving through the pipeline.

    `stage` is the single source of truth for pipeline position.
    `events` is the log ordered by (created_at, id) ascending; it is empty
    unless the store was asked to load it.
    """
    id: int
    name: str
    stage: Stage = Stage.ICE
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    events: list = field(default_factory=list)

    def has_event(self, event_type: EventType) -> bool:
        return any(e.event_type == event_type for e in self.events)

    def has_recent_event(
        self,
        event_type: EventType,
        window_days: int,
        now: Optional[datetime] = None,
    ) -> bool:
        """
        True if an event of this type happened within the last `window_days`.

        The window is measured back from `now` (wall clock by default), so the
        answer can change with time alone. The boundary is inclusive.
        """
        threshold = (now or utcnow()) - timedelta(days=window_days)
        return any(
            e.event_type == event_type and e.created_at >= threshold
            for e in self.events
        )

    def last_event_data(self, event_type: EventType) -> Optional[dict]:
        """Payload of the last event of this type in log order"""
        last = None
        for event in self.events:
            if event.event_type == event_type:
                last = event
        return last.event_data if last else None
