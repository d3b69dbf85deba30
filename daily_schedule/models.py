"""Data models for the daily schedule engine."""
from dataclasses import dataclass
from datetime import date, datetime, time, tzinfo
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class NormalizedEvent:
    """Validated and annotated calendar event."""
    id: str
    summary: str
    start: str
    end: str
    is_all_day: bool
    location: Optional[str] = None
    priority: int = 0
    is_next: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the tool/display wire shape."""
        data = {
            'id': self.id,
            'summary': self.summary,
            'start': self.start,
            'end': self.end,
            'isAllDay': self.is_all_day,
            'priority': self.priority,
            'isNext': self.is_next,
        }
        if self.location is not None:
            data['location'] = self.location
        return data


@dataclass(frozen=True)
class DayWindow:
    """Local-time span [00:00:00, 23:59:59] defining one calendar day."""
    start: datetime
    end: datetime

    @classmethod
    def for_date(cls, day: date, tz: Optional[tzinfo] = None) -> 'DayWindow':
        """
        Build the window for ``day``.

        Without ``tz`` the system local zone is used, resolving each edge
        to its own UTC offset so DST transition days stay correct.
        """
        start = datetime.combine(day, time(0, 0, 0), tzinfo=tz)
        end = datetime.combine(day, time(23, 59, 59), tzinfo=tz)
        if tz is None:
            start, end = start.astimezone(), end.astimezone()
        return cls(start=start, end=end)

    @classmethod
    def containing(cls, now: datetime) -> 'DayWindow':
        """
        Build the window for the local day that contains ``now``.

        A naive ``now`` is read as system local time.
        """
        return cls.for_date(now.date(), now.tzinfo)

    @property
    def tz(self) -> tzinfo:
        return self.start.tzinfo

    @property
    def date_str(self) -> str:
        return self.start.date().isoformat()


@dataclass(frozen=True)
class ScheduleResult:
    """Snapshot produced by one engine invocation."""
    events: List[NormalizedEvent]
    prioritized: List[NormalizedEvent]
    summary: str
    date: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'events': [event.to_dict() for event in self.events],
            'prioritized': [event.to_dict() for event in self.prioritized],
            'summary': self.summary,
        }

    def display_payload(self) -> Dict[str, Any]:
        """Payload handed to the schedule renderer."""
        return {
            'date': self.date,
            'events': [event.to_dict() for event in self.events],
        }
