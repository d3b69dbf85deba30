"""Daily schedule engine: ordering, ranking and next-up selection."""
import logging
from dataclasses import replace
from datetime import datetime, timedelta, tzinfo
from typing import Any, Dict, List, Optional

from daily_schedule.event_processor import EventProcessor, parse_instant
from daily_schedule.models import DayWindow, NormalizedEvent, ScheduleResult

logger = logging.getLogger(__name__)


class ScheduleEngine:
    """
    Pure transformation from raw provider events to an annotated schedule.
    
    The engine performs no I/O and keeps no state between calls, so one
    instance can serve any number of requests.
    """
    
    # Grace period on both edges of an event when deciding "happening now"
    ACTIVE_TOLERANCE = timedelta(seconds=60)
    
    def __init__(self, processor: Optional[EventProcessor] = None):
        self.processor = processor or EventProcessor()
    
    def compute_schedule(
        self,
        raw_events: List[Dict[str, Any]],
        window: DayWindow,
        now: datetime,
        include_all_day: bool = True
    ) -> ScheduleResult:
        """
        Build the day's schedule snapshot.
        
        Args:
            raw_events: Events as returned by the calendar provider
            window: Local day window the events belong to
            now: Reference instant for next-up selection
            include_all_day: Keep all-day events when True
            
        Returns:
            ScheduleResult with ordered, ranked and flagged events
        """
        if now.tzinfo is None:
            now = now.replace(tzinfo=window.tz)
        
        events = self.processor.process_events(raw_events, window, include_all_day)
        events = self.order_events(events, window.tz)
        events = self.assign_priorities(events)
        events = self.select_next(events, now, window.tz)
        
        summary = self.format_summary(len(events), window)
        logger.debug(summary)
        
        return ScheduleResult(
            events=events,
            prioritized=list(events),
            summary=summary,
            date=window.date_str
        )
    
    def order_events(
        self,
        events: List[NormalizedEvent],
        tz: tzinfo
    ) -> List[NormalizedEvent]:
        """
        Sort events by start instant.
        
        The sort is stable: events sharing a start keep provider order.
        """
        return sorted(events, key=lambda event: parse_instant(event.start, tz))
    
    def assign_priorities(
        self,
        events: List[NormalizedEvent]
    ) -> List[NormalizedEvent]:
        """Stamp each event with its 1-based rank in the given order."""
        return [
            replace(event, priority=index + 1)
            for index, event in enumerate(events)
        ]
    
    def select_next(
        self,
        events: List[NormalizedEvent],
        now: datetime,
        tz: tzinfo
    ) -> List[NormalizedEvent]:
        """
        Flag the single next-up event.
        
        An event active at ``now`` (within tolerance) wins; failing that,
        the first event starting strictly after ``now``. When every event
        has already ended nothing is flagged. Events must already be in
        chronological order.
        """
        index = self._find_active(events, now, tz)
        if index is None:
            index = self._find_first_upcoming(events, now, tz)
        if index is None:
            return list(events)
        
        flagged = list(events)
        flagged[index] = replace(flagged[index], is_next=True)
        return flagged
    
    def is_active(self, event: NormalizedEvent, now: datetime, tz: tzinfo) -> bool:
        """Check whether ``now`` falls in [start - tolerance, end + tolerance]."""
        start = parse_instant(event.start, tz)
        end = parse_instant(event.end, tz) or start
        return start - self.ACTIVE_TOLERANCE <= now <= end + self.ACTIVE_TOLERANCE
    
    def _find_active(self, events, now, tz) -> Optional[int]:
        for index, event in enumerate(events):
            if self.is_active(event, now, tz):
                return index
        return None
    
    def _find_first_upcoming(self, events, now, tz) -> Optional[int]:
        for index, event in enumerate(events):
            if parse_instant(event.start, tz) > now:
                return index
        return None
    
    def format_summary(self, count: int, window: DayWindow) -> str:
        """One-line description of the day's event count."""
        if count == 0:
            return f"No events for {window.date_str}"
        return f"{count} event(s) for {window.date_str}"


def compute_schedule(
    raw_events: List[Dict[str, Any]],
    window: DayWindow,
    now: datetime,
    include_all_day: bool = True
) -> ScheduleResult:
    """Run a default ScheduleEngine over one batch of raw events."""
    return ScheduleEngine().compute_schedule(raw_events, window, now, include_all_day)
