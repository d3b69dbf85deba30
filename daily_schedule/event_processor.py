"""Event processor for normalizing and filtering raw provider events."""
import logging
from datetime import date, datetime, time, tzinfo
from typing import Any, Dict, List, Optional

from daily_schedule.models import DayWindow, NormalizedEvent

logger = logging.getLogger(__name__)


def parse_instant(value: str, tz: tzinfo) -> Optional[datetime]:
    """
    Parse an ISO-8601 date or date-time string into an aware datetime.

    Date-only values resolve to local midnight and offset-less date-times
    are read as local time, both in ``tz``.

    Args:
        value: ISO-8601 string from the provider
        tz: Timezone of the requested day window

    Returns:
        Aware datetime or None if the value cannot be parsed
    """
    if not value or not isinstance(value, str):
        return None

    value = value.strip()
    try:
        if len(value) == 10:
            return datetime.combine(date.fromisoformat(value), time.min, tzinfo=tz)
        if value.endswith(('Z', 'z')):
            value = value[:-1] + '+00:00'
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


class EventProcessor:
    """Processor for normalizing and filtering raw calendar events."""
    
    NO_TITLE_PLACEHOLDER = '(No title)'
    
    def process_events(
        self,
        raw_events: List[Dict[str, Any]],
        window: DayWindow,
        include_all_day: bool = True
    ) -> List[NormalizedEvent]:
        """
        Normalize raw events and drop the ones that cannot be displayed.
        
        Args:
            raw_events: Events as returned by the calendar provider
            window: Day window the events were fetched for
            include_all_day: Keep all-day events when True
            
        Returns:
            List of NormalizedEvent objects in provider order
        """
        processed_events = []
        
        for raw_event in raw_events:
            try:
                event = self._process_single_event(
                    raw_event, window, include_all_day
                )
                if event:
                    processed_events.append(event)
            except Exception as e:
                logger.warning(f"Failed to process event {raw_event!r}: {e}")
                continue
        
        logger.info(
            f"Processed {len(processed_events)} displayable events out of "
            f"{len(raw_events)} total events"
        )
        return processed_events
    
    def _process_single_event(
        self,
        raw_event: Dict[str, Any],
        window: DayWindow,
        include_all_day: bool
    ) -> Optional[NormalizedEvent]:
        if not self.is_displayable(raw_event):
            return None
        
        event = self.normalize_event(raw_event)
        
        if not include_all_day and event.is_all_day:
            logger.debug(f"Skipping all-day event '{event.id}'")
            return None
        
        if parse_instant(event.start, window.tz) is None:
            logger.warning(
                f"Invalid start for event '{event.id}': {event.start!r}"
            )
            return None
        
        return event
    
    def is_displayable(self, raw_event: Any) -> bool:
        """
        Check that an event has an identifier and a title.
        
        Events failing this check are dropped regardless of the
        all-day policy.
        """
        if not isinstance(raw_event, dict):
            logger.warning("Event is not a mapping")
            return False
        
        event_id = raw_event.get('id')
        if not isinstance(event_id, str) or not event_id:
            logger.warning("Event missing required field: id")
            return False
        
        if not raw_event.get('summary'):
            logger.warning(f"Event '{event_id}' missing required field: summary")
            return False
        
        return True
    
    def normalize_event(self, raw_event: Dict[str, Any]) -> NormalizedEvent:
        """
        Map one raw provider event onto a NormalizedEvent.
        
        Args:
            raw_event: Provider event with optional start/end/location
            
        Returns:
            Unannotated NormalizedEvent (priority 0, not next)
        """
        start_marker = self._marker(raw_event, 'start')
        end_marker = self._marker(raw_event, 'end')
        
        start = start_marker.get('dateTime') or start_marker.get('date') or ''
        end = end_marker.get('dateTime') or end_marker.get('date') or start
        is_all_day = bool(start_marker.get('date')) and not start_marker.get('dateTime')
        
        title = raw_event.get('summary')
        if not isinstance(title, str) or not title.strip():
            title = self.NO_TITLE_PLACEHOLDER
        
        return NormalizedEvent(
            id=raw_event.get('id', ''),
            summary=title,
            start=start,
            end=end,
            is_all_day=is_all_day,
            location=raw_event.get('location')
        )
    
    @staticmethod
    def _marker(raw_event: Dict[str, Any], key: str) -> Dict[str, Any]:
        marker = raw_event.get(key)
        return marker if isinstance(marker, dict) else {}
