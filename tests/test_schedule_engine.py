"""Unit tests for ScheduleEngine."""
import os
import time
from datetime import date, datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from daily_schedule.models import DayWindow, NormalizedEvent
from daily_schedule.schedule_engine import ScheduleEngine, compute_schedule

TZ = timezone(timedelta(hours=-5))


def at(hour, minute=0, second=0):
    """Instant on 2024-01-15 in the test zone."""
    return datetime(2024, 1, 15, hour, minute, second, tzinfo=TZ)


def timed_event(event_id, start, end=None, summary=None):
    raw = {
        'id': event_id,
        'summary': summary or f"Event {event_id}",
        'start': {'dateTime': f"2024-01-15T{start}:00-05:00"},
    }
    if end:
        raw['end'] = {'dateTime': f"2024-01-15T{end}:00-05:00"}
    return raw


@pytest.fixture
def window():
    return DayWindow.for_date(date(2024, 1, 15), TZ)


@pytest.fixture
def engine():
    return ScheduleEngine()


@pytest.fixture
def two_meetings():
    return [
        timed_event('first', '09:00', '09:30'),
        timed_event('second', '10:00', '10:30'),
    ]


class TestScenarios:
    """End-to-end engine scenarios."""
    
    def test_active_event_is_next(self, engine, window, two_meetings):
        result = engine.compute_schedule(two_meetings, window, at(9, 15))
        
        assert [event.is_next for event in result.events] == [True, False]
        assert result.summary == "2 event(s) for 2024-01-15"
    
    def test_gap_selects_upcoming_event(self, engine, window, two_meetings):
        result = engine.compute_schedule(two_meetings, window, at(9, 45))
        
        assert [event.is_next for event in result.events] == [False, True]
        assert result.events[1].id == 'second'
    
    def test_all_events_past_selects_nothing(self, engine, window):
        raw_events = [timed_event('only', '09:00', '09:30')]
        
        result = engine.compute_schedule(raw_events, window, at(10, 0))
        
        assert len(result.events) == 1
        assert not any(event.is_next for event in result.events)
    
    def test_empty_list(self, engine, window):
        result = engine.compute_schedule([], window, at(10, 0))
        
        assert result.events == []
        assert result.prioritized == []
        assert result.summary == "No events for 2024-01-15"
    
    def test_equal_starts_keep_provider_order(self, engine, window):
        raw_events = [
            timed_event('B', '09:00', '09:30'),
            timed_event('A', '09:00', '10:00'),
        ]
        
        result = engine.compute_schedule(raw_events, window, at(7, 0))
        
        assert [event.id for event in result.events] == ['B', 'A']
        assert [event.priority for event in result.events] == [1, 2]


class TestOrderingAndPriorities:
    """Ordering and rank assignment."""
    
    def test_out_of_order_provider_results_are_sorted(self, engine, window):
        raw_events = [
            timed_event('c', '14:00', '15:00'),
            timed_event('a', '08:00', '08:30'),
            timed_event('b', '11:00', '12:00'),
        ]
        
        result = engine.compute_schedule(raw_events, window, at(6, 0))
        
        assert [event.id for event in result.events] == ['a', 'b', 'c']
        assert [event.priority for event in result.events] == [1, 2, 3]
    
    def test_ordering_across_offsets(self, engine, window):
        raw_events = [
            {'id': 'local', 'summary': 'Local', 'start': {'dateTime': '2024-01-15T10:00:00-05:00'}},
            {'id': 'utc', 'summary': 'UTC', 'start': {'dateTime': '2024-01-15T14:30:00Z'}},
        ]
        
        result = engine.compute_schedule(raw_events, window, at(6, 0))
        
        # 14:30Z is 09:30 local
        assert [event.id for event in result.events] == ['utc', 'local']
    
    def test_all_day_event_sorts_before_timed_events(self, engine, window):
        raw_events = [
            timed_event('meeting', '09:00', '10:00'),
            {'id': 'holiday', 'summary': 'Holiday', 'start': {'date': '2024-01-15'}, 'end': {'date': '2024-01-16'}},
        ]
        
        result = engine.compute_schedule(raw_events, window, at(6, 0))
        
        assert [event.id for event in result.events] == ['holiday', 'meeting']
    
    def test_priority_is_independent_of_next_selection(self, engine, window, two_meetings):
        result = engine.compute_schedule(two_meetings, window, at(9, 45))
        
        assert result.events[1].is_next is True
        assert [event.priority for event in result.events] == [1, 2]
    
    def test_assign_priorities_returns_new_events(self, engine):
        events = [
            NormalizedEvent(id='x', summary='X', start='2024-01-15', end='2024-01-15', is_all_day=True),
        ]
        
        ranked = engine.assign_priorities(events)
        
        assert ranked[0].priority == 1
        assert events[0].priority == 0


class TestNextSelection:
    """Active-window tolerance and next-up fallback."""
    
    def test_tolerance_before_start(self, engine, window, two_meetings):
        result = engine.compute_schedule(two_meetings, window, at(9, 59, 0))
        
        assert result.events[1].is_next is True
        assert engine.is_active(result.events[1], at(9, 59, 0), TZ)
    
    def test_tolerance_after_end(self, engine, window):
        raw_events = [timed_event('only', '09:00', '09:30')]
        
        within = engine.compute_schedule(raw_events, window, at(9, 31, 0))
        beyond = engine.compute_schedule(raw_events, window, at(9, 31, 1))
        
        assert within.events[0].is_next is True
        assert beyond.events[0].is_next is False
    
    def test_active_wins_over_upcoming(self, engine, window):
        raw_events = [
            timed_event('long', '08:00', '12:00'),
            timed_event('soon', '10:00', '10:15'),
        ]
        
        result = engine.compute_schedule(raw_events, window, at(9, 50))
        
        assert [event.is_next for event in result.events] == [True, False]
    
    def test_overlapping_active_events_flag_only_first(self, engine, window):
        raw_events = [
            timed_event('one', '09:00', '10:00'),
            timed_event('two', '09:15', '09:45'),
        ]
        
        result = engine.compute_schedule(raw_events, window, at(9, 30))
        
        assert [event.is_next for event in result.events] == [True, False]
    
    def test_upcoming_requires_start_strictly_after_now(self, engine, window):
        # zero-duration event at now is active via tolerance, not upcoming
        raw_events = [timed_event('instant', '10:00')]
        
        result = engine.compute_schedule(raw_events, window, at(10, 0))
        
        assert result.events[0].is_next is True
        assert result.events[0].end == result.events[0].start
    
    def test_all_day_event_is_active_all_day(self, engine, window):
        raw_events = [
            {'id': 'holiday', 'summary': 'Holiday', 'start': {'date': '2024-01-15'}, 'end': {'date': '2024-01-16'}},
            timed_event('meeting', '15:00', '16:00'),
        ]
        
        result = engine.compute_schedule(raw_events, window, at(13, 0))
        
        assert result.events[0].id == 'holiday'
        assert result.events[0].is_next is True
        assert result.events[1].is_next is False
    
    def test_naive_now_is_read_in_window_zone(self, engine, window, two_meetings):
        result = engine.compute_schedule(two_meetings, window, datetime(2024, 1, 15, 9, 15))
        
        assert result.events[0].is_next is True


class TestProperties:
    """Invariants that hold for any input."""
    
    @pytest.fixture
    def mixed_events(self):
        return [
            timed_event('d', '16:00', '17:00'),
            {'summary': 'No id', 'start': {'dateTime': '2024-01-15T08:00:00-05:00'}},
            timed_event('a', '09:00', '09:30'),
            {'id': 'allday', 'summary': 'Trip', 'start': {'date': '2024-01-15'}},
            timed_event('b', '09:00', '11:00'),
            timed_event('c', '12:00', '12:30'),
        ]
    
    @pytest.mark.parametrize("hour", [0, 9, 10, 12, 15, 17, 23])
    def test_invariants(self, engine, window, mixed_events, hour):
        result = engine.compute_schedule(mixed_events, window, at(hour), include_all_day=False)
        
        starts = [datetime.fromisoformat(event.start) for event in result.events]
        assert starts == sorted(starts)
        assert [event.priority for event in result.events] == list(range(1, len(result.events) + 1))
        assert sum(event.is_next for event in result.events) <= 1
        assert not any(event.is_all_day for event in result.events)
        assert all(event.id for event in result.events)
    
    def test_day_in_past_marks_nothing(self, engine, window, mixed_events):
        now = datetime(2024, 1, 16, 9, 0, tzinfo=TZ)
        
        result = engine.compute_schedule(mixed_events, window, now)
        
        assert result.events
        assert not any(event.is_next for event in result.events)
    
    def test_idempotent(self, engine, window, mixed_events):
        first = engine.compute_schedule(mixed_events, window, at(10, 30))
        second = engine.compute_schedule(mixed_events, window, at(10, 30))
        
        assert first == second
        assert first.to_dict() == second.to_dict()
    
    def test_prioritized_is_a_copy(self, engine, window, mixed_events):
        result = engine.compute_schedule(mixed_events, window, at(10, 30))
        
        assert result.prioritized == result.events
        assert result.prioritized is not result.events
    
    def test_module_level_compute_schedule(self, window, two_meetings):
        result = compute_schedule(two_meetings, window, at(9, 15))
        
        assert result.date == '2024-01-15'
        assert result.events[0].is_next is True


class TestSerialization:
    """Wire shape of results."""
    
    def test_to_dict(self, engine, window):
        raw_events = [
            {
                'id': 'evt1',
                'summary': 'Standup',
                'start': {'dateTime': '2024-01-15T09:00:00-05:00'},
                'end': {'dateTime': '2024-01-15T09:15:00-05:00'},
                'location': 'Room 4'
            },
            timed_event('evt2', '10:00', '11:00'),
        ]
        
        result = engine.compute_schedule(raw_events, window, at(8, 0)).to_dict()
        
        assert result['summary'] == "2 event(s) for 2024-01-15"
        assert result['events'][0] == {
            'id': 'evt1',
            'summary': 'Standup',
            'start': '2024-01-15T09:00:00-05:00',
            'end': '2024-01-15T09:15:00-05:00',
            'isAllDay': False,
            'location': 'Room 4',
            'priority': 1,
            'isNext': True,
        }
        assert 'location' not in result['events'][1]
        assert result['prioritized'] == result['events']
    
    def test_display_payload(self, engine, window, two_meetings):
        payload = engine.compute_schedule(two_meetings, window, at(9, 15)).display_payload()
        
        assert payload['date'] == '2024-01-15'
        assert [event['id'] for event in payload['events']] == ['first', 'second']
        assert payload['events'][0]['isNext'] is True


@pytest.fixture
def new_york_local_time():
    """Run with the process local zone set to America/New_York."""
    if not hasattr(time, 'tzset') or not os.path.exists('/usr/share/zoneinfo/America/New_York'):
        pytest.skip("requires POSIX tzset and the system zone database")
    with patch.dict(os.environ, {'TZ': 'America/New_York'}):
        time.tzset()
        yield
    time.tzset()


class TestDayWindow:
    """Day window construction."""
    
    def test_fixed_zone_window(self):
        window = DayWindow.for_date(date(2024, 1, 15), TZ)
        
        assert window.start == at(0, 0, 0)
        assert window.end == at(23, 59, 59)
        assert window.date_str == '2024-01-15'
    
    def test_local_window_spans_dst_change(self, new_york_local_time):
        # 2024-03-10: clocks move from EST (-05:00) to EDT (-04:00)
        window = DayWindow.for_date(date(2024, 3, 10))
        
        assert window.start.utcoffset() == timedelta(hours=-5)
        assert window.end.utcoffset() == timedelta(hours=-4)
        assert window.end.isoformat() == '2024-03-10T23:59:59-04:00'
    
    def test_naive_now_uses_local_window(self, new_york_local_time):
        window = DayWindow.containing(datetime(2024, 11, 3, 12, 0))
        
        assert window.date_str == '2024-11-03'
        assert window.start.utcoffset() == timedelta(hours=-4)
        assert window.end.utcoffset() == timedelta(hours=-5)
