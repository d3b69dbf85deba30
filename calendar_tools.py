"""Assistant tool handlers for today's Google Calendar schedule."""
import json
import logging
import os
import time
from datetime import datetime, tzinfo
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from calendar_source.credentials import has_credentials, load_credentials
from calendar_source.exceptions import NotConnectedError
from calendar_source.google_calendar import GoogleCalendarClient
from daily_schedule.models import DayWindow, ScheduleResult
from daily_schedule.schedule_engine import ScheduleEngine

logger = logging.getLogger(__name__)

SERVER_INFO = {
    'name': 'gcalmcp',
    'title': 'Google Calendar MCP',
    'version': '1.0.0',
    'description': (
        "Connect to Google Calendar to see today's tasks, priorities, "
        "and schedule"
    ),
}

TOOL_DESCRIPTIONS = {
    'get-todays-events': (
        "Fetch today's calendar events from Google Calendar. Returns structured "
        "data with priorities and 'next up' indicator."
    ),
    'get-todays-schedule': (
        "Get today's calendar schedule and display it in a visual table. Use "
        "when the user asks what to do today, what's on the schedule, or wants "
        "to see their day."
    ),
}

EventSource = Callable[[str, DayWindow, int], List[Dict[str, Any]]]


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""
    
    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }
        
        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)
        
        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.
    
    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()
    
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)
    
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def load_config(env: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Read tool configuration from environment variables."""
    env = os.environ if env is None else env
    return {
        'log_level': env.get('LOG_LEVEL', 'INFO'),
        'timeout_seconds': int(env.get('TIMEOUT_SECONDS', '30')),
        'max_results': int(env.get('MAX_RESULTS', '100')),
        'timezone': env.get('CALENDAR_TIMEZONE') or None,
    }


def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """
    Return the named zone, or None for the system's local zone.
    
    Raises:
        ZoneInfoNotFoundError: If the zone name is unknown
    """
    if name:
        return ZoneInfo(name)
    return None


def parse_arguments(arguments: Optional[Dict[str, Any]]) -> Tuple[str, bool]:
    """
    Validate tool arguments and apply defaults.
    
    Returns:
        Tuple of (calendar_id, include_all_day)
        
    Raises:
        ValueError: If an argument has the wrong type
    """
    arguments = arguments or {}
    calendar_id = arguments.get('calendarId')
    include_all_day = arguments.get('includeAllDay')
    
    if calendar_id is None:
        calendar_id = 'primary'
    if not isinstance(calendar_id, str) or not calendar_id.strip():
        raise ValueError("calendarId must be a non-empty string")
    
    if include_all_day is None:
        include_all_day = True
    if not isinstance(include_all_day, bool):
        raise ValueError("includeAllDay must be a boolean")
    
    return calendar_id.strip(), include_all_day


def error_result(message: str, error_type: str) -> Dict[str, Any]:
    return {'isError': True, 'error': message, 'errorType': error_type}


class CalendarTools:
    """
    Tool handlers wired to injected collaborators.
    
    ``connected`` reports whether credentials exist, ``event_source`` fetches
    raw events for a calendar and day window, and ``clock`` supplies "now".
    """
    
    def __init__(
        self,
        connected: Callable[[], bool],
        event_source: EventSource,
        clock: Callable[[], datetime],
        engine: Optional[ScheduleEngine] = None,
        max_results: int = 100
    ):
        self.connected = connected
        self.event_source = event_source
        self.clock = clock
        self.engine = engine or ScheduleEngine()
        self.max_results = max_results
    
    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> 'CalendarTools':
        """Build handlers backed by Google Calendar and the system clock."""
        env = os.environ if env is None else env
        config = load_config(env)
        tz = resolve_timezone(config['timezone'])
        
        def fetch(calendar_id: str, window: DayWindow, max_results: int):
            credentials = load_credentials(env)
            if credentials is None:
                raise NotConnectedError()
            client = GoogleCalendarClient(
                credentials, timeout=config['timeout_seconds']
            )
            return client.fetch_events(calendar_id, window, max_results)
        
        return cls(
            connected=lambda: has_credentials(env),
            event_source=fetch,
            clock=lambda: datetime.now(tz),
            max_results=config['max_results']
        )
    
    def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Dispatch a tool call by name."""
        handlers = {
            'get-todays-events': self.get_todays_events,
            'get-todays-schedule': self.get_todays_schedule,
        }
        handler = handlers.get(name)
        if handler is None:
            return error_result(f"Unknown tool: {name}", 'ValueError')
        return handler(arguments)
    
    def get_todays_events(self, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Return today's events with priorities and the next-up flag."""
        result = self._run(arguments)
        if isinstance(result, dict):
            return result
        return {'isError': False, 'content': result.to_dict()}
    
    def get_todays_schedule(self, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Return the display payload for the schedule widget."""
        result = self._run(arguments)
        if isinstance(result, dict):
            return result
        return {
            'isError': False,
            'widget': 'today-schedule',
            'content': result.display_payload(),
            'text': result.summary,
        }
    
    def _run(self, arguments: Optional[Dict[str, Any]]):
        """Compute the schedule, or return an error result."""
        start_time = time.time()
        
        try:
            calendar_id, include_all_day = parse_arguments(arguments)
        except ValueError as e:
            logger.warning(f"Invalid tool arguments: {e}")
            return error_result(str(e), 'ValueError')
        
        if not self.connected():
            logger.warning("Google Calendar credentials are not configured")
            return error_result(NotConnectedError.DEFAULT_MESSAGE, 'NotConnectedError')
        
        now = self.clock()
        window = DayWindow.containing(now)
        if now.tzinfo is None:
            now = now.astimezone()
        
        try:
            logger.info("Fetching events from calendar")
            raw_events = self.event_source(calendar_id, window, self.max_results)
            logger.info(f"Fetched {len(raw_events)} raw events from calendar")
        except NotConnectedError as e:
            logger.warning(str(e))
            return error_result(str(e), 'NotConnectedError')
        except Exception as e:
            logger.error(
                f"Failed to fetch events from calendar: {str(e)}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            return error_result(f"Failed to fetch calendar: {e}", type(e).__name__)
        
        logger.info("Computing schedule")
        result: ScheduleResult = self.engine.compute_schedule(
            raw_events, window, now, include_all_day
        )
        
        logger.info(
            f"Schedule computed: {result.summary}",
            extra={'duration_seconds': round(time.time() - start_time, 3)}
        )
        return result


def handle_tool_call(name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Entry point for the hosting tool server.
    
    Args:
        name: Tool name ("get-todays-events" or "get-todays-schedule")
        arguments: Tool arguments (calendarId, includeAllDay)
        
    Returns:
        Tool result dict; failures are reported with isError set
    """
    setup_logging(os.environ.get('LOG_LEVEL', 'INFO'))
    
    try:
        tools = CalendarTools.from_env()
    except (ValueError, ZoneInfoNotFoundError) as e:
        logger.error(f"Invalid configuration: {e}", exc_info=True)
        return error_result(f"Invalid configuration: {e}", 'ValueError')
    
    return tools.call_tool(name, arguments)
