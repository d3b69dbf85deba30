"""Google Calendar client for fetching one day's events."""
import logging
import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from calendar_source.credentials import GoogleCredentials
from calendar_source.exceptions import FetchFailure
from daily_schedule.models import DayWindow

logger = logging.getLogger(__name__)


def provider_error_message(response: requests.Response) -> str:
    """Extract Google's error text from a failed response."""
    try:
        payload = response.json()
    except ValueError:
        payload = None
    
    if isinstance(payload, dict):
        error = payload.get('error')
        if isinstance(error, dict) and error.get('message'):
            return str(error['message'])
        description = payload.get('error_description')
        if description:
            return str(description)
        if isinstance(error, str) and error:
            return error
    
    text = response.text.strip()
    return text or f"HTTP {response.status_code}"


class GoogleCalendarClient:
    """Read-only client for the Google Calendar v3 events API."""
    
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    BASE_URL = "https://www.googleapis.com/calendar/v3"
    RETRY_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
    
    def __init__(
        self,
        credentials: GoogleCredentials,
        timeout: int = 30,
        max_retries: int = 3,
        backoff_seconds: float = 1
    ):
        """
        Initialize the calendar client.
        
        Args:
            credentials: OAuth client and refresh token
            timeout: HTTP request timeout in seconds (default: 30)
            max_retries: Attempts per request for transient failures
            backoff_seconds: Base delay for exponential backoff
        """
        self.credentials = credentials
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self._access_token: Optional[str] = None
        self.token_expires_in: Optional[int] = None
    
    def fetch_events(
        self,
        calendar_id: str,
        window: DayWindow,
        max_results: int = 100
    ) -> List[Dict[str, Any]]:
        """
        Fetch expanded (single) events for the day window.
        
        Args:
            calendar_id: Calendar to read, e.g. "primary"
            window: Local day window to query
            max_results: Upper bound on returned events
            
        Returns:
            List of raw provider event dicts
            
        Raises:
            FetchFailure: If the token refresh or events request fails
        """
        logger.info(f"Fetching events for calendar '{calendar_id}' on {window.date_str}")
        
        if self._access_token is None:
            self.refresh_access_token()
        
        params = {
            'timeMin': window.start.isoformat(),
            'timeMax': window.end.isoformat(),
            'maxResults': max_results,
            'singleEvents': 'true',
            'orderBy': 'startTime',
        }
        url = f"{self.BASE_URL}/calendars/{quote(calendar_id, safe='')}/events"
        
        response = self._request('GET', url, params=params, headers={
            'Authorization': f"Bearer {self._access_token}",
            'Accept': 'application/json',
        })
        
        items = self._json_payload(response).get('items') or []
        if not isinstance(items, list):
            raise FetchFailure("Events response 'items' is not a list")
        logger.info(f"Successfully fetched {len(items)} events")
        return items
    
    def refresh_access_token(self) -> str:
        """
        Exchange the refresh token for a short-lived access token.
        
        Raises:
            FetchFailure: If Google rejects the refresh grant
        """
        response = self._request('POST', self.TOKEN_URL, data={
            'client_id': self.credentials.client_id,
            'client_secret': self.credentials.client_secret,
            'refresh_token': self.credentials.refresh_token,
            'grant_type': 'refresh_token',
        })
        
        payload = self._json_payload(response)
        access_token = payload.get('access_token')
        if not access_token:
            raise FetchFailure("Token response is missing access_token")
        
        self._access_token = access_token
        self.token_expires_in = payload.get('expires_in')
        return access_token
    
    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        """
        Send a request with retry logic for transient failures.
        
        Connection errors, timeouts, 429 and 5xx responses are retried with
        exponential backoff. Other error statuses fail immediately.
        
        Raises:
            FetchFailure: If the request ultimately fails
        """
        for attempt in range(self.max_retries):
            last_attempt = attempt == self.max_retries - 1
            try:
                response = requests.request(method, url, timeout=self.timeout, **kwargs)
            except requests.RequestException as e:
                if last_attempt:
                    logger.error(
                        f"All {self.max_retries} attempts failed. Last error: {e}"
                    )
                    raise FetchFailure(str(e)) from e
                self._backoff(attempt, e)
                continue
            
            if response.ok:
                return response
            
            message = provider_error_message(response)
            if response.status_code in self.RETRY_STATUS_CODES and not last_attempt:
                self._backoff(attempt, f"HTTP {response.status_code}: {message}")
                continue
            
            logger.error(f"{method} {url} failed with {response.status_code}: {message}")
            raise FetchFailure(message, status_code=response.status_code)
        
        raise FetchFailure("No request attempts were made")
    
    def _backoff(self, attempt: int, reason) -> None:
        delay = self.backoff_seconds * (2 ** attempt)
        logger.warning(
            f"Request failed (attempt {attempt + 1}/{self.max_retries}): {reason}. "
            f"Retrying in {delay} seconds..."
        )
        time.sleep(delay)
    
    @staticmethod
    def _json_payload(response: requests.Response) -> Dict[str, Any]:
        """
        Decode a successful response body as a JSON object.
        
        Raises:
            FetchFailure: If the body is not a JSON object
        """
        try:
            payload = response.json()
        except ValueError as e:
            raise FetchFailure(
                f"Unexpected non-JSON response from {response.url}",
                status_code=response.status_code
            ) from e
        
        if not isinstance(payload, dict):
            raise FetchFailure(
                f"Unexpected JSON payload from {response.url}",
                status_code=response.status_code
            )
        return payload
