"""Errors raised by the calendar provider collaborators."""
from typing import Optional


class CalendarError(Exception):
    """Base class for calendar provider errors."""


class NotConnectedError(CalendarError):
    """No usable Google credentials are configured."""

    DEFAULT_MESSAGE = (
        "Google Calendar not connected. Set GOOGLE_CLIENT_ID, "
        "GOOGLE_CLIENT_SECRET, and GOOGLE_REFRESH_TOKEN (or provide "
        "credentials.json and token.json), then run verify-google-auth."
    )

    def __init__(self, message: str = DEFAULT_MESSAGE):
        super().__init__(message)


class FetchFailure(CalendarError):
    """The provider call failed; carries the provider's message text."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
