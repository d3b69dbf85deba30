"""Check that the configured Google credentials can refresh an access token."""
import logging
import os
import sys
from typing import Callable, List, Mapping, Optional

from calendar_source.credentials import GoogleCredentials, load_credentials
from calendar_source.exceptions import FetchFailure
from calendar_source.google_calendar import GoogleCalendarClient
from calendar_tools import setup_logging

logger = logging.getLogger(__name__)

NEXT_STEPS = [
    "Create new OAuth 2.0 Web application credentials in Google Cloud Console",
    "Add redirect URI: http://localhost:3000/oauth2callback",
    "Download the JSON and replace credentials.json",
    "Remove GOOGLE_* from the environment (or update them with the new values)",
    "Delete token.json and obtain a new refresh token",
]


def verify_credentials(
    env: Optional[Mapping[str, str]] = None,
    client_factory: Callable[[GoogleCredentials], GoogleCalendarClient] = GoogleCalendarClient
) -> bool:
    """
    Report where credentials come from and try one token refresh.
    
    Args:
        env: Environment mapping (defaults to os.environ)
        client_factory: Builds the client used for the refresh
        
    Returns:
        True if the refresh succeeded
    """
    credentials = load_credentials(env)
    if credentials is None:
        logger.error(
            "No credentials found. Set GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET "
            "and GOOGLE_REFRESH_TOKEN or use credentials.json + token.json"
        )
        return False
    
    logger.info(
        f"Using credentials from: {credentials.source}",
        extra={
            'client_id_prefix': credentials.client_id[:30],
            'client_secret_length': len(credentials.client_secret),
            'refresh_token_length': len(credentials.refresh_token)
        }
    )
    
    client = client_factory(credentials)
    try:
        client.refresh_access_token()
    except FetchFailure as e:
        logger.error(
            f"Token refresh failed: {e}",
            extra={'status_code': e.status_code}
        )
        logger.error(format_next_steps(NEXT_STEPS))
        return False
    
    logger.info(
        f"Token refresh works; access token expires in "
        f"{client.token_expires_in or 'N/A'} seconds"
    )
    return True


def format_next_steps(steps: List[str]) -> str:
    lines = [f"{index}. {step}" for index, step in enumerate(steps, start=1)]
    return "Next steps:\n" + "\n".join(lines)


def main() -> int:
    """Console entry point; exits non-zero when verification fails."""
    setup_logging(os.environ.get('LOG_LEVEL', 'INFO'))
    return 0 if verify_credentials() else 1


if __name__ == '__main__':
    sys.exit(main())
