"""Google OAuth credential discovery from the environment or on-disk files."""
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_CREDENTIALS_PATH = 'credentials.json'
DEFAULT_TOKEN_PATH = 'token.json'
DEFAULT_REDIRECT_URI = 'http://localhost:3000/oauth2callback'
INSTALLED_REDIRECT_URI = 'urn:ietf:wg:oauth:2.0:oob'
SOURCE_ENVIRONMENT = 'environment'
SOURCE_FILES = 'credentials.json + token.json'


@dataclass(frozen=True)
class GoogleCredentials:
    """OAuth client plus refresh token for the Calendar API."""
    client_id: str
    client_secret: str
    refresh_token: str
    redirect_uri: str = DEFAULT_REDIRECT_URI
    source: str = SOURCE_ENVIRONMENT


def _clean(value: Optional[str]) -> str:
    """Trim whitespace and one pair of surrounding quotes."""
    value = (value or '').strip()
    if value[:1] in ('"', "'"):
        value = value[1:]
    if value[-1:] in ('"', "'"):
        value = value[:-1]
    return value


def _read_json(path: Path) -> Optional[Dict[str, Any]]:
    try:
        with open(path, encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Could not read {path}: {e}")
        return None
    return data if isinstance(data, dict) else None


def _client_section(creds: Dict[str, Any]) -> Dict[str, Any]:
    section = creds.get('web') or creds.get('installed') or {}
    return section if isinstance(section, dict) else {}


def resolve_redirect_uri(credentials_path: Path) -> str:
    """
    Pick the OAuth redirect URI from credentials.json.
    
    Uses the first configured redirect URI; installed (desktop) clients
    without one fall back to the out-of-band URI.
    """
    if not credentials_path.exists():
        return DEFAULT_REDIRECT_URI
    
    creds = _read_json(credentials_path)
    if creds is None:
        return DEFAULT_REDIRECT_URI
    
    uris = _client_section(creds).get('redirect_uris')
    if isinstance(uris, list) and uris and uris[0]:
        return uris[0]
    if 'installed' in creds:
        return INSTALLED_REDIRECT_URI
    return DEFAULT_REDIRECT_URI


def load_from_files(
    credentials_path: Path,
    token_path: Path
) -> Optional[GoogleCredentials]:
    """
    Load client credentials and refresh token from JSON files.
    
    Args:
        credentials_path: OAuth client file downloaded from Google Cloud
        token_path: File holding the refresh_token
        
    Returns:
        GoogleCredentials or None if a file is missing or incomplete
    """
    if not credentials_path.exists() or not token_path.exists():
        return None
    
    creds = _read_json(credentials_path)
    token = _read_json(token_path)
    if creds is None or token is None:
        return None
    
    client = _client_section(creds)
    client_id = _clean(client.get('client_id'))
    client_secret = _clean(client.get('client_secret'))
    refresh_token = _clean(token.get('refresh_token'))
    if not client_id or not client_secret or not refresh_token:
        return None
    
    return GoogleCredentials(
        client_id=client_id,
        client_secret=client_secret,
        refresh_token=refresh_token,
        redirect_uri=resolve_redirect_uri(credentials_path),
        source=SOURCE_FILES
    )


def load_credentials(
    env: Optional[Mapping[str, str]] = None,
    credentials_path: Optional[str] = None,
    token_path: Optional[str] = None
) -> Optional[GoogleCredentials]:
    """
    Discover Google credentials.
    
    GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET and GOOGLE_REFRESH_TOKEN win
    when all three are set; otherwise the JSON files are consulted.
    
    Args:
        env: Environment mapping (defaults to os.environ)
        credentials_path: Path to credentials.json
        token_path: Path to token.json
        
    Returns:
        GoogleCredentials or None when nothing usable is configured
    """
    env = os.environ if env is None else env
    creds_file = Path(
        credentials_path
        or env.get('GOOGLE_CREDENTIALS_PATH')
        or DEFAULT_CREDENTIALS_PATH
    )
    token_file = Path(
        token_path or env.get('GOOGLE_TOKEN_PATH') or DEFAULT_TOKEN_PATH
    )
    
    client_id = _clean(env.get('GOOGLE_CLIENT_ID'))
    client_secret = _clean(env.get('GOOGLE_CLIENT_SECRET'))
    refresh_token = _clean(env.get('GOOGLE_REFRESH_TOKEN'))
    
    if client_id and client_secret and refresh_token:
        return GoogleCredentials(
            client_id=client_id,
            client_secret=client_secret,
            refresh_token=refresh_token,
            redirect_uri=resolve_redirect_uri(creds_file),
            source=SOURCE_ENVIRONMENT
        )
    
    return load_from_files(creds_file, token_file)


def has_credentials(
    env: Optional[Mapping[str, str]] = None,
    credentials_path: Optional[str] = None,
    token_path: Optional[str] = None
) -> bool:
    """True when Google credentials are available."""
    return load_credentials(env, credentials_path, token_path) is not None
