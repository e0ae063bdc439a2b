# =============================================================================
# RAIN ALERT ENGINE - HTTP HELPERS
# =============================================================================
#
# Shared request plumbing for the weather-data API (api.weather.gov).
#
# The API rejects anonymous clients: every request must carry a
# User-Agent that names the application and a contact address.
#
# =============================================================================

import logging
from typing import Any, Dict, Optional, Tuple

import requests

logger = logging.getLogger(__name__)


DEFAULT_API_BASE_URL = "https://api.weather.gov"
DEFAULT_APP_NAME = "RainAlertEngine"
DEFAULT_CONTACT_EMAIL = "rain-alert@example.com"

DEFAULT_CONNECT_TIMEOUT = 15  # seconds
DEFAULT_READ_TIMEOUT = 30  # seconds

# (connect, read) as accepted by requests
Timeouts = Tuple[float, float]


def build_user_agent(app_name: str = DEFAULT_APP_NAME, contact: str = DEFAULT_CONTACT_EMAIL) -> str:
    """Identity header value in the form the API asks for: (app, contact)."""
    return f"({app_name}, {contact})"


def build_headers(user_agent: str) -> Dict[str, str]:
    return {
        "User-Agent": user_agent,
        "Accept": "application/geo+json",
    }


def create_session(user_agent: Optional[str] = None) -> requests.Session:
    """Create a requests session with the identifying headers preset."""
    session = requests.Session()
    session.headers.update(build_headers(user_agent or build_user_agent()))
    return session


def get_json(
    session: requests.Session,
    url: str,
    timeouts: Timeouts = (DEFAULT_CONNECT_TIMEOUT, DEFAULT_READ_TIMEOUT),
) -> Any:
    """
    GET a URL and decode the JSON body.

    Raises:
        requests.exceptions.RequestException: network error, timeout or
            non-2xx status
        ValueError: body is not valid JSON
    """
    logger.debug(f"GET {url}")
    response = session.get(url, timeout=timeouts)
    response.raise_for_status()
    return response.json()
