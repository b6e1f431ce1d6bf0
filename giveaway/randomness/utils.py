import os
import logging
from typing import Optional

import requests
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Ensure environment variables from .env are loaded when this module is imported.
load_dotenv()


def _resolve_fqdn(fqdn: Optional[str]) -> str:
    resolved = fqdn or os.environ.get("RANDOMNESS_BASE_FQDN")
    if not resolved:
        raise RuntimeError("Environment variable 'RANDOMNESS_BASE_FQDN' is not set")
    return resolved


def open_session(fqdn: Optional[str] = None) -> requests.Session:
    """Open a requests session to the randomness provider and check it is up.

    Parameters
    ----------
    fqdn : Optional[str]
        Provider host. Falls back to ``RANDOMNESS_BASE_FQDN``.

    Returns
    -------
    requests.Session
        Session with JSON ``Accept`` header set.

    Raises
    ------
    RuntimeError
        If no host is configured or the health check fails. Any underlying
        exception is re-raised as a ``RuntimeError`` with context.
    """
    url = "https://" + _resolve_fqdn(fqdn) + "/api/v1/health"

    session = requests.Session()
    session.headers.update({"Accept": "application/json"})
    try:
        response = session.get(url)
        response.raise_for_status()
        logger.debug("Randomness provider health check passed")
        return session
    except Exception as e:
        logger.critical(f"Error occurred while starting session: {e}")
        raise RuntimeError(f"Failed to establish session: {e}") from e


def get_access_token(session: requests.Session, fqdn: Optional[str] = None) -> str:
    """Obtain an access token using the configured client credentials.

    Parameters
    ----------
    session : requests.Session
        A live session for the randomness provider.
    fqdn : Optional[str]
        Provider host. Falls back to ``RANDOMNESS_BASE_FQDN``.

    Returns
    -------
    str
        The bearer token string.

    Raises
    ------
    RuntimeError
        If required environment variables are not set.
    requests.HTTPError
        If the token request fails.
    KeyError, ValueError
        If the response payload does not include an ``"access_token"`` field.
    """
    client_id = os.environ.get("RANDOMNESS_CLIENT_ID")
    client_secret = os.environ.get("RANDOMNESS_CLIENT_SECRET")
    if not client_id or not client_secret:
        raise RuntimeError(
            "Environment variables 'RANDOMNESS_CLIENT_ID' and "
            "'RANDOMNESS_CLIENT_SECRET' must be set"
        )
    # Never log raw credentials
    logger.debug("Requesting access token for configured client id")

    url = "https://" + _resolve_fqdn(fqdn) + "/api/v1/auth/token"
    response = session.post(
        url, json={"client_id": client_id, "client_secret": client_secret}
    )
    response.raise_for_status()

    logger.debug("Access token response received (content redacted)")
    return response.json()["access_token"]
