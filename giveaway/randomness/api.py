import os
from typing import Any, Mapping, Optional
from urllib.parse import urljoin

from dotenv import load_dotenv

from ..config import Settings
from .utils import get_access_token, open_session


class RandomnessClient:
    """HTTP client for a remote randomness provider.

    The provider acknowledges a request with a ``request_id`` and later POSTs
    ``{"request_id": ..., "random_value": ...}`` to ``callback_url``; that
    payload is handed to :meth:`giveaway.service.GiveawayService.handle_callback`.
    """

    def __init__(
        self,
        base_fqdn: Optional[str] = None,
        callback_url: Optional[str] = None,
        timeout: int = 30,
    ):
        load_dotenv()
        fqdn = base_fqdn or os.getenv("RANDOMNESS_BASE_FQDN")
        if not fqdn:
            raise ValueError("Environment variable 'RANDOMNESS_BASE_FQDN' is not set")

        self.base_url = f"https://{fqdn}".rstrip("/")
        self.callback_url = callback_url or os.getenv("RANDOMNESS_CALLBACK_URL")
        self.session = open_session(fqdn)
        self.token = get_access_token(self.session, fqdn)
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "RandomnessClient":
        """Build a client from the ``RANDOMNESS_*`` fields of ``settings``."""
        return cls(
            base_fqdn=settings.randomness_base_fqdn,
            callback_url=settings.randomness_callback_url,
            timeout=settings.randomness_timeout,
        )

    # -------- headers --------
    @property
    def auth_headers(self) -> Mapping[str, str]:
        return {"Accept": "application/json", "Authorization": f"Bearer {self.token}"}

    # -------- core request --------
    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
    ) -> Any:
        url = urljoin(self.base_url + "/", path.lstrip("/"))
        r = self.session.request(
            method=method.upper(),
            url=url,
            headers=self.auth_headers,
            params=params,
            json=json,
            timeout=self.timeout,
        )
        r.raise_for_status()
        return r.json() if r.content else None

    # -------- API callers --------
    def request_randomness(self, campaign_id: str) -> str:
        """Ask the provider for a random value and return its request id."""
        payload: dict[str, Any] = {"campaign_id": campaign_id}
        if self.callback_url:
            payload["callback_url"] = self.callback_url
        response = self._request("POST", "/api/v1/randomness/requests", json=payload)

        if not isinstance(response, dict) or not response.get("request_id"):
            raise RuntimeError(f"Unexpected randomness provider response: {response!r}")
        return str(response["request_id"])

    def get_request(self, request_id: str) -> dict:
        """Return the provider's view of a request (status, value once ready)."""
        return self._request("GET", f"/api/v1/randomness/requests/{request_id}")


__all__ = ["RandomnessClient"]
